"""Create posts table

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates the `posts` table holding blog posts.
How:   Integer identity primary key; title/content TEXT NOT NULL; image TEXT NULL
       (base64 data URI stored inline).

Rollback: downgrade() drops the table entirely (destructive, all posts lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the posts table. Column docs live in blog_api/models/post.py."""
    op.create_table(
        "posts",
        sa.Column(
            "id",
            sa.Integer(),
            autoincrement=True,
            nullable=False,
            comment="Database-assigned post identifier",
        ),
        sa.Column(
            "title",
            sa.Text(),
            nullable=False,
            comment="Post title",
        ),
        sa.Column(
            "content",
            sa.Text(),
            nullable=False,
            comment="Post body",
        ),
        sa.Column(
            "image",
            sa.Text(),
            nullable=True,
            comment="Optional image as a base64 data URI",
        ),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """
    Drop the posts table.

    WARNING: destructive. All post data is permanently lost.
    """
    op.drop_table("posts")
