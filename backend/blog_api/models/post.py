"""
Blog API Backend - Post SQLAlchemy Model
=========================================

What:  ORM model representing the `posts` table.
Who:   Used by PostRepository for CRUD statements and by Alembic / create_all
       for schema management.

Table Design:
    - id: Integer primary key assigned by the database
    - title / content: TEXT, NOT NULL (emptiness is rejected by the API layer)
    - image: Optional data URI (data:<mediatype>;base64,<payload>) stored inline
"""

from typing import Optional

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from blog_api.database import Base


class Post(Base):
    """
    A blog post.

    Lifecycle:
        1. Inserted by POST /posts (id assigned by storage)
        2. Overwritten in place by PUT /posts/{id}
        3. Physically deleted by DELETE /posts/{id}
    """

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Database-assigned post identifier",
    )

    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Post title",
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Post body",
    )

    # Stored inline as the full data URI; NULL when the post has no image
    image: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        default=None,
        comment="Optional image as a base64 data URI",
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, title='{self.title}')>"
