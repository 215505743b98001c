"""
Blog API Backend - Post Repository (Data Access Layer)
=======================================================

What:  Parameterized statements against the `posts` table.
How:   Statements are SQLAlchemy expressions, so every value is a bound
       parameter. Each operation opens its own session through the injected
       Database handle: one pool checkout per call, released on success or
       failure.
Who:   Called by PostService.

Identifier handling:
    Post ids travel through the HTTP layer as strings. They are converted
    here, at the storage boundary, and anything that cannot be a row id
    raises ValidationError.

Error translation:
    sqlalchemy.exc.TimeoutError (no free pooled connection) → ServiceUnavailableError
    Any other SQLAlchemy / driver / socket error              → DatabaseError
    No retries are attempted.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError, TimeoutError as PoolTimeoutError

from blog_api.database import Database
from blog_api.exceptions import DatabaseError, ServiceUnavailableError, ValidationError
from blog_api.models.post import Post
from blog_api.schemas.post import WriteResult

logger = logging.getLogger(__name__)

# Upper bound of the INTEGER id column
MAX_POST_ID = 2_147_483_647


def parse_post_id(post_id: str) -> int:
    """
    Convert a path identifier into a row id.

    Raises:
        ValidationError: post_id is not a plain decimal within the column range.
    """
    value = str(post_id)
    if not (value.isascii() and value.isdigit()) or int(value) > MAX_POST_ID:
        raise ValidationError(
            message=f"Post id '{value}' is not a valid identifier",
            field="id",
        )
    return int(value)


class PostRepository:
    """
    CRUD operations for posts.

    Operations:
        list_all / get_by_id                      → reads
        create / create_with_image                → INSERT
        update / update_with_image                → UPDATE (full overwrite)
        delete                                    → DELETE
    """

    def __init__(self, database: Database):
        self._database = database

    @asynccontextmanager
    async def _storage_errors(self, operation: str) -> AsyncIterator[None]:
        """Translates storage failures raised inside the block into app errors."""
        try:
            yield
        except PoolTimeoutError as e:
            logger.warning("Connection pool exhausted during %s: %s", operation, str(e))
            raise ServiceUnavailableError(
                message="No database connection became available in time. Please retry.",
                retry_after=max(1, int(self._database.pool_timeout)),
                context={"operation": operation},
            )
        except (SQLAlchemyError, OSError) as e:
            logger.error("Database error during %s: %s", operation, str(e), exc_info=True)
            raise DatabaseError(
                context={"operation": operation, "error_type": type(e).__name__},
            )

    async def list_all(self) -> List[Post]:
        """SELECT every post, in storage order."""
        async with self._storage_errors("list_posts"):
            async with self._database.session() as session:
                result = await session.execute(select(Post))
                return list(result.scalars().all())

    async def get_by_id(self, post_id: str) -> Optional[Post]:
        """SELECT one post; None when no row matches."""
        pk = parse_post_id(post_id)
        async with self._storage_errors("get_post"):
            async with self._database.session() as session:
                result = await session.execute(select(Post).where(Post.id == pk))
                return result.scalar_one_or_none()

    async def create(self, title: str, content: str) -> WriteResult:
        """INSERT a post without an image."""
        return await self._insert(Post(title=title, content=content))

    async def create_with_image(self, title: str, content: str, image: str) -> WriteResult:
        """INSERT a post with an image data URI."""
        return await self._insert(Post(title=title, content=content, image=image))

    async def update(self, post_id: str, title: str, content: str) -> WriteResult:
        """UPDATE title and content; the stored image is left as is."""
        return await self._update(post_id, {"title": title, "content": content})

    async def update_with_image(
        self, post_id: str, title: str, content: str, image: str
    ) -> WriteResult:
        """UPDATE title, content and image."""
        return await self._update(
            post_id, {"title": title, "content": content, "image": image}
        )

    async def delete(self, post_id: str) -> WriteResult:
        """DELETE a post; affected_rows is 0 when the id does not exist."""
        pk = parse_post_id(post_id)
        async with self._storage_errors("delete_post"):
            async with self._database.session() as session:
                result = await session.execute(
                    delete(Post).where(Post.id == pk),
                    execution_options={"synchronize_session": False},
                )
                return WriteResult(affected_rows=result.rowcount)

    async def _insert(self, post: Post) -> WriteResult:
        async with self._storage_errors("create_post"):
            async with self._database.session() as session:
                session.add(post)
                await session.flush()  # Assigns the id without ending the transaction
                logger.info("Post %s created", post.id)
                return WriteResult(inserted_id=post.id, affected_rows=1)

    async def _update(self, post_id: str, values: dict) -> WriteResult:
        pk = parse_post_id(post_id)
        async with self._storage_errors("update_post"):
            async with self._database.session() as session:
                result = await session.execute(
                    update(Post).where(Post.id == pk).values(**values),
                    execution_options={"synchronize_session": False},
                )
                return WriteResult(affected_rows=result.rowcount)
