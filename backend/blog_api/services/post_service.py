"""
Blog API Backend - Post Service
================================

What:  Input validation and dispatch between the HTTP handlers and the
       PostRepository.
How:   Each write operation validates the payload first; invalid input raises
       ValidationError and never reaches storage. Valid input is routed to
       the plain or the *_with_image repository operation.
Who:   Called by the route handlers in routes/posts.py.

Validation rules:
    title    required, non-empty
    content  required, non-empty
    image    optional; when non-empty it must be a base64 data URI
             (data:<mediatype>;base64,<payload>)
"""

import logging
import re
from typing import List, Optional, Tuple

from blog_api.exceptions import ValidationError
from blog_api.models.post import Post
from blog_api.schemas.post import PostPayload, WriteResult
from blog_api.services.post_repository import PostRepository

logger = logging.getLogger(__name__)

# The whole value must match (fullmatch); the payload may not contain any
# line terminator (\n, \r, U+2028, U+2029)
DATA_URI_PATTERN = re.compile(r"data:([A-Za-z+/-]+);base64,([^\n\r\u2028\u2029]+)")


def is_data_uri(value: str) -> bool:
    """True when value has the shape data:<mediatype>;base64,<payload>."""
    return DATA_URI_PATTERN.fullmatch(value) is not None


class PostService:
    """
    Business rules for post operations.

    The service is stateless apart from its repository, so one instance is
    shared by every request of an application.
    """

    def __init__(self, repository: PostRepository):
        self.repository = repository

    @staticmethod
    def validate_payload(payload: PostPayload) -> Tuple[str, str, Optional[str]]:
        """
        Check a create/update body.

        Returns:
            (title, content, image) where image is None when no image was sent.

        Raises:
            ValidationError: naming the offending field.
        """
        if not payload.title:
            raise ValidationError(
                message="Field 'title' is required and must not be empty",
                field="title",
            )
        if not payload.content:
            raise ValidationError(
                message="Field 'content' is required and must not be empty",
                field="content",
            )
        image = payload.image or None
        if image is not None and not is_data_uri(image):
            raise ValidationError(
                message="Field 'image' must be a base64 data URI (data:<mediatype>;base64,<payload>)",
                field="image",
            )
        return payload.title, payload.content, image

    async def list_posts(self) -> List[Post]:
        return await self.repository.list_all()

    async def get_post(self, post_id: str) -> Optional[Post]:
        return await self.repository.get_by_id(post_id)

    async def create_post(self, payload: PostPayload) -> WriteResult:
        title, content, image = self.validate_payload(payload)
        if image:
            return await self.repository.create_with_image(title, content, image)
        return await self.repository.create(title, content)

    async def update_post(self, post_id: str, payload: PostPayload) -> WriteResult:
        title, content, image = self.validate_payload(payload)
        if image:
            result = await self.repository.update_with_image(post_id, title, content, image)
        else:
            result = await self.repository.update(post_id, title, content)
        logger.info("Post %s updated (%d row(s))", post_id, result.affected_rows)
        return result

    async def delete_post(self, post_id: str) -> WriteResult:
        result = await self.repository.delete(post_id)
        logger.info("Post %s deleted (%d row(s))", post_id, result.affected_rows)
        return result
