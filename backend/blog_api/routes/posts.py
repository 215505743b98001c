"""
Blog API Backend - Post Route Handlers
=======================================

What:  CRUD endpoints for blog posts.
How:   Each handler delegates to the PostService published on app.state and
       returns its result; errors raised below are turned into responses by
       the global exception handlers in main.py. Every request served here
       is recorded by TransactionLogRoute.

Route Inventory:
    GET    /posts            list every post
    GET    /posts/{post_id}  one post, or null
    POST   /posts            create, returns WriteResult
    PUT    /posts/{post_id}  overwrite, returns WriteResult
    DELETE /posts/{post_id}  delete, 204
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, Response

from blog_api.middleware.transaction_log import RESPONSE_STATE_KEY, TransactionLogRoute
from blog_api.schemas.post import ErrorResponse, PostPayload, PostResponse, WriteResult
from blog_api.services.post_service import PostService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Posts"], route_class=TransactionLogRoute)

ERROR_RESPONSES = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    500: {"description": "Storage error", "model": ErrorResponse},
    503: {"description": "No database connection available", "model": ErrorResponse},
}


def get_post_service(request: Request) -> PostService:
    """Dependency returning the PostService built by the application lifespan."""
    return request.app.state.post_service


@router.get(
    "/posts",
    response_model=List[PostResponse],
    responses={500: ERROR_RESPONSES[500], 503: ERROR_RESPONSES[503]},
    summary="List all posts",
)
async def list_posts(
    service: PostService = Depends(get_post_service),
) -> List[PostResponse]:
    posts = await service.list_posts()
    return [PostResponse.model_validate(post) for post in posts]


@router.get(
    "/posts/{post_id}",
    response_model=Optional[PostResponse],
    responses=ERROR_RESPONSES,
    summary="Get a post by id",
    description="Returns the post, or null when no post has this id.",
)
async def get_post(
    post_id: str,
    service: PostService = Depends(get_post_service),
) -> Optional[PostResponse]:
    post = await service.get_post(post_id)
    if post is None:
        return None
    return PostResponse.model_validate(post)


@router.post(
    "/posts",
    response_model=WriteResult,
    responses=ERROR_RESPONSES,
    summary="Create a post",
    description=(
        "Creates a post from title and content, with an optional image given "
        "as a base64 data URI. Returns the inserted id."
    ),
)
async def create_post(
    payload: PostPayload,
    service: PostService = Depends(get_post_service),
) -> WriteResult:
    return await service.create_post(payload)


@router.put(
    "/posts/{post_id}",
    response_model=WriteResult,
    responses=ERROR_RESPONSES,
    summary="Update a post",
    description=(
        "Overwrites title and content. The image is replaced only when a new "
        "one is supplied. affected_rows is 0 when the id does not exist."
    ),
)
async def update_post(
    post_id: str,
    payload: PostPayload,
    service: PostService = Depends(get_post_service),
) -> WriteResult:
    return await service.update_post(post_id, payload)


@router.delete(
    "/posts/{post_id}",
    status_code=204,
    response_class=Response,
    responses=ERROR_RESPONSES,
    summary="Delete a post",
    description="Deletes the post. Deleting a missing id is not an error.",
)
async def delete_post(
    post_id: str,
    request: Request,
    service: PostService = Depends(get_post_service),
) -> Response:
    result = await service.delete_post(post_id)
    # 204 carries no body; the write result still goes to the transaction log
    setattr(request.state, RESPONSE_STATE_KEY, result.model_dump())
    return Response(status_code=204)
