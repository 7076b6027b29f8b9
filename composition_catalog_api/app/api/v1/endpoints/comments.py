"""
Comment endpoints for API v1.

Authenticated users comment on compositions.  Editing and deleting
are allowed for the comment's author and for administrators; the
check is handed to ``CommentService`` as its authorization hook so it
runs against the stored comment inside the write transaction.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from composition_catalog_api.app.core.errors import ServiceError
from composition_catalog_api.app.core.security import ensure_owner_or_admin, get_current_user
from composition_catalog_api.app.schemas.comment import CommentCreate, CommentRead, CommentUpdate
from composition_catalog_api.app.services.comment_service import CommentService


router = APIRouter()


def author_or_admin(requester: dict, comment: CommentRead) -> None:
    ensure_owner_or_admin(requester, comment.author_user_id)


@router.post("/", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
async def add_comment(
    data: CommentCreate,
    current_user: dict = Depends(get_current_user),
) -> CommentRead:
    """Comment on a composition and bump its comment count."""
    try:
        return await CommentService.add_comment(data.content, data.composition_id, current_user.get("user_id"))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.get("/mine", response_model=List[CommentRead])
async def list_my_comments(current_user: dict = Depends(get_current_user)) -> List[CommentRead]:
    return await CommentService.list_by_user(current_user.get("user_id"))


@router.get("/user/{user_id}", response_model=List[CommentRead])
async def list_user_comments(user_id: int) -> List[CommentRead]:
    return await CommentService.list_by_user(user_id)


@router.get("/{comment_id}", response_model=CommentRead)
async def get_comment(comment_id: int) -> CommentRead:
    try:
        return await CommentService.get_comment(comment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.put("/{comment_id}", response_model=CommentRead)
async def edit_comment(
    comment_id: int,
    data: CommentUpdate,
    current_user: dict = Depends(get_current_user),
) -> CommentRead:
    """Replace the content of a comment."""
    try:
        return await CommentService.edit_comment(
            comment_id, current_user, data.content, authorize=author_or_admin
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: int,
    current_user: dict = Depends(get_current_user),
) -> None:
    """Delete a comment and lower its composition's comment count."""
    try:
        await CommentService.delete_comment(comment_id, current_user, authorize=author_or_admin)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return None
