"""
Composition endpoints for API v1.

Any authenticated user may add compositions; the caller's ``user_id``
becomes the composition's ``adder_id``.  Removing and patching are
limited to the adder and administrators.  A patch always answers
200: whether it was applied is part of the response body.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from composition_catalog_api.app.core.errors import ServiceError
from composition_catalog_api.app.core.security import (
    ensure_owner_or_admin,
    get_current_user,
    require_roles,
)
from composition_catalog_api.app.schemas.comment import CommentRead
from composition_catalog_api.app.schemas.composition import (
    CompositionCreate,
    CompositionRead,
    CompositionRemoved,
    PatchRequest,
    PatchResult,
)
from composition_catalog_api.app.services.comment_service import CommentService
from composition_catalog_api.app.services.composition_service import CompositionService
from composition_catalog_api.app.services.counter_service import CounterCoordinator
from composition_catalog_api.app.services.patch_service import PatchService


router = APIRouter()


@router.post("/", response_model=CompositionRead, status_code=status.HTTP_201_CREATED)
async def add_composition(
    data: CompositionCreate,
    current_user: dict = Depends(get_current_user),
) -> CompositionRead:
    """Add a composition on behalf of the authenticated user."""
    try:
        return await CompositionService.add_composition(data, current_user.get("user_id"))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


# Static paths are declared before "/{composition_id}" so they are matched first.
@router.get("/search", response_model=List[CompositionRead])
async def search_compositions(
    q: str = Query("", description="Title prefix, case-sensitive"),
) -> List[CompositionRead]:
    """Return compositions whose title starts with ``q``, in insertion order."""
    try:
        return await CompositionService.search_by_title_prefix(q)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.get("/difficulty/{difficulty}", response_model=List[CompositionRead])
async def list_by_difficulty(difficulty: int) -> List[CompositionRead]:
    return await CompositionService.list_by_difficulty(difficulty)


@router.get("/adder/{adder_id}", response_model=List[CompositionRead])
async def list_by_adder(adder_id: int) -> List[CompositionRead]:
    """Compositions added by one user, e.g. for a profile page."""
    return await CompositionService.list_by_adder(adder_id)


@router.get("/{composition_id}", response_model=CompositionRead)
async def get_composition(composition_id: int) -> CompositionRead:
    try:
        return await CompositionService.get_composition(composition_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.get("/{composition_id}/comments", response_model=List[CommentRead])
async def list_composition_comments(composition_id: int) -> List[CommentRead]:
    """All comments of a composition, oldest first."""
    return await CommentService.list_by_composition(composition_id)


@router.patch("/{composition_id}", response_model=PatchResult)
async def patch_composition(
    composition_id: int,
    patch: PatchRequest,
    current_user: dict = Depends(get_current_user),
) -> PatchResult:
    """Change a single field of a composition.

    Unknown field names and rejected values come back with
    ``applied = false`` and a ``reason``; only a missing composition
    (404) or a foreign composition (403) are errors.
    """
    try:
        return await PatchService.apply_patch(
            composition_id,
            patch.field,
            patch.value,
            current_user=current_user,
            authorize=ensure_owner_or_admin,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.delete("/{composition_id}", response_model=CompositionRemoved)
async def remove_composition(
    composition_id: int,
    current_user: dict = Depends(get_current_user),
) -> CompositionRemoved:
    """Remove a composition.

    With the default ``reject`` policy a composition that still has
    comments answers 409; with ``cascade`` its comments are removed
    along with it.
    """
    try:
        return await CompositionService.remove_composition(
            composition_id,
            current_user=current_user,
            authorize=ensure_owner_or_admin,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e


@router.post("/{composition_id}/recount")
async def recount_comments(
    composition_id: int,
    current_user: dict = Depends(require_roles(1, 2)),
) -> dict:
    """Recompute the stored comment count from the comments table (admin only)."""
    try:
        count = await CounterCoordinator.reconcile(composition_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return {"id": composition_id, "comment_count": count}
