"""
Top‑level router for version 1 of the API.

Aggregates the domain routers under a unified prefix.  When a domain
is added, include its router here.
"""

from fastapi import APIRouter

from .endpoints import audit, comments, compositions, users

router = APIRouter()

router.include_router(compositions.router, prefix="/compositions", tags=["compositions"])
router.include_router(comments.router, prefix="/comments", tags=["comments"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
