"""
Audit log endpoints for API v1.

Exposes the create/update/delete trail of compositions, comments and
users to super administrators, with filters by user, object type,
action and date range.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from composition_catalog_api.app.core.security import SUPER_ADMIN_ROLE, require_roles
from composition_catalog_api.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/logs")
async def list_audit_logs(
    user_id: Optional[int] = Query(None, description="Filter by acting user ID"),
    object_type: Optional[str] = Query(None, description="Filter by object type (composition, comment, user)"),
    action: Optional[str] = Query(None, description="Filter by action (create, update, delete)"),
    start_date: Optional[str] = Query(None, description="Start date (ISO format) for filtering"),
    end_date: Optional[str] = Query(None, description="End date (ISO format) for filtering"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    current_user: dict = Depends(require_roles(SUPER_ADMIN_ROLE)),
) -> List[dict]:
    """Retrieve audit logs, newest first."""
    return await AuditService.list_logs(
        user_id=user_id,
        object_type=object_type,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
