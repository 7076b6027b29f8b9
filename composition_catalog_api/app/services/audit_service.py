"""
Audit service for recording and querying catalogue changes.

Services write one record per create, update or delete to the
``audit_logs`` table after their own transaction has committed.  An
audit write never undoes the change it describes: ``try_log`` reports
a failed write in the application log and returns.  Only super
administrators read the trail.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from ..core.db import get_connection, transaction

logger = logging.getLogger(__name__)


class AuditService:
    """Service class for writing and retrieving audit logs."""

    @classmethod
    async def log(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Insert a new audit record.

        Parameters
        ----------
        user_id : Optional[int]
            ID of the user performing the action, ``None`` for system actions.
        action : str
            ``"create"``, ``"update"`` or ``"delete"``.
        object_type : str
            ``"composition"``, ``"comment"`` or ``"user"``.
        object_id : Optional[int]
            Primary key of the affected object.
        details : Optional[dict]
            Additional structured data, stored as JSON.
        """
        with transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO audit_logs (user_id, action, object_type, object_id, details)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, action, object_type, object_id, json.dumps(details) if details else None),
            )

    @classmethod
    async def try_log(cls, *args: Any, **kwargs: Any) -> None:
        """Like ``log``, but a failed write is logged as a warning instead of raised."""
        try:
            await cls.log(*args, **kwargs)
        except Exception:
            logger.warning("Failed to write audit record %s %s", args, kwargs, exc_info=True)

    @classmethod
    async def list_logs(
        cls,
        user_id: Optional[int] = None,
        object_type: Optional[str] = None,
        action: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve audit records, newest first, with optional filters.

        Date filters accept ISO date strings (``"YYYY-MM-DD"``) and
        apply to the ``timestamp`` column.
        """
        where_clauses: List[str] = []
        params: List[Any] = []
        if user_id is not None:
            where_clauses.append("user_id = ?")
            params.append(user_id)
        if object_type:
            where_clauses.append("object_type = ?")
            params.append(object_type)
        if action:
            where_clauses.append("action = ?")
            params.append(action)
        if start_date:
            where_clauses.append("timestamp >= ?")
            params.append(start_date)
        if end_date:
            where_clauses.append("timestamp <= ?")
            params.append(end_date)
        query = "SELECT id, user_id, action, object_type, object_id, timestamp, details FROM audit_logs"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        logs = []
        for row in rows:
            details_data = None
            if row["details"]:
                try:
                    details_data = json.loads(row["details"])
                except json.JSONDecodeError:
                    details_data = row["details"]
            logs.append(
                {
                    "id": row["id"],
                    "user_id": row["user_id"],
                    "action": row["action"],
                    "object_type": row["object_type"],
                    "object_id": row["object_id"],
                    "timestamp": row["timestamp"],
                    "details": details_data,
                }
            )
        return logs
