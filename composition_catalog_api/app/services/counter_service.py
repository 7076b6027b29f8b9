"""
Maintenance of the denormalized ``compositions.comment_count`` column.

Each adjustment is a single ``UPDATE`` whose new value is computed by
SQLite from the current row value, never a value read earlier and
written back from Python.  ``increment`` and ``decrement`` run on the
cursor of the caller's transaction (see ``core.db.transaction``), so
the counter change commits or rolls back together with the comment
row that caused it.  Concurrent writers are serialized by the
database write lock, which makes N concurrent increments add exactly
N.
"""

import logging
import sqlite3

from ..core.db import transaction
from ..core.errors import ConsistencyViolation, NotFound

logger = logging.getLogger(__name__)


class CounterCoordinator:
    """Atomic comment‑count adjustments for a composition."""

    @classmethod
    def increment(cls, cursor: sqlite3.Cursor, composition_id: int) -> int:
        """Raise the comment count by one and return the new value.

        Raises ``ConsistencyViolation`` if the composition row is gone.
        """
        cursor.execute(
            "UPDATE compositions SET comment_count = comment_count + 1 WHERE id = ?",
            (composition_id,),
        )
        return cls._read_back(cursor, composition_id, "increment")

    @classmethod
    def decrement(cls, cursor: sqlite3.Cursor, composition_id: int) -> int:
        """Lower the comment count by one, never below zero, and return the new value.

        Raises ``ConsistencyViolation`` if the composition row is gone.
        """
        cursor.execute(
            "UPDATE compositions SET comment_count = MAX(comment_count - 1, 0) WHERE id = ?",
            (composition_id,),
        )
        return cls._read_back(cursor, composition_id, "decrement")

    @classmethod
    def _read_back(cls, cursor: sqlite3.Cursor, composition_id: int, operation: str) -> int:
        if cursor.rowcount == 0:
            logger.warning(
                "Comment count %s on composition %s matched no row", operation, composition_id
            )
            raise ConsistencyViolation(
                f"Composition {composition_id} disappeared during comment count {operation}"
            )
        row = cursor.execute(
            "SELECT comment_count FROM compositions WHERE id = ?",
            (composition_id,),
        ).fetchone()
        return row["comment_count"]

    @classmethod
    async def reconcile(cls, composition_id: int) -> int:
        """Recompute the comment count from the comments table.

        Repairs counters written before every comment mutation went
        through this class.  Returns the corrected value.
        """
        with transaction() as cursor:
            cursor.execute(
                """
                UPDATE compositions
                SET comment_count = (SELECT COUNT(*) FROM comments WHERE composition_id = ?)
                WHERE id = ?
                """,
                (composition_id, composition_id),
            )
            if cursor.rowcount == 0:
                raise NotFound(f"Composition {composition_id} not found")
            count = cls._read_back(cursor, composition_id, "reconcile")
        logger.info("Reconciled comment count of composition %s to %s", composition_id, count)
        return count
