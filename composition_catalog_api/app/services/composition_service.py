"""
Business logic for compositions.

Covers adding, reading, listing, searching and removing compositions.
Field edits after creation go through ``PatchService``, and the
``comment_count`` column is only ever changed by
``CounterCoordinator``.

Removing a composition that still has comments follows
``settings.composition_delete_policy``: ``reject`` refuses with
``ReferentialIntegrityError``, ``cascade`` deletes the comments in the
same transaction.  Either way no comment is left pointing at a
missing composition.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from ..core.config import settings
from ..core.db import get_connection, transaction
from ..core.errors import EmptyQuery, NotFound, ReferentialIntegrityError, ValidationError
from ..schemas.composition import CompositionCreate, CompositionRead, CompositionRemoved
from .audit_service import AuditService
from .field_validators import COLUMN_RULES, InvalidValue, is_blank

logger = logging.getLogger(__name__)

COMPOSITION_COLUMNS = (
    "id, title, author, length_seconds, year, difficulty, page_count, "
    "video_url, sheet_url, added_at, adder_id, comment_count"
)

DELETE_POLICIES = {"reject", "cascade"}


def row_to_composition(row: sqlite3.Row) -> CompositionRead:
    return CompositionRead(
        id=row["id"],
        title=row["title"],
        author=row["author"],
        length_seconds=row["length_seconds"],
        year=row["year"],
        difficulty=row["difficulty"],
        page_count=row["page_count"],
        video_url=row["video_url"],
        sheet_url=row["sheet_url"],
        added_at=row["added_at"],
        adder_id=row["adder_id"],
        comment_count=row["comment_count"],
    )


class CompositionService:
    """Service for the composition catalogue."""

    @classmethod
    async def add_composition(cls, data: CompositionCreate, adder_id: Optional[int]) -> CompositionRead:
        """Validate every field and insert a new composition.

        All failing fields are reported together in one
        ``ValidationError``.  The composition starts with no comments
        and records ``adder_id`` (the authenticated caller) and the
        server time as ``added_at``.
        """
        values = data.model_dump()
        errors: List[str] = []
        failed: List[str] = []
        for column, rule in COLUMN_RULES.items():
            try:
                values[column] = rule.validate(values[column])
            except InvalidValue as e:
                errors.append(str(e))
                failed.append(rule.name)
        if errors:
            logger.warning("Rejected composition '%s': %s", data.title, "; ".join(errors))
            raise ValidationError("Invalid composition: " + "; ".join(errors), fields=failed)

        added_at = datetime.now(timezone.utc).isoformat()
        with transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO compositions (
                    title, author, length_seconds, year, difficulty, page_count,
                    video_url, sheet_url, added_at, adder_id, comment_count
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0)
                """,
                (
                    values["title"],
                    values["author"],
                    values["length_seconds"],
                    values["year"],
                    values["difficulty"],
                    values["page_count"],
                    values["video_url"],
                    values["sheet_url"],
                    added_at,
                    adder_id,
                ),
            )
            composition_id = cursor.lastrowid
        logger.info("User %s added composition %s '%s'", adder_id, composition_id, data.title)
        await AuditService.try_log(
            user_id=adder_id,
            action="create",
            object_type="composition",
            object_id=composition_id,
            details={"title": data.title},
        )
        return CompositionRead(
            id=composition_id,
            added_at=added_at,
            adder_id=adder_id,
            comment_count=0,
            **values,
        )

    @classmethod
    async def get_composition(cls, composition_id: int) -> CompositionRead:
        """Return one composition or raise ``NotFound``."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {COMPOSITION_COLUMNS} FROM compositions WHERE id = ?",
                (composition_id,),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound(f"Composition {composition_id} not found")
        return row_to_composition(row)

    @classmethod
    async def list_by_difficulty(cls, difficulty: int) -> List[CompositionRead]:
        return cls._select_where("difficulty = ?", (difficulty,))

    @classmethod
    async def list_by_adder(cls, adder_id: int) -> List[CompositionRead]:
        return cls._select_where("adder_id = ?", (adder_id,))

    @classmethod
    async def list_compositions(cls) -> List[CompositionRead]:
        return cls._select_where(None, ())

    @classmethod
    def _select_where(cls, clause: Optional[str], params: tuple) -> List[CompositionRead]:
        query = f"SELECT {COMPOSITION_COLUMNS} FROM compositions"
        if clause:
            query += f" WHERE {clause}"
        query += " ORDER BY id ASC"
        conn = get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [row_to_composition(row) for row in rows]

    @classmethod
    async def search_by_title_prefix(cls, query: Optional[str]) -> List[CompositionRead]:
        """Return compositions whose title starts with ``query``.

        Case‑sensitive and without normalization.  Every composition is
        scanned in insertion order; there is no title index.  Raises
        ``EmptyQuery`` for a blank query.
        """
        if is_blank(query):
            raise EmptyQuery("Search string must not be empty")
        return [c for c in await cls.list_compositions() if c.title.startswith(query)]

    @classmethod
    async def remove_composition(
        cls,
        composition_id: int,
        policy: Optional[str] = None,
        current_user: Optional[dict] = None,
        authorize=None,
    ) -> CompositionRemoved:
        """Delete a composition, resolving its comments by ``policy``.

        ``policy`` defaults to ``settings.composition_delete_policy``.
        ``authorize(current_user, adder_id)`` runs inside the
        transaction before anything is deleted.  Raises ``NotFound``,
        ``ReferentialIntegrityError`` (policy ``reject`` with comments
        present) or whatever ``authorize`` raises.
        """
        policy = policy or settings.composition_delete_policy
        if policy not in DELETE_POLICIES:
            raise ValueError(f"Unknown composition delete policy {policy!r}")

        with transaction() as cursor:
            row = cursor.execute(
                f"SELECT {COMPOSITION_COLUMNS} FROM compositions WHERE id = ?",
                (composition_id,),
            ).fetchone()
            if not row:
                raise NotFound(f"Composition {composition_id} not found")
            if authorize is not None:
                authorize(current_user, row["adder_id"])
            dependents = cursor.execute(
                "SELECT COUNT(*) AS count FROM comments WHERE composition_id = ?",
                (composition_id,),
            ).fetchone()["count"]
            if dependents and policy == "reject":
                logger.warning(
                    "Refused to remove composition %s: %s comment(s) still reference it",
                    composition_id,
                    dependents,
                )
                raise ReferentialIntegrityError(
                    f"Composition {composition_id} still has {dependents} comment(s)"
                )
            if dependents:
                cursor.execute("DELETE FROM comments WHERE composition_id = ?", (composition_id,))
            cursor.execute("DELETE FROM compositions WHERE id = ?", (composition_id,))

        user_id = current_user.get("user_id") if current_user else None
        logger.info(
            "Removed composition %s (%s comment(s) cascaded)", composition_id, dependents
        )
        await AuditService.try_log(
            user_id=user_id,
            action="delete",
            object_type="composition",
            object_id=composition_id,
            details={"title": row["title"], "comments_removed": dependents},
        )
        return CompositionRemoved(
            id=row["id"],
            title=row["title"],
            author=row["author"],
            length_seconds=row["length_seconds"],
            year=row["year"],
            difficulty=row["difficulty"],
            comments_removed=dependents,
        )
