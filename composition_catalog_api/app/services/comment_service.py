"""
Business logic for comments on compositions.

Adding and deleting a comment each change two rows: the comment itself
and the owning composition's ``comment_count``.  Both statements run in
one ``transaction()``, so either both persist or neither does.  A
``ConsistencyViolation`` from ``CounterCoordinator`` rolls the comment
change back and propagates to the caller.

Who may edit or delete a comment is not decided here: callers pass an
``authorize(requester, comment)`` hook which raises to refuse.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ..core.config import settings
from ..core.db import get_connection, transaction
from ..core.errors import NotFound, ValidationError
from ..schemas.comment import CommentRead
from .audit_service import AuditService
from .counter_service import CounterCoordinator
from .field_validators import InvalidValue, validate_comment_content

logger = logging.getLogger(__name__)

CommentAuthorizer = Callable[[dict, CommentRead], None]

COMMENT_COLUMNS = "id, author_user_id, content, added_at, composition_id"


def row_to_comment(row: sqlite3.Row) -> CommentRead:
    return CommentRead(
        id=row["id"],
        author_user_id=row["author_user_id"],
        content=row["content"],
        added_at=row["added_at"],
        composition_id=row["composition_id"],
    )


def _check_content(content) -> str:
    try:
        return validate_comment_content(content, settings.comment_max_length)
    except InvalidValue as e:
        raise ValidationError(str(e), fields=["content"]) from e


def _fetch_comment(cursor: sqlite3.Cursor, comment_id: int) -> CommentRead:
    row = cursor.execute(
        f"SELECT {COMMENT_COLUMNS} FROM comments WHERE id = ?",
        (comment_id,),
    ).fetchone()
    if not row:
        raise NotFound(f"Comment {comment_id} not found")
    return row_to_comment(row)


class CommentService:
    """Service for creating, editing, deleting and listing comments."""

    @classmethod
    async def add_comment(cls, content: str, composition_id: int, author_user_id: Optional[int]) -> CommentRead:
        """Attach a new comment to a composition.

        Raises ``ValidationError`` for blank or overlong content,
        ``NotFound`` if the composition does not exist and
        ``ConsistencyViolation`` if it vanished before the counter was
        raised.  The insert and the counter increment are one atomic
        unit.
        """
        content = _check_content(content)
        with transaction() as cursor:
            exists = cursor.execute(
                "SELECT id FROM compositions WHERE id = ?",
                (composition_id,),
            ).fetchone()
            if not exists:
                raise NotFound(f"Composition {composition_id} not found")
            # Timestamp taken under the write lock so added_at follows insertion order.
            added_at = datetime.now(timezone.utc).isoformat()
            cursor.execute(
                """
                INSERT INTO comments (author_user_id, content, added_at, composition_id)
                VALUES (?, ?, ?, ?)
                """,
                (author_user_id, content, added_at, composition_id),
            )
            comment_id = cursor.lastrowid
            count = CounterCoordinator.increment(cursor, composition_id)

        logger.info(
            "User %s added comment %s to composition %s (now %s comments)",
            author_user_id,
            comment_id,
            composition_id,
            count,
        )
        await AuditService.try_log(
            user_id=author_user_id,
            action="create",
            object_type="comment",
            object_id=comment_id,
            details={"composition_id": composition_id},
        )
        return CommentRead(
            id=comment_id,
            author_user_id=author_user_id,
            content=content,
            added_at=added_at,
            composition_id=composition_id,
        )

    @classmethod
    async def edit_comment(
        cls,
        comment_id: int,
        requester: dict,
        new_content: str,
        authorize: Optional[CommentAuthorizer] = None,
    ) -> CommentRead:
        """Replace the content of a comment.

        Content is validated exactly as on creation.  ``authorize`` is
        called with the requester and the stored comment before any
        change.  ``added_at`` and ``composition_id`` never change.
        """
        new_content = _check_content(new_content)
        with transaction() as cursor:
            comment = _fetch_comment(cursor, comment_id)
            if authorize is not None:
                authorize(requester, comment)
            cursor.execute(
                "UPDATE comments SET content = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (new_content, comment_id),
            )

        logger.info("User %s edited comment %s", requester.get("user_id"), comment_id)
        await AuditService.try_log(
            user_id=requester.get("user_id"),
            action="update",
            object_type="comment",
            object_id=comment_id,
            details=None,
        )
        return comment.model_copy(update={"content": new_content})

    @classmethod
    async def delete_comment(
        cls,
        comment_id: int,
        requester: dict,
        authorize: Optional[CommentAuthorizer] = None,
    ) -> CommentRead:
        """Delete a comment and lower its composition's counter.

        The delete and the decrement are one atomic unit.  Returns the
        deleted comment.
        """
        with transaction() as cursor:
            comment = _fetch_comment(cursor, comment_id)
            if authorize is not None:
                authorize(requester, comment)
            cursor.execute("DELETE FROM comments WHERE id = ?", (comment_id,))
            count = CounterCoordinator.decrement(cursor, comment.composition_id)

        logger.info(
            "User %s removed comment %s from composition %s (now %s comments)",
            requester.get("user_id"),
            comment_id,
            comment.composition_id,
            count,
        )
        await AuditService.try_log(
            user_id=requester.get("user_id"),
            action="delete",
            object_type="comment",
            object_id=comment_id,
            details={"composition_id": comment.composition_id},
        )
        return comment

    @classmethod
    async def get_comment(cls, comment_id: int) -> CommentRead:
        conn = get_connection()
        try:
            return _fetch_comment(conn.cursor(), comment_id)
        finally:
            conn.close()

    @classmethod
    async def list_by_composition(cls, composition_id: int) -> List[CommentRead]:
        """All comments of a composition, oldest first."""
        return cls._select_where("composition_id = ?", composition_id)

    @classmethod
    async def list_by_user(cls, user_id: int) -> List[CommentRead]:
        """All comments written by a user, oldest first."""
        return cls._select_where("author_user_id = ?", user_id)

    @classmethod
    def _select_where(cls, clause: str, value: int) -> List[CommentRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {COMMENT_COLUMNS} FROM comments WHERE {clause} ORDER BY added_at ASC, id ASC",
                (value,),
            ).fetchall()
        finally:
            conn.close()
        return [row_to_comment(row) for row in rows]
