"""
Business logic for users.

Users are only needed to authenticate callers.  Passwords are stored
as PBKDF2 hashes (see ``core.security``).  The first registered user
becomes super administrator; everyone after that is a regular user
until promoted.
"""

import logging
import sqlite3
from typing import Optional

from ..core.db import get_connection, transaction
from ..core.errors import NotFound, ValidationError
from ..core.security import SUPER_ADMIN_ROLE, USER_ROLE, hash_password, verify_password
from ..schemas.user import UserCreate, UserRead
from .audit_service import AuditService


def _row_to_user(row: sqlite3.Row) -> UserRead:
    return UserRead(
        id=row["id"],
        email=row["email"],
        full_name=row["full_name"],
        role_id=row["role_id"],
        disabled=bool(row["disabled"]),
    )


class UserService:
    """Service for registering and authenticating users."""

    @classmethod
    async def create_user(cls, data: UserCreate, role_id: Optional[int] = None) -> UserRead:
        """Register a user and return it.

        ``role_id`` overrides the default role assignment.  Raises
        ``ValidationError`` if the e‑mail is already registered.
        """
        logger = logging.getLogger(__name__)
        try:
            with transaction() as cursor:
                if role_id is None:
                    count = cursor.execute("SELECT COUNT(*) AS count FROM users").fetchone()["count"]
                    role_id = SUPER_ADMIN_ROLE if count == 0 else USER_ROLE
                cursor.execute(
                    "INSERT INTO users (email, full_name, password, role_id) VALUES (?, ?, ?, ?)",
                    (data.email, data.full_name, hash_password(data.password), role_id),
                )
                user_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"User {data.email} already exists", fields=["email"]) from e
        logger.info("Registered user %s with role %s", data.email, role_id)
        await AuditService.try_log(
            user_id=None,
            action="create",
            object_type="user",
            object_id=user_id,
            details={"email": data.email},
        )
        return UserRead(id=user_id, email=data.email, full_name=data.full_name, role_id=role_id)

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[UserRead]:
        """Return the user if the credentials match and the account is enabled."""
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, email, full_name, password, role_id, disabled FROM users WHERE email = ?",
                (email,),
            ).fetchone()
        finally:
            conn.close()
        if not row or not row["password"] or row["disabled"]:
            return None
        if not verify_password(password, row["password"]):
            return None
        return _row_to_user(row)

    @classmethod
    async def get_user(cls, user_id: int) -> UserRead:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, email, full_name, role_id, disabled FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound(f"User {user_id} not found")
        return _row_to_user(row)
