"""
Error types raised by the service layer.

All of them derive from ``ServiceError`` (itself a ``ValueError``) and
carry the HTTP status code the endpoints translate them to, so a
handler only needs::

    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

A rejected patch is not an error; ``PatchService`` reports it in its
result instead.
"""

from fastapi import status


class ServiceError(ValueError):
    """Base class for caller‑visible service failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST


class ValidationError(ServiceError):
    """Invalid comment content or composition field; nothing was written."""

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or []


class EmptyQuery(ServiceError):
    """A search string that is empty or only whitespace."""


class NotFound(ServiceError):
    """The referenced comment or composition does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class PermissionDenied(ServiceError):
    """The authorization hook refused the requester."""

    status_code = status.HTTP_403_FORBIDDEN


class ConsistencyViolation(ServiceError):
    """The counter target vanished while a comment mutation was in flight."""

    status_code = status.HTTP_409_CONFLICT


class ReferentialIntegrityError(ServiceError):
    """A composition still has comments and the removal policy is ``reject``."""

    status_code = status.HTTP_409_CONFLICT
