"""
Application package initializer.

The catalogue is split into a thin HTTP layer (``api/v1/endpoints``),
Pydantic payloads (``schemas``), business logic (``services``) and
infrastructure (``core``: configuration, logging, database, security
and error types).  Compositions and their comments are the two
domains; the comment counter and the single‑field patch engine live
in their own service modules.
"""

from .main import app  # noqa: F401
