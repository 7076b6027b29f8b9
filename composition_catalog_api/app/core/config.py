"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables, with defaults for every field.  Override them
in deployment via the environment; tests patch attributes on the
``settings`` singleton instead.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Composition Catalog API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Optional static token for super‑administrator API access.  Requests
    # carrying it in the Authorization header skip JWT decoding.
    super_admin_static_token: str = os.getenv("SUPER_ADMIN_TOKEN", "")

    # Path to the SQLite database.  Relative paths are resolved against
    # the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "composition_catalog.db")

    # Seconds a connection waits on a locked database before giving up.
    # Concurrent comment writers queue on the write lock for up to this long.
    db_timeout: float = float(os.getenv("DB_TIMEOUT", "30"))

    comment_max_length: int = int(os.getenv("COMMENT_MAX_LENGTH", "1000"))

    # What removing a composition does with its comments: "reject" refuses
    # while comments exist, "cascade" deletes them in the same transaction.
    composition_delete_policy: str = os.getenv("COMPOSITION_DELETE_POLICY", "reject")


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.
settings = Settings()
