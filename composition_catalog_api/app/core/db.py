"""
SQLite database integration and simple migration system.

This module provides connection helpers (``get_connection``,
``get_cursor`` and the write‑transaction context manager
``transaction``) and applies migrations on application start
(``init_db``).  Applied migration versions are stored in the
``migrations`` table and new migrations run in order.

Every multi‑statement write that must be all‑or‑nothing (a comment
insert plus its counter increment, a cascade delete) goes through
``transaction``, which takes SQLite's write lock up front with
``BEGIN IMMEDIATE``.  Concurrent writers therefore queue on the
database lock (bounded by ``settings.db_timeout``) instead of racing
on read‑modify‑write sequences.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .config import settings

logger = logging.getLogger(__name__)


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: Initial schema
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS roles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE
        );

        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            full_name TEXT,
            password TEXT,
            role_id INTEGER NOT NULL DEFAULT 3,
            disabled INTEGER DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(role_id) REFERENCES roles(id)
        );

        -- adder_id is the caller identity supplied at creation time.
        CREATE TABLE IF NOT EXISTS compositions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            author TEXT NOT NULL,
            length_seconds INTEGER NOT NULL,
            year INTEGER NOT NULL,
            difficulty INTEGER NOT NULL,
            page_count INTEGER NOT NULL,
            video_url TEXT NOT NULL,
            sheet_url TEXT NOT NULL,
            added_at TIMESTAMP NOT NULL,
            adder_id INTEGER,
            comment_count INTEGER NOT NULL DEFAULT 0 CHECK (comment_count >= 0),
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        -- No ON DELETE action: removing a composition that still has
        -- comments fails at the database level unless they are deleted first.
        CREATE TABLE IF NOT EXISTS comments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            author_user_id INTEGER,
            content TEXT NOT NULL,
            added_at TIMESTAMP NOT NULL,
            composition_id INTEGER NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(composition_id) REFERENCES compositions(id)
        );

        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            object_type TEXT,
            object_id INTEGER,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            details TEXT
        );
        """,
    ),
    # Migration 2: lookup indices for the field‑equality queries
    (
        2,
        """
        CREATE INDEX IF NOT EXISTS idx_comments_composition_id ON comments(composition_id);
        CREATE INDEX IF NOT EXISTS idx_comments_author_user_id ON comments(author_user_id);
        CREATE INDEX IF NOT EXISTS idx_compositions_difficulty ON compositions(difficulty);
        CREATE INDEX IF NOT EXISTS idx_compositions_adder_id ON compositions(adder_id);
        """,
    ),
]


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # composition_catalog_api/
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name, and foreign key enforcement is switched on for the lifetime
    of the connection (SQLite leaves it off by default).
    """
    conn = sqlite3.connect(get_database_path(), timeout=settings.db_timeout)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


@contextmanager
def transaction() -> Iterator[sqlite3.Cursor]:
    """Run the enclosed block as one write transaction.

    ``BEGIN IMMEDIATE`` acquires the database write lock before the
    first statement, so reads inside the block see no concurrent
    writes.  The transaction commits when the block exits normally
    and rolls back if it raises; the exception is re‑raised.
    """
    conn = get_connection()
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn.cursor()
        except BaseException:
            conn.rollback()
            logger.debug("Transaction rolled back")
            raise
        conn.commit()
    finally:
        conn.close()


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any newer entries of
    ``MIGRATIONS``.  To change the schema, append a migration with an
    incremented version number.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                logger.info("Applied database migration %s", version)
                current_version = version

        # Default roles: super_admin (id=1), admin (2) and user (3)
        cursor.execute("INSERT OR IGNORE INTO roles (id, name) VALUES (1, 'super_admin')")
        cursor.execute("INSERT OR IGNORE INTO roles (id, name) VALUES (2, 'admin')")
        cursor.execute("INSERT OR IGNORE INTO roles (id, name) VALUES (3, 'user')")
