"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``) and applying migrations on application start
(``init_db``).  Each service operation opens its own connection, so
every authorization decision reads committed state.

Applied migration versions are stored in the ``migrations`` table and
new migrations are executed in order.
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .config import settings


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # uconnect_api/
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Foreign keys are enforced for the lifetime of the
    connection.
    """
    conn = sqlite3.connect(get_database_path())
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


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    If you add a new migration, append it with an incremented version
    number.
    """
    migrations: list[tuple[int, str]] = [
        # Migration 1: Initial schema
        (
            1,
            """
            CREATE TABLE IF NOT EXISTS accounts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                username TEXT NOT NULL UNIQUE,
                email TEXT NOT NULL UNIQUE,
                password TEXT NOT NULL,
                role TEXT NOT NULL DEFAULT 'Student',
                confirmed INTEGER NOT NULL DEFAULT 0,
                confirmation_token TEXT,
                active INTEGER NOT NULL DEFAULT 1,
                avatar_url TEXT,
                avatar_asset_id TEXT,
                university TEXT,
                career TEXT,
                phone TEXT,
                bio TEXT,
                interests TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS communities (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                description TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS community_members (
                community_id INTEGER NOT NULL,
                account_id INTEGER NOT NULL,
                joined_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (community_id, account_id),
                FOREIGN KEY(community_id) REFERENCES communities(id),
                FOREIGN KEY(account_id) REFERENCES accounts(id)
            );

            -- One row per direction; a friendship is two rows.
            CREATE TABLE IF NOT EXISTS friendships (
                account_id INTEGER NOT NULL,
                friend_id INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (account_id, friend_id),
                FOREIGN KEY(account_id) REFERENCES accounts(id),
                FOREIGN KEY(friend_id) REFERENCES accounts(id)
            );

            CREATE TABLE IF NOT EXISTS publications (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                author_id INTEGER NOT NULL,
                community_id INTEGER NOT NULL,
                text TEXT,
                media_url TEXT,
                media_asset_id TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY(author_id) REFERENCES accounts(id),
                FOREIGN KEY(community_id) REFERENCES communities(id)
            );

            CREATE TABLE IF NOT EXISTS comments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                publication_id INTEGER NOT NULL,
                community_id INTEGER NOT NULL,
                author_id INTEGER NOT NULL,
                text TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT,
                FOREIGN KEY(publication_id) REFERENCES publications(id),
                FOREIGN KEY(community_id) REFERENCES communities(id),
                FOREIGN KEY(author_id) REFERENCES accounts(id)
            );
            """,
        ),
        # Migration 2: lookup indices
        (
            2,
            """
            CREATE INDEX IF NOT EXISTS idx_accounts_confirmation_token ON accounts(confirmation_token);
            CREATE INDEX IF NOT EXISTS idx_publications_community ON publications(community_id, created_at);
            CREATE INDEX IF NOT EXISTS idx_comments_publication ON comments(publication_id, created_at);
            CREATE INDEX IF NOT EXISTS idx_friendships_friend ON friendships(friend_id);
            """,
        ),
    ]

    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in migrations:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version
