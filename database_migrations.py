"""
Database migrations for Social Pulse.

Creates the users and api_credentials tables.
Safe to run multiple times (idempotent).
"""

import sqlite3
import logging
import config

logger = logging.getLogger(__name__)


def run_migrations(db_path=None):
    """
    Create backend tables if they don't exist.
    Safe to call multiple times.
    """
    db_path = db_path or config.DB_PATH
    conn = sqlite3.connect(str(db_path))

    logger.info("Running database migrations...")

    conn.executescript("""
        -- Upstream API credentials (admin-managed, override .env)
        CREATE TABLE IF NOT EXISTS api_credentials (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            service TEXT UNIQUE NOT NULL,  -- 'youtube', 'instagram'
            api_key TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        -- Dashboard users
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            youtube_channel_id TEXT,
            instagram_account_id TEXT,
            created_at TEXT NOT NULL,
            last_login TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
    """)

    conn.commit()
    conn.close()

    logger.info("Database migrations complete")
