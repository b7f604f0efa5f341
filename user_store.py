"""
User Store — CRUD for dashboard accounts.

Passwords are stored as werkzeug hashes. Emails are matched
case-insensitively. Profiles are returned in the camelCase shape the
client consumes.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

import config
from errors import ValidationError

logger = logging.getLogger(__name__)

# Client-side field name -> column
EDITABLE_FIELDS = {
    "name": "name",
    "email": "email",
    "youtubeChannelId": "youtube_channel_id",
    "instagramAccountId": "instagram_account_id",
}


def row_to_profile(row: sqlite3.Row) -> Dict:
    """Public profile for a users row (no password hash)."""
    return {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "createdAt": row["created_at"],
        "youtubeChannelId": row["youtube_channel_id"],
        "instagramAccountId": row["instagram_account_id"],
        "youtubeConnected": bool(row["youtube_channel_id"]),
        "instagramConnected": bool(row["instagram_account_id"]),
    }


class UserStore:
    """Manages dashboard users."""

    def __init__(self, db_path=None):
        self.db_path = db_path or config.DB_PATH

    def _get_conn(self):
        """Get database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def create_user(self, name: str, email: str, password: str) -> Dict:
        """Register a new user. Raises ValidationError on duplicate email."""
        email = email.strip().lower()
        now = datetime.now(timezone.utc).isoformat()
        conn = self._get_conn()
        try:
            cursor = conn.execute("""
                INSERT INTO users (name, email, password_hash, created_at, last_login)
                VALUES (?, ?, ?, ?, ?)
            """, (name.strip(), email, generate_password_hash(password), now, now))
            conn.commit()
            user_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            raise ValidationError("User already exists")
        finally:
            conn.close()

        logger.info(f"Registered user {user_id}")
        return self.get_user(user_id)

    def authenticate(self, email: str, password: str) -> Optional[Dict]:
        """Return the profile if the credentials match, else None."""
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?",
                (email.strip().lower(),)
            ).fetchone()
            if not row or not check_password_hash(row["password_hash"], password):
                return None

            conn.execute(
                "UPDATE users SET last_login = ? WHERE id = ?",
                (datetime.now(timezone.utc).isoformat(), row["id"])
            )
            conn.commit()
            return row_to_profile(row)
        finally:
            conn.close()

    def get_user(self, user_id: int) -> Optional[Dict]:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            return row_to_profile(row) if row else None
        finally:
            conn.close()

    def update_user(self, user_id: int, fields: Dict) -> Optional[Dict]:
        """
        Apply a partial update. Unknown keys are ignored; connection flags
        follow from the stored channel/account ids.
        """
        updates = {
            EDITABLE_FIELDS[key]: value
            for key, value in fields.items()
            if key in EDITABLE_FIELDS
        }
        not_text = [k for k, v in fields.items()
                    if k in EDITABLE_FIELDS and v is not None and not isinstance(v, str)]
        if not_text:
            raise ValidationError(f"{', '.join(not_text)} must be a string")
        if "name" in updates and not str(updates["name"] or "").strip():
            raise ValidationError("Name cannot be empty")
        if "email" in updates:
            email = str(updates["email"] or "").strip().lower()
            if not email:
                raise ValidationError("Email cannot be empty")
            updates["email"] = email

        if updates:
            assignments = ", ".join(f"{column} = ?" for column in updates)
            conn = self._get_conn()
            try:
                conn.execute(
                    f"UPDATE users SET {assignments} WHERE id = ?",
                    (*updates.values(), user_id)
                )
                conn.commit()
            except sqlite3.IntegrityError:
                raise ValidationError("Email already in use")
            finally:
                conn.close()

        return self.get_user(user_id)
