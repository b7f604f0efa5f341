"""
Global configuration for Social Pulse.

This module only holds environment-driven settings and defaults.

Platform API credentials can be stored in the database (preferred)
or .env (fallback).
"""

import logging
import os
import sqlite3
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# ── Paths ──
PROJECT_ROOT = Path(__file__).parent
DATA_DIR = Path(os.getenv("SOCIAL_PULSE_DATA_DIR", PROJECT_ROOT / "data"))
DB_PATH = DATA_DIR / "social_pulse.db"

# Ensure data directory exists
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Environment variable per upstream service
ENV_KEYS = {
    'youtube': 'YOUTUBE_API_KEY',
    'instagram': 'INSTAGRAM_ACCESS_TOKEN',
}


def get_api_key(service: str) -> str:
    """
    Get API credential from database first, fall back to environment variable.

    Args:
        service: 'youtube', 'instagram'

    Returns:
        Credential string or empty string if not found
    """
    # Try database first
    if DB_PATH.exists():
        try:
            conn = sqlite3.connect(str(DB_PATH))
            row = conn.execute(
                "SELECT api_key FROM api_credentials WHERE service = ?",
                (service,)
            ).fetchone()
            conn.close()

            if row and row[0]:
                logger.debug(f"Found API key for '{service}' in database")
                return row[0]
        except sqlite3.Error as e:
            logger.debug(f"Database lookup failed for '{service}': {e}")

    env_var = ENV_KEYS.get(service)
    if env_var:
        value = os.getenv(env_var, '')
        if not value:
            logger.warning(f"No credential configured for '{service}'")
        return value

    return ''


# ── Backend auth ──
SECRET_KEY = os.getenv("FLASK_SECRET_KEY") or os.urandom(32).hex()
TOKEN_SALT = "social-pulse-auth"
TOKEN_MAX_AGE_SECONDS = int(os.getenv("TOKEN_MAX_AGE_SECONDS", str(30 * 24 * 3600)))

# ── Upstream APIs ──
YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3"
INSTAGRAM_GRAPH_URL = "https://graph.instagram.com"
YOUTUBE_LATEST_VIDEOS = 5
YOUTUBE_SEARCH_RESULTS = 10
INSTAGRAM_RECENT_MEDIA = 10
INSIGHTS_WINDOW_DAYS = 30
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "15"))

# ── Client ──
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:5000")
CLIENT_STATE_PATH = Path(os.getenv("CLIENT_STATE_PATH", DATA_DIR / "client_state.json"))
LOGIN_PATH = "/login"

# ── Logging ──
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
