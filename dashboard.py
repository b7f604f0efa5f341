"""
Dashboard API — backend for the Social Pulse client.

Provides JSON endpoints for:
  - Registering and logging in (bearer tokens)
  - Reading and editing the signed-in user's profile
  - YouTube channel stats and channel search
  - Instagram account stats and insights

Every analytics route requires a bearer token. Upstream credentials come
from the api_credentials table or .env (see config.get_api_key).

Usage:
    python dashboard.py                  # runs on http://localhost:5000
    python dashboard.py --port 8080      # custom port
"""

import argparse
import logging

from flask import Flask, jsonify, request

import analytics_service
import config
from auth import get_current_user, issue_token, token_required
from database_migrations import run_migrations
from errors import AuthError, DashboardError, ValidationError
from user_store import UserStore

app = Flask(__name__)
app.secret_key = config.SECRET_KEY

logger = logging.getLogger(__name__)


# ── Helpers ──

def get_json_body() -> dict:
    """Request JSON as a dict ({} when absent or malformed)."""
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def require_fields(body: dict, *names) -> None:
    not_text = [n for n in names if body.get(n) is not None and not isinstance(body[n], str)]
    if not_text:
        raise ValidationError(f"{', '.join(not_text)} must be a string")
    missing = [n for n in names if not (body.get(n) or "").strip()]
    if missing:
        raise ValidationError(f"Please provide {', '.join(missing)}")


def service_response(result):
    """Turn an analytics_service.ServiceResult into a JSON response."""
    if result.ok:
        return jsonify(result.data)
    return jsonify(result.error.to_dict()), result.error.status_code


def with_token(user: dict) -> dict:
    return {**user, "token": issue_token(user["id"])}


# ── Error handling ──

@app.errorhandler(DashboardError)
def handle_dashboard_error(error):
    return jsonify(error.to_dict()), error.status_code


@app.errorhandler(404)
def handle_not_found(error):
    return jsonify({"message": "Not found"}), 404


# ── Routes: Authentication ──

@app.route("/api/auth/register", methods=["POST"])
def register():
    """Create an account and return the profile with a fresh token."""
    body = get_json_body()
    require_fields(body, "name", "email", "password")

    user = UserStore().create_user(body["name"], body["email"], body["password"])
    return jsonify(with_token(user)), 201


@app.route("/api/auth/login", methods=["POST"])
def login():
    """Exchange email + password for the profile and a token."""
    body = get_json_body()
    require_fields(body, "email", "password")

    user = UserStore().authenticate(body["email"], body["password"])
    if not user:
        logger.warning("Failed login attempt")
        raise AuthError("Invalid email or password")
    return jsonify(with_token(user))


# ── Routes: User ──

@app.route("/api/user/profile")
@token_required
def get_profile():
    return jsonify(get_current_user())


@app.route("/api/user/profile", methods=["PUT"])
@token_required
def update_profile():
    """Partial profile update (name, email, connected channel/account ids)."""
    user = get_current_user()
    updated = UserStore().update_user(user["id"], get_json_body())
    return jsonify(updated)


# ── Routes: YouTube ──

@app.route("/api/youtube/stats")
@token_required
def youtube_stats():
    """Channel stats. Accepts youtubeChannelId (query or JSON body) or channelId."""
    channel_id = (
        request.args.get("youtubeChannelId")
        or request.args.get("channelId")
        or get_json_body().get("youtubeChannelId")
    )
    return service_response(analytics_service.youtube_stats(channel_id))


@app.route("/api/youtube/search")
@token_required
def youtube_search():
    return service_response(analytics_service.youtube_search(request.args.get("query")))


# ── Routes: Instagram ──

@app.route("/api/instagram/stats")
@token_required
def instagram_stats():
    return service_response(
        analytics_service.instagram_stats(request.args.get("accountId"))
    )


@app.route("/api/instagram/insights")
@token_required
def instagram_insights():
    return service_response(
        analytics_service.instagram_insights(request.args.get("accountId"))
    )


@app.route("/api/health")
def health():
    return jsonify({"status": "ok"})


# ── Main ──

def main():
    parser = argparse.ArgumentParser(description="Social Pulse API server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=5000, help="Port to listen on")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    run_migrations()
    print(f"\n  Social Pulse API: http://{args.host}:{args.port}\n")
    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)


if __name__ == "__main__":
    main()
