"""
Bearer-token authentication for the Social Pulse API.

Tokens are signed, timestamped user ids (itsdangerous). The server
enforces TOKEN_MAX_AGE_SECONDS; clients never inspect expiry, they just
react to the 401.
"""

import logging
from functools import wraps
from typing import Optional

from flask import g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

import config
from errors import AuthError
from user_store import UserStore

logger = logging.getLogger(__name__)


def _serializer(secret_key: Optional[str] = None) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key or config.SECRET_KEY, salt=config.TOKEN_SALT)


def issue_token(user_id: int, secret_key: Optional[str] = None) -> str:
    """Sign a bearer token for the given user id."""
    return _serializer(secret_key).dumps({"uid": user_id})


def verify_token(token: str, secret_key: Optional[str] = None,
                 max_age: Optional[int] = None) -> int:
    """Return the user id inside a token, or raise AuthError."""
    max_age = max_age if max_age is not None else config.TOKEN_MAX_AGE_SECONDS
    try:
        payload = _serializer(secret_key).loads(token, max_age=max_age)
    except SignatureExpired:
        raise AuthError("Token expired")
    except BadSignature:
        raise AuthError("Not authorized, token failed")

    user_id = payload.get("uid") if isinstance(payload, dict) else None
    if user_id is None:
        raise AuthError("Not authorized, token failed")
    return user_id


def get_bearer_token() -> Optional[str]:
    """Extract the token from an `Authorization: Bearer ...` header."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user():
    """The user resolved by token_required for this request, or None."""
    return g.get("user")


def token_required(f):
    """
    Decorator that rejects the request with 401 unless it carries a valid
    bearer token for an existing user. The user profile lands in g.user.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        token = get_bearer_token()
        if not token:
            raise AuthError("Not authorized, no token")

        try:
            user_id = verify_token(token)
        except AuthError as e:
            logger.warning(f"Rejected token on {request.path}: {e.message}")
            raise

        user = UserStore().get_user(user_id)
        if not user:
            logger.warning(f"Token for unknown user {user_id} on {request.path}")
            raise AuthError("Not authorized, user not found")

        g.user = user
        return f(*args, **kwargs)
    return decorated
