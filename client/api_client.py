"""
HTTP client for the Social Pulse API.

Two policies apply to every request made through ApiClient, not per call:
  - BearerAuth attaches `Authorization: Bearer <token>` from the token
    store (no header when no token is stored).
  - A response hook watches for 401 on every authenticated request
    (with or without a stored token): it clears the stored token and
    fires `on_unauthorized` before the caller sees the ApiError.

Login and register go out with NoAuth, which marks the request as
public, so a wrong password is reported as a plain failure instead of
purging the session.
"""

import logging
from typing import Callable, Dict, Optional

import requests
from requests.auth import AuthBase

import config
from client.token_store import TokenStore

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-success response from the API."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 payload: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}


class NetworkError(ApiError):
    """The API could not be reached (connection, timeout, bad response)."""

    def __init__(self, message: str = "Network error"):
        super().__init__(message, status_code=None)


class BearerAuth(AuthBase):
    """Reads the token at send time so a cleared token takes effect at once."""

    def __init__(self, token_store: TokenStore):
        self.token_store = token_store

    def __call__(self, r):
        token = self.token_store.get()
        if token and "Authorization" not in r.headers:
            r.headers["Authorization"] = f"Bearer {token}"
        return r


class NoAuth(AuthBase):
    """Per-request override for public endpoints."""

    def __call__(self, r):
        r.public = True
        return r


def is_public(prepared) -> bool:
    return getattr(prepared, "public", False)


class ApiClient:
    """Thin wrapper over requests.Session with auth and 401 handling."""

    def __init__(self, base_url: Optional[str] = None,
                 token_store: Optional[TokenStore] = None,
                 on_unauthorized: Optional[Callable[[], None]] = None,
                 timeout: Optional[float] = None,
                 http: Optional[requests.Session] = None):
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.token_store = token_store or TokenStore()
        self.on_unauthorized = on_unauthorized
        self.timeout = timeout or config.REQUEST_TIMEOUT

        self.http = http or requests.Session()
        self.http.headers.update({"Content-Type": "application/json"})
        self.http.auth = BearerAuth(self.token_store)
        self.http.hooks["response"].append(self._check_unauthorized)

    def _check_unauthorized(self, resp, *args, **kwargs):
        if resp.status_code == 401 and not is_public(resp.request):
            logger.warning(
                f"401 from {resp.request.method} {resp.request.path_url}, clearing session"
            )
            try:
                self.token_store.clear()
            except OSError as e:
                logger.error(f"Could not clear persisted token: {e}")
            if self.on_unauthorized:
                self.on_unauthorized()
        return resp

    def request(self, method: str, path: str, **kwargs):
        """Send a request and return the decoded JSON body, or raise ApiError."""
        kwargs.setdefault("timeout", self.timeout)
        try:
            resp = self.http.request(method, f"{self.base_url}{path}", **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {type(e).__name__}")
            raise NetworkError() from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.ok:
            message = body.get("message") if isinstance(body, dict) else None
            raise ApiError(
                message or f"Request failed with status {resp.status_code}",
                status_code=resp.status_code,
                payload=body if isinstance(body, dict) else None,
            )
        if body is None:
            raise NetworkError("Invalid response from server")
        return body

    # ── Auth ──

    def login(self, email: str, password: str) -> Dict:
        return self.request("POST", "/api/auth/login", auth=NoAuth(),
                            json={"email": email, "password": password})

    def register(self, name: str, email: str, password: str) -> Dict:
        return self.request("POST", "/api/auth/register", auth=NoAuth(),
                            json={"name": name, "email": email, "password": password})

    def fetch_profile(self, token: Optional[str] = None) -> Dict:
        """Current user's profile; `token` overrides the stored one."""
        headers = {"Authorization": f"Bearer {token}"} if token else None
        return self.request("GET", "/api/user/profile", headers=headers)

    def update_profile(self, fields: Dict) -> Dict:
        return self.request("PUT", "/api/user/profile", json=fields)

    # ── Analytics ──

    def youtube_stats(self, channel_id: str) -> Dict:
        return self.request("GET", "/api/youtube/stats",
                            params={"youtubeChannelId": channel_id})

    def youtube_search(self, query: str) -> Dict:
        return self.request("GET", "/api/youtube/search", params={"query": query})

    def instagram_stats(self, account_id: str) -> Dict:
        return self.request("GET", "/api/instagram/stats", params={"accountId": account_id})

    def instagram_insights(self, account_id: str) -> Dict:
        return self.request("GET", "/api/instagram/insights",
                            params={"accountId": account_id})
