"""
Error taxonomy shared by the backend routes and the analytics layer.

Each error knows the HTTP status it maps to. `detail` carries extra
context (usually the upstream API's own message) that is safe to show.
"""

from typing import Optional


class DashboardError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.detail:
            body["error"] = self.detail
        return body


class ValidationError(DashboardError):
    """Missing or malformed request input."""
    status_code = 400


class AuthError(DashboardError):
    """Missing, invalid or expired bearer token, or bad credentials."""
    status_code = 401


class NotFoundError(DashboardError):
    status_code = 404


class ConfigurationError(DashboardError):
    """An upstream credential is not configured."""
    status_code = 500


class UpstreamError(DashboardError):
    """Third-party API returned non-success or could not be reached."""
    status_code = 500
