"""
Collectors — upstream platform fetching layer.

Each platform collector implements BaseCollector. Collectors own the
HTTP calls and error mapping; shaping the payloads into view-models is
left to metrics.py.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import requests

import config
from errors import UpstreamError
from metrics import AggregatedMetrics

logger = logging.getLogger(__name__)


def upstream_message(resp: requests.Response) -> Optional[str]:
    """Extract error.message from a Google/Meta style error body, if any."""
    try:
        body = resp.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message")
    if isinstance(error, str):
        return error
    return None


class BaseCollector(ABC):
    """Abstract base for all platform data collectors."""

    platform = ""
    failure_message = "Failed to fetch data"

    @abstractmethod
    def get_metrics(self, identifier: str) -> AggregatedMetrics:
        """Fetch a profile plus its recent items and aggregate them."""
        ...

    def _get_json(self, url: str, params: Dict,
                  failure_message: Optional[str] = None) -> Dict:
        """
        GET an upstream endpoint and return its JSON body.

        Non-2xx responses and transport errors become UpstreamError,
        forwarding the upstream's own message when it sent one.
        """
        failure_message = failure_message or self.failure_message
        try:
            resp = requests.get(url, params=params, timeout=config.REQUEST_TIMEOUT)
        except requests.RequestException as e:
            # str(e) would echo the query string, credential included
            logger.error(f"{self.platform} request failed: {type(e).__name__}")
            raise UpstreamError(failure_message) from e

        if not resp.ok:
            detail = upstream_message(resp)
            logger.error(
                f"{self.platform} API error: {resp.status_code} "
                f"{detail or resp.text[:200]}"
            )
            raise UpstreamError(failure_message, detail=detail)

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(failure_message, detail="Invalid JSON from upstream") from e
