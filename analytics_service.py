"""
Analytics service — the boundary between HTTP routes and collectors.

Every function returns a ServiceResult instead of raising, so callers
only branch on `ok`. Input is validated before a collector (and its
credential lookup) is created, so a missing id never costs a network
call.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from collectors.instagram_graph import create_graph_collector
from collectors.youtube import create_youtube_collector
from errors import DashboardError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    ok: bool
    data: Any = None
    error: Optional[DashboardError] = None

    @property
    def status_code(self) -> int:
        return 200 if self.ok else self.error.status_code


def _run(action: Callable[[], Any], failure_message: str) -> ServiceResult:
    try:
        return ServiceResult(ok=True, data=action())
    except DashboardError as e:
        logger.warning(f"{failure_message}: {e.message}")
        return ServiceResult(ok=False, error=e)
    except Exception:
        logger.exception(f"{failure_message}: unexpected error")
        return ServiceResult(ok=False, error=UpstreamError(failure_message))


def _require(value: Any, message: str) -> Tuple[Optional[str], Optional[ServiceResult]]:
    """Normalize an id/query to stripped text, or return a 400 result."""
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        return None, ServiceResult(ok=False, error=ValidationError(message))
    return value.strip(), None


def youtube_stats(channel_id: Any) -> ServiceResult:
    channel_id, missing = _require(channel_id, "Channel ID is required")
    if missing:
        return missing
    return _run(
        lambda: create_youtube_collector().get_channel_metrics(channel_id).to_dict(),
        "Failed to fetch YouTube data",
    )


def youtube_search(query: Any) -> ServiceResult:
    query, missing = _require(query, "Search query is required")
    if missing:
        return missing
    return _run(
        lambda: {"channels": create_youtube_collector().search_channels(query)},
        "Failed to search YouTube channels",
    )


def instagram_stats(account_id: Any) -> ServiceResult:
    account_id, missing = _require(account_id, "Account ID is required")
    if missing:
        return missing
    return _run(
        lambda: create_graph_collector().get_account_metrics(account_id).to_dict(),
        "Failed to fetch Instagram data",
    )


def instagram_insights(account_id: Any) -> ServiceResult:
    account_id, missing = _require(account_id, "Account ID is required")
    if missing:
        return missing
    return _run(
        lambda: create_graph_collector().get_account_insights(account_id),
        "Failed to fetch Instagram insights",
    )
