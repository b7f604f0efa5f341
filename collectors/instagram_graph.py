"""
Instagram Graph API Collector — fetches a managed account's profile,
recent media and account insights.

The Graph API only works for accounts the access token can see
(Instagram Professional accounts connected to a Meta app).

Setup:
  1. Create a Meta Business app at https://developers.facebook.com
  2. Connect your Instagram Professional account
  3. Generate a long-lived access token
  4. Set INSTAGRAM_ACCESS_TOKEN in .env
"""

import logging
import time
from typing import Dict, Optional

import config
from collectors import BaseCollector
from errors import ConfigurationError, ValidationError
from metrics import AggregatedMetrics, build_instagram_metrics

logger = logging.getLogger(__name__)

ACCOUNT_FIELDS = "id,username,account_type,media_count,followers_count,follows_count"
MEDIA_FIELDS = (
    "id,caption,media_type,media_url,permalink,thumbnail_url,"
    "timestamp,like_count,comments_count"
)
INSIGHT_METRICS = "impressions,reach,profile_views"


class InstagramGraphCollector(BaseCollector):
    """
    Fetches account info + recent media via the official Graph API.

    Like and comment counts come back on the media objects themselves,
    so one media-list call is enough for the engagement summary.
    """

    platform = "Instagram"
    failure_message = "Failed to fetch Instagram data"

    def __init__(self, access_token: str, base_url: Optional[str] = None):
        if not access_token:
            raise ConfigurationError("Instagram service not configured")
        self.access_token = access_token
        self.base_url = base_url or config.INSTAGRAM_GRAPH_URL

    def get_metrics(self, identifier: str) -> AggregatedMetrics:
        return self.get_account_metrics(identifier)

    def get_account_metrics(self, account_id: str,
                            limit: int = config.INSTAGRAM_RECENT_MEDIA) -> AggregatedMetrics:
        """Account profile + recent media with engagement totals."""
        if not account_id:
            raise ValidationError("Account ID is required")

        logger.info(f"Fetching Instagram stats for account {account_id}")
        account = self._get_json(
            f"{self.base_url}/{account_id}",
            {"fields": ACCOUNT_FIELDS, "access_token": self.access_token},
        )
        media = self._get_json(
            f"{self.base_url}/{account_id}/media",
            {
                "fields": MEDIA_FIELDS,
                "limit": limit,
                "access_token": self.access_token,
            },
        )
        posts = media.get("data") or []
        logger.info(f"  Instagram {account_id}: {len(posts)} recent posts")
        return build_instagram_metrics(account, posts)

    def get_account_insights(self, account_id: str,
                             days: int = config.INSIGHTS_WINDOW_DAYS,
                             now: Optional[float] = None) -> Dict:
        """
        Daily impressions/reach/profile views over the last `days` days.

        Requires a Business/Creator account. The upstream payload is
        returned as-is.
        """
        if not account_id:
            raise ValidationError("Account ID is required")

        until = int(now if now is not None else time.time())
        since = until - days * 24 * 60 * 60
        return self._get_json(
            f"{self.base_url}/{account_id}/insights",
            {
                "metric": INSIGHT_METRICS,
                "period": "day",
                "since": since,
                "until": until,
                "access_token": self.access_token,
            },
            failure_message="Failed to fetch Instagram insights",
        )


def create_graph_collector() -> InstagramGraphCollector:
    """Build a collector from the configured access token (raises if missing)."""
    return InstagramGraphCollector(access_token=config.get_api_key('instagram'))
