"""
YouTube Data API v3 collector.

Three calls build a channel's stats view:
  1. channels?part=statistics,snippet   — profile + subscriber/view counts
  2. search?type=video&order=date       — latest video ids + titles
  3. videos?part=statistics             — per-video view/like/comment counts

Step 3 is skipped when the channel has no videos. Videos missing from the
statistics response keep zero counts.
"""

import logging
from typing import Dict, List, Optional

import config
from collectors import BaseCollector
from errors import ConfigurationError, NotFoundError, ValidationError
from metrics import (
    AggregatedMetrics, build_youtube_metrics,
    normalize_search_channel, normalize_search_video,
)

logger = logging.getLogger(__name__)


class YouTubeCollector(BaseCollector):
    """Fetches public channel data with a YouTube Data API key."""

    platform = "YouTube"
    failure_message = "Failed to fetch YouTube data"

    def __init__(self, api_key: str, base_url: Optional[str] = None):
        if not api_key:
            raise ConfigurationError("YouTube service not configured")
        self.api_key = api_key
        self.base_url = base_url or config.YOUTUBE_API_URL

    def get_metrics(self, identifier: str) -> AggregatedMetrics:
        return self.get_channel_metrics(identifier)

    def get_channel_metrics(self, channel_id: str,
                            max_videos: int = config.YOUTUBE_LATEST_VIDEOS) -> AggregatedMetrics:
        """Channel profile + latest videos with engagement totals."""
        if not channel_id:
            raise ValidationError("Channel ID is required")

        logger.info(f"Fetching YouTube stats for channel {channel_id}")
        channel = self._get_channel(channel_id)
        videos = self._get_latest_videos(channel_id, max_videos)

        stats_items: List[Dict] = []
        if videos:
            stats_items = self._get_video_statistics([v["videoId"] for v in videos])
        else:
            logger.info(f"  Channel {channel_id} has no videos")

        return build_youtube_metrics(channel, videos, stats_items)

    def search_channels(self, query: str,
                        max_results: int = config.YOUTUBE_SEARCH_RESULTS) -> List[Dict]:
        """Search channels by free text."""
        if not query:
            raise ValidationError("Search query is required")

        data = self._get_json(
            f"{self.base_url}/search",
            {
                "part": "snippet",
                "type": "channel",
                "q": query,
                "maxResults": max_results,
                "key": self.api_key,
            },
            failure_message="Failed to search YouTube channels",
        )
        return [normalize_search_channel(item) for item in data.get("items", [])]

    def _get_channel(self, channel_id: str) -> Dict:
        data = self._get_json(
            f"{self.base_url}/channels",
            {"part": "statistics,snippet", "id": channel_id, "key": self.api_key},
        )
        items = data.get("items") or []
        if not items:
            raise NotFoundError("Channel not found")
        return items[0]

    def _get_latest_videos(self, channel_id: str, max_videos: int) -> List[Dict]:
        data = self._get_json(
            f"{self.base_url}/search",
            {
                "part": "snippet",
                "channelId": channel_id,
                "type": "video",
                "order": "date",
                "maxResults": max_videos,
                "key": self.api_key,
            },
        )
        videos = []
        for item in data.get("items") or []:
            video = normalize_search_video(item)
            if video:
                videos.append(video)
        return videos

    def _get_video_statistics(self, video_ids: List[str]) -> List[Dict]:
        data = self._get_json(
            f"{self.base_url}/videos",
            {"part": "statistics", "id": ",".join(video_ids), "key": self.api_key},
        )
        return data.get("items") or []


def create_youtube_collector() -> YouTubeCollector:
    """Build a collector from the configured API key (raises if missing)."""
    return YouTubeCollector(api_key=config.get_api_key('youtube'))
