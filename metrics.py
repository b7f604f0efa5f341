"""
Metrics aggregation — shapes raw platform payloads into dashboard view-models.

Everything here is pure: no network, no database. Collectors fetch the
raw JSON and hand it over; the functions below normalize items, sum
likes/comments and derive the engagement rate.

Engagement rate is averaged per item before dividing by audience size:

    rate = (total_engagement / item_count) / follower_count * 100

rounded half-up to two decimals, and 0 whenever item_count or
follower_count is zero or unknown.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional


def to_count(value) -> int:
    """Coerce an API count (YouTube sends strings) to int, defaulting to 0."""
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def optional_count(value) -> Optional[int]:
    """Like to_count, but keeps 'not provided' distinct from zero."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def round_rate(value: float) -> float:
    """Round half-up to 2 decimals (Python's round() is banker's rounding)."""
    return math.floor(value * 100 + 0.5) / 100


@dataclass
class Engagement:
    """Engagement totals over a set of posts/videos."""
    total_likes: int = 0
    total_comments: int = 0
    total_engagement: int = 0
    engagement_rate: float = 0
    total_views: Optional[int] = None   # YouTube only

    def to_dict(self) -> dict:
        data = {
            "totalLikes": self.total_likes,
            "totalComments": self.total_comments,
            "totalEngagement": self.total_engagement,
            "engagementRate": self.engagement_rate,
        }
        if self.total_views is not None:
            data["totalViews"] = self.total_views
        return data


@dataclass
class AggregatedMetrics:
    """Per-platform view-model: profile block, items, engagement."""
    platform: str                       # "youtube", "instagram"
    profile: Dict
    items: List[Dict] = field(default_factory=list)
    engagement: Engagement = field(default_factory=Engagement)
    statistics: Optional[Dict] = None   # YouTube channel statistics block

    @property
    def follower_count(self) -> Optional[int]:
        if self.platform == "youtube":
            return (self.statistics or {}).get("subscriberCount")
        return self.profile.get("followersCount")

    def to_dict(self) -> dict:
        if self.platform == "youtube":
            return {
                "channelInfo": self.profile,
                "statistics": self.statistics or {},
                "latestVideos": self.items,
                "engagement": self.engagement.to_dict(),
            }
        return {
            "accountInfo": self.profile,
            "recentMedia": self.items,
            "engagement": self.engagement.to_dict(),
        }


def summarize_engagement(items: Iterable[Dict],
                         follower_count: Optional[int],
                         include_views: bool = False) -> Engagement:
    """
    Sum likeCount/commentCount over normalized items and derive the rate.

    Missing or null counts count as 0. Never raises on an empty item set.
    """
    items = list(items)
    total_likes = sum(to_count(item.get("likeCount")) for item in items)
    total_comments = sum(to_count(item.get("commentCount")) for item in items)
    total_engagement = total_likes + total_comments

    followers = to_count(follower_count)
    if items and followers > 0:
        rate = round_rate((total_engagement / len(items)) / followers * 100)
    else:
        rate = 0

    engagement = Engagement(
        total_likes=total_likes,
        total_comments=total_comments,
        total_engagement=total_engagement,
        engagement_rate=rate,
    )
    if include_views:
        engagement.total_views = sum(to_count(item.get("viewCount")) for item in items)
    return engagement


# ── YouTube ──

def _thumbnail(snippet: Dict, size: str = "medium") -> Optional[str]:
    thumbnails = snippet.get("thumbnails") or {}
    chosen = thumbnails.get(size) or thumbnails.get("default") or {}
    return chosen.get("url")


def normalize_channel(channel: Dict) -> Dict:
    snippet = channel.get("snippet") or {}
    return {
        "youtubeChannelId": channel.get("id"),
        "channelName": snippet.get("title"),
        "description": snippet.get("description"),
        "thumbnail": _thumbnail(snippet),
        "publishedAt": snippet.get("publishedAt"),
    }


def normalize_channel_statistics(channel: Dict) -> Dict:
    stats = channel.get("statistics") or {}
    subscribers = None
    if not stats.get("hiddenSubscriberCount"):
        subscribers = optional_count(stats.get("subscriberCount"))
    return {
        "subscriberCount": subscribers,
        "videoCount": to_count(stats.get("videoCount")),
        "viewCount": to_count(stats.get("viewCount")),
    }


def normalize_search_video(item: Dict) -> Optional[Dict]:
    """Search results carry identity + publish metadata only; counts start at 0."""
    video_id = (item.get("id") or {}).get("videoId")
    if not video_id:
        return None
    snippet = item.get("snippet") or {}
    return {
        "videoId": video_id,
        "title": snippet.get("title"),
        "publishedAt": snippet.get("publishedAt"),
        "thumbnail": _thumbnail(snippet),
        "viewCount": 0,
        "likeCount": 0,
        "commentCount": 0,
    }


def normalize_search_channel(item: Dict) -> Dict:
    snippet = item.get("snippet") or {}
    return {
        "youtubeChannelId": (item.get("id") or {}).get("channelId")
        or snippet.get("channelId"),
        "channelName": snippet.get("title"),
        "description": snippet.get("description"),
        "thumbnail": _thumbnail(snippet),
    }


def merge_video_statistics(videos: List[Dict], stats_items: Iterable[Dict]) -> List[Dict]:
    """
    Enrich videos with per-video counts from a /videos?part=statistics lookup.

    Matched by video id. A video with no stats entry keeps its zero counts
    and stays in the list.
    """
    by_id = {}
    for entry in stats_items:
        stats = entry.get("statistics") or {}
        by_id[entry.get("id")] = {
            "viewCount": to_count(stats.get("viewCount")),
            "likeCount": to_count(stats.get("likeCount")),
            "commentCount": to_count(stats.get("commentCount")),
        }

    merged = []
    for video in videos:
        enriched = dict(video)
        enriched.update(by_id.get(video["videoId"], {}))
        merged.append(enriched)
    return merged


def build_youtube_metrics(channel: Dict, videos: List[Dict],
                          stats_items: Iterable[Dict] = ()) -> AggregatedMetrics:
    """Assemble the YouTube view-model from channel, search and stats payloads."""
    statistics = normalize_channel_statistics(channel)
    latest = merge_video_statistics(videos, stats_items)
    return AggregatedMetrics(
        platform="youtube",
        profile=normalize_channel(channel),
        statistics=statistics,
        items=latest,
        engagement=summarize_engagement(
            latest, statistics["subscriberCount"], include_views=True
        ),
    )


# ── Instagram ──

def normalize_account(account: Dict) -> Dict:
    return {
        "accountId": account.get("id"),
        "username": account.get("username"),
        "accountType": account.get("account_type"),
        "followersCount": optional_count(account.get("followers_count")),
        "followsCount": to_count(account.get("follows_count")),
        "mediaCount": to_count(account.get("media_count")),
    }


def normalize_media(post: Dict) -> Dict:
    return {
        "id": post.get("id"),
        "caption": post.get("caption"),
        "mediaType": post.get("media_type"),
        "mediaUrl": post.get("media_url"),
        "thumbnailUrl": post.get("thumbnail_url"),
        "permalink": post.get("permalink"),
        "timestamp": post.get("timestamp"),
        "likeCount": to_count(post.get("like_count")),
        "commentCount": to_count(post.get("comments_count")),
    }


def build_instagram_metrics(account: Dict, media: Iterable[Dict]) -> AggregatedMetrics:
    """Assemble the Instagram view-model from account fields + recent media."""
    profile = normalize_account(account)
    recent = [normalize_media(post) for post in media]
    return AggregatedMetrics(
        platform="instagram",
        profile=profile,
        items=recent,
        engagement=summarize_engagement(recent, profile["followersCount"]),
    )
