"""
Metrics aggregation tests.

Pure functions only — no network, no database.

Run with: python -m pytest test_metrics.py -q
"""

import os
import sys
import unittest
from pathlib import Path

os.chdir(Path(__file__).parent)
sys.path.insert(0, str(Path(__file__).parent))

from metrics import (
    build_instagram_metrics, build_youtube_metrics, merge_video_statistics,
    round_rate, summarize_engagement, to_count,
)


def _search_video(video_id, title="Video"):
    return {
        "videoId": video_id,
        "title": title,
        "publishedAt": "2025-01-15T12:00:00Z",
        "thumbnail": None,
        "viewCount": 0,
        "likeCount": 0,
        "commentCount": 0,
    }


class TestSummarizeEngagement(unittest.TestCase):

    def test_totals_and_rate(self):
        """Null comment counts default to 0; rate is per item per follower."""
        items = [
            {"likeCount": 10, "commentCount": 2},
            {"likeCount": 5, "commentCount": None},
        ]
        engagement = summarize_engagement(items, 1000)
        self.assertEqual(engagement.total_likes, 15)
        self.assertEqual(engagement.total_comments, 2)
        self.assertEqual(engagement.total_engagement, 17)
        self.assertEqual(engagement.engagement_rate, 0.85)

    def test_zero_items(self):
        engagement = summarize_engagement([], 1000)
        self.assertEqual(engagement.total_likes, 0)
        self.assertEqual(engagement.total_comments, 0)
        self.assertEqual(engagement.total_engagement, 0)
        self.assertEqual(engagement.engagement_rate, 0)

    def test_zero_followers(self):
        engagement = summarize_engagement([{"likeCount": 50, "commentCount": 5}], 0)
        self.assertEqual(engagement.total_engagement, 55)
        self.assertEqual(engagement.engagement_rate, 0)

    def test_unknown_followers(self):
        engagement = summarize_engagement([{"likeCount": 50}], None)
        self.assertEqual(engagement.engagement_rate, 0)

    def test_missing_keys_count_as_zero(self):
        engagement = summarize_engagement([{}, {"likeCount": 3}], 100)
        self.assertEqual(engagement.total_likes, 3)
        self.assertEqual(engagement.total_comments, 0)

    def test_views_only_when_requested(self):
        items = [{"likeCount": 1, "viewCount": "40"}, {"viewCount": 60}]
        self.assertIsNone(summarize_engagement(items, 10).total_views)
        self.assertEqual(summarize_engagement(items, 10, include_views=True).total_views, 100)

    def test_rounds_half_up(self):
        self.assertEqual(round_rate(0.125), 0.13)
        self.assertEqual(round_rate(2.0), 2.0)

    def test_to_count(self):
        self.assertEqual(to_count("42"), 42)
        self.assertEqual(to_count(None), 0)
        self.assertEqual(to_count("n/a"), 0)


class TestYouTubeMetrics(unittest.TestCase):

    def setUp(self):
        self.channel = {
            "id": "UC123",
            "snippet": {
                "title": "Test Channel",
                "description": "desc",
                "publishedAt": "2020-01-01T00:00:00Z",
                "thumbnails": {"medium": {"url": "https://example.com/t.jpg"}},
            },
            "statistics": {
                "subscriberCount": "2000",
                "videoCount": "12",
                "viewCount": "50000",
            },
        }

    def test_merge_keeps_videos_without_stats(self):
        """A video missing from the stats lookup keeps zero counts and is not dropped."""
        videos = [_search_video("a"), _search_video("b")]
        stats = [{"id": "a", "statistics": {"viewCount": "100", "likeCount": "9", "commentCount": "1"}}]
        merged = merge_video_statistics(videos, stats)

        self.assertEqual([v["videoId"] for v in merged], ["a", "b"])
        self.assertEqual(merged[0]["likeCount"], 9)
        self.assertEqual(merged[0]["viewCount"], 100)
        self.assertEqual(merged[1]["likeCount"], 0)
        self.assertEqual(merged[1]["commentCount"], 0)

    def test_merge_does_not_mutate_input(self):
        videos = [_search_video("a")]
        merge_video_statistics(videos, [{"id": "a", "statistics": {"likeCount": "5"}}])
        self.assertEqual(videos[0]["likeCount"], 0)

    def test_build_youtube_metrics_shape(self):
        videos = [_search_video("a"), _search_video("b")]
        stats = [
            {"id": "a", "statistics": {"viewCount": "300", "likeCount": "30", "commentCount": "10"}},
            {"id": "b", "statistics": {"viewCount": "100", "likeCount": "10", "commentCount": "0"}},
        ]
        data = build_youtube_metrics(self.channel, videos, stats).to_dict()

        self.assertEqual(data["channelInfo"]["youtubeChannelId"], "UC123")
        self.assertEqual(data["channelInfo"]["channelName"], "Test Channel")
        self.assertEqual(data["statistics"], {
            "subscriberCount": 2000, "videoCount": 12, "viewCount": 50000,
        })
        self.assertEqual(len(data["latestVideos"]), 2)
        self.assertEqual(data["engagement"]["totalLikes"], 40)
        self.assertEqual(data["engagement"]["totalComments"], 10)
        self.assertEqual(data["engagement"]["totalViews"], 400)
        self.assertEqual(data["engagement"]["totalEngagement"], 50)
        # (50 / 2) / 2000 * 100
        self.assertEqual(data["engagement"]["engagementRate"], 1.25)

    def test_channel_without_videos(self):
        data = build_youtube_metrics(self.channel, [], []).to_dict()
        self.assertEqual(data["latestVideos"], [])
        self.assertEqual(data["engagement"], {
            "totalLikes": 0, "totalComments": 0, "totalEngagement": 0,
            "engagementRate": 0, "totalViews": 0,
        })

    def test_hidden_subscriber_count(self):
        self.channel["statistics"] = {"hiddenSubscriberCount": True, "viewCount": "5"}
        metrics = build_youtube_metrics(self.channel, [_search_video("a")], [
            {"id": "a", "statistics": {"likeCount": "5"}},
        ])
        self.assertIsNone(metrics.follower_count)
        self.assertEqual(metrics.engagement.engagement_rate, 0)


class TestInstagramMetrics(unittest.TestCase):

    def test_build_instagram_metrics(self):
        account = {
            "id": "1784",
            "username": "creator",
            "account_type": "BUSINESS",
            "followers_count": 1000,
            "follows_count": 150,
            "media_count": 87,
        }
        media = [
            {"id": "m1", "caption": "First", "media_type": "IMAGE",
             "like_count": 10, "comments_count": 2, "timestamp": "2025-01-01T00:00:00+0000"},
            {"id": "m2", "caption": "Second", "media_type": "VIDEO", "like_count": 5},
        ]
        data = build_instagram_metrics(account, media).to_dict()

        self.assertEqual(data["accountInfo"]["username"], "creator")
        self.assertEqual(data["accountInfo"]["followersCount"], 1000)
        self.assertEqual(data["accountInfo"]["mediaCount"], 87)
        self.assertEqual(data["recentMedia"][1]["commentCount"], 0)
        self.assertEqual(data["recentMedia"][0]["mediaType"], "IMAGE")
        self.assertEqual(data["engagement"], {
            "totalLikes": 15, "totalComments": 2,
            "totalEngagement": 17, "engagementRate": 0.85,
        })

    def test_account_without_media(self):
        data = build_instagram_metrics({"id": "1", "followers_count": 500}, []).to_dict()
        self.assertEqual(data["recentMedia"], [])
        self.assertEqual(data["engagement"]["engagementRate"], 0)
        self.assertEqual(data["engagement"]["totalLikes"], 0)


if __name__ == "__main__":
    unittest.main()
