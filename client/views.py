"""
Terminal views — stat cards for the dashboard CLI.

Views take the API's JSON shapes and return printable strings; they
never call the network.
"""

from datetime import datetime
from typing import Dict, List, Optional


def format_number(num) -> str:
    """1234 -> '1.2K', 2500000 -> '2.5M'."""
    num = num or 0
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(num)


def format_date(value: Optional[str]) -> str:
    """ISO timestamp -> 'Jan 5, 2025' (input echoed back if unparseable)."""
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return value
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def stat_cards(cards: List[tuple]) -> str:
    """Render (title, value) pairs as a row of boxed cards."""
    width = max(max(len(str(t)), len(str(v))) for t, v in cards) + 2
    top = "  ".join("┌" + "─" * width + "┐" for _ in cards)
    titles = "  ".join(f"│{str(t):^{width}}│" for t, _ in cards)
    values = "  ".join(f"│{str(v):^{width}}│" for _, v in cards)
    bottom = "  ".join("└" + "─" * width + "┘" for _ in cards)
    return "\n".join([top, titles, values, bottom])


def render_youtube(data: Dict) -> str:
    info = data.get("channelInfo") or {}
    stats = data.get("statistics") or {}
    engagement = data.get("engagement") or {}

    lines = [f"YouTube — {info.get('channelName') or info.get('youtubeChannelId', '?')}", ""]
    lines.append(stat_cards([
        ("Subscribers", format_number(stats.get("subscriberCount"))),
        ("Total Views", format_number(stats.get("viewCount"))),
        ("Total Likes", format_number(engagement.get("totalLikes"))),
        ("Comments", format_number(engagement.get("totalComments"))),
        ("Engagement", f"{engagement.get('engagementRate', 0)}%"),
    ]))

    videos = data.get("latestVideos") or []
    lines.append("")
    lines.append("Latest videos:" if videos else "No videos yet.")
    for video in videos:
        lines.append(
            f"  {format_date(video.get('publishedAt')):<13} {video.get('title', '')[:50]:<50} "
            f"{format_number(video.get('viewCount'))} views · "
            f"{format_number(video.get('likeCount'))} likes · "
            f"{format_number(video.get('commentCount'))} comments"
        )
    return "\n".join(lines)


def render_instagram(data: Dict) -> str:
    info = data.get("accountInfo") or {}
    engagement = data.get("engagement") or {}

    lines = [f"Instagram — @{info.get('username', '?')}", ""]
    lines.append(stat_cards([
        ("Followers", format_number(info.get("followersCount"))),
        ("Posts", format_number(info.get("mediaCount"))),
        ("Total Likes", format_number(engagement.get("totalLikes"))),
        ("Comments", format_number(engagement.get("totalComments"))),
        ("Engagement", f"{engagement.get('engagementRate', 0)}%"),
    ]))

    media = data.get("recentMedia") or []
    lines.append("")
    lines.append("Recent posts:" if media else "No posts yet.")
    for post in media:
        caption = (post.get("caption") or "").replace("\n", " ")
        lines.append(
            f"  {format_date(post.get('timestamp')):<13} {caption[:50]:<50} "
            f"{format_number(post.get('likeCount'))} likes · "
            f"{format_number(post.get('commentCount'))} comments"
        )
    return "\n".join(lines)


def render_insights(data: Dict) -> str:
    lines = ["Instagram insights (last 30 days)"]
    for metric in data.get("data") or []:
        total = sum((v.get("value") or 0) for v in metric.get("values") or [])
        lines.append(f"  {metric.get('title') or metric.get('name')}: {format_number(total)}")
    if len(lines) == 1:
        lines.append("  No insights available.")
    return "\n".join(lines)


def render_channels(data: Dict) -> str:
    channels = data.get("channels") or []
    if not channels:
        return "No channels found."
    return "\n".join(
        f"  {c.get('youtubeChannelId')}  {c.get('channelName')}" for c in channels
    )


def render_overview(youtube: Optional[Dict], instagram: Optional[Dict]) -> str:
    """Combined cards across both platforms (missing platforms count as 0)."""
    youtube = youtube or {}
    instagram = instagram or {}
    audience = ((youtube.get("statistics") or {}).get("subscriberCount") or 0) + \
        ((instagram.get("accountInfo") or {}).get("followersCount") or 0)
    likes = ((youtube.get("engagement") or {}).get("totalLikes") or 0) + \
        ((instagram.get("engagement") or {}).get("totalLikes") or 0)
    return stat_cards([
        ("Total Audience", format_number(audience)),
        ("YouTube Views", format_number((youtube.get("statistics") or {}).get("viewCount"))),
        ("Total Likes", format_number(likes)),
        ("IG Engagement", f"{(instagram.get('engagement') or {}).get('engagementRate', 0)}%"),
    ])


def render_profile(user: Dict) -> str:
    connected = int(bool(user.get("youtubeConnected"))) + int(bool(user.get("instagramConnected")))
    return "\n".join([
        f"Name:      {user.get('name', '')}",
        f"Email:     {user.get('email', '')}",
        f"Joined:    {format_date(user.get('createdAt'))}",
        f"YouTube:   {'Connected' if user.get('youtubeConnected') else 'Not connected'}",
        f"Instagram: {'Connected' if user.get('instagramConnected') else 'Not connected'}",
        f"Connected platforms: {connected}/2",
    ])
