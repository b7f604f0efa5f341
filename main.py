"""
Social Pulse — terminal dashboard client.

Keeps you signed in between runs (the bearer token is stored under
data/), checks the stored token on every start, and renders YouTube /
Instagram stat cards from the API server (see dashboard.py).

Usage:
  python main.py register --name Ana --email ana@example.com
  python main.py login --email ana@example.com
  python main.py profile --youtube-channel UC123 --instagram-account 1784...
  python main.py overview
  python main.py youtube [--channel UC123]
  python main.py search "cooking"
  python main.py instagram [--account 1784...]
  python main.py insights [--account 1784...]
  python main.py logout
"""

import argparse
import getpass
import logging
import sys

import config
from client import ClientContext, create_client
from client.api_client import ApiError
from client.views import (
    render_channels, render_insights, render_instagram, render_overview,
    render_profile, render_youtube,
)

logger = logging.getLogger("client")


def setup_logging():
    """Configure console logging with timestamps."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_args(argv=None):
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Social Pulse — YouTube & Instagram analytics"
    )
    parser.add_argument("--api", default=None, help="API base URL (default: API_BASE_URL)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Sign in")
    p.add_argument("--email", required=True)
    p.add_argument("--password", default=None, help="Prompted when omitted")

    p = sub.add_parser("register", help="Create an account")
    p.add_argument("--name", required=True)
    p.add_argument("--email", required=True)
    p.add_argument("--password", default=None, help="Prompted when omitted")

    sub.add_parser("logout", help="Sign out and forget the stored token")

    p = sub.add_parser("profile", help="Show or edit your profile")
    p.add_argument("--name")
    p.add_argument("--email")
    p.add_argument("--youtube-channel", dest="youtube_channel_id")
    p.add_argument("--instagram-account", dest="instagram_account_id")

    sub.add_parser("overview", help="Combined stats across platforms")

    p = sub.add_parser("youtube", help="YouTube channel stats")
    p.add_argument("--channel", default=None, help="Channel id (default: your connected channel)")

    p = sub.add_parser("search", help="Search YouTube channels")
    p.add_argument("query")

    p = sub.add_parser("instagram", help="Instagram account stats")
    p.add_argument("--account", default=None, help="Account id (default: your connected account)")

    p = sub.add_parser("insights", help="Instagram account insights")
    p.add_argument("--account", default=None)

    return parser.parse_args(argv)


def navigate_to_login(path):
    print(f"\n  Not signed in ({path}). Run: python main.py login --email <you>\n")


# ── Commands ──

def cmd_login(ctx: ClientContext, args) -> int:
    password = args.password or getpass.getpass("Password: ")
    result = ctx.session.login(args.email, password)
    if not result.success:
        print(f"  ✗ {result.error or 'Login failed'}")
        return 1
    print(f"  ✓ Login successful! Welcome back, {ctx.session.user.get('name', '')}")
    return 0


def cmd_register(ctx: ClientContext, args) -> int:
    password = args.password or getpass.getpass("Password: ")
    result = ctx.session.register(args.name, args.email, password)
    if not result.success:
        print(f"  ✗ {result.error or 'Registration failed'}")
        return 1
    print("  ✓ Registration successful!")
    return 0


def cmd_logout(ctx: ClientContext, args) -> int:
    ctx.session.logout()
    print("  ✓ Logged out successfully")
    return 0


def cmd_profile(ctx: ClientContext, args) -> int:
    changes = {
        key: value for key, value in {
            "name": args.name,
            "email": args.email,
            "youtubeChannelId": args.youtube_channel_id,
            "instagramAccountId": args.instagram_account_id,
        }.items() if value is not None
    }
    if changes:
        updated = ctx.api.update_profile(changes)
        ctx.session.update_user(updated)
        print("  ✓ Profile updated successfully!\n")
    print(render_profile(ctx.session.user))
    return 0


def cmd_overview(ctx: ClientContext, args) -> int:
    user = ctx.session.user
    youtube = instagram = None
    if user.get("youtubeChannelId"):
        youtube = ctx.api.youtube_stats(user["youtubeChannelId"])
    if user.get("instagramAccountId"):
        instagram = ctx.api.instagram_stats(user["instagramAccountId"])
    print(render_overview(youtube, instagram))
    if not (user.get("youtubeConnected") and user.get("instagramConnected")):
        print("\n  Link your YouTube and Instagram accounts with `python main.py profile`.")
    return 0


def _pick(explicit, user, key, label):
    value = explicit or user.get(key)
    if not value:
        print(f"  ✗ No {label} given and none connected to your profile")
    return value


def cmd_youtube(ctx: ClientContext, args) -> int:
    channel_id = _pick(args.channel, ctx.session.user, "youtubeChannelId", "channel")
    if not channel_id:
        return 1
    print(render_youtube(ctx.api.youtube_stats(channel_id)))
    return 0


def cmd_search(ctx: ClientContext, args) -> int:
    print(render_channels(ctx.api.youtube_search(args.query)))
    return 0


def cmd_instagram(ctx: ClientContext, args) -> int:
    account_id = _pick(args.account, ctx.session.user, "instagramAccountId", "account")
    if not account_id:
        return 1
    print(render_instagram(ctx.api.instagram_stats(account_id)))
    return 0


def cmd_insights(ctx: ClientContext, args) -> int:
    account_id = _pick(args.account, ctx.session.user, "instagramAccountId", "account")
    if not account_id:
        return 1
    print(render_insights(ctx.api.instagram_insights(account_id)))
    return 0


PUBLIC_COMMANDS = {
    "login": cmd_login,
    "register": cmd_register,
    "logout": cmd_logout,
}

PROTECTED_COMMANDS = {
    "profile": cmd_profile,
    "overview": cmd_overview,
    "youtube": cmd_youtube,
    "search": cmd_search,
    "instagram": cmd_instagram,
    "insights": cmd_insights,
}


def run(args, ctx: ClientContext) -> int:
    ctx.session.initialize()

    if args.command in PUBLIC_COMMANDS:
        return PUBLIC_COMMANDS[args.command](ctx, args)

    command = PROTECTED_COMMANDS[args.command]
    try:
        result = ctx.guard.render(lambda: command(ctx, args))
    except ApiError as e:
        print(f"  ✗ {e.message}")
        return 1
    if result is None:
        return 1
    if isinstance(result, str):
        print(result)
        return 1
    return result


def main(argv=None) -> int:
    setup_logging()
    args = parse_args(argv)
    ctx = create_client(navigate=navigate_to_login, base_url=args.api)
    return run(args, ctx)


if __name__ == "__main__":
    sys.exit(main())
