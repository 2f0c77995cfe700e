#!/usr/bin/env python3
"""
CLI for the XRAI feed engine

Usage:
    python -m xrai.cli --signals signals.json home [--page 2]
    python -m xrai.cli --signals signals.json shorts [--page 2] [--seen-id ID ...]
    python -m xrai.cli --signals signals.json interests [--top 10]
    python -m xrai.cli related VIDEO_ID
    python -m xrai.cli comments VIDEO_ID
    python -m xrai.cli channel-videos CHANNEL_ID [--page 2]
    python -m xrai.cli channel-shorts CHANNEL_ID
    python -m xrai.cli channel-playlists CHANNEL_ID
    python -m xrai.cli playlist PLAYLIST_ID [--page 2]
    python -m xrai.cli search QUERY [--page 2]

The YouTube API key is read from YOUTUBE_API_KEY; other settings from
XRAI_* environment variables.
"""
import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .collectors.sources import (
    collect_channel_playlists,
    collect_channel_shorts,
    collect_comments,
    collect_related,
    get_channel_videos_page,
    get_playlist_page,
    search_page,
)
from .config import ConfigError, FeedSettings
from .discovery.affinity import build_affinity_vector, top_keywords
from .discovery.feed import FeedAssembler
from .discovery.models import SignalSnapshot, VideoCandidate
from .providers.youtube_api import YouTubeDataProvider

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)

# Commands that need no provider
OFFLINE_COMMANDS = {"interests"}


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="XRAI personalized feed CLI"
    )
    parser.add_argument(
        "--signals",
        help="Path to a JSON signal snapshot (default: empty signals)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    home_parser = subparsers.add_parser(
        "home",
        help="Build a home feed page (videos + shorts shelf)"
    )
    home_parser.add_argument(
        "--page",
        type=int,
        default=1,
        help="Page number (default: 1)"
    )

    shorts_parser = subparsers.add_parser(
        "shorts",
        help="Build a shorts feed batch"
    )
    shorts_parser.add_argument(
        "--page",
        type=int,
        default=1,
        help="Page number (default: 1)"
    )
    shorts_parser.add_argument(
        "--seen-id",
        action="append",
        default=[],
        dest="seen_ids",
        help="ID already shown this session (repeatable)"
    )

    interests_parser = subparsers.add_parser(
        "interests",
        help="Show the heaviest affinity keywords for the signals"
    )
    interests_parser.add_argument(
        "--top",
        type=int,
        default=10,
        help="Number of keywords to show (default: 10)"
    )

    related_parser = subparsers.add_parser(
        "related",
        help="Collect related videos for a video"
    )
    related_parser.add_argument("video_id", help="Video ID")

    comments_parser = subparsers.add_parser(
        "comments",
        help="Collect comments for a video"
    )
    comments_parser.add_argument("video_id", help="Video ID")

    channel_parser = subparsers.add_parser(
        "channel-videos",
        help="Show one page of a channel's uploads"
    )
    channel_parser.add_argument("channel_id", help="Channel ID")
    channel_parser.add_argument(
        "--page",
        type=int,
        default=1,
        help="Page number (default: 1)"
    )

    channel_shorts_parser = subparsers.add_parser(
        "channel-shorts",
        help="Show a channel's shorts"
    )
    channel_shorts_parser.add_argument("channel_id", help="Channel ID")

    channel_playlists_parser = subparsers.add_parser(
        "channel-playlists",
        help="Show a channel's playlists"
    )
    channel_playlists_parser.add_argument("channel_id", help="Channel ID")

    playlist_parser = subparsers.add_parser(
        "playlist",
        help="Show one page of a playlist"
    )
    playlist_parser.add_argument("playlist_id", help="Playlist ID")
    playlist_parser.add_argument(
        "--page",
        type=int,
        default=1,
        help="Page number (default: 1)"
    )

    search_parser = subparsers.add_parser(
        "search",
        help="Show one page of search results"
    )
    search_parser.add_argument("query", help="Search query")
    search_parser.add_argument(
        "--page",
        type=int,
        default=1,
        help="Page number (default: 1)"
    )

    return parser.parse_args(argv)


def load_signals(path: Optional[str]) -> SignalSnapshot:
    """Load a signal snapshot from JSON, or an empty one when no path."""
    if not path:
        return SignalSnapshot()
    return SignalSnapshot.model_validate_json(Path(path).read_text(encoding="utf-8"))


def _video_dict(v: VideoCandidate) -> dict:
    return {
        "id": v.id,
        "title": v.title,
        "channel_id": v.channel_id,
        "channel_name": v.channel_name,
        "duration_seconds": v.duration_seconds,
        "origin": v.origin,
    }


async def cmd_home(provider, settings: FeedSettings, signals: SignalSnapshot, args) -> dict:
    """Execute the home command."""
    assembler = FeedAssembler(provider, settings)
    feed = await assembler.get_xrai_recommendations(signals, page=args.page)
    return {
        "command": "home",
        "page": args.page,
        "no_content_available": feed.no_content_available,
        "videos": [_video_dict(v) for v in feed.videos],
        "shorts": [_video_dict(v) for v in feed.shorts],
    }


async def cmd_shorts(provider, settings: FeedSettings, signals: SignalSnapshot, args) -> dict:
    """Execute the shorts command."""
    assembler = FeedAssembler(provider, settings)
    feed = await assembler.get_xrai_shorts(
        signals, page=args.page, seen_ids=args.seen_ids
    )
    return {
        "command": "shorts",
        "page": args.page,
        "no_content_available": feed.no_content_available,
        "shorts": [_video_dict(v) for v in feed.shorts],
    }


def cmd_interests(signals: SignalSnapshot, args) -> dict:
    """Execute the interests command (offline)."""
    vector = build_affinity_vector(signals)
    keywords = top_keywords(vector, args.top)
    return {
        "command": "interests",
        "magnitude": round(vector.magnitude, 4),
        "keywords": [
            {"keyword": k, "weight": round(vector.get(k), 4)}
            for k in keywords
        ],
    }


async def cmd_related(provider, settings: FeedSettings, args) -> dict:
    """Execute the related command."""
    result = await collect_related(
        provider,
        args.video_id,
        target=settings.related_target,
        max_attempts=settings.related_max_attempts,
    )
    return {
        "command": "related",
        "video_id": args.video_id,
        "count": len(result.items),
        "continuations": result.attempts,
        "stalled": result.stalled,
        "error": result.error,
        "videos": [_video_dict(v) for v in result.items],
    }


async def cmd_comments(provider, settings: FeedSettings, args) -> dict:
    """Execute the comments command."""
    result = await collect_comments(
        provider,
        args.video_id,
        target=settings.comments_target,
        max_attempts=settings.comments_max_attempts,
    )
    return {
        "command": "comments",
        "video_id": args.video_id,
        "count": len(result.items),
        "error": result.error,
        "comments": [
            {
                "comment_id": c.comment_id,
                "author": c.author_name,
                "text": c.text,
                "like_count": c.like_count,
            }
            for c in result.items
        ],
    }


async def cmd_channel_videos(provider, settings: FeedSettings, args) -> dict:
    """Execute the channel-videos command."""
    results = await get_channel_videos_page(
        provider, args.channel_id, page=args.page, page_size=settings.channel_page_size
    )
    channel = results.channel
    return {
        "command": "channel-videos",
        "channel_id": args.channel_id,
        "channel": dataclasses.asdict(channel) if channel else None,
        "page": args.page,
        "next_page_token": results.next_page_token,
        "error": results.error,
        "videos": [_video_dict(v) for v in results.videos],
    }


async def cmd_channel_shorts(provider, settings: FeedSettings, args) -> dict:
    """Execute the channel-shorts command."""
    result = await collect_channel_shorts(provider, args.channel_id)
    return {
        "command": "channel-shorts",
        "channel_id": args.channel_id,
        "error": result.error,
        "shorts": [_video_dict(v) for v in result.items],
    }


async def cmd_channel_playlists(provider, settings: FeedSettings, args) -> dict:
    """Execute the channel-playlists command."""
    result = await collect_channel_playlists(provider, args.channel_id)
    return {
        "command": "channel-playlists",
        "channel_id": args.channel_id,
        "error": result.error,
        "playlists": [dataclasses.asdict(p) for p in result.items],
    }


async def cmd_playlist(provider, settings: FeedSettings, args) -> dict:
    """Execute the playlist command."""
    results = await get_playlist_page(
        provider, args.playlist_id, page=args.page, page_size=settings.playlist_page_size
    )
    playlist = results.playlist
    return {
        "command": "playlist",
        "playlist_id": args.playlist_id,
        "playlist": dataclasses.asdict(playlist) if playlist else None,
        "page": args.page,
        "next_page_token": results.next_page_token,
        "error": results.error,
        "videos": [_video_dict(v) for v in results.videos],
    }


async def cmd_search(provider, settings: FeedSettings, args) -> dict:
    """Execute the search command."""
    results = await search_page(
        provider, args.query, page=args.page, page_size=settings.search_page_size
    )
    return {
        "command": "search",
        "query": args.query,
        "page": args.page,
        "next_page_token": results.next_page_token,
        "videos": [_video_dict(v) for v in results.videos],
        "shorts": [_video_dict(v) for v in results.shorts],
        "channels": [{"id": c.id, "name": c.name} for c in results.channels],
        "playlists": [{"id": p.id, "title": p.title} for p in results.playlists],
    }


async def run_command(args, settings: FeedSettings, signals: SignalSnapshot, provider=None) -> dict:
    """Dispatch a parsed command. Opens a provider when none is given."""
    if args.command in OFFLINE_COMMANDS:
        return cmd_interests(signals, args)

    if provider is None:
        async with YouTubeDataProvider(settings) as yt:
            return await run_command(args, settings, signals, provider=yt)

    if args.command == "home":
        return await cmd_home(provider, settings, signals, args)
    elif args.command == "shorts":
        return await cmd_shorts(provider, settings, signals, args)
    elif args.command == "related":
        return await cmd_related(provider, settings, args)
    elif args.command == "comments":
        return await cmd_comments(provider, settings, args)
    elif args.command == "channel-videos":
        return await cmd_channel_videos(provider, settings, args)
    elif args.command == "channel-shorts":
        return await cmd_channel_shorts(provider, settings, args)
    elif args.command == "channel-playlists":
        return await cmd_channel_playlists(provider, settings, args)
    elif args.command == "playlist":
        return await cmd_playlist(provider, settings, args)
    elif args.command == "search":
        return await cmd_search(provider, settings, args)
    raise ValueError(f"Unknown command: {args.command}")


def print_result(result: dict) -> None:
    """Human-readable summary of a command result."""
    print(f"\n{'=' * 50}")
    print(f"Command: {result['command']}")
    print(f"{'=' * 50}")

    command = result["command"]
    if command == "home":
        if result["no_content_available"]:
            print("No content available (all sources failed).")
        print(f"Videos: {len(result['videos'])}")
        for v in result["videos"]:
            print(f"  [{v['origin'] or '-':<12}] {v['title'][:60]} ({v['channel_name']})")
        print(f"\nShorts: {len(result['shorts'])}")
        for v in result["shorts"]:
            print(f"  {v['title'][:60]} ({v['channel_name']})")

    elif command == "shorts":
        print(f"Shorts: {len(result['shorts'])}")
        for v in result["shorts"]:
            print(f"  [{v['origin'] or '-':<12}] {v['id']} {v['title'][:50]} ({v['channel_name']})")

    elif command == "interests":
        print(f"Magnitude: {result['magnitude']}")
        for kw in result["keywords"]:
            print(f"  {kw['weight']:>8.3f}  {kw['keyword']}")

    elif command == "related":
        print(f"Related videos: {result['count']} ({result['continuations']} continuations)")
        if result["stalled"]:
            print("  Pagination stalled")
        if result["error"]:
            print(f"  Stopped on error: {result['error']}")
        for v in result["videos"]:
            print(f"  {v['id']} {v['title'][:60]}")

    elif command == "comments":
        print(f"Comments: {result['count']}")
        for c in result["comments"][:20]:
            print(f"  {c['author']}: {c['text'][:70]}")

    elif command == "channel-shorts":
        print(f"Shorts: {len(result['shorts'])}")
        for v in result["shorts"]:
            print(f"  {v['id']} {v['title'][:60]}")

    elif command == "channel-playlists":
        print(f"Playlists: {len(result['playlists'])}")
        for p in result["playlists"]:
            print(f"  {p['id']} {p['title'][:50]} ({p['video_count']} videos)")

    elif command in ("channel-videos", "playlist", "search"):
        if result.get("channel"):
            ch = result["channel"]
            print(f"{ch['name']} ({ch['subscriber_count'] or 'hidden'} subscribers)")
        if result.get("playlist"):
            print(f"{result['playlist']['title']} by {result['playlist']['author'] or '-'}")
        print(f"Page {result['page']}: {len(result['videos'])} videos")
        for v in result["videos"]:
            print(f"  {v['id']} {v['title'][:60]}")
        if result.get("channels"):
            print(f"\nChannels: {', '.join(c['name'] for c in result['channels'])}")
        print(f"Next page: {result['next_page_token'] or 'none'}")

    print(f"{'=' * 50}\n")


async def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    try:
        settings = FeedSettings.from_env()
        signals = load_signals(args.signals)
    except (ConfigError, ValidationError, OSError) as e:
        logger.error("Could not load configuration: %s", e)
        return 1

    try:
        result = await run_command(args, settings, signals)
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        print_result(result)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
