"""
YouTube Data API v3 adapter.

Normalizes search, trending, related, comment, channel and playlist responses
into the engine's page types. Continuations are the API's ``pageToken``
wrapped in a PageCursor.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..config import ConfigError, FeedSettings
from ..discovery.duration import format_duration, parse_duration
from ..discovery.keywords import clean_title_for_search
from ..discovery.models import (
    ChannelInfo,
    ChannelRef,
    ChannelVideosPage,
    Comment,
    CommentsPage,
    PlaylistPage,
    PlaylistRef,
    RelatedPage,
    SearchPage,
    TrendingPage,
    VideoCandidate,
)
from .base import ProviderError, QuotaExceededError

logger = logging.getLogger(__name__)

API_BASE = "https://www.googleapis.com/youtube/v3"

# Trending category names accepted by get_trending
VIDEO_CATEGORIES = {
    "Film": "1",
    "Music": "10",
    "Sports": "17",
    "Gaming": "20",
    "Comedy": "23",
    "Entertainment": "24",
    "News": "25",
    "Education": "27",
}

SEARCH_PAGE_RESULTS = 25
MAX_PAGE_RESULTS = 50
COMMENT_PAGE_RESULTS = 100


@dataclass(frozen=True)
class PageCursor:
    """Opaque continuation handed back to the engine."""
    kind: str
    key: str
    page_token: str


class RateLimiter:
    """Spaces requests by a minimum interval."""

    def __init__(self, min_interval: float = 0.0):
        self.min_interval = min_interval
        self._last_request = 0.0
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        """Wait for the minimum interval since last request."""
        async with self._lock:
            now = time.time()
            elapsed = now - self._last_request
            if elapsed < self.min_interval:
                await asyncio.sleep(self.min_interval - elapsed)
            self._last_request = time.time()


def _thumbnail(snippet: dict) -> str:
    thumbnails = snippet.get("thumbnails", {})
    return (
        thumbnails.get("high", {}).get("url")
        or thumbnails.get("medium", {}).get("url")
        or thumbnails.get("default", {}).get("url", "")
    )


def _video_from_item(item: dict) -> Optional[VideoCandidate]:
    """Build a VideoCandidate from a videos.list item, None if unusable."""
    video_id = item.get("id")
    if not isinstance(video_id, str) or not video_id:
        return None
    snippet = item.get("snippet", {})
    iso = item.get("contentDetails", {}).get("duration", "")
    seconds = parse_duration(iso, "")
    return VideoCandidate(
        id=video_id,
        title=snippet.get("title", ""),
        channel_id=snippet.get("channelId", ""),
        channel_name=snippet.get("channelTitle", ""),
        duration=format_duration(seconds) if seconds else "",
        iso_duration=iso,
        thumbnail_url=_thumbnail(snippet),
        views=item.get("statistics", {}).get("viewCount", ""),
        uploaded_at=snippet.get("publishedAt", ""),
    )


def _comment_from_thread(item: dict) -> Optional[Comment]:
    top = item.get("snippet", {}).get("topLevelComment", {})
    comment_id = top.get("id") or item.get("id")
    if not comment_id:
        return None
    snippet = top.get("snippet", {})
    author_channel = snippet.get("authorChannelId", {})
    return Comment(
        comment_id=comment_id,
        text=snippet.get("textOriginal") or snippet.get("textDisplay", ""),
        published_time=snippet.get("publishedAt", ""),
        author_id=author_channel.get("value", "") if isinstance(author_channel, dict) else "",
        author_name=snippet.get("authorDisplayName", ""),
        like_count=str(snippet.get("likeCount", 0)),
        reply_count=str(item.get("snippet", {}).get("totalReplyCount", 0)),
        is_pinned=False,
    )


def _channel_from_item(item: dict) -> ChannelInfo:
    snippet = item.get("snippet", {})
    statistics = item.get("statistics", {})
    banner = item.get("brandingSettings", {}).get("image", {}).get("bannerExternalUrl", "")
    hidden = statistics.get("hiddenSubscriberCount", False)
    return ChannelInfo(
        id=item.get("id", ""),
        name=snippet.get("title", ""),
        description=snippet.get("description", ""),
        avatar_url=_thumbnail(snippet),
        banner_url=banner,
        subscriber_count="" if hidden else statistics.get("subscriberCount", ""),
        video_count=statistics.get("videoCount", "0"),
    )


def _playlist_from_item(item: dict) -> Optional[PlaylistRef]:
    """Build a PlaylistRef from a playlists.list item, None if unusable."""
    playlist_id = item.get("id")
    if not isinstance(playlist_id, str) or not playlist_id:
        return None
    snippet = item.get("snippet", {})
    try:
        video_count = int(item.get("contentDetails", {}).get("itemCount", 0))
    except (TypeError, ValueError):
        video_count = 0
    return PlaylistRef(
        id=playlist_id,
        title=snippet.get("title", ""),
        thumbnail_url=_thumbnail(snippet),
        video_count=video_count,
        author=snippet.get("channelTitle", ""),
    )


class YouTubeDataProvider:
    """VideoProvider backed by the YouTube Data API.

    Use as an async context manager, or call ``aclose()`` when done.
    """

    def __init__(
        self,
        settings: Optional[FeedSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or FeedSettings.from_env()
        if not self.settings.youtube_api_key:
            raise ConfigError("YOUTUBE_API_KEY is not set")
        self._client = client or httpx.AsyncClient(
            base_url=API_BASE,
            timeout=self.settings.source_timeout,
        )
        self.rate_limiter = RateLimiter(self.settings.min_request_interval)

    async def __aenter__(self) -> "YouTubeDataProvider":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, endpoint: str, params: dict) -> dict:
        await self.rate_limiter.wait()
        query = {k: v for k, v in params.items() if v is not None}
        query["key"] = self.settings.youtube_api_key
        try:
            resp = await self._client.get(f"/{endpoint}", params=query)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 403:
                logger.error("YouTube API quota exceeded on %s", endpoint)
                raise QuotaExceededError(f"Quota exceeded on {endpoint}") from e
            raise ProviderError(f"YouTube API error on {endpoint}: {e}") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"YouTube request failed on {endpoint}: {e}") from e

    async def _video_details(self, video_ids: list[str]) -> list[VideoCandidate]:
        """Fetch full snippet/duration for IDs, preserving input order."""
        if not video_ids:
            return []
        data = await self._get(
            "videos",
            {
                "part": "snippet,contentDetails,statistics",
                "id": ",".join(video_ids[:MAX_PAGE_RESULTS]),
            },
        )
        by_id = {}
        for item in data.get("items", []):
            video = _video_from_item(item)
            if video is None:
                logger.debug("Skipping malformed video item: %s", item.get("id"))
                continue
            by_id[video.id] = video
        return [by_id[v] for v in video_ids if v in by_id]

    # ── Search ────────────────────────────────────────────────────────

    async def _search(self, query: str, page_token: Optional[str]) -> SearchPage:
        data = await self._get(
            "search",
            {
                "part": "snippet",
                "q": query,
                "type": "video,channel,playlist",
                "maxResults": SEARCH_PAGE_RESULTS,
                "regionCode": self.settings.region_code,
                "relevanceLanguage": self.settings.language,
                "pageToken": page_token,
            },
        )

        video_ids, channels, playlists = [], [], []
        for item in data.get("items", []):
            ident = item.get("id", {})
            snippet = item.get("snippet", {})
            kind = ident.get("kind")
            if kind == "youtube#video" and ident.get("videoId"):
                video_ids.append(ident["videoId"])
            elif kind == "youtube#channel" and ident.get("channelId"):
                channels.append(
                    ChannelRef(
                        id=ident["channelId"],
                        name=snippet.get("channelTitle") or snippet.get("title", ""),
                        avatar_url=_thumbnail(snippet),
                    )
                )
            elif kind == "youtube#playlist" and ident.get("playlistId"):
                playlists.append(
                    PlaylistRef(
                        id=ident["playlistId"],
                        title=snippet.get("title", ""),
                        thumbnail_url=_thumbnail(snippet),
                        author=snippet.get("channelTitle", ""),
                    )
                )

        videos = await self._video_details(video_ids)
        next_token = data.get("nextPageToken")
        return SearchPage(
            videos=[v for v in videos if not v.is_short],
            shorts=[v for v in videos if v.is_short],
            channels=channels,
            playlists=playlists,
            continuation=PageCursor("search", query, next_token) if next_token else None,
        )

    async def search(self, query: str) -> SearchPage:
        page = await self._search(query, None)
        logger.info(
            "Search '%s': %d videos, %d shorts", query, len(page.videos), len(page.shorts)
        )
        return page

    async def continue_search(self, cursor: PageCursor) -> SearchPage:
        self._check_cursor(cursor, "search")
        return await self._search(cursor.key, cursor.page_token)

    # ── Trending ──────────────────────────────────────────────────────

    async def get_trending(self, category: Optional[str] = None) -> TrendingPage:
        category = category if category is not None else self.settings.trending_category
        data = await self._get(
            "videos",
            {
                "part": "snippet,contentDetails,statistics",
                "chart": "mostPopular",
                "regionCode": self.settings.region_code,
                "videoCategoryId": VIDEO_CATEGORIES.get(category) if category else None,
                "maxResults": MAX_PAGE_RESULTS,
            },
        )
        videos = [v for v in map(_video_from_item, data.get("items", [])) if v is not None]
        logger.info("Fetched %d trending videos (category=%s)", len(videos), category)
        return TrendingPage(videos=videos)

    # ── Related ───────────────────────────────────────────────────────

    async def _related(self, query: str, exclude_id: str, page_token: Optional[str]) -> RelatedPage:
        # The Data API has no related-videos endpoint; a title search stands in
        page = await self._search(query, page_token)
        candidates = [v for v in page.videos + page.shorts if v.id != exclude_id]
        next_token = page.continuation.page_token if page.continuation else None
        return RelatedPage(
            candidates=candidates,
            continuation=PageCursor("related", f"{exclude_id}\n{query}", next_token) if next_token else None,
        )

    async def get_video_related(self, video_id: str) -> RelatedPage:
        details = await self._video_details([video_id])
        if not details:
            raise ProviderError(f"Video not found: {video_id}")
        query = clean_title_for_search(details[0].title) or details[0].channel_name
        return await self._related(query, video_id, None)

    async def continue_related(self, cursor: PageCursor) -> RelatedPage:
        self._check_cursor(cursor, "related")
        exclude_id, query = cursor.key.split("\n", 1)
        return await self._related(query, exclude_id, cursor.page_token)

    # ── Comments ──────────────────────────────────────────────────────

    async def _comments(self, video_id: str, page_token: Optional[str]) -> CommentsPage:
        data = await self._get(
            "commentThreads",
            {
                "part": "snippet",
                "videoId": video_id,
                "maxResults": COMMENT_PAGE_RESULTS,
                "order": "relevance",
                "textFormat": "plainText",
                "pageToken": page_token,
            },
        )
        comments = [c for c in map(_comment_from_thread, data.get("items", [])) if c is not None]
        next_token = data.get("nextPageToken")
        return CommentsPage(
            comments=comments,
            continuation=PageCursor("comments", video_id, next_token) if next_token else None,
        )

    async def get_comments(self, video_id: str) -> CommentsPage:
        return await self._comments(video_id, None)

    async def continue_comments(self, cursor: PageCursor) -> CommentsPage:
        self._check_cursor(cursor, "comments")
        return await self._comments(cursor.key, cursor.page_token)

    # ── Channels and playlists ────────────────────────────────────────

    async def _playlist_items(
        self, playlist_id: str, page_token: Optional[str], kind: str
    ) -> tuple[list[VideoCandidate], Optional[PageCursor]]:
        data = await self._get(
            "playlistItems",
            {
                "part": "contentDetails",
                "playlistId": playlist_id,
                "maxResults": MAX_PAGE_RESULTS,
                "pageToken": page_token,
            },
        )
        video_ids = [
            item.get("contentDetails", {}).get("videoId")
            for item in data.get("items", [])
            if item.get("contentDetails", {}).get("videoId")
        ]
        videos = await self._video_details(video_ids)
        next_token = data.get("nextPageToken")
        return videos, PageCursor(kind, playlist_id, next_token) if next_token else None

    async def _channel(self, channel_id: str) -> tuple[ChannelInfo, Optional[str]]:
        """Channel metadata plus its uploads playlist ID."""
        data = await self._get(
            "channels",
            {"part": "snippet,contentDetails,statistics,brandingSettings", "id": channel_id},
        )
        items = data.get("items", [])
        if not items:
            raise ProviderError(f"Channel not found: {channel_id}")
        uploads = (
            items[0].get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
        )
        return _channel_from_item(items[0]), uploads

    async def get_channel_videos(self, channel_id: str) -> ChannelVideosPage:
        info, uploads = await self._channel(channel_id)
        if not uploads:
            return ChannelVideosPage(channel=info)
        videos, cursor = await self._playlist_items(uploads, None, "uploads")
        return ChannelVideosPage(videos=videos, continuation=cursor, channel=info)

    async def continue_channel_videos(self, cursor: PageCursor) -> ChannelVideosPage:
        self._check_cursor(cursor, "uploads")
        videos, next_cursor = await self._playlist_items(cursor.key, cursor.page_token, "uploads")
        return ChannelVideosPage(videos=videos, continuation=next_cursor)

    async def get_channel_shorts(self, channel_id: str) -> ChannelVideosPage:
        # No shorts tab in the Data API: short-form items of the latest uploads
        info, uploads = await self._channel(channel_id)
        if not uploads:
            return ChannelVideosPage(channel=info)
        videos, _ = await self._playlist_items(uploads, None, "uploads")
        shorts = [v for v in videos if v.is_short]
        logger.info("Channel %s: %d shorts in latest uploads", channel_id, len(shorts))
        return ChannelVideosPage(videos=shorts, channel=info)

    async def get_channel_playlists(self, channel_id: str) -> list[PlaylistRef]:
        data = await self._get(
            "playlists",
            {
                "part": "snippet,contentDetails",
                "channelId": channel_id,
                "maxResults": MAX_PAGE_RESULTS,
            },
        )
        return [p for p in map(_playlist_from_item, data.get("items", [])) if p is not None]

    async def get_playlist(self, playlist_id: str) -> PlaylistPage:
        data = await self._get("playlists", {"part": "snippet,contentDetails", "id": playlist_id})
        items = data.get("items", [])
        playlist = _playlist_from_item(items[0]) if items else None
        if playlist is None:
            raise ProviderError(f"Playlist not found: {playlist_id}")
        videos, cursor = await self._playlist_items(playlist_id, None, "playlist")
        return PlaylistPage(videos=videos, continuation=cursor, playlist=playlist)

    async def continue_playlist(self, cursor: PageCursor) -> PlaylistPage:
        self._check_cursor(cursor, "playlist")
        videos, next_cursor = await self._playlist_items(cursor.key, cursor.page_token, "playlist")
        return PlaylistPage(videos=videos, continuation=next_cursor)

    @staticmethod
    def _check_cursor(cursor: Any, kind: str) -> None:
        if not isinstance(cursor, PageCursor) or cursor.kind != kind:
            raise ProviderError(f"Cursor does not belong to {kind}: {cursor!r}")
