"""
Provider contract consumed by the feed engine.

Adapters normalize their upstream response shapes into the page types in
``xrai.discovery.models``; the engine never sees raw provider payloads.
"""
from typing import Any, Optional, Protocol

from ..discovery.models import (
    ChannelVideosPage,
    CommentsPage,
    PlaylistPage,
    PlaylistRef,
    RelatedPage,
    SearchPage,
    TrendingPage,
)


class ProviderError(Exception):
    """Raised by adapters when an upstream call fails."""


class QuotaExceededError(ProviderError):
    """Raised when the upstream refuses calls because of quota."""


class VideoProvider(Protocol):
    """Upstream content source with cursor-based continuation.

    Cursors are opaque and single-use: each ``continue_*`` call takes the
    cursor from the previous page and returns the next page with a fresh
    cursor, or ``None`` when the source is exhausted.
    """

    async def search(self, query: str) -> SearchPage: ...

    async def continue_search(self, cursor: Any) -> SearchPage: ...

    async def get_trending(self, category: Optional[str] = None) -> TrendingPage: ...

    async def get_video_related(self, video_id: str) -> RelatedPage: ...

    async def continue_related(self, cursor: Any) -> RelatedPage: ...

    async def get_comments(self, video_id: str) -> CommentsPage: ...

    async def continue_comments(self, cursor: Any) -> CommentsPage: ...

    async def get_channel_videos(self, channel_id: str) -> ChannelVideosPage: ...

    async def continue_channel_videos(self, cursor: Any) -> ChannelVideosPage: ...

    async def get_channel_shorts(self, channel_id: str) -> ChannelVideosPage: ...

    async def get_channel_playlists(self, channel_id: str) -> list[PlaylistRef]: ...

    async def get_playlist(self, playlist_id: str) -> PlaylistPage: ...

    async def continue_playlist(self, cursor: Any) -> PlaylistPage: ...
