"""
Per-source collectors built on the continuation aggregator.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..discovery.models import (
    AggregateResult,
    ChannelInfo,
    ChannelResults,
    PlaylistRef,
    PlaylistResults,
    SearchPage,
    SearchResults,
    is_valid_video_id,
)
from ..providers.base import VideoProvider
from .aggregator import PagerState, aggregate, paginate

logger = logging.getLogger(__name__)

RELATED_TARGET = 50
RELATED_MAX_ATTEMPTS = 2
COMMENTS_TARGET = 300
COMMENTS_MAX_ATTEMPTS = 5
CHANNEL_PAGE_SIZE = 30
SEARCH_PAGE_SIZE = 20
PLAYLIST_PAGE_SIZE = 30
CHANNEL_SHORTS_TARGET = 50
CHANNEL_PLAYLISTS_TARGET = 50


def _accept_related(candidate) -> bool:
    return is_valid_video_id(getattr(candidate, "id", None))


def _accept_comment(comment) -> bool:
    return bool(getattr(comment, "comment_id", None))


async def collect_related(
    provider: VideoProvider,
    video_id: str,
    target: int = RELATED_TARGET,
    max_attempts: int = RELATED_MAX_ATTEMPTS,
) -> AggregateResult:
    """Collect up to ``target`` related videos with valid IDs."""

    async def first():
        page = await provider.get_video_related(video_id)
        return page.candidates, page.continuation

    async def resume(cursor):
        page = await provider.continue_related(cursor)
        return page.candidates, page.continuation

    result = await aggregate(
        first,
        resume,
        target=target,
        max_attempts=max_attempts,
        accept=_accept_related,
        label=f"related:{video_id}",
    )
    logger.info("Collected %d related videos for %s", len(result.items), video_id)
    return result


async def collect_comments(
    provider: VideoProvider,
    video_id: str,
    target: int = COMMENTS_TARGET,
    max_attempts: int = COMMENTS_MAX_ATTEMPTS,
) -> AggregateResult:
    """Collect up to ``target`` comments, deduplicated by comment ID."""

    async def first():
        page = await provider.get_comments(video_id)
        return page.comments, page.continuation

    async def resume(cursor):
        page = await provider.continue_comments(cursor)
        return page.comments, page.continuation

    result = await aggregate(
        first,
        resume,
        target=target,
        max_attempts=max_attempts,
        key=lambda c: c.comment_id,
        accept=_accept_comment,
        label=f"comments:{video_id}",
    )
    logger.info("Collected %d comments for %s", len(result.items), video_id)
    return result


async def _single_page(cursor):
    """Fetch-next stand-in for sources the provider serves as one page."""
    return [], None


@dataclass
class ChannelPagerState(PagerState):
    """PagerState that also remembers the channel's metadata."""
    channel: Optional[ChannelInfo] = None


async def get_channel_videos_page(
    provider: VideoProvider,
    channel_id: str,
    page: int = 1,
    page_size: int = CHANNEL_PAGE_SIZE,
    state: Optional[ChannelPagerState] = None,
) -> ChannelResults:
    """One page of a channel's uploads, with the channel's metadata."""
    state = state if state is not None else ChannelPagerState()

    async def first():
        result = await provider.get_channel_videos(channel_id)
        state.channel = result.channel
        return result.videos, result.continuation

    async def resume(cursor):
        result = await provider.continue_channel_videos(cursor)
        return result.videos, result.continuation

    videos = await paginate(
        first,
        resume,
        page=page,
        page_size=page_size,
        state=state,
        label=f"channel:{channel_id}",
    )
    return ChannelResults(
        channel=state.channel,
        videos=videos.items,
        page=page,
        next_page_token=videos.next_page_token,
        error=videos.error,
    )


async def collect_channel_shorts(
    provider: VideoProvider,
    channel_id: str,
    target: int = CHANNEL_SHORTS_TARGET,
) -> AggregateResult:
    """Short-form videos of a channel with valid IDs, deduplicated."""

    async def first():
        result = await provider.get_channel_shorts(channel_id)
        return result.videos, None

    result = await aggregate(
        first,
        _single_page,
        target=target,
        max_attempts=0,
        accept=_accept_related,
        label=f"channel-shorts:{channel_id}",
    )
    logger.info("Collected %d shorts for channel %s", len(result.items), channel_id)
    return result


async def collect_channel_playlists(
    provider: VideoProvider,
    channel_id: str,
    target: int = CHANNEL_PLAYLISTS_TARGET,
) -> AggregateResult:
    """Playlists owned by a channel, deduplicated by playlist ID."""

    async def first():
        return await provider.get_channel_playlists(channel_id), None

    result = await aggregate(
        first,
        _single_page,
        target=target,
        max_attempts=0,
        accept=lambda p: bool(getattr(p, "id", None)),
        label=f"channel-playlists:{channel_id}",
    )
    logger.info("Collected %d playlists for channel %s", len(result.items), channel_id)
    return result


@dataclass
class PlaylistPagerState(PagerState):
    playlist: Optional[PlaylistRef] = None


async def get_playlist_page(
    provider: VideoProvider,
    playlist_id: str,
    page: int = 1,
    page_size: int = PLAYLIST_PAGE_SIZE,
    state: Optional[PlaylistPagerState] = None,
) -> PlaylistResults:
    """One page of a playlist's videos, with the playlist itself.

    ``playlist`` is None when the lookup failed; ``error`` then says why.
    """
    state = state if state is not None else PlaylistPagerState()

    async def first():
        result = await provider.get_playlist(playlist_id)
        state.playlist = result.playlist
        return result.videos, result.continuation

    async def resume(cursor):
        result = await provider.continue_playlist(cursor)
        return result.videos, result.continuation

    videos = await paginate(
        first,
        resume,
        page=page,
        page_size=page_size,
        state=state,
        label=f"playlist:{playlist_id}",
    )
    return PlaylistResults(
        playlist=state.playlist,
        videos=videos.items,
        page=page,
        next_page_token=videos.next_page_token,
        error=videos.error,
    )


@dataclass
class SearchPagerState(PagerState):
    """PagerState that also remembers the first page's side results and
    which streamed items the provider classified as shorts."""
    first_page: Optional[SearchPage] = None
    short_ids: set = field(default_factory=set)


async def search_page(
    provider: VideoProvider,
    query: str,
    page: int = 1,
    page_size: int = SEARCH_PAGE_SIZE,
    state: Optional[SearchPagerState] = None,
) -> SearchResults:
    """One page of search results.

    Videos and shorts of every provider page are walked as one stream, so
    ``page_size`` counts both and every page carries its own shorts.
    Channels and playlists come from the provider's first page and are
    returned with page 1 only.
    """
    state = state if state is not None else SearchPagerState()

    def stream(result: SearchPage) -> list:
        state.short_ids.update(v.id for v in result.shorts)
        return [*result.videos, *result.shorts]

    async def first():
        result = await provider.search(query)
        state.first_page = result
        return stream(result), result.continuation

    async def resume(cursor):
        result = await provider.continue_search(cursor)
        return stream(result), result.continuation

    items = await paginate(
        first,
        resume,
        page=page,
        page_size=page_size,
        state=state,
        label=f"search:{query}",
    )

    results = SearchResults(
        videos=[v for v in items.items if v.id not in state.short_ids],
        shorts=[v for v in items.items if v.id in state.short_ids],
        next_page_token=items.next_page_token,
        error=items.error,
    )
    if page == 1 and state.first_page is not None:
        results.channels = list(state.first_page.channels)
        results.playlists = list(state.first_page.playlists)
    return results
