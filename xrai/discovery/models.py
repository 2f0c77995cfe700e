"""
Data models for feed assembly and continuation aggregation.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, Field

from .duration import is_short_form, parse_duration

# Provider video IDs are 11 chars, alphanumeric with - and _
VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")

ORIGIN_POPULAR = "popular"
ORIGIN_PERSONALIZED = "personalized"


def is_valid_video_id(video_id: Any) -> bool:
    """Check that a value has the provider's fixed-length video ID shape."""
    return isinstance(video_id, str) and bool(VIDEO_ID_PATTERN.match(video_id))


@dataclass(frozen=True)
class VideoCandidate:
    """A video returned by the provider, ready for filtering and scoring."""
    id: str
    title: str
    channel_id: str
    channel_name: str
    duration: str = ""
    iso_duration: str = ""
    thumbnail_url: str = ""
    views: str = ""
    uploaded_at: str = ""
    channel_avatar_url: str = ""
    origin: Optional[str] = None  # popular/personalized

    @property
    def duration_seconds(self) -> int:
        return parse_duration(self.iso_duration, self.duration)

    @property
    def is_short(self) -> bool:
        return is_short_form(self.duration_seconds, self.title)

    @property
    def has_valid_id(self) -> bool:
        return is_valid_video_id(self.id)


@dataclass(frozen=True)
class ChannelRef:
    """A channel as referenced by search results and subscriptions."""
    id: str
    name: str
    avatar_url: str = ""
    subscriber_count: str = ""


@dataclass(frozen=True)
class PlaylistRef:
    """A playlist found in search results."""
    id: str
    title: str
    thumbnail_url: str = ""
    video_count: int = 0
    author: str = ""


@dataclass(frozen=True)
class Comment:
    """A top-level comment on a video."""
    comment_id: str
    text: str
    published_time: str = ""
    author_id: str = ""
    author_name: str = ""
    like_count: str = "0"
    reply_count: str = "0"
    is_pinned: bool = False


@dataclass(frozen=True)
class ChannelInfo:
    """Channel metadata shown with the first page of its uploads."""
    id: str
    name: str
    description: str = ""
    avatar_url: str = ""
    banner_url: str = ""
    subscriber_count: str = ""  # empty when hidden
    video_count: str = "0"


# ── Provider pages ────────────────────────────────────────────────────


@dataclass
class SearchPage:
    """One page of search results. ``continuation`` is an opaque cursor."""
    videos: list[VideoCandidate] = field(default_factory=list)
    shorts: list[VideoCandidate] = field(default_factory=list)
    channels: list[ChannelRef] = field(default_factory=list)
    playlists: list[PlaylistRef] = field(default_factory=list)
    continuation: Optional[Any] = None

    @property
    def has_more(self) -> bool:
        return self.continuation is not None


@dataclass
class TrendingPage:
    videos: list[VideoCandidate] = field(default_factory=list)


@dataclass
class RelatedPage:
    candidates: list[VideoCandidate] = field(default_factory=list)
    continuation: Optional[Any] = None


@dataclass
class CommentsPage:
    comments: list[Comment] = field(default_factory=list)
    continuation: Optional[Any] = None


@dataclass
class ChannelVideosPage:
    """Uploads or shorts of a channel. ``channel`` is set on the first page."""
    videos: list[VideoCandidate] = field(default_factory=list)
    continuation: Optional[Any] = None
    channel: Optional[ChannelInfo] = None


@dataclass
class PlaylistPage:
    """Videos of a playlist. ``playlist`` is set on the first page."""
    videos: list[VideoCandidate] = field(default_factory=list)
    continuation: Optional[Any] = None
    playlist: Optional[PlaylistRef] = None


# ── Caller-supplied signals ───────────────────────────────────────────


class SignalSnapshot(BaseModel):
    """Behavioral signals loaded by the caller. Read-only to the engine.

    Histories are ordered most recent first. ``search_history`` is accepted
    so a client's full signal export loads as-is, but neither feed reads it:
    seeds come from watch history, subscriptions and the affinity vector.
    """
    watch_history: list[VideoCandidate] = Field(default_factory=list)
    shorts_history: list[VideoCandidate] = Field(default_factory=list)
    search_history: list[str] = Field(default_factory=list)
    subscriptions: list[ChannelRef] = Field(default_factory=list)
    ng_keywords: list[str] = Field(default_factory=list)
    ng_channels: list[ChannelRef] = Field(default_factory=list)
    hidden_video_ids: list[str] = Field(default_factory=list)
    negative_keywords: dict[str, float] = Field(default_factory=dict)

    @property
    def subscribed_channel_ids(self) -> set[str]:
        return {c.id for c in self.subscriptions}

    @property
    def blocked_channel_ids(self) -> set[str]:
        return {c.id for c in self.ng_channels}

    @property
    def is_empty(self) -> bool:
        return not (self.watch_history or self.shorts_history or self.subscriptions)


# ── Results ───────────────────────────────────────────────────────────


@dataclass
class HomeFeed:
    """Home feed page: long-form videos plus a shorts shelf."""
    videos: list[VideoCandidate] = field(default_factory=list)
    shorts: list[VideoCandidate] = field(default_factory=list)
    failed_sources: int = 0
    total_sources: int = 0

    @property
    def no_content_available(self) -> bool:
        """True when every upstream source failed for this build."""
        return self.total_sources > 0 and self.failed_sources >= self.total_sources


@dataclass
class ShortsFeed:
    """One shorts batch plus the source outcome it was built from."""
    shorts: list[VideoCandidate] = field(default_factory=list)
    failed_sources: int = 0
    total_sources: int = 0

    @property
    def no_content_available(self) -> bool:
        """True when every upstream source failed for this build."""
        return self.total_sources > 0 and self.failed_sources >= self.total_sources


@dataclass
class AggregateResult:
    """Outcome of walking one source's continuation chain."""
    items: list = field(default_factory=list)
    continuation: Optional[Any] = None
    attempts: int = 0
    stalled: bool = False
    error: Optional[str] = None

    @property
    def exhausted(self) -> bool:
        return self.continuation is None


@dataclass
class PageSlice:
    """A page-indexed slice with a simple "next page" token."""
    items: list = field(default_factory=list)
    page: int = 1
    next_page_token: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SearchResults:
    videos: list[VideoCandidate] = field(default_factory=list)
    shorts: list[VideoCandidate] = field(default_factory=list)
    channels: list[ChannelRef] = field(default_factory=list)
    playlists: list[PlaylistRef] = field(default_factory=list)
    next_page_token: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ChannelResults:
    """One page of a channel's uploads with the channel's metadata."""
    channel: Optional[ChannelInfo] = None
    videos: list[VideoCandidate] = field(default_factory=list)
    page: int = 1
    next_page_token: Optional[str] = None
    error: Optional[str] = None


@dataclass
class PlaylistResults:
    playlist: Optional[PlaylistRef] = None
    videos: list[VideoCandidate] = field(default_factory=list)
    page: int = 1
    next_page_token: Optional[str] = None
    error: Optional[str] = None
