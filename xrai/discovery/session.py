"""
Caller-side helpers: a growing feed session and a discovery cache.

Both are owned by the caller and passed into the engine explicitly; the
engine itself keeps nothing between calls.
"""
import logging
from typing import Any, Optional

from .feed import FeedAssembler
from .models import SignalSnapshot, VideoCandidate

logger = logging.getLogger(__name__)


class DiscoveryCache:
    """Page cache keyed by (feed kind, page).

    Lets a caller re-render a page it already built (e.g. after navigating
    back) without re-querying the provider. Values are stored as given.

    The key carries no signals or seen IDs: a hit returns the page exactly
    as first built. Use one cache per signal snapshot and ``clear()`` it
    when the snapshot changes.
    """

    def __init__(self):
        self._entries: dict[tuple[str, int], Any] = {}

    def get(self, kind: str, page: int) -> Optional[Any]:
        return self._entries.get((kind, page))

    def put(self, kind: str, page: int, value: Any) -> None:
        self._entries[(kind, page)] = value

    def clear(self, kind: Optional[str] = None) -> None:
        """Drop all entries, or only those of one feed kind."""
        if kind is None:
            self._entries.clear()
            return
        for key in [k for k in self._entries if k[0] == kind]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


class FeedSession:
    """Accumulates feed pages as the consumer scrolls.

    The lists only grow, and an ID is appended at most once across all
    pages of the session.
    """

    def __init__(
        self,
        assembler: FeedAssembler,
        signals: SignalSnapshot,
        cache: Optional[DiscoveryCache] = None,
    ):
        self.assembler = assembler
        self.signals = signals
        self.cache = cache
        self.videos: list[VideoCandidate] = []
        self.shorts: list[VideoCandidate] = []
        self.home_page = 0
        self.shorts_page = 0
        self._video_ids: set[str] = set()
        self._short_ids: set[str] = set()

    @staticmethod
    def _extend(target: list, seen: set, items: list) -> list:
        added = []
        for item in items:
            if item.id in seen:
                continue
            seen.add(item.id)
            target.append(item)
            added.append(item)
        return added

    async def next_home_page(self) -> tuple[list, list]:
        """Fetch the next home page; returns the newly added (videos, shorts)."""
        self.home_page += 1
        feed = await self.assembler.get_xrai_recommendations(
            self.signals, page=self.home_page, cache=self.cache
        )
        new_videos = self._extend(self.videos, self._video_ids, feed.videos)
        new_shorts = self._extend(self.shorts, self._short_ids, feed.shorts)
        logger.debug(
            "Home page %d added %d videos, %d shorts",
            self.home_page,
            len(new_videos),
            len(new_shorts),
        )
        return new_videos, new_shorts

    async def next_shorts_page(self) -> list:
        """Fetch the next shorts batch, excluding everything shown so far."""
        self.shorts_page += 1
        batch = await self.assembler.get_xrai_shorts(
            self.signals,
            page=self.shorts_page,
            seen_ids=list(self._short_ids),
            cache=self.cache,
        )
        return self._extend(self.shorts, self._short_ids, batch.shorts)
