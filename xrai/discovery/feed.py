"""
Feed assemblers: the home feed and the shorts feed.

Home feed (``get_xrai_recommendations``):
    trending pool + personalized search pools -> split long/short ->
    filter -> fixed-ratio mix for videos, shuffle-and-cap for shorts.

Shorts feed (``get_xrai_shorts``):
    affinity vector -> popular (trending shorts) and personalized (keyword
    searches) pools -> filter -> score -> ratio + cooldown selection.
"""
import asyncio
import dataclasses
import logging
import random
from typing import Any, Awaitable, Iterable, Optional

from ..collectors.sources import search_page
from ..config import FeedSettings
from ..providers.base import VideoProvider
from .affinity import build_affinity_vector, top_keywords
from .filtering import ExclusionState, filter_candidates
from .keywords import clean_title_for_search
from .models import (
    ORIGIN_PERSONALIZED,
    ORIGIN_POPULAR,
    HomeFeed,
    ShortsFeed,
    SignalSnapshot,
    VideoCandidate,
)
from .scorer import CandidateScorer
from .selector import mix_simple, select_mixed, shuffled

logger = logging.getLogger(__name__)

GENERIC_HOME_SEEDS = ["Music", "Gaming", "Vlog"]
GENERIC_SHORTS_SEEDS = ["Funny #shorts", "Trending #shorts"]
HISTORY_SEED_COUNT = 5
SUBSCRIPTION_SEED_COUNT = 3
SHORTS_KEYWORD_SEEDS = 4

HOME_CACHE_KIND = "home"
SHORTS_CACHE_KIND = "shorts"


def _tag(videos: Iterable[VideoCandidate], origin: str) -> list[VideoCandidate]:
    return [dataclasses.replace(v, origin=origin) for v in videos]


def _split_short(videos: Iterable[VideoCandidate]) -> tuple[list, list]:
    """Split into (long-form, short-form)."""
    long_form, short_form = [], []
    for video in videos:
        (short_form if video.is_short else long_form).append(video)
    return long_form, short_form


class FeedAssembler:
    """Builds feed pages from a provider and a signal snapshot.

    Holds no per-user state: every call builds its own exclusion state,
    affinity vector and cooldown map.
    """

    def __init__(
        self,
        provider: VideoProvider,
        settings: Optional[FeedSettings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.provider = provider
        self.settings = settings or FeedSettings()
        self.rng = rng or random.Random()

    async def _guarded(self, label: str, awaitable: Awaitable, default: Any) -> tuple[Any, bool]:
        """Await one source in isolation.

        Returns:
            (result, ok). On error or timeout the default is returned with
            ok=False.
        """
        try:
            result = await asyncio.wait_for(awaitable, timeout=self.settings.source_timeout)
            return result, True
        except asyncio.TimeoutError:
            logger.warning("Source %s timed out after %.1fs", label, self.settings.source_timeout)
        except Exception as e:
            logger.warning("Source %s failed: %s", label, e)
        return default, False

    async def _search_videos(self, query: str, page: int) -> tuple[list, list]:
        """Videos and shorts for one personalized search seed."""
        results = await search_page(
            self.provider,
            query,
            page=page,
            page_size=self.settings.search_page_size,
        )
        if results.error and not results.videos and not results.shorts:
            raise RuntimeError(results.error)
        return results.videos, results.shorts

    def home_seeds(self, signals: SignalSnapshot) -> list[str]:
        """Search seeds for the home feed's personalized pools."""
        if signals.watch_history:
            sample = shuffled(signals.watch_history, self.rng)[:HISTORY_SEED_COUNT]
            seeds = [f"{clean_title_for_search(v.title)} related" for v in sample]
        elif signals.subscriptions:
            sample = shuffled(signals.subscriptions, self.rng)[:SUBSCRIPTION_SEED_COUNT]
            seeds = [f"{c.name} videos" for c in sample]
        else:
            logger.info("No history or subscriptions, using generic seeds")
            seeds = list(GENERIC_HOME_SEEDS)
        return seeds

    async def get_xrai_recommendations(
        self,
        signals: SignalSnapshot,
        page: int = 1,
        cache=None,
    ) -> HomeFeed:
        """Build one page of the home feed.

        Args:
            signals: Caller-supplied signal snapshot.
            page: 1-based page number, forwarded to the search pools.
            cache: Optional caller-owned DiscoveryCache.

        Returns:
            HomeFeed. When every source fails the feed is empty and
            ``no_content_available`` is True.
        """
        if cache is not None:
            cached = cache.get(HOME_CACHE_KIND, page)
            if cached is not None:
                logger.debug("Home feed page %d served from cache", page)
                return cached

        cfg = self.settings
        seeds = self.home_seeds(signals)

        trending_task = self._guarded(
            "trending",
            self.provider.get_trending(cfg.trending_category),
            None,
        )
        search_tasks = [
            self._guarded(f"search:{q}", self._search_videos(q, page), ([], []))
            for q in seeds
        ]
        (trending, trending_ok), *searches = await asyncio.gather(trending_task, *search_tasks)

        total_sources = 1 + len(searches)
        failed_sources = (0 if trending_ok else 1) + sum(1 for _, ok in searches if not ok)
        if failed_sources == total_sources:
            logger.error("No content available: all %d sources failed", total_sources)
            return HomeFeed(failed_sources=failed_sources, total_sources=total_sources)

        trending_videos = _tag(trending.videos if trending else [], ORIGIN_POPULAR)
        trending_long, trending_short = _split_short(trending_videos)

        personalized_long: list[VideoCandidate] = []
        personalized_short: list[VideoCandidate] = []
        for (videos, shorts), _ in searches:
            personalized_short.extend(_tag(shorts, ORIGIN_PERSONALIZED))
            long_form, short_form = _split_short(_tag(videos, ORIGIN_PERSONALIZED))
            personalized_long.extend(long_form)
            personalized_short.extend(short_form)

        state = ExclusionState.from_signals(
            signals, negative_threshold=cfg.feed_negative_threshold
        )
        clean_trending_videos = filter_candidates(trending_long, state)
        clean_personalized_videos = filter_candidates(personalized_long, state)
        clean_trending_shorts = filter_candidates(trending_short, state)
        clean_personalized_shorts = filter_candidates(personalized_short, state)

        videos = mix_simple(
            clean_trending_videos,
            clean_personalized_videos,
            cfg.home_target_videos,
            cfg.home_trending_ratio,
            self.rng,
        )
        shorts = shuffled(
            shuffled(clean_trending_shorts, self.rng)
            + shuffled(clean_personalized_shorts, self.rng),
            self.rng,
        )[:cfg.home_target_shorts]

        feed = HomeFeed(
            videos=videos,
            shorts=shorts,
            failed_sources=failed_sources,
            total_sources=total_sources,
        )
        logger.info(
            "Home feed page %d: %d videos, %d shorts (%d/%d sources failed)",
            page,
            len(videos),
            len(shorts),
            failed_sources,
            total_sources,
        )
        if cache is not None:
            cache.put(HOME_CACHE_KIND, page, feed)
        return feed

    def shorts_seeds(self, vector) -> list[str]:
        """Search seeds for the shorts feed's personalized pool."""
        keywords = top_keywords(vector, SHORTS_KEYWORD_SEEDS)
        seeds = [f"{k} #shorts" for k in keywords] if keywords else list(GENERIC_SHORTS_SEEDS)
        return seeds[:self.settings.shorts_seed_count]

    async def get_xrai_shorts(
        self,
        signals: SignalSnapshot,
        page: int = 1,
        seen_ids: Optional[Iterable[str]] = None,
        cache=None,
    ) -> ShortsFeed:
        """Build one batch of the shorts feed.

        Args:
            signals: Caller-supplied signal snapshot.
            page: 1-based page number, forwarded to the search pools.
            seen_ids: IDs already shown this session; extends the dedup set.
            cache: Optional caller-owned DiscoveryCache. A hit is keyed on the
                page alone and ignores ``signals`` and ``seen_ids``.

        Returns:
            ShortsFeed with up to ``shorts_batch_size`` shorts. When every
            source fails the batch is empty and ``no_content_available`` is
            True; an empty batch otherwise means nothing new was left.
        """
        if cache is not None:
            cached = cache.get(SHORTS_CACHE_KIND, page)
            if cached is not None:
                logger.debug("Shorts page %d served from cache", page)
                return cached

        cfg = self.settings
        vector = build_affinity_vector(signals)
        seeds = self.shorts_seeds(vector)

        popular_task = self._guarded(
            "trending",
            self.provider.get_trending(cfg.trending_category),
            None,
        )
        search_tasks = [
            self._guarded(f"search:{q}", self._search_videos(q, page), ([], []))
            for q in seeds
        ]
        (trending, popular_ok), *searches = await asyncio.gather(popular_task, *search_tasks)

        total_sources = 1 + len(searches)
        failed_sources = (0 if popular_ok else 1) + sum(1 for _, ok in searches if not ok)
        if failed_sources == total_sources:
            logger.error("No shorts available: all %d sources failed", total_sources)
            return ShortsFeed(failed_sources=failed_sources, total_sources=total_sources)

        popular_raw = _tag(
            [v for v in (trending.videos if trending else []) if v.is_short],
            ORIGIN_POPULAR,
        )
        personalized_raw = []
        for (videos, shorts), _ in searches:
            personalized_raw.extend(
                _tag([v for v in [*videos, *shorts] if v.is_short], ORIGIN_PERSONALIZED)
            )

        extra_seen = [v.id for v in signals.shorts_history]
        extra_seen.extend(seen_ids or [])
        # negative signals only penalize here, no hard cut
        state = ExclusionState.from_signals(signals, extra_seen_ids=extra_seen)

        scorer = CandidateScorer(
            vector,
            negative_map=signals.negative_keywords,
            subscribed_ids=signals.subscribed_channel_ids,
            noise=cfg.scorer_noise,
            rng=self.rng,
        )
        ranked_popular = scorer.rank(filter_candidates(popular_raw, state))
        ranked_personalized = scorer.rank(filter_candidates(personalized_raw, state))

        shorts = select_mixed(
            ranked_popular,
            ranked_personalized,
            cfg.shorts_batch_size,
            cfg.shorts_popular_ratio,
            rng=self.rng,
            cooldown=cfg.channel_cooldown,
            min_score=cfg.shorts_min_score,
        )
        logger.info(
            "Shorts page %d: %d selected from %d popular / %d personalized (%d/%d sources failed)",
            page,
            len(shorts),
            len(ranked_popular),
            len(ranked_personalized),
            failed_sources,
            total_sources,
        )
        feed = ShortsFeed(
            shorts=shorts,
            failed_sources=failed_sources,
            total_sources=total_sources,
        )
        if cache is not None:
            cache.put(SHORTS_CACHE_KIND, page, feed)
        return feed
