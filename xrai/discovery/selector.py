"""
Selection: mix popular and personalized pools under a ratio and a
per-channel cooldown.
"""
import logging
import math
import random
from typing import Callable, Optional, Sequence, TypeVar

from .models import VideoCandidate
from .scorer import ScoredCandidate

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_COOLDOWN = 3
DEFAULT_MIN_SCORE = -50.0
POPULAR_SAMPLE_FLOOR = 50


def shuffled(items: Sequence[T], rng: Optional[random.Random] = None) -> list[T]:
    """Fisher-Yates shuffle of a copy; the input is left untouched."""
    rng = rng or random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


class CooldownGate:
    """Per-channel cooldown counters for one selection pass.

    A channel can be appended only when its counter is zero. Appending
    resets it to ``cooldown`` and decrements every other positive counter,
    so a channel needs ``cooldown`` other appends before it can return.
    """

    def __init__(self, cooldown: int = DEFAULT_COOLDOWN, min_score: Optional[float] = None):
        self.cooldown = cooldown
        self.min_score = min_score
        self.counters: dict[str, int] = {}
        self.accepted: list[VideoCandidate] = []
        self.accepted_ids: set[str] = set()

    def offer(self, item: Optional[ScoredCandidate]) -> bool:
        """Append the item if its score and channel allow it."""
        if item is None:
            return False
        if self.min_score is not None and item.score < self.min_score:
            return False
        video = item.video
        if video.id in self.accepted_ids:
            return False
        if self.counters.get(video.channel_id, 0) != 0:
            return False

        self.accepted.append(video)
        self.accepted_ids.add(video.id)
        for channel_id, value in self.counters.items():
            if channel_id != video.channel_id and value > 0:
                self.counters[channel_id] = value - 1
        self.counters[video.channel_id] = self.cooldown
        return True

    def __len__(self) -> int:
        return len(self.accepted)


def spread_shuffle(
    videos: Sequence[VideoCandidate],
    window: int = DEFAULT_COOLDOWN,
    rng: Optional[random.Random] = None,
    key: Callable[[VideoCandidate], str] = lambda v: v.channel_id,
) -> list[VideoCandidate]:
    """Shuffle while keeping equal keys at least ``window`` positions apart.

    Shuffles, then places items greedily, skipping any whose key occurs in
    the last ``window - 1`` placed items. If placement gets stuck the input
    order is returned unchanged, so callers should pass an already-spaced
    sequence.
    """
    remaining = shuffled(videos, rng)
    placed: list[VideoCandidate] = []
    while remaining:
        recent = {key(v) for v in placed[-(window - 1):]} if window > 1 else set()
        for index, video in enumerate(remaining):
            if key(video) not in recent:
                placed.append(remaining.pop(index))
                break
        else:
            return list(videos)
    return placed


def select_mixed(
    popular_ranked: Sequence[ScoredCandidate],
    personalized_ranked: Sequence[ScoredCandidate],
    target_size: int,
    popular_ratio: float,
    rng: Optional[random.Random] = None,
    cooldown: int = DEFAULT_COOLDOWN,
    min_score: Optional[float] = DEFAULT_MIN_SCORE,
    sample_floor: int = POPULAR_SAMPLE_FLOOR,
) -> list[VideoCandidate]:
    """Interleave two ranked pools at a target ratio with channel cooldown.

    Steps:
        1. Split ``target_size`` into popular and personalized quotas.
        2. Popular: shuffle the top ``max(sample_floor, 2 * quota)`` and
           take the quota.
        3. Personalized: take the top quota as ranked.
        4. Offer every pick to a CooldownGate.
        5. Backfill from unused popular items until the target is met.
        6. Shuffle the result, keeping the cooldown spacing.

    Args:
        popular_ranked: Popular pool, best first.
        personalized_ranked: Personalized pool, best first.
        target_size: Desired output length.
        popular_ratio: Share of the output reserved for the popular pool.
        rng: Random source for the shuffles.
        cooldown: Other-channel appends required before a channel repeats.
        min_score: Items scoring below this are never selected.
        sample_floor: Minimum size of the popular shuffle window.

    Returns:
        Selected videos, at most ``target_size``.
    """
    rng = rng or random.Random()
    if target_size <= 0 or (not popular_ranked and not personalized_ranked):
        return []

    popular_target = math.ceil(target_size * popular_ratio)
    personalized_target = target_size - popular_target

    gate = CooldownGate(cooldown=cooldown, min_score=min_score)

    window = max(sample_floor, popular_target * 2)
    selected_popular = shuffled(popular_ranked[:window], rng)[:popular_target]
    for item in selected_popular:
        gate.offer(item)

    for item in personalized_ranked[:personalized_target]:
        gate.offer(item)

    if len(gate) < target_size:
        before = len(gate)
        for item in popular_ranked:
            if len(gate) >= target_size:
                break
            if item.video.id not in gate.accepted_ids:
                gate.offer(item)
        logger.debug("Backfilled %d popular items", len(gate) - before)

    logger.debug(
        "Selected %d/%d (popular quota=%d, personalized quota=%d)",
        len(gate),
        target_size,
        popular_target,
        personalized_target,
    )
    return spread_shuffle(gate.accepted, window=cooldown, rng=rng)


def mix_simple(
    trending: Sequence[VideoCandidate],
    personalized: Sequence[VideoCandidate],
    target_size: int,
    trending_ratio: float,
    rng: Optional[random.Random] = None,
) -> list[VideoCandidate]:
    """Fixed-ratio mix without scoring or cooldown (home feed)."""
    rng = rng or random.Random()
    num_trending = math.floor(target_size * trending_ratio)
    num_personalized = target_size - num_trending
    return shuffled(
        shuffled(trending, rng)[:num_trending]
        + shuffled(personalized, rng)[:num_personalized],
        rng,
    )
