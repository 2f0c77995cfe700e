"""
Filter stage: exclusion lists, negative signals and first-occurrence dedup.
"""
import logging
from typing import Iterable, Optional

from .keywords import extract_keywords
from .models import VideoCandidate

logger = logging.getLogger(__name__)


def candidate_keywords(candidate: VideoCandidate) -> list[str]:
    """Keywords of title and channel name, one entry per source field."""
    return [
        *extract_keywords(candidate.title),
        *extract_keywords(candidate.channel_name),
    ]


def negative_score(candidate: VideoCandidate, negative_map: dict[str, float]) -> float:
    """Sum of negative weights over a candidate's keywords."""
    if not negative_map:
        return 0.0
    return sum(negative_map.get(k, 0.0) for k in candidate_keywords(candidate))


class ExclusionState:
    """Exclusion lists plus the seen-ID set for one feed build.

    The seen set starts with the hidden IDs (and any extra IDs) and grows as
    candidates pass ``filter_candidates``.
    """

    def __init__(
        self,
        hidden_ids: Iterable[str] = (),
        blocked_channel_ids: Iterable[str] = (),
        ng_keywords: Iterable[str] = (),
        negative_map: Optional[dict[str, float]] = None,
        negative_threshold: Optional[float] = None,
        extra_seen_ids: Iterable[str] = (),
    ):
        self.seen_ids: set[str] = set(hidden_ids)
        self.seen_ids.update(extra_seen_ids)
        self.blocked_channel_ids = set(blocked_channel_ids)
        self.ng_keywords = [ng.lower() for ng in ng_keywords if ng]
        self.negative_map = negative_map or {}
        self.negative_threshold = negative_threshold

    @classmethod
    def from_signals(cls, signals, negative_threshold=None, extra_seen_ids=()):
        return cls(
            hidden_ids=signals.hidden_video_ids,
            blocked_channel_ids=signals.blocked_channel_ids,
            ng_keywords=signals.ng_keywords,
            negative_map=signals.negative_keywords,
            negative_threshold=negative_threshold,
            extra_seen_ids=extra_seen_ids,
        )

    def rejection_reason(self, candidate: VideoCandidate) -> Optional[str]:
        """Why a candidate would be dropped, or None if it passes."""
        if candidate.id in self.seen_ids:
            return "seen"
        if candidate.channel_id in self.blocked_channel_ids:
            return "blocked_channel"

        full_text = f"{candidate.title} {candidate.channel_name}".lower()
        if any(ng in full_text for ng in self.ng_keywords):
            return "ng_keyword"

        if self.negative_threshold is not None:
            if negative_score(candidate, self.negative_map) > self.negative_threshold:
                return "negative_signal"
        return None


def filter_candidates(
    candidates: Iterable[VideoCandidate], state: ExclusionState
) -> list[VideoCandidate]:
    """Drop excluded candidates and mark survivors as seen.

    Order matters: the first occurrence of an ID wins and later duplicates
    (in this call or any later call sharing ``state``) are dropped.

    Args:
        candidates: Candidates in priority order.
        state: Exclusion state, mutated in place.

    Returns:
        Surviving candidates in input order.
    """
    survivors = []
    for candidate in candidates:
        reason = state.rejection_reason(candidate)
        if reason is not None:
            logger.debug("Dropping %s (%s)", candidate.id, reason)
            continue
        state.seen_ids.add(candidate.id)
        survivors.append(candidate)
    return survivors
