"""
User affinity vector: a sparse keyword -> weight map built from signals.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Iterator

import numpy as np

from .keywords import extract_keywords
from .models import SignalSnapshot

logger = logging.getLogger(__name__)

# Signal weights. Ratios matter more than absolute values.
SUBSCRIPTION_WEIGHT = 5.0
SHORTS_TITLE_WEIGHT = 3.0
SHORTS_CHANNEL_WEIGHT = 4.0
WATCH_TITLE_WEIGHT = 1.5
WATCH_CHANNEL_WEIGHT = 2.0

SHORTS_HISTORY_LIMIT = 30
WATCH_HISTORY_LIMIT = 20
DECAY_SCALE = 10.0


def recency_decay(rank: int) -> float:
    """Weight multiplier for the rank-th most recent history item."""
    return math.exp(-rank / DECAY_SCALE)


@dataclass(frozen=True)
class AffinityVector:
    """Keyword weights plus their Euclidean norm.

    Unpacks as ``(weights, magnitude)``.
    """
    weights: dict[str, float] = field(default_factory=dict)
    magnitude: float = 0.0

    def __iter__(self) -> Iterator:
        return iter((self.weights, self.magnitude))

    def __bool__(self) -> bool:
        return bool(self.weights)

    def get(self, keyword: str) -> float:
        return self.weights.get(keyword, 0.0)


def calculate_magnitude(weights: dict[str, float]) -> float:
    """Euclidean norm of a weight map."""
    return float(np.linalg.norm(np.fromiter(weights.values(), dtype=np.float64)))


def build_affinity_vector(signals: SignalSnapshot) -> AffinityVector:
    """Fold subscriptions and histories into a keyword affinity vector.

    Weighting:
        - subscribed channel name: SUBSCRIPTION_WEIGHT
        - shorts history (most recent first): title and channel, decayed
        - watch history (most recent first): title and channel, decayed,
          lower than shorts history

    Args:
        signals: Caller-supplied signal snapshot.

    Returns:
        AffinityVector; empty with magnitude 0 for a new user.
    """
    weights: dict[str, float] = {}

    def add_weight(text: str, weight: float) -> None:
        for keyword in extract_keywords(text):
            weights[keyword] = weights.get(keyword, 0.0) + weight

    for channel in signals.subscriptions:
        add_weight(channel.name, SUBSCRIPTION_WEIGHT)

    for rank, video in enumerate(signals.shorts_history[:SHORTS_HISTORY_LIMIT]):
        decay = recency_decay(rank)
        add_weight(video.title, SHORTS_TITLE_WEIGHT * decay)
        add_weight(video.channel_name, SHORTS_CHANNEL_WEIGHT * decay)

    for rank, video in enumerate(signals.watch_history[:WATCH_HISTORY_LIMIT]):
        decay = recency_decay(rank)
        add_weight(video.title, WATCH_TITLE_WEIGHT * decay)
        add_weight(video.channel_name, WATCH_CHANNEL_WEIGHT * decay)

    magnitude = calculate_magnitude(weights)
    logger.debug(
        "Built affinity vector: %d keywords, magnitude=%.3f",
        len(weights),
        magnitude,
    )
    return AffinityVector(weights=weights, magnitude=magnitude)


def top_keywords(vector: AffinityVector, n: int) -> list[str]:
    """The n heaviest keywords, ties broken alphabetically."""
    ranked = sorted(vector.weights.items(), key=lambda kv: (-kv[1], kv[0]))
    return [keyword for keyword, _ in ranked[:n]]
