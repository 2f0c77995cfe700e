"""
Relevance scoring for shorts candidates.
"""
import math
import random
from dataclasses import dataclass
from typing import Iterable, Optional

from .affinity import AffinityVector
from .filtering import candidate_keywords, negative_score
from .models import VideoCandidate

CONTENT_MATCH_SCALE = 100.0
SUBSCRIPTION_BONUS = 50.0
NEGATIVE_PENALTY = 20.0
DEFAULT_NOISE = 15.0


@dataclass(frozen=True)
class ScoredCandidate:
    video: VideoCandidate
    score: float


class CandidateScorer:
    """Scores candidates against one user's affinity vector.

    score = content match + subscription bonus - negative penalty + noise

    The noise term is uniform in [0, noise); pass ``noise=0`` for
    deterministic scores.
    """

    def __init__(
        self,
        vector: AffinityVector,
        negative_map: Optional[dict[str, float]] = None,
        subscribed_ids: Iterable[str] = (),
        noise: float = DEFAULT_NOISE,
        rng: Optional[random.Random] = None,
        subscription_bonus: float = SUBSCRIPTION_BONUS,
        negative_penalty: float = NEGATIVE_PENALTY,
    ):
        self.vector = vector
        self.negative_map = negative_map or {}
        self.subscribed_ids = set(subscribed_ids)
        self.noise = noise
        self.rng = rng or random.Random()
        self.subscription_bonus = subscription_bonus
        self.negative_penalty = negative_penalty

    def content_match(self, candidate: VideoCandidate) -> float:
        """Cosine-style overlap between candidate keywords and the vector."""
        keywords = candidate_keywords(candidate)
        if self.vector.magnitude <= 0 or not keywords:
            return 0.0
        dot = sum(self.vector.get(k) for k in keywords)
        if dot == 0:
            return 0.0
        return dot / (self.vector.magnitude * math.sqrt(len(keywords))) * CONTENT_MATCH_SCALE

    def score(self, candidate: VideoCandidate) -> float:
        score = self.content_match(candidate)

        if candidate.channel_id in self.subscribed_ids:
            score += self.subscription_bonus

        score -= negative_score(candidate, self.negative_map) * self.negative_penalty

        if self.noise > 0:
            score += self.rng.uniform(0, self.noise)
        return score

    def rank(self, candidates: Iterable[VideoCandidate]) -> list[ScoredCandidate]:
        """Score each candidate once and sort by score, best first."""
        scored = [ScoredCandidate(video=c, score=self.score(c)) for c in candidates]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored
