"""
Feed ranking building blocks: keywords, affinity, filtering, scoring and
selection. The assemblers live in ``feed`` and the caller-side helpers in
``session``.
"""
from .affinity import AffinityVector, build_affinity_vector, top_keywords
from .duration import parse_duration
from .filtering import ExclusionState, filter_candidates
from .keywords import clean_title_for_search, extract_keywords
from .models import (
    ChannelRef,
    Comment,
    HomeFeed,
    PlaylistRef,
    SignalSnapshot,
    VideoCandidate,
)
from .scorer import CandidateScorer, ScoredCandidate
from .selector import CooldownGate, mix_simple, select_mixed, shuffled

__all__ = [
    "AffinityVector",
    "build_affinity_vector",
    "top_keywords",
    "parse_duration",
    "ExclusionState",
    "filter_candidates",
    "clean_title_for_search",
    "extract_keywords",
    "ChannelRef",
    "Comment",
    "HomeFeed",
    "PlaylistRef",
    "SignalSnapshot",
    "VideoCandidate",
    "CandidateScorer",
    "ScoredCandidate",
    "CooldownGate",
    "mix_simple",
    "select_mixed",
    "shuffled",
]
