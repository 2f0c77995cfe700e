"""
Keyword extraction for titles and channel names.

Keywords are the shared vocabulary between the affinity vector, the
negative-signal map and the scorer, so every path tokenizes through
``extract_keywords``.
"""
import re
from typing import Optional

# 【…】 「…」 […] (…) decorations, non-greedy
BRACKET_DECORATION = re.compile(r"【.*?】|「.*?」|\[.*?\]|\(.*?\)|（.*?）")
TOKEN_SPLIT = re.compile(r"[^\w]+", re.UNICODE)
LATIN_TOKEN = re.compile(r"^[a-z]+$")

STOPWORDS = frozenset({
    "a", "an", "and", "are", "at", "by", "for", "from", "in", "is", "it",
    "of", "on", "or", "the", "to", "with", "vs", "ft", "feat",
    "official", "video", "videos", "shorts", "short", "full", "hd", "mv",
    "channel", "live", "new",
})


def strip_decorations(text: str) -> str:
    """Remove bracket-delimited decorations such as 【MV】 or (Official)."""
    return BRACKET_DECORATION.sub(" ", text)


def extract_keywords(text: Optional[str]) -> set[str]:
    """Tokenize free text into a set of normalized keywords.

    Case-folds, strips bracket decorations and hashtag markers, and drops
    stopwords, numbers and single Latin letters.

    Args:
        text: A title or channel name. ``None`` and "" are accepted.

    Returns:
        Set of keywords (empty when nothing usable remains).
    """
    if not text:
        return set()

    normalized = strip_decorations(text.casefold())
    keywords = set()
    for token in TOKEN_SPLIT.split(normalized):
        token = token.strip("_")
        if not token or token.isdigit() or token in STOPWORDS:
            continue
        if len(token) == 1 and LATIN_TOKEN.match(token):
            continue
        keywords.add(token)
    return keywords


def clean_title_for_search(title: Optional[str], max_words: int = 4) -> str:
    """Turn a watched title into a short search seed."""
    if not title:
        return ""
    words = strip_decorations(title).split()
    return " ".join(words[:max_words])
