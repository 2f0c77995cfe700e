"""
Duration reconciliation and short-form classification.
"""
import re
from typing import Optional

SHORT_MAX_SECONDS = 60
SHORTS_TAG = "#shorts"

_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def _parse_iso(iso_duration: Optional[str]) -> int:
    """Parse ISO 8601 duration (PT1H2M3S) to seconds."""
    match = _ISO_DURATION.match(iso_duration or "")
    if not match:
        return 0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours * 3600 + minutes * 60 + seconds


def _parse_display(display: Optional[str]) -> int:
    """Parse a display duration (SS, MM:SS or HH:MM:SS) to seconds."""
    if not display:
        return 0
    try:
        parts = [int(p) for p in display.strip().split(":")]
    except ValueError:
        return 0
    if len(parts) > 3 or any(p < 0 for p in parts):
        return 0
    seconds = 0
    for part in parts:
        seconds = seconds * 60 + part
    return seconds


def parse_duration(iso_duration: Optional[str], display: Optional[str]) -> int:
    """Reconcile the two duration forms a provider may send into seconds.

    The ISO form wins when it parses to a positive value; otherwise the
    display string is used.

    Args:
        iso_duration: Machine-readable duration, e.g. ``"PT1H2M3S"``.
        display: Human duration, e.g. ``"1:02:03"`` or ``"90"``.

    Returns:
        Duration in seconds, 0 if neither form is usable.
    """
    seconds = _parse_iso(iso_duration)
    if seconds > 0:
        return seconds
    return _parse_display(display)


def format_duration(seconds: int) -> str:
    """Format seconds as a display string (M:SS or H:MM:SS)."""
    h, remainder = divmod(max(seconds, 0), 3600)
    m, s = divmod(remainder, 60)
    if h:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def is_short_form(seconds: int, title: str) -> bool:
    """True for clips of a minute or less, or titles tagged #shorts."""
    return 0 < seconds <= SHORT_MAX_SECONDS or SHORTS_TAG in (title or "").lower()
