"""
Continuation aggregation over the provider's cursor-based pages.

Two shapes of walk:
  - ``aggregate``: target- and attempt-bounded (related videos, comments)
  - ``paginate``: page-indexed slices (channel videos, search)

Both dedup by key, stop on a stalled page and keep whatever was collected
when a page fetch fails.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional

from ..discovery.models import AggregateResult, PageSlice

logger = logging.getLogger(__name__)

# A fetch returns (items, continuation); continuation is None when exhausted.
FetchFirst = Callable[[], Awaitable[tuple[list, Optional[Any]]]]
FetchNext = Callable[[Any], Awaitable[tuple[list, Optional[Any]]]]


def _merge(
    items: list,
    seen: set,
    batch: Iterable,
    key: Callable[[Any], Any],
    accept: Optional[Callable[[Any], bool]],
    limit: Optional[int] = None,
) -> int:
    """Append unseen, accepted items. Returns how many were added."""
    added = 0
    for item in batch or []:
        if limit is not None and len(items) >= limit:
            break
        if accept is not None and not accept(item):
            continue
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        items.append(item)
        added += 1
    return added


async def aggregate(
    fetch_first: FetchFirst,
    fetch_next: FetchNext,
    target: int,
    max_attempts: int,
    key: Callable[[Any], Any] = lambda item: item.id,
    accept: Optional[Callable[[Any], bool]] = None,
    label: str = "source",
) -> AggregateResult:
    """Walk a continuation chain until the target or a stop condition.

    Stops when the target is reached, the provider reports no continuation,
    ``max_attempts`` next-page fetches were made, a page adds no new items,
    or a fetch raises. Errors never propagate.

    Args:
        fetch_first: Initial fetch.
        fetch_next: Resume fetch, given the previous page's cursor.
        target: Maximum number of items to collect.
        max_attempts: Maximum number of continuation fetches.
        key: Dedup key per item.
        accept: Optional validity check; rejected items are dropped.
        label: Name used in log lines.

    Returns:
        AggregateResult with at most ``target`` items.
    """
    result = AggregateResult()
    seen: set = set()

    try:
        batch, cursor = await fetch_first()
    except Exception as e:
        logger.warning("Initial fetch failed for %s: %s", label, e)
        result.error = str(e)
        return result

    _merge(result.items, seen, batch, key, accept, limit=target)

    while len(result.items) < target and cursor is not None and result.attempts < max_attempts:
        try:
            batch, next_cursor = await fetch_next(cursor)
        except Exception as e:
            logger.warning(
                "Continuation failed for %s after %d items: %s",
                label,
                len(result.items),
                e,
            )
            result.error = str(e)
            cursor = None
            break

        result.attempts += 1
        # the consumed cursor is dropped here
        cursor = next_cursor
        added = _merge(result.items, seen, batch, key, accept, limit=target)
        if added == 0:
            logger.warning("Pagination stalled for %s at %d items", label, len(result.items))
            result.stalled = True
            break

    result.continuation = cursor
    logger.debug(
        "Aggregated %d items for %s (%d continuations)",
        len(result.items),
        label,
        result.attempts,
    )
    return result


@dataclass
class PagerState:
    """Caller-owned pagination progress for one page-indexed source.

    Holds everything collected so far plus the last unconsumed cursor, so a
    later page request resumes where the previous one stopped.
    """
    items: list = field(default_factory=list)
    seen: set = field(default_factory=set)
    cursor: Optional[Any] = None
    started: bool = False
    exhausted: bool = False
    error: Optional[str] = None


async def paginate(
    fetch_first: FetchFirst,
    fetch_next: FetchNext,
    page: int,
    page_size: int,
    state: Optional[PagerState] = None,
    key: Callable[[Any], Any] = lambda item: item.id,
    accept: Optional[Callable[[Any], bool]] = None,
    label: str = "source",
) -> PageSlice:
    """Return slice ``[(page-1)*page_size, page*page_size)`` of a source.

    Fetches forward from the last-known cursor until enough items exist or
    the source is exhausted, stalls or fails. ``next_page_token`` is
    ``str(page + 1)`` when more items are known to exist past the slice.

    Raises:
        ValueError: If ``page`` or ``page_size`` is below 1.
    """
    if page < 1 or page_size < 1:
        raise ValueError(f"Invalid page request: page={page}, page_size={page_size}")

    state = state if state is not None else PagerState()
    needed = page * page_size

    if not state.started:
        state.started = True
        try:
            batch, state.cursor = await fetch_first()
        except Exception as e:
            logger.warning("Initial fetch failed for %s: %s", label, e)
            state.error = str(e)
            batch, state.cursor = [], None
        _merge(state.items, state.seen, batch, key, accept)
        if state.cursor is None:
            state.exhausted = True

    while len(state.items) < needed and not state.exhausted:
        cursor, state.cursor = state.cursor, None
        try:
            batch, next_cursor = await fetch_next(cursor)
        except Exception as e:
            logger.warning("Continuation failed for %s at %d items: %s", label, len(state.items), e)
            state.error = str(e)
            state.exhausted = True
            break

        added = _merge(state.items, state.seen, batch, key, accept)
        state.cursor = next_cursor
        if added == 0:
            logger.warning("Pagination stalled for %s at %d items", label, len(state.items))
            state.exhausted = True
        elif next_cursor is None:
            state.exhausted = True

    start = (page - 1) * page_size
    items = state.items[start:needed]
    has_more = len(state.items) > needed or not state.exhausted
    return PageSlice(
        items=items,
        page=page,
        next_page_token=str(page + 1) if has_more else None,
        error=state.error,
    )
