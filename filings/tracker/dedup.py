"""
Incremental "new since last poll" detection.

Everything here is pure: the caller reads the cursor, asks for a plan, processes
``plan.new_entries`` however it likes and finally persists
``advance_cursor(...)``. The next cursor depends only on the window, never on
how individual entries were filtered or whether they failed.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from filings.storage.models import FeedCursor, NormalizedEntry
from filings.utils.time_utils import sort_key


class ReplayPolicy(str, Enum):
    # stored cursor id missing from the window: replay all of it
    full_window = "full_window"
    # ... or only its newest entry
    latest_only = "latest_only"


@dataclass(frozen=True)
class PollPlan:
    window: List[NormalizedEntry]
    new_entries: List[NormalizedEntry]
    cursor_found: bool
    next_cursor_id: Optional[str]
    replayed: bool = False
    dropped: int = 0


def order_entries(entries: Sequence[NormalizedEntry]) -> List[NormalizedEntry]:
    # sorted() is stable: ties keep document order
    return sorted(entries, key=lambda e: sort_key(e.updated_at))


def unique_by_id(ordered: List[NormalizedEntry]) -> List[NormalizedEntry]:
    """Drop repeated ids, keeping each id at its newest position."""
    last_index = {e.id: i for i, e in enumerate(ordered)}
    return [e for i, e in enumerate(ordered) if last_index[e.id] == i]


def cap_window(ordered: List[NormalizedEntry], max_entries: int) -> List[NormalizedEntry]:
    cap = abs(int(max_entries or 0))
    if not cap:
        return list(ordered)
    return ordered[-cap:]


def plan_poll(
    last_seen_id: Optional[str],
    entries: Sequence[NormalizedEntry],
    max_entries: int,
    policy: ReplayPolicy = ReplayPolicy.full_window,
) -> PollPlan:
    ordered = unique_by_id(order_entries(entries))
    window = cap_window(ordered, max_entries)
    next_cursor_id = window[-1].id if window else None
    dropped = len(ordered) - len(window)

    idx = -1
    if last_seen_id:
        idx = max((i for i, e in enumerate(window) if e.id == last_seen_id), default=-1)

    if idx >= 0:
        return PollPlan(window, window[idx + 1:], True, next_cursor_id, dropped=dropped)

    if not last_seen_id:
        return PollPlan(window, list(window), False, next_cursor_id, dropped=dropped)

    # feed rotated past the stored id, or the outage outlasted the window
    new_entries = window[-1:] if policy == ReplayPolicy.latest_only else list(window)
    return PollPlan(window, new_entries, False, next_cursor_id, replayed=True, dropped=dropped)


def advance_cursor(previous: FeedCursor, plan: PollPlan, now: datetime) -> Optional[FeedCursor]:
    """Cursor to persist after processing ``plan``; None when the window was empty."""
    if plan.next_cursor_id is None:
        return None
    return previous.model_copy(update={"last_seen_id": plan.next_cursor_id, "updated_at": now})
