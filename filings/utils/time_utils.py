from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as dtparse

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def parse_timestamp(ts: Optional[str]) -> Optional[datetime]:
    """Parse an Atom/RSS timestamp into an aware UTC datetime, or None if invalid."""
    if not ts:
        return None
    try:
        dt = dtparse.parse(ts)
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_utc_iso(ts: Optional[str]) -> Optional[str]:
    dt = parse_timestamp(ts)
    return dt.isoformat() if dt else None


def sort_key(iso_ts: Optional[str]) -> datetime:
    """Chronological key where missing or unparseable timestamps count as the epoch."""
    return parse_timestamp(iso_ts) or EPOCH
