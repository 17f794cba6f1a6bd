import hashlib
from typing import Optional

from filings.storage.models import NormalizedEntry, RawEntry
from filings.utils.time_utils import to_utc_iso


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def content_hash(title: Optional[str], summary: Optional[str]) -> str:
    raw = (title or "") + (summary or "")
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


def resolve_entry_id(source_id: Optional[str], link: Optional[str], title: Optional[str], summary: Optional[str]) -> str:
    """Source id/guid, then link, then a SHA-1 of title + summary. Never fails."""
    return _clean(source_id) or _clean(link) or content_hash(title, summary)


def normalize_entry(raw: RawEntry) -> NormalizedEntry:
    title = _clean(raw.title)
    link = _clean(raw.link)
    summary = _clean(raw.summary) or _clean(raw.content)
    return NormalizedEntry(
        id=resolve_entry_id(raw.id, link, title, summary),
        title=title,
        link=link,
        updated_at=to_utc_iso(_clean(raw.updated)),
        summary=summary,
        content=_clean(raw.content),
    )
