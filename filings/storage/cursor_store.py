"""
Per-feed progress cursor on top of the key/value store.

Stored values come in two shapes: a bare string written by older runs and the
structured ``{lastSeenId, updatedAt, feed}`` payload. Both are turned into a
tagged value right after read and resolved to a single ``FeedCursor``, so the
rest of the pipeline never branches on the stored shape.
"""
import hashlib
import logging
from typing import Any, Optional

from pydantic import ValidationError

from filings.storage.models import (
    FeedCursor,
    LegacyCursorValue,
    StoredCursorValue,
    StructuredCursorValue,
)
from filings.storage.repository import KeyValueStore

logger = logging.getLogger(__name__)

FEED_KEY_PREFIX = "sec_feed_last_"


def feed_key(feed_url: str) -> str:
    digest = hashlib.sha1(feed_url.encode("utf-8")).hexdigest()
    return f"{FEED_KEY_PREFIX}{digest}"


def parse_stored_value(raw: Any) -> Optional[StoredCursorValue]:
    if not raw:
        return None
    if isinstance(raw, str):
        return LegacyCursorValue(last_seen_id=raw)
    if isinstance(raw, dict):
        return StructuredCursorValue.model_validate(raw)
    raise ValueError(f"Unsupported cursor value type: {type(raw).__name__}")


def resolve_cursor(value: Optional[StoredCursorValue], key: str, feed_url: str) -> FeedCursor:
    if value is None:
        return FeedCursor(feed_key=key, source_feed_url=feed_url)
    if isinstance(value, LegacyCursorValue):
        return FeedCursor(feed_key=key, last_seen_id=value.last_seen_id, source_feed_url=feed_url)
    return FeedCursor(
        feed_key=key,
        last_seen_id=value.last_seen_id or None,
        updated_at=value.updated_at,
        source_feed_url=value.feed or feed_url,
    )


class CursorStore:
    def __init__(self, kv_store: KeyValueStore):
        self.kv_store = kv_store

    def read(self, feed_url: str) -> FeedCursor:
        """Never raises: any read or decode failure yields an empty cursor."""
        key = feed_key(feed_url)
        try:
            value = parse_stored_value(self.kv_store.get_value(key))
        except (OSError, ValueError, ValidationError) as e:
            logger.debug("KV read failed key=%s error=%s", key, e)
            value = None
        return resolve_cursor(value, key, feed_url)

    def write(self, cursor: FeedCursor) -> bool:
        payload = StructuredCursorValue(
            last_seen_id=cursor.last_seen_id,
            updated_at=cursor.updated_at,
            feed=cursor.source_feed_url,
        )
        try:
            self.kv_store.set_value(cursor.feed_key, payload.to_record())
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to update KV store with last seen id key=%s error=%s", cursor.feed_key, e)
            return False
        logger.info("Updated last seen id in KV store key=%s", cursor.feed_key)
        return True

    def reset(self, feed_url: str) -> bool:
        return self.kv_store.delete_value(feed_key(feed_url))
