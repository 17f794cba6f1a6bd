from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Models serialized with camelCase keys (output records, cursor values, webhooks)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class RawEntry(BaseModel):
    # Atom <entry> or RSS <item>, nothing guaranteed
    id: Optional[str] = None
    link: Optional[str] = None
    title: Optional[str] = None
    updated: Optional[str] = None
    summary: Optional[str] = None
    content: Optional[str] = None


class NormalizedEntry(BaseModel):
    id: str
    title: Optional[str] = None
    link: Optional[str] = None
    updated_at: Optional[str] = None  # ISO-8601 UTC
    summary: Optional[str] = None
    content: Optional[str] = None


class FeedCursor(BaseModel):
    feed_key: str
    last_seen_id: Optional[str] = None
    updated_at: Optional[datetime] = None
    source_feed_url: str


class LegacyCursorValue(BaseModel):
    """Bare string stored by older runs: the string is the last seen id."""
    kind: Literal["legacy"] = "legacy"
    last_seen_id: str


class StructuredCursorValue(CamelModel):
    """{lastSeenId, updatedAt, feed} payload written by current runs."""
    kind: Literal["structured"] = "structured"
    last_seen_id: Optional[str] = None
    updated_at: Optional[datetime] = None
    feed: Optional[str] = None

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True, mode="json", exclude={"kind"})


StoredCursorValue = Union[LegacyCursorValue, StructuredCursorValue]


class FilingAlert(CamelModel):
    feed_url: str
    company: Optional[str] = None
    filing_id: str
    filing_type: Optional[str] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    link: Optional[str] = None
    published_at: Optional[str] = None
    full_filing_text: Optional[str] = None
    scraped_at: str


class NotificationPayload(CamelModel):
    filing_id: str
    filing_type: Optional[str] = None
    title: Optional[str] = None
    link: Optional[str] = None
    published_at: Optional[str] = None
    feed_url: str

    @classmethod
    def from_alert(cls, alert: FilingAlert) -> "NotificationPayload":
        return cls(
            filing_id=alert.filing_id,
            filing_type=alert.filing_type,
            title=alert.title,
            link=alert.link,
            published_at=alert.published_at,
            feed_url=alert.feed_url,
        )
