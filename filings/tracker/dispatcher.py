import logging
from typing import Iterable, List, Optional

import requests

from filings.notifier.webhook_notifier import WebhookNotifier
from filings.storage.models import FilingAlert, NormalizedEntry
from filings.storage.repository import Dataset
from filings.utils.time_utils import utc_now_iso

logger = logging.getLogger(__name__)


def matches_filter(label: Optional[str], filing_types: Iterable[str]) -> bool:
    """
    Empty filter accepts everything. Otherwise the detected label must equal a
    configured type or contain it, case-insensitively ("10-K/A" passes "10-K").
    """
    wanted = [(t or "").lower() for t in filing_types]
    if not wanted:
        return True
    detected = (label or "").lower()
    return any(t == detected or t in detected for t in wanted)


class AlertDispatcher:
    FETCH_TIMEOUT = 30

    def __init__(
        self,
        sink: Dataset,
        filing_types: Optional[List[str]] = None,
        notifier: Optional[WebhookNotifier] = None,
        include_full_filing: bool = False,
        session: Optional[requests.Session] = None,
    ):
        self.sink = sink
        self.filing_types = list(filing_types or [])
        self.notifier = notifier
        self.include_full_filing = include_full_filing
        self.session = session or requests.Session()

    def fetch_full_filing(self, link: str) -> Optional[str]:
        try:
            resp = self.session.get(link, timeout=self.FETCH_TIMEOUT)
        except requests.RequestException as e:
            logger.debug("Failed to fetch full filing link=%s error=%s", link, e)
            return None
        if not resp.ok:
            logger.debug("Full filing fetch returned status=%s link=%s", resp.status_code, link)
            return None
        return resp.text

    def build_alert(self, entry: NormalizedEntry, label: Optional[str], feed_url: str, company: Optional[str]) -> FilingAlert:
        full_text = None
        if self.include_full_filing and entry.link:
            full_text = self.fetch_full_filing(entry.link)
        return FilingAlert(
            feed_url=feed_url,
            company=company,
            filing_id=entry.id,
            filing_type=label,
            title=entry.title,
            summary=entry.summary,
            link=entry.link,
            published_at=entry.updated_at,
            full_filing_text=full_text,
            scraped_at=utc_now_iso(),
        )

    def dispatch(self, entry: NormalizedEntry, label: Optional[str], feed_url: str, company: Optional[str] = None) -> Optional[FilingAlert]:
        """Emit one alert for ``entry`` unless the type filter rejects it. Returns the emitted alert."""
        if not matches_filter(label, self.filing_types):
            logger.debug("Skipping entry - type not in filter entry_id=%s detected_type=%s", entry.id, label)
            return None

        alert = self.build_alert(entry, label, feed_url, company)
        self.sink.push_data(alert)
        logger.info("New filing saved filing_id=%s title=%s", entry.id, entry.title)

        if self.notifier is not None and self.notifier.enabled:
            try:
                self.notifier.notify(alert)
            except Exception:
                # alert is already emitted; a failed hand-off only loses the webhook
                logger.exception("Failed to start webhook dispatch filing_id=%s", entry.id)
        return alert
