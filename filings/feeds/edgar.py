import logging
import requests
import feedparser
from typing import List, Optional
from urllib.parse import parse_qs, quote, urlparse
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from filings.errors import FeedFetchError
from filings.storage.models import RawEntry
from .base import BaseFeed

logger = logging.getLogger(__name__)

EDGAR_COMPANY_FEED = "https://www.sec.gov/cgi-bin/browse-edgar?action=getcompany&CIK={cik}&output=atom"
DEFAULT_USER_AGENT = "sec-filing-alert-scraper (+https://example.com)"


def build_session(user_agent: str = DEFAULT_USER_AGENT) -> requests.Session:
    """Pooled session with retry/back-off, shared by feed fetches and full-filing downloads."""
    session = requests.Session()
    retry = Retry(
        total=3,
        backoff_factor=0.3,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(pool_connections=20, pool_maxsize=50, max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    # SEC rejects requests without a descriptive User-Agent
    session.headers.update({"User-Agent": user_agent})
    return session


def edgar_feed_url(cik_or_ticker: str) -> str:
    return EDGAR_COMPANY_FEED.format(cik=quote(str(cik_or_ticker), safe=""))


def company_from_feed_url(url: str) -> Optional[str]:
    """CIK query parameter of an EDGAR feed URL, if any."""
    try:
        query = parse_qs(urlparse(url).query)
    except ValueError:
        return None
    for key, values in query.items():
        if key.lower() == "cik" and values and values[0]:
            return values[0]
    return None


def _text(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def raw_entry_from_parsed(entry) -> RawEntry:
    """Map a feedparser entry (Atom <entry> or RSS <item>) onto RawEntry."""
    content = None
    contents = entry.get("content") or []
    if contents:
        content = _text(contents[0].get("value"))

    # membership test avoids feedparser's deprecated updated -> published fallback
    updated = _text(entry["updated"]) if "updated" in entry else None

    return RawEntry(
        id=_text(entry.get("id")),
        link=_text(entry.get("link")),
        title=_text(entry.get("title")),
        updated=updated or _text(entry.get("published")),
        summary=_text(entry.get("summary")) or content,
        content=content,
    )


class EdgarFeed(BaseFeed):
    TIMEOUT = 30

    def __init__(self, url: str, session: Optional[requests.Session] = None, company: Optional[str] = None):
        self.url: str = url
        self.session = session or build_session()
        self.company: Optional[str] = company if company is not None else company_from_feed_url(url)

    def fetch(self) -> List[RawEntry]:
        logger.info("Fetching feed url=%s", self.url)
        try:
            response = self.session.get(self.url, timeout=self.TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FeedFetchError(self.url, e) from e

        parsed = feedparser.parse(response.content)
        if parsed.bozo and not parsed.entries:
            logger.warning("Feed document could not be parsed url=%s error=%s", self.url, parsed.get("bozo_exception"))
            return []
        return [raw_entry_from_parsed(e) for e in parsed.entries]
