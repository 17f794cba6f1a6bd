"""
Run configuration.

The input document uses the camelCase option names of the scraper input
(``startUrls``, ``filingTypes``, ...). Values come from a JSON file, then
``WEBHOOK_URL`` / ``SEC_USER_AGENT`` from the environment (or ``.env``) win.
"""
import os
import json
import logging
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ConfigDict, Field, field_validator

from filings.errors import NoFeedsConfiguredError
from filings.feeds.edgar import DEFAULT_USER_AGENT, edgar_feed_url
from filings.storage.models import CamelModel
from filings.tracker.dedup import ReplayPolicy

logger = logging.getLogger(__name__)

DEFAULT_INPUT_PATH = "INPUT.json"
DEFAULT_START_URL = "https://www.sec.gov/cgi-bin/browse-edgar?action=getcompany&CIK=0000320193&output=atom"


class ScraperInput(CamelModel):
    model_config = ConfigDict(extra="ignore")

    start_urls: List[str] = Field(default_factory=lambda: [DEFAULT_START_URL])
    cik_or_ticker_list: List[str] = Field(default_factory=list)
    filing_types: List[str] = Field(default_factory=lambda: ["10-K", "10-Q", "8-K"])
    max_requests_per_crawl: int = Field(default=100, ge=1)
    max_entries_per_feed: int = 50
    include_full_filing: bool = False
    webhook_url: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    replay_policy: ReplayPolicy = ReplayPolicy.full_window

    @field_validator("cik_or_ticker_list", mode="before")
    @classmethod
    def _ids_as_text(cls, value):
        # CIKs often arrive as JSON numbers
        if isinstance(value, list):
            return [str(v) if isinstance(v, int) and not isinstance(v, bool) else v for v in value]
        return value

    @field_validator("webhook_url", mode="before")
    @classmethod
    def _null_webhook_is_disabled(cls, value):
        return "" if value is None else value

    def feed_urls(self) -> List[str]:
        """startUrls followed by templated EDGAR feeds, de-duplicated in first-seen order."""
        built = [edgar_feed_url(i) for i in self.cik_or_ticker_list if str(i).strip()]
        urls = [u.strip() for u in self.start_urls if u and u.strip()] + built
        return list(dict.fromkeys(urls))

    def require_feed_urls(self) -> List[str]:
        feeds = self.feed_urls()
        if not feeds:
            raise NoFeedsConfiguredError()
        return feeds


def load_input(path: Optional[str] = None) -> ScraperInput:
    load_dotenv(override=False)

    path = path or os.getenv("FILINGS_INPUT") or DEFAULT_INPUT_PATH
    data = {}
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f) or {}
        logger.info("Loaded input from %s", path)
    else:
        logger.info("No input file at %s, using defaults", path)

    if os.getenv("WEBHOOK_URL"):
        data["webhookUrl"] = os.getenv("WEBHOOK_URL")
    if os.getenv("SEC_USER_AGENT"):
        data["userAgent"] = os.getenv("SEC_USER_AGENT")
    return ScraperInput.model_validate(data)
