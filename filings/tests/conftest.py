# filings/tests/conftest.py
import os
import tempfile

# Keep import-time storage paths (api.main, repository defaults) out of the working tree
os.environ.setdefault("FILINGS_DATA_DIR", tempfile.mkdtemp(prefix="filings-tests-"))
os.environ.setdefault("FILINGS_INPUT", os.path.join(os.environ["FILINGS_DATA_DIR"], "no-input.json"))

import pytest

from filings.errors import FeedFetchError
from filings.feeds.base import BaseFeed
from filings.settings import ScraperInput
from filings.storage.cursor_store import CursorStore
from filings.storage.models import RawEntry
from filings.storage.repository import Dataset, KeyValueStore
from filings.tracker.dispatcher import AlertDispatcher
from filings.tracker.filing_tracker import FilingTracker

FEED_URL = "https://www.sec.gov/cgi-bin/browse-edgar?action=getcompany&CIK=0000320193&output=atom"


class FakeFeed(BaseFeed):
    """In-memory feed: returns whatever entries the test put in, or raises."""

    def __init__(self, url, entries=None, error=None):
        self.url = url
        self.company = "0000320193"
        self.entries = list(entries or [])
        self.error = error
        self.calls = 0

    def fetch(self):
        self.calls += 1
        if self.error is not None:
            raise FeedFetchError(self.url, self.error)
        return list(self.entries)


class RecordingNotifier:
    enabled = True

    def __init__(self):
        self.alerts = []

    def notify(self, alert):
        self.alerts.append(alert)


@pytest.fixture()
def feed_url():
    return FEED_URL


@pytest.fixture()
def kv_store(tmp_path):
    return KeyValueStore(str(tmp_path))


@pytest.fixture()
def cursor_store(kv_store):
    return CursorStore(kv_store)


@pytest.fixture()
def dataset(tmp_path):
    return Dataset(str(tmp_path))


@pytest.fixture()
def make_entry():
    def _make(n, form="10-K", updated=None, **overrides):
        data = {
            "id": f"urn:filing:{n}",
            "title": f"{form} - Filing number {n}",
            "link": f"https://www.sec.gov/Archives/edgar/data/320193/{n}-index.htm",
            "updated": updated if updated is not None else f"2024-01-{n:02d}T12:00:00Z",
            "summary": f"Filed: 2024-01-{n:02d}",
        }
        data.update(overrides)
        return RawEntry(**data)
    return _make


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def make_tracker(cursor_store, dataset, notifier):
    """Build a tracker over FakeFeeds: make_tracker({url: [entries]}, filing_types=[...], ...)."""
    def _make(feeds, **config):
        cfg = ScraperInput(**{"start_urls": list(feeds.keys()), "filing_types": [], **config})
        fakes = {url: (f if isinstance(f, FakeFeed) else FakeFeed(url, f)) for url, f in feeds.items()}
        dispatcher = AlertDispatcher(
            sink=dataset,
            filing_types=cfg.filing_types,
            notifier=notifier,
            include_full_filing=cfg.include_full_filing,
        )
        tracker = FilingTracker(cfg, cursor_store, dispatcher, feed_factory=lambda url: fakes[url])
        for url in cfg.feed_urls():
            tracker.add_feed(url)
        return tracker
    return _make


@pytest.fixture()
def app(monkeypatch, tmp_path, make_entry):
    from filings.api import main as api_main
    from filings.storage.repository import Dataset as _Dataset

    # Fake feeds and tmp storage instead of EDGAR and ./storage
    cfg = ScraperInput(start_urls=[FEED_URL], filing_types=[])
    fake = FakeFeed(FEED_URL, [make_entry(1, "10-Q"), make_entry(2, "8-K")])
    dispatcher = AlertDispatcher(sink=_Dataset(str(tmp_path)), filing_types=[])
    tracker = FilingTracker(
        cfg,
        CursorStore(KeyValueStore(str(tmp_path))),
        dispatcher,
        feed_factory=lambda url: fake,
    )
    tracker.add_feed(FEED_URL)
    monkeypatch.setattr(api_main, "tracker", tracker, raising=True)

    class DummyScheduler:
        def add_job(self, *a, **k): pass
        def start(self): pass
        def shutdown(self, wait=False): pass
    monkeypatch.setattr(api_main, "scheduler", DummyScheduler(), raising=True)

    return api_main.app


@pytest.fixture()
def client(app):
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def fake_feed():
    return FakeFeed
