import time
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Dict, List, Optional

from filings.classifier.filing_classifier import FilingClassifier
from filings.errors import FeedFetchError
from filings.feeds import BaseFeed, EdgarFeed, build_session
from filings.notifier.webhook_notifier import WebhookNotifier
from filings.settings import ScraperInput
from filings.storage.cursor_store import CursorStore
from filings.storage.models import FeedCursor, FilingAlert
from filings.storage.repository import Dataset, KeyValueStore, DEFAULT_DATA_DIR
from filings.tracker.dedup import advance_cursor, plan_poll
from filings.tracker.dispatcher import AlertDispatcher
from filings.tracker.normalizer import normalize_entry
from filings.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

_MAX_FEED_WORKERS = 8  # feeds polled in parallel

FeedFactory = Callable[[str], BaseFeed]


@dataclass
class PollResult:
    feed_url: str
    status: str  # "ok", "empty", "failed" or "busy"
    alerts: List[FilingAlert] = field(default_factory=list)
    new_entries: int = 0
    filtered: int = 0
    failed_entries: List[str] = field(default_factory=list)
    cursor: Optional[FeedCursor] = None
    cursor_written: bool = False
    error: Optional[str] = None


class FilingTracker:
    def __init__(
        self,
        config: ScraperInput,
        cursor_store: CursorStore,
        dispatcher: AlertDispatcher,
        classifier: Optional[FilingClassifier] = None,
        feed_factory: Optional[FeedFactory] = None,
    ):
        self.config = config
        self.cursor_store = cursor_store
        self.dispatcher = dispatcher
        self.classifier = classifier or FilingClassifier()
        self.feed_factory: FeedFactory = feed_factory or (lambda url: EdgarFeed(url))
        self.feeds: Dict[str, BaseFeed] = {}
        self.last_results: Dict[str, PollResult] = {}
        self.last_updated: Optional[int] = None
        self._key_locks: Dict[str, Lock] = {}
        self._lock = Lock()  # protects _key_locks and last_results

    @classmethod
    def from_input(cls, config: ScraperInput, data_dir: str = DEFAULT_DATA_DIR) -> "FilingTracker":
        session = build_session(config.user_agent)
        dispatcher = AlertDispatcher(
            sink=Dataset(data_dir),
            filing_types=config.filing_types,
            notifier=WebhookNotifier(config.webhook_url),
            include_full_filing=config.include_full_filing,
            session=session,
        )
        tracker = cls(
            config,
            CursorStore(KeyValueStore(data_dir)),
            dispatcher,
            feed_factory=lambda url: EdgarFeed(url, session=session),
        )
        for url in config.feed_urls():
            tracker.add_feed(url)
        return tracker

    def add_feed(self, url: str) -> bool:
        if url in self.feeds:
            return False
        self.feeds[url] = self.feed_factory(url)
        return True

    def remove_feed(self, url: str) -> bool:
        if url not in self.feeds:
            return False
        del self.feeds[url]
        with self._lock:
            self.last_results.pop(url, None)
        return True

    def _key_lock(self, url: str) -> Lock:
        with self._lock:
            return self._key_locks.setdefault(url, Lock())

    def poll_feed(self, url: str) -> PollResult:
        feed = self.feeds[url]
        key_lock = self._key_lock(url)
        # single flight per feed: overlapping polls would race on the cursor
        if not key_lock.acquire(blocking=False):
            logger.warning("Poll already in progress, skipping url=%s", url)
            return PollResult(url, "busy")
        try:
            result = self._poll(feed)
        finally:
            key_lock.release()
        with self._lock:
            self.last_results[url] = result
        return result

    def _poll(self, feed: BaseFeed) -> PollResult:
        try:
            raw_entries = feed.fetch()
        except FeedFetchError as e:
            logger.error("Feed request failed url=%s error=%s", feed.url, e.cause)
            return PollResult(feed.url, "failed", error=str(e))

        if not raw_entries:
            logger.warning("No feed entries parsed url=%s", feed.url)
            return PollResult(feed.url, "empty")

        entries = [normalize_entry(r) for r in raw_entries]
        cursor = self.cursor_store.read(feed.url)
        plan = plan_poll(cursor.last_seen_id, entries, self.config.max_entries_per_feed, self.config.replay_policy)
        if plan.replayed:
            logger.info(
                "Last seen id not in window, replaying url=%s policy=%s new=%d",
                feed.url, self.config.replay_policy.value, len(plan.new_entries),
            )

        result = PollResult(feed.url, "ok", new_entries=len(plan.new_entries))
        for entry in plan.new_entries:
            try:
                label = self.classifier.classify(entry.title, entry.summary)
                alert = self.dispatcher.dispatch(entry, label, feed.url, feed.company)
            except Exception as e:
                # skipped entries are not retried: the cursor still moves past them
                logger.error("Failed to process entry entry_id=%s error=%s", entry.id, e)
                result.failed_entries.append(entry.id)
                continue
            if alert is None:
                result.filtered += 1
            else:
                result.alerts.append(alert)

        next_cursor = advance_cursor(cursor, plan, utc_now())
        if next_cursor is not None:
            result.cursor = next_cursor
            result.cursor_written = self.cursor_store.write(next_cursor)
        return result

    def update_all(self) -> List[PollResult]:
        urls = list(self.feeds.keys())
        results: List[PollResult] = []
        if not urls:
            self.last_updated = int(time.time())
            return results

        workers = max(1, min(len(urls), self.config.max_requests_per_crawl, _MAX_FEED_WORKERS))
        with ThreadPoolExecutor(max_workers=workers) as ex:
            futures = {ex.submit(self.poll_feed, u): u for u in urls}
            for fut in as_completed(futures):
                url = futures[fut]
                try:
                    results.append(fut.result())
                except Exception as e:
                    logger.error("Poll failed url=%s error=%s", url, e)
                    results.append(PollResult(url, "failed", error=str(e)))

        self.last_updated = int(time.time())
        return results

    def get_last_result(self, url: str) -> Optional[PollResult]:
        with self._lock:
            return self.last_results.get(url)
