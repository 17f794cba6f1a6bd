import os
import time
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from apscheduler.schedulers.background import BackgroundScheduler

from filings.settings import load_input
from filings.storage.repository import DEFAULT_DATA_DIR
from filings.tracker.filing_tracker import FilingTracker
from filings.utils.logging_utils import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

POLL_INTERVAL_MINUTES = int(os.getenv("POLL_INTERVAL_MINUTES", "10"))

config = load_input()
tracker = FilingTracker.from_input(config, data_dir=DEFAULT_DATA_DIR)

# coalesce + max_instances=1: a slow poll never overlaps the next one
scheduler = BackgroundScheduler(
    job_defaults={
        "coalesce": True,
        "max_instances": 1,
        "misfire_grace_time": 30,
    }
)


def poll_all_feeds():
    results = tracker.update_all()
    emitted = sum(len(r.alerts) for r in results)
    logger.info("Polled %d feed(s), %d alert(s) emitted", len(results), emitted)
    return {"status": "success", "feeds": len(results), "alerts": emitted}


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not tracker.feeds:
        logger.critical("No feed URLs provided in startUrls or cikOrTickerList")
        raise RuntimeError("No feed URLs configured")

    scheduler.add_job(poll_all_feeds, "interval", minutes=POLL_INTERVAL_MINUTES, id="poll_feeds")
    scheduler.start()

    try:
        poll_all_feeds()
    except Exception as e:
        logger.warning("First poll failed: %s", e)

    yield
    scheduler.shutdown(wait=False)


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# gzip: /alerts can carry full filing text
app.add_middleware(GZipMiddleware, minimum_size=512)


@app.get("/health")
def health():
    return {"status": "ok", "ts": int(time.time())}


@app.get("/feeds")
def get_feeds():
    data = []
    for url, feed in tracker.feeds.items():
        last = tracker.get_last_result(url)
        data.append({
            "feedUrl": url,
            "company": feed.company,
            "lastStatus": last.status if last else None,
        })
    return {"status": "success", "data": data}


@app.get("/last-update")
def last_update():
    resp = JSONResponse({"status": "success", "last_update": tracker.last_updated})
    resp.headers["Cache-Control"] = "public, max-age=5"
    return resp


@app.get("/alerts")
def get_alerts(feed_url: Optional[str] = None, filing_type: Optional[str] = None):
    items = tracker.dispatcher.sink.get_items(feed_url=feed_url, filing_type=filing_type)
    return {"status": "success", "data": [a.to_record() for a in items]}


@app.get("/cursor")
def get_cursor(feed_url: str):
    if feed_url not in tracker.feeds:
        raise HTTPException(404, "Feed not tracked")
    cursor = tracker.cursor_store.read(feed_url)
    return {"status": "success", "data": cursor.model_dump(mode="json")}


# POST
@app.post("/force-update")
def force_update():
    return poll_all_feeds()


# DELETE
@app.delete("/cursor")
def reset_cursor(feed_url: str):
    if feed_url not in tracker.feeds:
        raise HTTPException(404, "Feed not tracked")
    if not tracker.cursor_store.reset(feed_url):
        raise HTTPException(404, "No cursor stored for feed")
    return {"status": "success"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("filings.api.main:app", host="0.0.0.0", port=8000, reload=True)
