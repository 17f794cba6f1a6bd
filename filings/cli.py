"""CLI: poll every configured feed once and emit alerts for new filings."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from filings.errors import NoFeedsConfiguredError
from filings.settings import load_input
from filings.storage.repository import DEFAULT_DATA_DIR
from filings.tracker.filing_tracker import FilingTracker
from filings.utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Poll SEC EDGAR feeds and emit alerts for new filings.")
    parser.add_argument("--input", default=None, help="Path to the JSON input (default: $FILINGS_INPUT or INPUT.json)")
    parser.add_argument("--data-dir", default=DEFAULT_DATA_DIR, help="Directory for the cursor store and the alert dataset")
    parser.add_argument("--log-level", default=None, help="Logging level (default: $LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_input(args.input)
        feeds = config.require_feed_urls()
    except NoFeedsConfiguredError as e:
        logger.critical(str(e))
        return 1
    except (ValidationError, ValueError, OSError) as e:
        logger.critical("Invalid input: %s", e)
        return 1

    tracker = FilingTracker.from_input(config, data_dir=args.data_dir)
    logger.info("Polling %d feed(s)", len(feeds))
    results = tracker.update_all()

    for r in results:
        logger.info(
            "  %s | %s | new=%d emitted=%d filtered=%d failed=%d",
            r.feed_url, r.status, r.new_entries, len(r.alerts), r.filtered, len(r.failed_entries),
        )
    logger.info("Run finished: %d alert(s) emitted", sum(len(r.alerts) for r in results))
    return 0


if __name__ == "__main__":
    sys.exit(main())
