import logging
import os
from typing import Optional


def setup_logging(level: Optional[str] = None) -> None:
    """Configure standard logging format for the CLI and the API process."""
    level_name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
