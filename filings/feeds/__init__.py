from .edgar import EdgarFeed, build_session, company_from_feed_url, edgar_feed_url

from .base import BaseFeed

__all__ = ["EdgarFeed", "BaseFeed", "build_session", "company_from_feed_url", "edgar_feed_url"]
