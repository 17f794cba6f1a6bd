class FilingAlertsError(Exception):
    """Base class for errors raised by the filing alert pipeline."""


class NoFeedsConfiguredError(FilingAlertsError):
    """Raised when neither startUrls nor cikOrTickerList resolve to a feed URL."""

    def __init__(self):
        super().__init__("No feed URLs provided in startUrls or cikOrTickerList")


class FeedFetchError(FilingAlertsError):
    """Raised when a feed document cannot be fetched or decoded."""

    def __init__(self, feed_url: str, cause: Exception):
        self.feed_url = feed_url
        self.cause = cause
        super().__init__(f"Fetch failed for '{feed_url}': {cause}")
