from abc import ABC, abstractmethod
from typing import List, Optional

from filings.storage.models import RawEntry


class BaseFeed(ABC):
    url: str
    company: Optional[str] = None

    @abstractmethod
    def fetch(self) -> List[RawEntry]:
        """Return the feed's entries in document order; raise FeedFetchError on transport failure."""
