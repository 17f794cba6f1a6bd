import os
import json
import hashlib
from threading import Lock
from typing import Any, List, Optional

from filings.storage.models import FilingAlert

DEFAULT_DATA_DIR = os.getenv("FILINGS_DATA_DIR", os.path.join(os.getcwd(), "storage"))


class KeyValueStore:
    """
    Key/value store backed by one JSON file per key.

    Writes go to a temporary file and are swapped in with os.replace, so a
    reader never observes a half-written value. I/O and decode errors are
    left to the caller.
    """

    def __init__(self, data_dir: str = DEFAULT_DATA_DIR, name: str = "default"):
        self.path = os.path.join(data_dir, "key_value_stores", name)
        os.makedirs(self.path, exist_ok=True)
        self._lock = Lock()

    def _file_for(self, key: str) -> str:
        # keys are generated internally but may still contain path separators
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        if safe != key:
            safe = f"{safe}_{hashlib.sha1(key.encode('utf-8')).hexdigest()[:8]}"
        return os.path.join(self.path, f"{safe}.json")

    def get_value(self, key: str) -> Any:
        file_path = self._file_for(key)
        with self._lock:
            if not os.path.exists(file_path):
                return None
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)

    def set_value(self, key: str, value: Any) -> None:
        file_path = self._file_for(key)
        tmp_path = f"{file_path}.tmp"
        with self._lock:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, file_path)

    def delete_value(self, key: str) -> bool:
        file_path = self._file_for(key)
        with self._lock:
            if not os.path.exists(file_path):
                return False
            os.remove(file_path)
            return True


class Dataset:
    """Append-only JSON Lines sink for emitted filing alerts."""

    def __init__(self, data_dir: str = DEFAULT_DATA_DIR, name: str = "default"):
        directory = os.path.join(data_dir, "datasets", name)
        os.makedirs(directory, exist_ok=True)
        self.path = os.path.join(directory, "alerts.jsonl")
        self._lock = Lock()

    def push_data(self, alert: FilingAlert) -> None:
        line = json.dumps(alert.to_record(), ensure_ascii=False)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def get_items(self, feed_url: Optional[str] = None, filing_type: Optional[str] = None) -> List[FilingAlert]:
        with self._lock:
            if not os.path.exists(self.path):
                return []
            with open(self.path, "r", encoding="utf-8") as f:
                lines = [ln for ln in f if ln.strip()]

        items = [FilingAlert.model_validate(json.loads(ln)) for ln in lines]
        if feed_url:
            items = [a for a in items if a.feed_url == feed_url]
        if filing_type:
            wanted = filing_type.lower()
            items = [a for a in items if (a.filing_type or "").lower() == wanted]
        return items
