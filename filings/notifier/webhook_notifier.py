"""
Notifier: fire-and-forget webhook POST for each emitted filing alert.

- `notify(alert)` starts a background thread and returns it without joining.
- `send(payload)` does the actual POST; failures (transport errors or non-2xx
  responses) are logged and swallowed, never retried.

The poll never waits on a notification. Threads are non-daemon, so a CLI run
still delivers pending notifications before the interpreter exits.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Optional

import requests

from filings.storage.models import FilingAlert, NotificationPayload

logger = logging.getLogger(__name__)


class WebhookNotifier:
    TIMEOUT = 10

    def __init__(self, webhook_url: str, session: Optional[requests.Session] = None) -> None:
        self.webhook_url = webhook_url
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def send(self, payload: NotificationPayload) -> bool:
        try:
            resp = self.session.post(
                self.webhook_url,
                data=json.dumps(payload.to_record()),
                headers={"Content-Type": "application/json"},
                timeout=self.TIMEOUT,
            )
        except requests.RequestException as e:
            logger.warning("Failed to POST webhook url=%s error=%s", self.webhook_url, e)
            return False
        if not resp.ok:
            logger.warning("Webhook responded with non-OK status=%s url=%s", resp.status_code, self.webhook_url)
            return False
        return True

    def _deliver(self, payload: NotificationPayload) -> None:
        try:
            self.send(payload)
        except Exception:
            logger.exception("Webhook dispatch crashed url=%s", self.webhook_url)

    def notify(self, alert: FilingAlert) -> Optional[threading.Thread]:
        if not self.enabled:
            return None
        payload = NotificationPayload.from_alert(alert)
        thread = threading.Thread(
            target=self._deliver,
            args=(payload,),
            name=f"webhook-{alert.filing_id[:24]}",
        )
        thread.start()
        return thread
