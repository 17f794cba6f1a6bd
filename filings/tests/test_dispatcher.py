from unittest.mock import MagicMock

import pytest
import requests

from filings.storage.models import NormalizedEntry
from filings.tracker.dispatcher import AlertDispatcher, matches_filter

FEED = "https://www.sec.gov/cgi-bin/browse-edgar?action=getcompany&CIK=0000320193&output=atom"


@pytest.mark.parametrize("label,types,expected", [
    ("10-Q", [], True),
    (None, [], True),
    ("10-K", ["10-K"], True),
    ("10-k", ["10-K"], True),
    ("10-K/A", ["10-K"], True),
    ("10-Q", ["10-K", "8-K"], False),
    (None, ["10-K"], False),
    ("Form 4", ["form 4"], True),
    ("K", ["10-K"], False),
])
def test_matches_filter(label, types, expected):
    assert matches_filter(label, types) is expected


def _entry(link="https://www.sec.gov/Archives/edgar/data/320193/000032019324000081-index.htm"):
    return NormalizedEntry(
        id="urn:filing:81",
        title="10-Q - Quarterly report",
        link=link,
        updated_at="2024-08-02T10:01:36+00:00",
        summary="Filed: 2024-08-02",
    )


def test_rejected_entry_is_not_emitted(dataset, notifier):
    dispatcher = AlertDispatcher(dataset, filing_types=["8-K"], notifier=notifier)
    assert dispatcher.dispatch(_entry(), "10-Q", FEED) is None
    assert dataset.get_items() == []
    assert notifier.alerts == []


def test_accepted_entry_is_emitted_then_notified(dataset, notifier):
    dispatcher = AlertDispatcher(dataset, filing_types=["10-Q"], notifier=notifier)

    alert = dispatcher.dispatch(_entry(), "10-Q", FEED, company="0000320193")

    assert alert.filing_id == "urn:filing:81"
    assert alert.company == "0000320193"
    assert alert.published_at == "2024-08-02T10:01:36+00:00"
    assert [a.filing_id for a in dataset.get_items()] == ["urn:filing:81"]
    assert notifier.alerts == [alert]


def test_disabled_notifier_is_not_called(dataset):
    quiet = MagicMock(enabled=False)
    AlertDispatcher(dataset, notifier=quiet).dispatch(_entry(), "10-Q", FEED)
    quiet.notify.assert_not_called()


def test_full_filing_text_is_attached(dataset):
    session = MagicMock()
    session.get.return_value = MagicMock(ok=True, text="<html>filing body</html>")
    dispatcher = AlertDispatcher(dataset, include_full_filing=True, session=session)

    alert = dispatcher.dispatch(_entry(), "10-Q", FEED)

    assert alert.full_filing_text == "<html>filing body</html>"
    session.get.assert_called_once()


@pytest.mark.parametrize("response", [
    requests.ConnectionError("boom"),
    MagicMock(ok=False, status_code=403, text="denied"),
])
def test_enrichment_failure_leaves_text_empty(dataset, response):
    session = MagicMock()
    if isinstance(response, Exception):
        session.get.side_effect = response
    else:
        session.get.return_value = response
    dispatcher = AlertDispatcher(dataset, include_full_filing=True, session=session)

    alert = dispatcher.dispatch(_entry(), "10-Q", FEED)

    assert alert.full_filing_text is None
    assert len(dataset.get_items()) == 1


def test_enrichment_skipped_without_link_or_flag(dataset):
    session = MagicMock()
    AlertDispatcher(dataset, include_full_filing=True, session=session).dispatch(_entry(link=None), "10-Q", FEED)
    AlertDispatcher(dataset, include_full_filing=False, session=session).dispatch(_entry(), "10-Q", FEED)
    session.get.assert_not_called()


def test_notifier_start_failure_does_not_fail_the_alert(dataset):
    broken = MagicMock(enabled=True)
    broken.notify.side_effect = RuntimeError("can't start new thread")

    alert = AlertDispatcher(dataset, notifier=broken).dispatch(_entry(), "10-Q", FEED)

    assert alert is not None
    assert [a.filing_id for a in dataset.get_items()] == ["urn:filing:81"]
    broken.notify.assert_called_once_with(alert)
