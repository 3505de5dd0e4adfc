import threading

import pytest
import requests

from drawsync.config import DrawSyncOptions
from drawsync.errors import FetchError, SyncCancelled
from drawsync.fetcher import RETRY_STATUSES, ArchiveFetcher, build_session, is_success
from http_fakes import FakeResponse, FakeSession

URL = "https://media.fdj.test/service-draw-info/v3/documentations/1a2b"


def test_build_session_mounts_bounded_retry_and_user_agent():
    options = DrawSyncOptions(user_agent="drawsync-tests/1.0", max_retries=2, backoff_factor=0.1)

    session = build_session(options)

    retry = session.get_adapter("https://example.test").max_retries
    assert retry.total == 2
    assert retry.backoff_factor == 0.1
    assert set(retry.status_forcelist) == set(RETRY_STATUSES)
    assert session.headers["User-Agent"] == "drawsync-tests/1.0"
    assert session.get_adapter("http://example.test").max_retries.total == 2


def test_download_returns_payload():
    fetcher = ArchiveFetcher(session=FakeSession({URL: FakeResponse(200, content=b"PK\x03\x04zip")}))

    assert fetcher.download(URL) == b"PK\x03\x04zip"


@pytest.mark.parametrize("status", [404, 500, 302])
def test_download_non_success_raises(status):
    fetcher = ArchiveFetcher(session=FakeSession({URL: FakeResponse(status)}))

    with pytest.raises(FetchError):
        fetcher.download(URL)


def test_download_wraps_transport_errors():
    fetcher = ArchiveFetcher(session=FakeSession({URL: requests.Timeout("slow")}))

    with pytest.raises(FetchError) as excinfo:
        fetcher.download(URL)
    assert isinstance(excinfo.value.__cause__, requests.Timeout)


def test_download_honours_cancellation():
    session = FakeSession({URL: FakeResponse(200, content=b"data")})
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(SyncCancelled):
        ArchiveFetcher(session=session).download(URL, cancel)
    assert session.calls == []


def test_is_success():
    assert is_success(200)
    assert is_success(204)
    assert not is_success(304)
    assert not is_success(500)
