from __future__ import annotations

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import DrawSyncOptions
from .errors import FetchError, check_cancelled

LOGGER = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)


def build_session(options: Optional[DrawSyncOptions] = None) -> requests.Session:
    """Session with a small bounded retry budget for transient faults.

    This is the only retry layer; callers treat any error surfacing from it as fatal.
    """

    opts = options or DrawSyncOptions()
    session = requests.Session()
    retries = Retry(
        total=opts.max_retries,
        connect=opts.max_retries,
        read=opts.max_retries,
        backoff_factor=opts.backoff_factor,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({"User-Agent": opts.user_agent})
    return session


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class ArchiveFetcher:
    """Download the raw bytes of one archive URL."""

    def __init__(
        self,
        options: Optional[DrawSyncOptions] = None,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.options = options or DrawSyncOptions()
        self.session = session or build_session(self.options)

    def download(self, url: str, cancel=None) -> bytes:
        check_cancelled(cancel)
        try:
            with self.session.get(url, timeout=self.options.http_timeout_seconds) as response:
                if not is_success(response.status_code):
                    raise FetchError(f"{url}: HTTP {response.status_code}")
                payload = response.content
        except requests.RequestException as exc:
            raise FetchError(f"{url}: {exc}") from exc

        LOGGER.debug("Downloaded %s (%d bytes)", url, len(payload))
        return payload


__all__ = ["ArchiveFetcher", "build_session", "is_success", "RETRY_STATUSES"]
