"""
Page fetching module - downloads single page images from the library viewer
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional

import requests

from .config import DownloadSettings
from .errors import ExhaustedRetries, FailureKind, TransientFetchError
from .models import BookIdentity, FetchOutcome

log = logging.getLogger(__name__)

PAGE_ENDPOINT = "/els/files/test/"
CHUNK_SIZE = 16 * 1024
VIEWER_ENDPOINT = "/els/files/book"


class PageFetcher:
    """Fetch one page at a time, retrying failed requests"""

    def __init__(
        self,
        identity: BookIdentity,
        settings: Optional[DownloadSettings] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize fetcher

        Args:
            identity: Book id and name used to address page images
            settings: Retry, delay and timeout settings
            session: HTTP session; a new one is created when omitted
            sleep: Delay function, replaced in tests
            logger: Log sink, defaults to the module logger
            clock: Monotonic clock for the per-attempt deadline
        """
        identity.validate()
        self.identity = identity
        self.settings = settings or DownloadSettings()
        self.session = session or requests.Session()
        self.sleep = sleep
        self.log = logger or log
        self.clock = clock
        self.attempts = 0

    @property
    def page_url(self) -> str:
        return self.settings.base_url.rstrip("/") + PAGE_ENDPOINT

    @property
    def viewer_url(self) -> str:
        return (
            f"{self.settings.base_url.rstrip('/')}{VIEWER_ENDPOINT}"
            f"?id={self.identity.book_id}&name={self.identity.book_name}"
        )

    def build_params(self, page: int) -> Dict[str, object]:
        return {
            "name": self.identity.book_name,
            "id": self.identity.book_id,
            "page": page,
            "mode": self.settings.page_mode,
        }

    def build_headers(self) -> Dict[str, str]:
        return {
            "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
            "Accept-Language": "en,ru;q=0.9",
            "Connection": "keep-alive",
            "DNT": "1",
            "Referer": self.viewer_url,
            "User-Agent": self.settings.user_agent,
        }

    def fetch(self, page: int) -> FetchOutcome:
        """
        Fetch one page image

        Args:
            page: 1-based page number

        Returns:
            FetchOutcome.data with the body, FetchOutcome.empty for a
            zero-length success response, or FetchOutcome.failure once
            every attempt has failed
        """
        max_retries = self.settings.max_retries
        last_error: Optional[TransientFetchError] = None

        for attempt in range(1, max_retries + 1):
            self.attempts += 1
            try:
                content = self._request(page, attempt)
            except TransientFetchError as exc:
                last_error = exc
                self.log.warning(
                    "Error downloading page %d (attempt %d/%d): %s",
                    page,
                    attempt,
                    max_retries,
                    exc,
                )
                if attempt < max_retries:
                    self.sleep(self.settings.retry_delay)
                continue

            if not content:
                self.log.info("Received empty response for page %d, assuming end of book", page)
                return FetchOutcome.empty()

            self.log.info("Successfully downloaded page %d", page)
            self.sleep(self.settings.politeness_delay)
            return FetchOutcome.data(content)

        error = ExhaustedRetries(page, max_retries, last_error)
        self.log.error("%s", error)
        return FetchOutcome.failure(error)

    def _request(self, page: int, attempt: int) -> bytes:
        self.log.debug("Requesting page %d (attempt %d)", page, attempt)
        deadline = self.clock() + self.settings.timeout
        try:
            response = self.session.get(
                self.page_url,
                params=self.build_params(page),
                headers=self.build_headers(),
                timeout=self.settings.timeout,
                stream=True,
            )
            try:
                if not response.ok:
                    raise TransientFetchError(
                        page,
                        attempt,
                        FailureKind.HTTP_STATUS,
                        requests.HTTPError(f"HTTP error! status: {response.status_code}"),
                    )
                return self._read_body(response, page, attempt, deadline)
            finally:
                response.close()
        except requests.Timeout as exc:
            raise TransientFetchError(page, attempt, FailureKind.TIMEOUT, exc) from exc
        except requests.ConnectionError as exc:
            raise TransientFetchError(page, attempt, FailureKind.CONNECTION, exc) from exc
        except requests.RequestException as exc:
            raise TransientFetchError(page, attempt, FailureKind.UNKNOWN, exc) from exc

    def _read_body(self, response, page: int, attempt: int, deadline: float) -> bytes:
        # requests' timeout bounds each socket read, not the whole attempt
        chunks = []
        self._check_deadline(page, attempt, deadline)
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            chunks.append(chunk)
            self._check_deadline(page, attempt, deadline)
        return b"".join(chunks)

    def _check_deadline(self, page: int, attempt: int, deadline: float) -> None:
        if self.clock() > deadline:
            raise TransientFetchError(
                page,
                attempt,
                FailureKind.TIMEOUT,
                requests.Timeout(f"page not received within {self.settings.timeout}s"),
            )
