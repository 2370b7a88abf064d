"""
Error types raised while downloading a book
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class FailureKind(Enum):
    """Why a single page request failed"""
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    HTTP_STATUS = "http_status"
    UNKNOWN = "unknown"


class DownloadError(RuntimeError):
    """Base class for book download failures."""


class TransientFetchError(DownloadError):
    """One request attempt for a page failed; the fetcher may retry it."""

    def __init__(
        self,
        page: int,
        attempt: int,
        kind: FailureKind,
        cause: Optional[BaseException] = None,
    ):
        self.page = page
        self.attempt = attempt
        self.kind = kind
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Page {page} attempt {attempt} failed ({kind.value}){detail}"
        )


class ExhaustedRetries(DownloadError):
    """Every attempt for a page failed."""

    def __init__(self, page: int, attempts: int, last_error: Optional[TransientFetchError]):
        self.page = page
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to download page {page} after {attempts} attempts: {last_error}"
        )

    @property
    def kind(self) -> FailureKind:
        if self.last_error is None:
            return FailureKind.UNKNOWN
        return self.last_error.kind


class InvalidPayload(DownloadError):
    """Page bytes are neither PNG nor JPEG."""

    def __init__(self, page: int, size: int):
        self.page = page
        self.size = size
        super().__init__(f"Invalid image data received for page {page} ({size} bytes)")


class SetupError(DownloadError, ValueError):
    """Book identity is missing or malformed."""


class ResolveError(DownloadError):
    """A library link could not be turned into a book identity."""
