"""
Data models for elib2pdf
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .errors import ExhaustedRetries, InvalidPayload, SetupError


class ImageFormat(Enum):
    """Raster formats accepted as book pages"""
    PNG = "png"
    JPEG = "jpeg"


class OutcomeKind(Enum):
    DATA = "data"
    EMPTY = "empty"
    FAILURE = "failure"


class StopReason(Enum):
    """Why page acquisition ended"""
    END_OF_DOCUMENT = "end_of_document"
    FETCH_FAILED = "fetch_failed"


@dataclass
class BookIdentity:
    """Identifies a book in the library viewer"""
    book_id: str
    book_name: str
    title: str = ""

    def validate(self) -> None:
        """Raise SetupError unless both id and name are present"""
        if not isinstance(self.book_id, str) or not self.book_id.strip():
            raise SetupError("Book id is required")
        if not isinstance(self.book_name, str) or not self.book_name.strip():
            raise SetupError("Book name is required")

    @property
    def filename(self) -> str:
        """PDF filename built from the display title"""
        stem = self.title or self.book_name or self.book_id or "book"
        safe = re.sub(r'[\\/:*?"<>|\x00-\x1f]+', "_", stem).strip(" ._")
        return f"{safe or 'book'}.pdf"

    def __str__(self):
        return self.title or f"{self.book_name} ({self.book_id})"


@dataclass(frozen=True)
class FetchOutcome:
    """Result of fetching one page: data, empty body, or failure"""
    kind: OutcomeKind
    content: bytes = b""
    error: Optional[ExhaustedRetries] = None

    @classmethod
    def data(cls, content: bytes) -> "FetchOutcome":
        return cls(kind=OutcomeKind.DATA, content=content)

    @classmethod
    def empty(cls) -> "FetchOutcome":
        return cls(kind=OutcomeKind.EMPTY)

    @classmethod
    def failure(cls, error: ExhaustedRetries) -> "FetchOutcome":
        return cls(kind=OutcomeKind.FAILURE, error=error)

    @property
    def is_data(self) -> bool:
        return self.kind is OutcomeKind.DATA

    @property
    def is_empty(self) -> bool:
        return self.kind is OutcomeKind.EMPTY

    @property
    def is_failure(self) -> bool:
        return self.kind is OutcomeKind.FAILURE


@dataclass(frozen=True)
class AcquiredPage:
    """A downloaded page that passed validation"""
    index: int
    content: bytes
    image_format: ImageFormat

    def __str__(self):
        return f"Page {self.index} ({self.image_format.value}, {len(self.content)} bytes)"


@dataclass(frozen=True)
class SkippedPage:
    """A page whose bytes were not a recognized image"""
    index: int
    reason: InvalidPayload


@dataclass
class AcquisitionSession:
    """State of one book download, owned by the acquisition loop"""
    identity: BookIdentity
    page_index: int = 1
    consecutive_empty: int = 0
    pages: List[AcquiredPage] = field(default_factory=list)
    skipped: List[SkippedPage] = field(default_factory=list)
    stop_reason: Optional[StopReason] = None
    failure: Optional[ExhaustedRetries] = None

    @property
    def running(self) -> bool:
        return self.stop_reason is None

    @property
    def page_indices(self) -> List[int]:
        return [page.index for page in self.pages]

    @property
    def skipped_indices(self) -> List[int]:
        return [page.index for page in self.skipped]

    @property
    def complete(self) -> bool:
        """True when the book ended normally rather than on a failed page"""
        return self.stop_reason is StopReason.END_OF_DOCUMENT

    def __str__(self):
        state = self.stop_reason.value if self.stop_reason else "running"
        return (
            f"{self.identity}: {len(self.pages)} pages, "
            f"{len(self.skipped)} skipped ({state})"
        )
