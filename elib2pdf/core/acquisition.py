"""
Acquisition loop - walks the book page by page until it ends or a page fails
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from .end_detector import EndOfDocumentDetector
from .errors import InvalidPayload
from .image_validator import detect_image_format
from .models import AcquiredPage, AcquisitionSession, BookIdentity, SkippedPage, StopReason

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class PageAcquirer:
    """Drive a page fetcher over one book and collect the valid pages"""

    def __init__(
        self,
        fetcher,
        empty_threshold: int = 3,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize acquirer

        Args:
            fetcher: Object with ``fetch(page) -> FetchOutcome``
            empty_threshold: Consecutive empty responses that end the book
            logger: Log sink, defaults to the module logger
        """
        self.fetcher = fetcher
        self.empty_threshold = empty_threshold
        self.log = logger or log

    def run(
        self,
        identity: BookIdentity,
        on_progress: Optional[ProgressCallback] = None,
    ) -> AcquisitionSession:
        """
        Download pages until the end of the book or a failed page

        A failed page stops the loop but keeps everything acquired so far.
        An empty response does not advance the page number: the same page
        is requested again until a body arrives or the threshold is hit.

        Args:
            identity: Book being downloaded
            on_progress: Called with the page number of each valid page,
                in increasing order; must return quickly

        Returns:
            The finished AcquisitionSession
        """
        identity.validate()
        session = AcquisitionSession(identity=identity)
        detector = EndOfDocumentDetector(self.empty_threshold)

        while session.running:
            self.step(session, detector, on_progress)

        self.log.info(
            "Stopped at page %d (%s): %d pages, %d skipped",
            session.page_index,
            session.stop_reason.value,
            len(session.pages),
            len(session.skipped),
        )
        return session

    def step(
        self,
        session: AcquisitionSession,
        detector: EndOfDocumentDetector,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        """Fetch the current page once and fold the outcome into the session"""
        page = session.page_index
        outcome = self.fetcher.fetch(page)

        if outcome.is_failure:
            self.log.error("Failed to download page %d after all retries: %s", page, outcome.error)
            session.failure = outcome.error
            session.stop_reason = StopReason.FETCH_FAILED
            return

        if outcome.is_empty:
            if detector.on_empty():
                session.stop_reason = StopReason.END_OF_DOCUMENT
            session.consecutive_empty = detector.count
            return

        detector.on_data()
        session.consecutive_empty = detector.count

        image_format = detect_image_format(outcome.content)
        if image_format is None:
            reason = InvalidPayload(page, len(outcome.content))
            self.log.warning("%s, skipping", reason)
            session.skipped.append(SkippedPage(index=page, reason=reason))
        else:
            self.log.debug("Page %d is %s", page, image_format.value)
            session.pages.append(AcquiredPage(index=page, content=outcome.content, image_format=image_format))
            if on_progress is not None:
                on_progress(page)

        session.page_index += 1
