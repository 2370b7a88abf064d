"""
Test the page acquisition loop
"""
import random

import pytest

from conftest import make_image
from elib2pdf.core.acquisition import PageAcquirer
from elib2pdf.core.errors import ExhaustedRetries, SetupError
from elib2pdf.core.models import BookIdentity, FetchOutcome, ImageFormat, StopReason

IDENTITY = BookIdentity(book_id="1", book_name="book")
PNG = make_image("PNG")
JPEG = make_image("JPEG")
INVALID = b"<html>error</html>"


def _failure(page: int) -> FetchOutcome:
    return FetchOutcome.failure(ExhaustedRetries(page=page, attempts=3, last_error=None))


class _ScriptedFetcher:
    """Hand out outcomes in order and remember which pages were asked for"""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requested = []

    def fetch(self, page):
        self.requested.append(page)
        if not self.outcomes:
            raise AssertionError(f"Fetched past the end of the script (page {page})")
        return self.outcomes.pop(0)


def _run(outcomes, threshold=3):
    fetcher = _ScriptedFetcher(outcomes)
    progress = []
    session = PageAcquirer(fetcher, empty_threshold=threshold).run(IDENTITY, on_progress=progress.append)
    return session, fetcher, progress


class TestPageAcquirer:
    """Test PageAcquirer class"""

    def test_two_pages_then_end(self):
        """Valid PNG and JPEG followed by three empty responses"""
        session, fetcher, progress = _run([
            FetchOutcome.data(PNG),
            FetchOutcome.data(JPEG),
            FetchOutcome.empty(),
            FetchOutcome.empty(),
            FetchOutcome.empty(),
        ])

        assert session.page_indices == [1, 2]
        assert [page.image_format for page in session.pages] == [ImageFormat.PNG, ImageFormat.JPEG]
        assert session.stop_reason is StopReason.END_OF_DOCUMENT
        assert progress == [1, 2]
        # empty responses re-request the same page
        assert fetcher.requested == [1, 2, 3, 3, 3]

    def test_invalid_page_is_skipped(self):
        """Invalid bytes advance the page and reset the empty counter"""
        session, fetcher, progress = _run([
            FetchOutcome.data(INVALID),
            FetchOutcome.data(PNG),
            FetchOutcome.empty(),
            FetchOutcome.empty(),
            FetchOutcome.empty(),
        ])

        assert session.skipped_indices == [1]
        assert session.skipped[0].reason.size == len(INVALID)
        assert session.page_indices == [2]
        assert progress == [2]
        assert session.stop_reason is StopReason.END_OF_DOCUMENT

    def test_failure_on_first_page(self):
        """Exhausted retries stop the loop with nothing acquired"""
        session, fetcher, progress = _run([_failure(1)])

        assert session.pages == []
        assert session.stop_reason is StopReason.FETCH_FAILED
        assert session.failure.page == 1
        assert fetcher.requested == [1]
        assert progress == []

    def test_failure_keeps_earlier_pages(self):
        session, fetcher, progress = _run([
            FetchOutcome.data(PNG),
            FetchOutcome.data(PNG),
            _failure(3),
        ])

        assert session.page_indices == [1, 2]
        assert session.stop_reason is StopReason.FETCH_FAILED
        assert session.page_index == 3
        assert not session.complete

    def test_spurious_empty_retries_same_page(self):
        """A single empty response mid-book does not lose the page"""
        session, fetcher, progress = _run([
            FetchOutcome.data(PNG),
            FetchOutcome.empty(),
            FetchOutcome.data(PNG),
            FetchOutcome.empty(),
            FetchOutcome.empty(),
            FetchOutcome.empty(),
        ])

        assert session.page_indices == [1, 2]
        assert fetcher.requested == [1, 2, 2, 3, 3, 3]
        assert session.stop_reason is StopReason.END_OF_DOCUMENT

    def test_counter_reset_after_data(self):
        """Two empties, data, then two empties must not stop the loop"""
        session, fetcher, progress = _run([
            FetchOutcome.empty(),
            FetchOutcome.empty(),
            FetchOutcome.data(PNG),
            FetchOutcome.empty(),
            FetchOutcome.empty(),
            FetchOutcome.data(INVALID),
            FetchOutcome.empty(),
            FetchOutcome.empty(),
            FetchOutcome.empty(),
        ])

        assert session.page_indices == [1]
        assert session.skipped_indices == [2]
        assert len(fetcher.outcomes) == 0
        assert session.consecutive_empty == 3

    def test_custom_threshold(self):
        session, fetcher, progress = _run([FetchOutcome.empty()], threshold=1)
        assert session.stop_reason is StopReason.END_OF_DOCUMENT
        assert session.pages == []

    def test_setup_error_before_fetching(self):
        fetcher = _ScriptedFetcher([])
        with pytest.raises(SetupError):
            PageAcquirer(fetcher).run(BookIdentity(book_id="1", book_name=""))
        assert fetcher.requested == []

    def test_without_progress_callback(self):
        fetcher = _ScriptedFetcher([FetchOutcome.data(PNG)] + [FetchOutcome.empty()] * 3)
        session = PageAcquirer(fetcher).run(IDENTITY)
        assert session.page_indices == [1]

    @pytest.mark.parametrize("seed", range(20))
    def test_random_sequences_keep_order(self, seed):
        """Acquired pages are exactly the valid data pages, in order"""
        rng = random.Random(seed)
        outcomes = []
        for _ in range(rng.randint(0, 30)):
            outcomes.append(rng.choice([
                FetchOutcome.data(PNG),
                FetchOutcome.data(JPEG),
                FetchOutcome.data(INVALID),
                FetchOutcome.empty(),
            ]))
        outcomes += [FetchOutcome.empty()] * 3

        fetcher = _ScriptedFetcher(outcomes)
        progress = []
        session = PageAcquirer(fetcher).run(IDENTITY, on_progress=progress.append)

        expected_valid = []
        expected_skipped = []
        page = 1
        empties = 0
        for outcome in outcomes:
            if outcome.is_empty:
                empties += 1
                if empties == 3:
                    break
                continue
            empties = 0
            if outcome.content == INVALID:
                expected_skipped.append(page)
            else:
                expected_valid.append(page)
            page += 1

        assert session.page_indices == expected_valid
        assert session.skipped_indices == expected_skipped
        assert progress == expected_valid
        assert session.page_indices == sorted(set(session.page_indices))
        assert session.stop_reason is StopReason.END_OF_DOCUMENT
