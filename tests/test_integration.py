"""
Integration tests
"""
from io import BytesIO
from pathlib import Path

import pytest
import requests
from pypdf import PdfReader

from conftest import FakeResponse, FakeSession, RecordingSleep, make_image
from elib2pdf import BookDownloader, BookIdentity, DownloadSettings, StopReason
from elib2pdf.core.errors import SetupError

PNG = make_image("PNG")
JPEG = make_image("JPEG")
IDENTITY = BookIdentity(book_id="123", book_name="book_abc", title="Test Book")


def _downloader(script, **kwargs):
    session = FakeSession(script)
    downloader = BookDownloader(
        settings=DownloadSettings(politeness_delay=0.1),
        session=session,
        sleep=RecordingSleep(),
        **kwargs,
    )
    return downloader, session


def _page_count(pdf: bytes) -> int:
    return len(PdfReader(BytesIO(pdf)).pages)


class TestBookDownloader:
    """Test BookDownloader end to end over a fake HTTP session"""

    def test_initialization_overrides(self):
        downloader = BookDownloader(settings=DownloadSettings(), retry_delay=2.0, max_retries=4)
        assert downloader.settings.retry_delay == 2.0
        assert downloader.settings.max_retries == 4
        assert downloader.settings.timeout == 30.0

    def test_complete_book(self):
        downloader, session = _downloader([
            FakeResponse(content=PNG),
            FakeResponse(content=JPEG),
            FakeResponse(content=b""),
            FakeResponse(content=b""),
            FakeResponse(content=b""),
        ])
        progress = []

        result = downloader.download(IDENTITY, on_progress=progress.append)

        assert result.complete
        assert result.session.stop_reason is StopReason.END_OF_DOCUMENT
        assert result.session.page_indices == [1, 2]
        assert progress == [1, 2]
        assert _page_count(result.pdf) == 2
        assert result.filename == "Test Book.pdf"
        assert [call["params"]["page"] for call in session.calls] == [1, 2, 3, 3, 3]

    def test_invalid_page_skipped(self):
        downloader, session = _downloader([
            FakeResponse(content=b"<html>Server error</html>"),
            FakeResponse(content=PNG),
            FakeResponse(content=b""),
            FakeResponse(content=b""),
            FakeResponse(content=b""),
        ])

        result = downloader.download(IDENTITY)

        assert result.session.skipped_indices == [1]
        assert result.session.page_indices == [2]
        assert _page_count(result.pdf) == 1

    def test_first_page_fails(self):
        """Exhausted retries still produce an (empty) PDF"""
        downloader, session = _downloader([
            requests.Timeout("slow"),
            requests.Timeout("slow"),
            requests.Timeout("slow"),
        ])

        result = downloader.download(IDENTITY)

        assert not result.complete
        assert result.session.stop_reason is StopReason.FETCH_FAILED
        assert result.page_count == 0
        assert _page_count(result.pdf) == 0
        assert len(session.calls) == 3

    def test_transient_errors_recovered(self):
        downloader, session = _downloader([
            FakeResponse(status_code=502),
            FakeResponse(content=PNG),
            FakeResponse(content=b""),
            requests.ConnectionError("reset"),
            FakeResponse(content=JPEG),
            FakeResponse(content=b""),
            FakeResponse(content=b""),
            FakeResponse(content=b""),
        ])

        result = downloader.download(IDENTITY)

        assert result.session.page_indices == [1, 2]
        assert result.complete
        assert downloader.sleep.delays.count(downloader.settings.retry_delay) == 2

    def test_setup_error(self):
        downloader, session = _downloader([])
        with pytest.raises(SetupError):
            downloader.download(BookIdentity(book_id="", book_name="x"))
        assert session.calls == []

    def test_download_url(self):
        catalog = "http://elibrary.asu.ru/xmlui/handle/asu/1"
        reader = "http://elibrary.asu.ru/xmlui/bitstream/handle/asu/1/read.7book"
        downloader, session = _downloader([
            FakeResponse(content=PNG),
            FakeResponse(content=b""),
            FakeResponse(content=b""),
            FakeResponse(content=b""),
        ])
        session.routes = {
            catalog: FakeResponse(text='<div class="item-summary-view-metadata"><h2>Book</h2></div>'),
            reader: FakeResponse(text='<frame src="/els/files/book?id=9&name=nine">'),
        }

        result = downloader.download_url(catalog)

        assert result.filename == "Book.pdf"
        assert result.session.identity.book_id == "9"
        assert result.session.page_indices == [1]

    def test_save(self, tmp_path: Path):
        downloader, session = _downloader([FakeResponse(content=b"")] * 3)
        result = downloader.download(IDENTITY)

        output = downloader.save(result, str(tmp_path / "books"))

        assert output == tmp_path / "books" / "Test Book.pdf"
        assert output.read_bytes() == result.pdf
