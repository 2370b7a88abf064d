"""
Main downloader class for elib2pdf
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests

from .acquisition import PageAcquirer, ProgressCallback
from .assembler import DocumentAssembler
from .config import DownloadSettings
from .models import AcquisitionSession, BookIdentity
from .page_fetcher import PageFetcher
from .url_resolver import BookUrlResolver

log = logging.getLogger(__name__)


@dataclass
class DownloadResult:
    """Assembled PDF and the session that produced it"""
    pdf: bytes
    session: AcquisitionSession

    @property
    def filename(self) -> str:
        return self.session.identity.filename

    @property
    def page_count(self) -> int:
        return len(self.session.pages)

    @property
    def complete(self) -> bool:
        return self.session.complete

    def __str__(self):
        return f"{self.filename}: {self.page_count} pages, {len(self.pdf)} bytes"


class BookDownloader:
    """Download a book from the library viewer into a single PDF"""

    def __init__(
        self,
        settings: Optional[DownloadSettings] = None,
        session: Optional[requests.Session] = None,
        sleep: Optional[Callable[[float], None]] = None,
        logger: Optional[logging.Logger] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize downloader

        Args:
            settings: Base settings, read from the environment when omitted
            session: Shared HTTP session for all requests
            sleep: Delay function passed to page fetchers
            logger: Log sink for every pipeline stage
            max_retries: Attempts per page override
            retry_delay: Seconds between attempts override
            timeout: Seconds per attempt override
        """
        self.settings = (settings or DownloadSettings()).with_overrides(
            max_retries=max_retries,
            retry_delay=retry_delay,
            timeout=timeout,
        )
        self.session = session or requests.Session()
        self.sleep = sleep
        self.logger = logger
        self.log = logger or log

        self.resolver = BookUrlResolver(
            session=self.session,
            timeout=self.settings.timeout,
            logger=logger,
        )
        self.assembler = DocumentAssembler(
            page_size=self.settings.page_size,
            image_quality=self.settings.image_quality,
            logger=logger,
        )

    def create_fetcher(self, identity: BookIdentity) -> PageFetcher:
        kwargs = {}
        if self.sleep is not None:
            kwargs["sleep"] = self.sleep
        return PageFetcher(
            identity,
            settings=self.settings,
            session=self.session,
            logger=self.logger,
            **kwargs,
        )

    def download(
        self,
        identity: BookIdentity,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DownloadResult:
        """
        Download every page of a book and assemble the PDF

        A page that fails after all retries ends the download early; the
        pages fetched before it are still assembled. Check
        ``result.complete`` to tell the two apart.

        Args:
            identity: Book to download
            on_progress: Called with each successfully downloaded page number

        Returns:
            DownloadResult

        Raises:
            SetupError: If the identity has no id or name
        """
        identity.validate()
        self.log.info("Downloading %s", identity)

        acquirer = PageAcquirer(
            self.create_fetcher(identity),
            empty_threshold=self.settings.empty_threshold,
            logger=self.logger,
        )
        session = acquirer.run(identity, on_progress=on_progress)
        if session.failure is not None:
            self.log.warning(
                "Download of %s stopped early; delivering %d pages",
                identity,
                len(session.pages),
            )

        pdf = self.assembler.assemble(session.pages)
        return DownloadResult(pdf=pdf, session=session)

    def download_url(
        self,
        url: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DownloadResult:
        """Resolve a library link, then download the book"""
        identity = self.resolver.resolve(url)
        return self.download(identity, on_progress=on_progress)

    @staticmethod
    def save(result: DownloadResult, output_dir: str = ".") -> Path:
        """Write the PDF into output_dir and return its path"""
        directory = Path(output_dir).expanduser()
        directory.mkdir(parents=True, exist_ok=True)
        output = directory / result.filename
        output.write_bytes(result.pdf)
        return output
