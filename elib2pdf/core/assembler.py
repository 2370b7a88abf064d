"""
PDF assembly - one page image per PDF page, then a lossy size reduction
"""
from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional, Sequence, Tuple

import fitz  # PyMuPDF
from pypdf import PdfReader, PdfWriter

from .config import LETTER_SIZE
from .models import AcquiredPage

log = logging.getLogger(__name__)


class DocumentAssembler:
    """Build the output PDF from acquired pages"""

    def __init__(
        self,
        page_size: Tuple[float, float] = LETTER_SIZE,
        image_quality: int = 80,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize assembler

        Args:
            page_size: Output page width and height in points
            image_quality: JPEG quality used when re-encoding page images
            logger: Log sink, defaults to the module logger
        """
        self.page_size = page_size
        self.image_quality = image_quality
        self.log = logger or log

    def assemble(self, pages: Sequence[AcquiredPage]) -> bytes:
        """
        Compose the pages into a PDF and shrink it

        Args:
            pages: Acquired pages in book order; may be empty

        Returns:
            PDF bytes with exactly ``len(pages)`` pages
        """
        self.log.info("Creating PDF with %d pages...", len(pages))
        composed = self.compose(pages)
        reduced = self.reduce_size(composed)
        self.log.info("PDF size %d bytes, %d after reduction", len(composed), len(reduced))
        return reduced

    def compose(self, pages: Sequence[AcquiredPage]) -> bytes:
        if not pages:
            return self._empty_pdf()

        width, height = self.page_size
        document = fitz.open()
        try:
            for page in pages:
                pdf_page = document.new_page(width=width, height=height)
                # keep_proportion fits the image inside the page and centers it
                pdf_page.insert_image(pdf_page.rect, stream=page.content, keep_proportion=True)
                self.log.debug("Added page %d to PDF", page.index)
            return document.tobytes(garbage=3, deflate=True)
        finally:
            document.close()

    def reduce_size(self, pdf_bytes: bytes) -> bytes:
        """Re-encode embedded images at the configured quality"""
        writer = PdfWriter(clone_from=PdfReader(BytesIO(pdf_bytes)))
        for page in writer.pages:
            for image_file in page.images:
                image = image_file.image
                if image.mode not in {"RGB", "L"}:
                    image = image.convert("RGB")
                image_file.replace(image, quality=self.image_quality)
            page.compress_content_streams()

        buffer = BytesIO()
        writer.write(buffer)
        return buffer.getvalue()

    @staticmethod
    def _empty_pdf() -> bytes:
        # PyMuPDF refuses to save a document without pages
        buffer = BytesIO()
        PdfWriter().write(buffer)
        return buffer.getvalue()
