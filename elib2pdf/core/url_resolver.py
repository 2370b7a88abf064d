"""
Turn ASU electronic library links into a book id/name pair
"""
from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

import requests
from bs4 import BeautifulSoup

from .errors import ResolveError
from .models import BookIdentity

log = logging.getLogger(__name__)

LIBRARY_HOST = "elibrary.asu.ru"
CATALOG_PATH = "xmlui/handle/asu/"
BITSTREAM_PATH = "xmlui/bitstream/handle/asu/"
READER_FILE = "read.7book"
VIEWER_PATH = "/els/files/book"
TITLE_SELECTOR = ".item-summary-view-metadata h2"

VIEWER_LINK_PATTERN = re.compile(
    r"/els/files/book\?id=(?P<id>[^&\"']+)&(?:amp;)?name=(?P<name>[^\"'&]+)"
)


class BookUrlResolver:
    """
    Resolve a user supplied library link

    Accepted shapes:
        http://elibrary.asu.ru/xmlui/handle/asu/9770
        http://elibrary.asu.ru/xmlui/bitstream/handle/asu/9770/read.7book?sequence=1&isAllowed=y
        http://elibrary.asu.ru/els/files/book?id=...&name=...
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.log = logger or log

    @staticmethod
    def is_library_link(text: str) -> bool:
        return LIBRARY_HOST in (text or "")

    def resolve(self, url: str) -> BookIdentity:
        """
        Resolve a link into a BookIdentity

        Raises:
            ResolveError: If the link is not a library link, a page cannot be
                fetched, or the viewer frame cannot be found
        """
        value = (url or "").strip()
        try:
            if not self.is_library_link(value):
                raise ResolveError(f"not an {LIBRARY_HOST} link: {value!r}")
            identity = self._resolve(value)
        except (ResolveError, requests.RequestException) as exc:
            raise ResolveError(f"Failed to parse book URL: {exc}") from exc

        self.log.info("Resolved %s to id=%s name=%s", value, identity.book_id, identity.book_name)
        return identity

    def _resolve(self, url: str) -> BookIdentity:
        if VIEWER_PATH in url:
            return self.parse_viewer_url(url)

        if CATALOG_PATH in url and BITSTREAM_PATH not in url:
            catalog_url = url
            base = url.split("#", 1)[0].split("?", 1)[0]
            reader_url = base.replace(CATALOG_PATH, BITSTREAM_PATH).rstrip("/") + "/" + READER_FILE
        else:
            catalog_url = self.catalog_url_for(url)
            reader_url = url

        title = self.fetch_title(catalog_url)
        html = self._get_text(reader_url)
        match = VIEWER_LINK_PATTERN.search(html)
        if not match:
            raise ResolveError("Could not find book viewer URL in the page")

        return BookIdentity(
            book_id=match.group("id"),
            book_name=match.group("name"),
            title=title,
        )

    @staticmethod
    def catalog_url_for(reader_url: str) -> str:
        """Map a bitstream reader link back to its catalog page"""
        without_query = reader_url.split("?", 1)[0]
        swapped = without_query.replace(BITSTREAM_PATH, CATALOG_PATH)
        return "/".join(swapped.rstrip("/").split("/")[:-1])

    @staticmethod
    def parse_viewer_url(url: str, title: str = "") -> BookIdentity:
        params = parse_qs(urlparse(url).query)
        book_id = (params.get("id") or [""])[0]
        book_name = (params.get("name") or [""])[0]
        if not book_id or not book_name:
            raise ResolveError("Invalid book URL: missing id or name parameters")
        return BookIdentity(book_id=book_id, book_name=book_name, title=title)

    def fetch_title(self, catalog_url: str) -> str:
        html = self._get_text(catalog_url)
        soup = BeautifulSoup(html, "html.parser")
        element = soup.select_one(TITLE_SELECTOR)
        if element is None:
            self.log.warning("No title found on %s", catalog_url)
            return ""
        return element.get_text(strip=True)

    def _get_text(self, url: str) -> str:
        self.log.debug("GET %s", url)
        response = self.session.get(url, timeout=self.timeout)
        if not response.ok:
            raise ResolveError(f"Failed to fetch page {url}: {response.status_code}")
        return response.text
