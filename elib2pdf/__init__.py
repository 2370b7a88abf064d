"""
elib2pdf - Download books from the ASU electronic library as PDF

This is the main public API module.
"""

from .core.models import BookIdentity, StopReason
from .core.downloader import BookDownloader, DownloadResult
from .core.config import DownloadSettings

__version__ = "0.1.0"
__all__ = [
    "BookDownloader",
    "BookIdentity",
    "DownloadResult",
    "DownloadSettings",
    "StopReason",
]
