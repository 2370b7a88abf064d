"""
elib2pdf core - page acquisition and PDF assembly for the ASU electronic library

The pipeline fetches page images one by one, checks their signatures,
stops after several empty responses in a row, and assembles the valid
pages into a single compressed PDF.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .models import BookIdentity, AcquisitionSession, StopReason
from .downloader import BookDownloader, DownloadResult

__all__ = [
    "AcquisitionSession",
    "BookDownloader",
    "BookIdentity",
    "DownloadResult",
    "StopReason",
]
