"""
End-of-book detection from consecutive empty responses
"""
from __future__ import annotations

DEFAULT_EMPTY_THRESHOLD = 3


class EndOfDocumentDetector:
    """
    Count consecutive empty page responses

    The viewer sometimes answers a single page with an empty body in the
    middle of a book, so the end is only declared after ``threshold``
    empty responses in a row.
    """

    def __init__(self, threshold: int = DEFAULT_EMPTY_THRESHOLD):
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self.count = 0

    def on_data(self) -> None:
        """Reset the counter; any page body counts, valid image or not"""
        self.count = 0

    def on_empty(self) -> bool:
        """Record an empty response and report whether the book has ended"""
        self.count += 1
        return self.reached

    @property
    def reached(self) -> bool:
        return self.count >= self.threshold

    def reset(self) -> None:
        self.count = 0
