"""
Shared fakes and image fixtures
"""
from io import BytesIO

import pytest
import requests
from PIL import Image


def make_image(fmt: str = "PNG", size=(40, 60), color="white") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeResponse:
    def __init__(self, status_code: int = 200, content: bytes = b"", text: str = ""):
        self.status_code = status_code
        self.content = content or text.encode("utf-8")
        self.text = text
        self.closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start:start + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """Return scripted responses (or raise scripted exceptions) in order"""

    def __init__(self, script=None, routes=None):
        self.script = list(script or [])
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None, stream=False):
        self.calls.append(
            {"url": url, "params": params, "headers": headers, "timeout": timeout, "stream": stream}
        )
        if url in self.routes:
            item = self.routes[url]
        else:
            if not self.script:
                raise AssertionError(f"Unexpected request: {url} {params}")
            item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingSleep:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def png_bytes() -> bytes:
    return make_image("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image("JPEG", size=(60, 40), color="gray")


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def timeout_error() -> requests.Timeout:
    return requests.Timeout("read timed out")
