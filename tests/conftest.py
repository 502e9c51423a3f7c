"""
pytest configuration and fixtures.
"""

import asyncio
from types import MappingProxyType
from typing import Callable, Dict, List, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from webparts.http.context import HttpContext, HttpRequest, HttpRuntime


class FakeStream:
    """In-memory ResponseStream: collects everything written to it."""

    def __init__(self):
        self.chunks: List[bytes] = []
        self.drains = 0

    def write(self, data: bytes) -> None:
        self.chunks.append(bytes(data))

    async def drain(self) -> None:
        self.drains += 1

    @property
    def data(self) -> bytes:
        return b"".join(self.chunks)


def split_response(raw: bytes):
    """Split raw response bytes into (status line, headers dict, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers: Dict[str, str] = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return lines[0], headers, body


def make_request(
    method: str = "GET",
    path: str = "/",
    headers: Optional[Dict[str, str]] = None,
    query: Optional[Dict[str, list]] = None,
    form: Optional[Dict[str, list]] = None,
    body: bytes = b"",
    client_address=("127.0.0.1", 54321),
    is_secure: bool = False,
    raw_query: str = "",
) -> HttpRequest:
    return HttpRequest(
        method=method,
        path=path,
        headers=MappingProxyType({k.lower(): v for k, v in (headers or {}).items()}),
        query_params=MappingProxyType(query or {}),
        form=MappingProxyType(form or {}),
        body=body,
        client_address=client_address,
        is_secure=is_secure,
        raw_query=raw_query,
    )


@pytest.fixture
def runtime(tmp_path: Path) -> HttpRuntime:
    """Runtime rooted at an empty temporary web root."""
    return HttpRuntime(home_directory=tmp_path)


@pytest.fixture
def make_context(runtime: HttpRuntime) -> Callable[..., HttpContext]:
    """Factory: make_context(method="GET", path="/", headers={...}, ...)."""
    def factory(runtime_override: Optional[HttpRuntime] = None, **request_fields) -> HttpContext:
        return HttpContext(
            request=make_request(**request_fields),
            runtime=runtime_override or runtime,
        )
    return factory


@pytest.fixture
def ctx(make_context) -> HttpContext:
    """A plain GET / context."""
    return make_context()


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """
    A small site:

        index.html
        style.css       (large enough to compress)
        logo.png
        notes.unknownext
        docs/readme.txt
        empty/
    """
    (tmp_path / "index.html").write_text("<h1>Home</h1>")
    (tmp_path / "style.css").write_text("body { color: red; }\n" * 200)
    (tmp_path / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 2048)
    (tmp_path / "notes.unknownext").write_text("plain")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "readme.txt").write_text("read me")
    (tmp_path / "empty").mkdir()
    return tmp_path


@pytest.fixture
def run_write() -> Callable[[HttpContext], bytes]:
    """Execute a context's deferred body write and return the bytes."""
    from webparts.http.context import BytesContent, StreamContent

    def run(ctx: HttpContext) -> bytes:
        content = ctx.response.content
        if isinstance(content, BytesContent):
            return content.data
        if isinstance(content, StreamContent):
            stream = FakeStream()
            asyncio.run(content.writer(ctx, stream))
            return stream.data
        return b""
    return run


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_form_request() -> bytes:
    """Sample HTTP POST request with a urlencoded form body."""
    body = b"username=alice&password=s%3Dcret&remember="
    return (
        b"POST /login?next=/home HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body
