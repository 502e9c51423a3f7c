"""
=============================================================================
REQUEST CONTEXT
=============================================================================

The value threaded through every handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          HttpContext                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   request     HttpRequest   what the client sent                    │
    │   runtime     HttpRuntime   server-wide settings (root dir, MIME)   │
    │   response    HttpResult    the response built so far               │
    │   user_state  Mapping       per-request values set by handlers      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every dataclass here is frozen. A handler never modifies a context; it
returns ``Matched(ctx.with_response(...))`` and the old value is left
untouched, so a handler that ends up not matching cannot leak changes
into the next candidate.

The response body is a *deferred write*: ``HttpResult.content`` describes
what to send, and nothing is written until the transport executes it.

=============================================================================
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import (
    Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Tuple,
)

from .mime_types import MimeTypesMap, default_mime_types_map
from .status_codes import HttpCode


def _empty_mapping() -> Mapping:
    return MappingProxyType({})


# =============================================================================
# REQUEST
# =============================================================================

@dataclass(frozen=True)
class HttpRequest:
    """
    An inbound request, already parsed by the transport.

    Header names are stored lowercase; lookups through ``get_header`` are
    case-insensitive.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Mapping[str, str] = field(default_factory=_empty_mapping)
    query_params: Mapping[str, list] = field(default_factory=_empty_mapping)
    form: Mapping[str, list] = field(default_factory=_empty_mapping)
    body: bytes = b""
    client_address: Tuple[str, int] = ("", 0)
    is_secure: bool = False
    raw_query: str = ""

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def content_type(self) -> Optional[str]:
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def is_keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps the connection unless told ``Connection: close``;
        HTTP/1.0 closes unless told ``Connection: keep-alive``.
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    @property
    def url(self) -> str:
        return f"{self.path}?{self.raw_query}" if self.raw_query else self.path

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_form(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self.form.get(name, [])
        return values[0] if values else default


# =============================================================================
# COOKIES
# =============================================================================

@dataclass(frozen=True)
class HttpCookie:
    """A Set-Cookie entry."""

    name: str
    value: str
    path: Optional[str] = "/"
    domain: Optional[str] = None
    expires: Optional[datetime] = None
    max_age: Optional[int] = None
    secure: bool = False
    http_only: bool = False
    same_site: Optional[str] = None

    def to_header(self) -> str:
        """
        Render the Set-Cookie header value.

            session=abc; Path=/; HttpOnly
        """
        from .response import format_http_date

        parts = [f"{self.name}={self.value}"]
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.expires is not None:
            parts.append(f"Expires={format_http_date(self.expires)}")
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.secure:
            parts.append("Secure")
        if self.http_only:
            parts.append("HttpOnly")
        if self.same_site:
            parts.append(f"SameSite={self.same_site}")
        return "; ".join(parts)


# =============================================================================
# RESPONSE CONTENT (THE DEFERRED WRITE)
# =============================================================================

class ResponseStream(Protocol):
    """
    Where a deferred write sends its bytes.

    ``asyncio.StreamWriter`` satisfies this protocol.
    """

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


class Content:
    """Base class for response bodies."""


@dataclass(frozen=True)
class NullContent(Content):
    """No body at all."""


@dataclass(frozen=True)
class BytesContent(Content):
    """A body that is already fully in memory."""

    data: bytes


# (ctx, stream) -> awaitable; called by the transport after the headers
StreamWriterFn = Callable[["HttpContext", ResponseStream], Awaitable[None]]


@dataclass(frozen=True)
class StreamContent(Content):
    """
    A body produced later by an async writer.

    Used for file bodies: the file is opened and read when the transport
    runs the writer, never during routing.
    """

    writer: StreamWriterFn


# =============================================================================
# RESPONSE
# =============================================================================

@dataclass(frozen=True)
class HttpResult:
    """
    The response built so far.

    ``headers`` is an ordered tuple of (name, value) pairs so that
    multi-valued headers can be appended; ``set_header`` replaces every
    existing entry with the same (case-insensitive) name.
    """

    status: HttpCode = HttpCode.NOT_FOUND
    headers: Tuple[Tuple[str, str], ...] = ()
    cookies: Mapping[str, HttpCookie] = field(default_factory=_empty_mapping)
    content: Content = NullContent()

    def get_header(self, name: str) -> Optional[str]:
        """Value of the last header with this name, or None."""
        lowered = name.lower()
        found = None
        for key, value in self.headers:
            if key.lower() == lowered:
                found = value
        return found

    def get_headers(self, name: str) -> list:
        lowered = name.lower()
        return [value for key, value in self.headers if key.lower() == lowered]

    @property
    def body(self) -> bytes:
        """In-memory body bytes (empty for streamed or null content)."""
        if isinstance(self.content, BytesContent):
            return self.content.data
        return b""


# =============================================================================
# RUNTIME
# =============================================================================

@dataclass(frozen=True)
class HttpRuntime:
    """
    Server-wide settings every handler can read.

    Built once from ``ServerConfig.to_runtime()``; shared read-only by
    every request.
    """

    home_directory: Path = field(default_factory=Path.cwd)
    mime_types_map: MimeTypesMap = default_mime_types_map
    compression: bool = True
    compression_min_size: int = 1024
    index_file: str = "index.html"
    server_name: str = "webparts/1.0"
    auth_realm: str = "Restricted"


# =============================================================================
# CONTEXT
# =============================================================================

@dataclass(frozen=True)
class HttpContext:
    """One request's request/response pair plus shared runtime."""

    request: HttpRequest
    runtime: HttpRuntime = field(default_factory=HttpRuntime)
    response: HttpResult = field(default_factory=HttpResult)
    user_state: Mapping[str, Any] = field(default_factory=_empty_mapping)

    def with_request(self, request: HttpRequest) -> "HttpContext":
        return replace(self, request=request)

    def with_response(self, **changes: Any) -> "HttpContext":
        """Copy with selected HttpResult fields replaced."""
        return replace(self, response=replace(self.response, **changes))

    def with_user_state(self, key: str, value: Any) -> "HttpContext":
        state: Dict[str, Any] = dict(self.user_state)
        state[key] = value
        return replace(self, user_state=MappingProxyType(state))

    def without_user_state(self, key: str) -> "HttpContext":
        state = {k: v for k, v in self.user_state.items() if k != key}
        return replace(self, user_state=MappingProxyType(state))
