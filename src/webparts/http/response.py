"""
=============================================================================
RESPONSE WRITER
=============================================================================

The single choke-point through which every response is produced, plus
the small "writers" that update one field of the response.

    respond_with(status, producer)      status + async body producer
    respond_with_bytes(status, data)    status + in-memory body + length

    set_header / add_header             response headers
    set_cookie / unset_cookie           Set-Cookie entries
    set_mime_type                       Content-Type
    set_status                          status only, body untouched
    set_user_data / unset_user_data     per-request state

Each writer returns a WebPart that always matches, so they chain with
``>>``:

    set_header("X-Frame-Options", "DENY") >> set_mime_type("text/html") >> ok(html)

When two writers touch the same header the later one wins.

=============================================================================
SERIALIZATION
=============================================================================

``render_head`` turns a context into the status line and header block
the transport writes before executing the deferred body:

    HTTP/1.1 200 OK\r\n
    Content-Type: text/html\r\n
    Content-Length: 27\r\n
    Date: Wed, 01 Jan 2026 12:00:00 GMT\r\n
    Server: webparts/1.0\r\n
    \r\n

=============================================================================
"""

from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Union

from ..combinators import Matched, RouteResult, WebPart
from .context import (
    BytesContent, Content, HttpContext, HttpCookie, NullContent,
    StreamContent, StreamWriterFn,
)
from .status_codes import HttpCode


# =============================================================================
# RESPONSE WRITER
# =============================================================================

BodyProducer = Union[StreamWriterFn, Content, bytes]


def _as_content(status: HttpCode, producer: BodyProducer) -> Content:
    if not status.allows_body:
        return NullContent()
    if isinstance(producer, Content):
        return producer
    if isinstance(producer, (bytes, bytearray)):
        return BytesContent(bytes(producer))
    return StreamContent(producer)


def respond_with(status: HttpCode, producer: BodyProducer) -> WebPart:
    """
    Set the status and queue the body producer as the deferred write.

    Nothing is produced here: ``producer`` (an ``async (ctx, stream)``
    callable) runs only when the transport executes the response.
    1xx, 204 and 304 responses drop the body entirely.
    """
    def respond(ctx: HttpContext) -> RouteResult:
        return Matched(ctx.with_response(
            status=status, content=_as_content(status, producer),
        ))
    return WebPart(respond, name=f"respond_with({int(status)})")


def respond_with_bytes(status: HttpCode, data: bytes) -> WebPart:
    """``respond_with`` for an in-memory body; also sets Content-Length."""
    def respond(ctx: HttpContext) -> RouteResult:
        if not status.allows_body:
            return Matched(ctx.with_response(status=status, content=NullContent()))
        headers = _replace_header(ctx.response.headers, "Content-Length", str(len(data)))
        return Matched(ctx.with_response(
            status=status, headers=headers, content=BytesContent(bytes(data)),
        ))
    return WebPart(respond, name=f"respond_with_bytes({int(status)})")


# =============================================================================
# WRITERS
# =============================================================================

def _replace_header(headers: tuple, name: str, value: str) -> tuple:
    lowered = name.lower()
    kept = tuple((k, v) for k, v in headers if k.lower() != lowered)
    return kept + ((name, value),)


def set_header(name: str, value: str) -> WebPart:
    """Set a header, replacing any earlier value for the same name."""
    def writer(ctx: HttpContext) -> RouteResult:
        return Matched(ctx.with_response(
            headers=_replace_header(ctx.response.headers, name, value),
        ))
    return WebPart(writer, name=f"set_header({name})")


def add_header(name: str, value: str) -> WebPart:
    """Append a header, keeping earlier values (e.g. multiple Link headers)."""
    def writer(ctx: HttpContext) -> RouteResult:
        return Matched(ctx.with_response(
            headers=ctx.response.headers + ((name, value),),
        ))
    return WebPart(writer, name=f"add_header({name})")


def set_cookie(cookie: HttpCookie) -> WebPart:
    """Attach a cookie; a later cookie with the same name replaces it."""
    def writer(ctx: HttpContext) -> RouteResult:
        cookies = dict(ctx.response.cookies)
        cookies[cookie.name] = cookie
        return Matched(ctx.with_response(cookies=MappingProxyType(cookies)))
    return WebPart(writer, name=f"set_cookie({cookie.name})")


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def unset_cookie(name: str, path: str = "/") -> WebPart:
    """Tell the client to drop a cookie (empty value, expired in 1970)."""
    return set_cookie(HttpCookie(name=name, value="", path=path, expires=_EPOCH, max_age=0))


def set_mime_type(mime_type: str) -> WebPart:
    return set_header("Content-Type", mime_type)


def set_status(status: HttpCode) -> WebPart:
    def writer(ctx: HttpContext) -> RouteResult:
        content = ctx.response.content if status.allows_body else NullContent()
        return Matched(ctx.with_response(status=status, content=content))
    return WebPart(writer, name=f"set_status({int(status)})")


def set_user_data(key: str, value: Any) -> WebPart:
    def writer(ctx: HttpContext) -> RouteResult:
        return Matched(ctx.with_user_state(key, value))
    return WebPart(writer, name=f"set_user_data({key})")


def unset_user_data(key: str) -> WebPart:
    def writer(ctx: HttpContext) -> RouteResult:
        return Matched(ctx.without_user_state(key))
    return WebPart(writer, name=f"unset_user_data({key})")


# =============================================================================
# SERIALIZATION
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 01 Jan 2026 12:00:00 GMT
    """
    dt = dt.astimezone(timezone.utc) if dt.tzinfo else dt
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def render_head(ctx: HttpContext, version: str = "HTTP/1.1") -> bytes:
    """
    Status line plus header block, terminated by the blank line.

    Adds Date and Server if missing. Content-Length is added for
    in-memory bodies; streamed bodies are written until the connection
    closes unless the producer set a length itself.
    """
    result = ctx.response
    headers = list(result.headers)
    present = {name.lower() for name, _ in headers}

    if isinstance(result.content, BytesContent) and "content-length" not in present:
        headers.append(("Content-Length", str(len(result.content.data))))
    elif isinstance(result.content, NullContent) and result.status.allows_body \
            and "content-length" not in present:
        headers.append(("Content-Length", "0"))

    if "date" not in present:
        headers.append(("Date", format_http_date(datetime.now(timezone.utc))))
    if "server" not in present:
        headers.append(("Server", ctx.runtime.server_name))

    for cookie in result.cookies.values():
        headers.append(("Set-Cookie", cookie.to_header()))

    lines = [f"{version} {int(result.status)} {result.status.reason}"]
    lines.extend(f"{name}: {value}" for name, value in headers)
    lines.append("")
    return ("\r\n".join(lines) + "\r\n").encode("latin-1")
