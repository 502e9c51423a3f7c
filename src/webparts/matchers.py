"""
=============================================================================
ROUTE MATCHERS
=============================================================================

Handlers that look at the request and either pass the context through
unchanged (Matched) or reject it (NoMatch). They never write a response
themselves; they guard the handler that does:

    GET >> path("/users") >> ok("...")
    ─┬─    ──────┬──────     ────┬────
     │           │               └── writes the response
     │           └────────────────── rejects any other path
     └────────────────────────────── rejects any other method

=============================================================================
TYPED PATH SCANNING
=============================================================================

``url_scan`` parses the path with a printf-like format and calls a
handler factory with the typed captures:

    url_scan("/items/%d", lambda item_id: ok(f"item {item_id}"))

    Format:   /items/%d
    Regex:    ^/items/([+-]?\\d+)$
    Path:     /items/42   → handler(42)
              /items/abc  → NoMatch (routing moves on)

    ┌───────────┬──────────────────────────┬──────────────┐
    │ Directive │ Matches                  │ Python value │
    ├───────────┼──────────────────────────┼──────────────┤
    │  %d  %i   │ signed decimal integer   │ int          │
    │  %u       │ unsigned decimal integer │ int          │
    │  %x       │ hexadecimal integer      │ int          │
    │  %f       │ decimal / exponent float │ float        │
    │  %b       │ true / false             │ bool         │
    │  %c       │ one character            │ str          │
    │  %s       │ one or more characters   │ str          │
    │  %%       │ a literal %              │ (no capture) │
    └───────────┴──────────────────────────┴──────────────┘

The format is compiled once when the route table is built, not per
request.

=============================================================================
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, List, Tuple, Union

from .combinators import Matched, NoMatch, RouteResult, WebPart
from .http.context import HttpContext


# =============================================================================
# METHOD MATCHERS
# =============================================================================

def method(name: str) -> WebPart:
    """Match only requests whose method equals ``name``."""
    wanted = name.upper()

    def matcher(ctx: HttpContext) -> RouteResult:
        return Matched(ctx) if ctx.request.method == wanted else NoMatch
    return WebPart(matcher, name=wanted)


GET = method("GET")
POST = method("POST")
PUT = method("PUT")
DELETE = method("DELETE")
HEAD = method("HEAD")
CONNECT = method("CONNECT")
PATCH = method("PATCH")
TRACE = method("TRACE")
OPTIONS = method("OPTIONS")


# =============================================================================
# PATH MATCHERS
# =============================================================================

def url(expected: str) -> WebPart:
    """Exact path equality (query string excluded)."""
    def matcher(ctx: HttpContext) -> RouteResult:
        return Matched(ctx) if ctx.request.path == expected else NoMatch
    return WebPart(matcher, name=f"url({expected})")


path = url


def path_starts(prefix: str) -> WebPart:
    def matcher(ctx: HttpContext) -> RouteResult:
        return Matched(ctx) if ctx.request.path.startswith(prefix) else NoMatch
    return WebPart(matcher, name=f"path_starts({prefix})")


def url_regex(pattern: Union[str, "re.Pattern[str]"]) -> WebPart:
    """
    Match if ``pattern`` is found anywhere in the path.

    Anchor it (``^...$``) for a full match.
    """
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern

    def matcher(ctx: HttpContext) -> RouteResult:
        return Matched(ctx) if compiled.search(ctx.request.path) else NoMatch
    return WebPart(matcher, name=f"url_regex({compiled.pattern})")


path_regex = url_regex


# -----------------------------------------------------------------------------
# Scan formats
# -----------------------------------------------------------------------------

def _to_bool(text: str) -> bool:
    return text.lower() == "true"


_SCAN_DIRECTIVES = {
    "d": (r"[+-]?\d+", int),
    "i": (r"[+-]?\d+", int),
    "u": (r"\d+", int),
    "x": (r"[0-9a-fA-F]+", lambda text: int(text, 16)),
    "f": (r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", float),
    "b": (r"(?i:true|false)", _to_bool),
    "c": (r".", str),
    "s": (r".+?", str),
}


def compile_scan_format(
    fmt: str, ignore_case: bool = False,
) -> Tuple["re.Pattern[str]", List[Callable[[str], Any]]]:
    """
    Compile a scan format into an anchored regex plus one converter per
    capture group.

    Raises:
        ValueError: on an unknown directive or a trailing lone ``%``.
    """
    regex_parts = ["^"]
    converters: List[Callable[[str], Any]] = []
    i = 0
    while i < len(fmt):
        char = fmt[i]
        if char != "%":
            regex_parts.append(re.escape(char))
            i += 1
            continue

        if i + 1 >= len(fmt):
            raise ValueError(f"Scan format ends with a lone '%': {fmt!r}")
        directive = fmt[i + 1]
        i += 2

        if directive == "%":
            regex_parts.append("%")
            continue
        if directive not in _SCAN_DIRECTIVES:
            raise ValueError(f"Unknown scan directive '%{directive}' in {fmt!r}")

        pattern, converter = _SCAN_DIRECTIVES[directive]
        regex_parts.append(f"({pattern})")
        converters.append(converter)

    regex_parts.append("$")
    flags = re.DOTALL | (re.IGNORECASE if ignore_case else 0)
    return re.compile("".join(regex_parts), flags), converters


def _scan(fmt: str, handler: Callable[..., Any], ignore_case: bool) -> WebPart:
    pattern, converters = compile_scan_format(fmt, ignore_case)

    def matcher(ctx: HttpContext) -> RouteResult:
        match = pattern.match(ctx.request.path)
        if not match:
            return NoMatch
        try:
            values = [convert(raw) for convert, raw in zip(converters, match.groups())]
        except ValueError:
            return NoMatch
        return handler(*values)(ctx)

    return WebPart(matcher, name=f"url_scan({fmt})")


def url_scan(fmt: str, handler: Callable[..., Any]) -> WebPart:
    """
    Parse the path with ``fmt`` and dispatch to ``handler(*captures)``.

    ``handler`` receives the typed captures and returns the handler that
    is then run against the context. A path that doesn't fit the format
    is NoMatch, never an error.
    """
    return _scan(fmt, handler, ignore_case=False)


def url_scan_ci(fmt: str, handler: Callable[..., Any]) -> WebPart:
    """Case-insensitive ``url_scan``."""
    return _scan(fmt, handler, ignore_case=True)


path_scan = url_scan


# =============================================================================
# PROTOCOL / HOST MATCHERS
# =============================================================================

def _is_secure(ctx: HttpContext) -> RouteResult:
    return Matched(ctx) if ctx.request.is_secure else NoMatch


is_secure = WebPart(_is_secure, name="is_secure")


def host(name: str) -> WebPart:
    """Match the Host header (port ignored, case-insensitive)."""
    wanted = name.lower()

    def matcher(ctx: HttpContext) -> RouteResult:
        actual = ctx.request.host.lower().rsplit(":", 1)[0] if ctx.request.host else ""
        return Matched(ctx) if actual == wanted else NoMatch
    return WebPart(matcher, name=f"host({name})")


# =============================================================================
# LOGGING
# =============================================================================

def _content_length(ctx: HttpContext) -> int:
    declared = ctx.response.get_header("Content-Length")
    return int(declared) if declared is not None else len(ctx.response.body)


def log_format(ctx: HttpContext) -> str:
    """
    Common Log Format line for a context:

        127.0.0.1 - alice [15/Jan/2026:12:30:45 +0000] "GET /users HTTP/1.1" 200 27
    """
    request = ctx.request
    user = ctx.user_state.get("user_name") or "-"
    timestamp = datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S %z")
    length = _content_length(ctx)
    return (
        f'{request.client_address[0] or "-"} - {user} [{timestamp}] '
        f'"{request.method} {request.url} {request.version}" '
        f'{int(ctx.response.status)} {length}'
    )


def log_format_json(ctx: HttpContext) -> str:
    """The same fields as ``log_format``, as one JSON object."""
    request = ctx.request
    return json.dumps({
        "client_ip": request.client_address[0],
        "user": ctx.user_state.get("user_name"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "method": request.method,
        "path": request.path,
        "query": request.raw_query,
        "version": request.version,
        "status_code": int(ctx.response.status),
        "content_length": _content_length(ctx),
        "user_agent": request.user_agent,
    })


def log(
    logger: Union[logging.Logger, Callable[[str], Any]],
    formatter: Callable[[HttpContext], str] = log_format,
    level: int = logging.INFO,
) -> WebPart:
    """
    Always match; format the context and hand the line to ``logger``.

    ``logger`` may be a ``logging.Logger`` or any callable taking a
    string. The context passes through untouched.
    """
    if isinstance(logger, logging.Logger):
        def emit(line: str) -> None:
            logger.log(level, line)
    else:
        emit = logger

    def matcher(ctx: HttpContext) -> RouteResult:
        emit(formatter(ctx))
        return Matched(ctx)
    return WebPart(matcher, name="log")
