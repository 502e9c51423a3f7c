"""
=============================================================================
RESPONSE CATEGORY BUILDERS
=============================================================================

One-liners for every status in the registry, layered over
``respond_with_bytes``.

Each status has two entry points:

    ok(text)          UTF-8 encode the text, then ...
    ok_bytes(data)    ... send the bytes with Content-Length

Statuses that must not carry a body (1xx, 204, 304) take no argument
and always send an empty body.

A few builders attach one mandatory header before delegating:

    ┌────────────────────┬────────┬─────────────────────────────────────┐
    │  Builder           │ Status │ Header                              │
    ├────────────────────┼────────┼─────────────────────────────────────┤
    │  moved_permanently │  301   │ Location                            │
    │  found             │  302   │ Location                            │
    │  redirect          │  302   │ Location  (+ small HTML body)       │
    │  see_other         │  303   │ Location                            │
    │  temporary_redirect│  307   │ Location                            │
    │  challenge         │  401   │ WWW-Authenticate                    │
    │  method_not_allowed│  405   │ Allow     (when methods are given)  │
    └────────────────────┴────────┴─────────────────────────────────────┘

Usage:

    app = choose([
        GET >> path("/") >> ok("Hello"),
        GET >> path("/old") >> moved_permanently("/new"),
        not_found("Nothing here"),
    ])

=============================================================================
"""

import html
from typing import Callable, Dict, Iterable, Optional, Tuple

from .combinators import RouteResult, WebPart, compose
from .http.context import HttpContext
from .http.response import respond_with_bytes, set_header
from .http.status_codes import HttpCode


# =============================================================================
# TABLE-DRIVEN FACTORIES
# =============================================================================

def _bytes_builder(status: HttpCode) -> Callable[[bytes], WebPart]:
    def build(data: bytes = b"") -> WebPart:
        return respond_with_bytes(status, data)
    build.__name__ = f"{status.name.lower()}_bytes"
    build.__doc__ = f"{status.describe()} with a raw byte body."
    return build


def _text_builder(status: HttpCode) -> Callable[[str], WebPart]:
    def build(text: Optional[str] = None) -> WebPart:
        body = status.message if text is None else text
        return respond_with_bytes(status, body.encode("utf-8"))
    build.__name__ = status.name.lower()
    build.__doc__ = (
        f"{status.describe()} with a UTF-8 text body "
        f"(defaults to {status.message!r})."
    )
    return build


def _empty_builder(status: HttpCode) -> Callable[[], WebPart]:
    def build() -> WebPart:
        return respond_with_bytes(status, b"")
    build.__name__ = status.name.lower()
    build.__doc__ = f"{status.describe()}; never carries a body."
    return build


# Every status, keyed by code, as (text form, bytes form)
BUILDERS: Dict[HttpCode, Tuple[Callable[..., WebPart], Callable[..., WebPart]]] = {
    status: (
        (_text_builder(status), _bytes_builder(status))
        if status.allows_body
        else (_empty_builder(status), _empty_builder(status))
    )
    for status in HttpCode
}


def response(status: HttpCode, text: Optional[str] = None) -> WebPart:
    """Respond with any registered status and an optional text body."""
    if not status.allows_body:
        return BUILDERS[status][0]()
    return BUILDERS[status][0](text)


def response_bytes(status: HttpCode, data: bytes = b"") -> WebPart:
    if not status.allows_body:
        return BUILDERS[status][1]()
    return BUILDERS[status][1](data)


# =============================================================================
# 1xx INFORMATIONAL
# =============================================================================

continue_ = _empty_builder(HttpCode.CONTINUE)
switching_protocols = _empty_builder(HttpCode.SWITCHING_PROTOCOLS)


# =============================================================================
# 2xx SUCCESS
# =============================================================================

ok, ok_bytes = BUILDERS[HttpCode.OK]
created, created_bytes = BUILDERS[HttpCode.CREATED]
accepted, accepted_bytes = BUILDERS[HttpCode.ACCEPTED]
no_content = _empty_builder(HttpCode.NO_CONTENT)


# =============================================================================
# 3xx REDIRECTION
# =============================================================================

def _located(status: HttpCode) -> Callable[[str], WebPart]:
    def build(location: str) -> WebPart:
        return set_header("Location", location) >> respond_with_bytes(status, b"")
    build.__name__ = status.name.lower()
    build.__doc__ = f"{status.describe()} pointing at ``location``."
    return build


moved_permanently = _located(HttpCode.MOVED_PERMANENTLY)
found = _located(HttpCode.FOUND)
see_other = _located(HttpCode.SEE_OTHER)
use_proxy = _located(HttpCode.USE_PROXY)
temporary_redirect = _located(HttpCode.TEMPORARY_REDIRECT)
not_modified = _empty_builder(HttpCode.NOT_MODIFIED)


_REDIRECT_PAGE = """<html>
  <body>
    <a href="{url}">{message}</a>
  </body>
</html>
"""


def redirect(url: str) -> WebPart:
    """
    302 Found with Location, plus a tiny HTML page linking to the target
    for clients that don't follow redirects.
    """
    page = _REDIRECT_PAGE.format(url=html.escape(url, quote=True), message=HttpCode.FOUND.message)
    return compose(
        set_header("Location", url),
        set_header("Content-Type", "text/html; charset=utf-8"),
        respond_with_bytes(HttpCode.FOUND, page.encode("utf-8")),
    )


# =============================================================================
# 4xx CLIENT ERRORS
# =============================================================================

bad_request, bad_request_bytes = BUILDERS[HttpCode.BAD_REQUEST]
unauthorized, unauthorized_bytes = BUILDERS[HttpCode.UNAUTHORIZED]
forbidden, forbidden_bytes = BUILDERS[HttpCode.FORBIDDEN]
not_found, not_found_bytes = BUILDERS[HttpCode.NOT_FOUND]
not_acceptable, not_acceptable_bytes = BUILDERS[HttpCode.NOT_ACCEPTABLE]
request_timeout, request_timeout_bytes = BUILDERS[HttpCode.REQUEST_TIMEOUT]
conflict, conflict_bytes = BUILDERS[HttpCode.CONFLICT]
gone, gone_bytes = BUILDERS[HttpCode.GONE]
request_entity_too_large, request_entity_too_large_bytes = BUILDERS[HttpCode.REQUEST_ENTITY_TOO_LARGE]
unsupported_media_type, unsupported_media_type_bytes = BUILDERS[HttpCode.UNSUPPORTED_MEDIA_TYPE]
unprocessable_entity, unprocessable_entity_bytes = BUILDERS[HttpCode.UNPROCESSABLE_ENTITY]
precondition_required, precondition_required_bytes = BUILDERS[HttpCode.PRECONDITION_REQUIRED]
too_many_requests, too_many_requests_bytes = BUILDERS[HttpCode.TOO_MANY_REQUESTS]


def method_not_allowed(text: Optional[str] = None, allowed: Iterable[str] = ()) -> WebPart:
    """405, with an Allow header when the permitted methods are known."""
    allowed = list(allowed)
    part = BUILDERS[HttpCode.METHOD_NOT_ALLOWED][0](text)
    if allowed:
        return set_header("Allow", ", ".join(allowed)) >> part
    return part


def challenge_header(realm: str) -> str:
    return f'Basic realm="{realm}"'


def challenge(realm: Optional[str] = None, text: Optional[str] = None) -> WebPart:
    """
    401 Unauthorized carrying ``WWW-Authenticate: Basic realm="..."``.

    The realm defaults to the runtime's ``auth_realm`` so a single
    configuration value drives every challenge.
    """
    def issue(ctx: HttpContext) -> RouteResult:
        header = challenge_header(realm or ctx.runtime.auth_realm)
        return (set_header("WWW-Authenticate", header) >> unauthorized(text))(ctx)
    return WebPart(issue, name="challenge")


# =============================================================================
# 5xx SERVER ERRORS
# =============================================================================

internal_error, internal_error_bytes = BUILDERS[HttpCode.INTERNAL_SERVER_ERROR]
not_implemented, not_implemented_bytes = BUILDERS[HttpCode.NOT_IMPLEMENTED]
bad_gateway, bad_gateway_bytes = BUILDERS[HttpCode.BAD_GATEWAY]
service_unavailable, service_unavailable_bytes = BUILDERS[HttpCode.SERVICE_UNAVAILABLE]
gateway_timeout, gateway_timeout_bytes = BUILDERS[HttpCode.GATEWAY_TIMEOUT]
invalid_http_version, invalid_http_version_bytes = BUILDERS[HttpCode.HTTP_VERSION_NOT_SUPPORTED]
