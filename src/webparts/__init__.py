"""
=============================================================================
WEBPARTS - Composable HTTP Handlers
=============================================================================

A web application is one function from request context to "matched with
an updated context" or "no match". Small handlers combine into larger
ones with two operators:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   a >> b           run a, then b on a's result; stop at NoMatch     │
    │   choose([a, b])   first handler that matches wins                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    webparts/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m webparts)
    ├── combinators.py       # RouteResult, WebPart, compose, choose
    ├── responses.py         # ok, not_found, redirect, challenge, ...
    ├── matchers.py          # GET, path, url_scan, host, log, ...
    ├── files.py             # send_file, browse, dir_listing
    ├── authentication.py    # HTTP Basic authentication
    ├── config.py            # ServerConfig dataclass
    ├── server.py            # asyncio transport (WebServer)
    └── http/
        ├── context.py       # HttpRequest, HttpResult, HttpContext
        ├── request.py       # request parsing
        ├── response.py      # respond_with and header/cookie writers
        ├── status_codes.py  # HttpCode registry
        └── mime_types.py    # extension -> MIME table

=============================================================================
QUICK START
=============================================================================

    from webparts import GET, POST, choose, path, url_scan, ok, not_found
    from webparts.server import WebServer

    app = choose([
        GET >> path("/") >> ok("Hello, World!"),
        GET >> url_scan("/users/%d", lambda user_id: ok(f"user {user_id}")),
        POST >> path("/users") >> ok("created"),
        not_found("Nothing here"),
    ])

    WebServer(app).run()

=============================================================================
"""

__version__ = "1.0.0"

from .combinators import (
    Matched,
    NoMatch,
    RouteResult,
    WebPart,
    apply_to_self,
    bind,
    choose,
    cnst,
    compose,
    cond,
    delay,
    fail,
    never,
    succeed,
    warbler,
    webpart,
)
from .http import HttpCode, HttpContext, HttpCookie, HttpRequest, HttpRuntime
from .http.response import (
    add_header,
    respond_with,
    respond_with_bytes,
    set_cookie,
    set_header,
    set_mime_type,
    set_status,
    set_user_data,
    unset_cookie,
    unset_user_data,
)
from .responses import (
    accepted,
    bad_request,
    challenge,
    created,
    forbidden,
    found,
    internal_error,
    method_not_allowed,
    moved_permanently,
    no_content,
    not_found,
    not_modified,
    ok,
    redirect,
    response,
    unauthorized,
)
from .matchers import (
    CONNECT,
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    TRACE,
    host,
    is_secure,
    log,
    log_format,
    method,
    path,
    path_regex,
    path_scan,
    path_starts,
    url,
    url_regex,
    url_scan,
    url_scan_ci,
)
from .files import (
    PathTraversalError,
    browse,
    browse_file,
    browse_file_home,
    browse_home,
    dir_home,
    dir_listing,
    file,
    local_file,
    send_file,
)
from .authentication import authenticate_basic
from .config import ServerConfig

__all__ = [
    "__version__",

    # Combinators
    "RouteResult", "NoMatch", "Matched", "WebPart", "webpart",
    "succeed", "fail", "never", "bind", "delay", "compose", "choose",
    "apply_to_self", "warbler", "cnst", "cond",

    # Context
    "HttpCode", "HttpContext", "HttpCookie", "HttpRequest", "HttpRuntime",

    # Writers
    "respond_with", "respond_with_bytes", "set_header", "add_header",
    "set_cookie", "unset_cookie", "set_mime_type", "set_status",
    "set_user_data", "unset_user_data",

    # Responses
    "response", "ok", "created", "accepted", "no_content",
    "moved_permanently", "found", "redirect", "not_modified",
    "bad_request", "unauthorized", "challenge", "forbidden", "not_found",
    "method_not_allowed", "internal_error",

    # Matchers
    "method", "GET", "POST", "PUT", "DELETE", "HEAD", "CONNECT", "PATCH",
    "TRACE", "OPTIONS", "url", "path", "path_starts", "url_regex",
    "path_regex", "url_scan", "url_scan_ci", "path_scan", "is_secure",
    "host", "log", "log_format",

    # Files
    "PathTraversalError", "local_file", "send_file", "file", "browse_file",
    "browse_file_home", "browse", "browse_home", "dir_listing", "dir_home",

    # Authentication
    "authenticate_basic",

    # Configuration
    "ServerConfig",
]
