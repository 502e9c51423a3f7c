"""
HTTP building blocks: status codes, MIME table, the request context,
the response writer and the request parser.
"""

from .context import (
    BytesContent,
    Content,
    HttpContext,
    HttpCookie,
    HttpRequest,
    HttpResult,
    HttpRuntime,
    NullContent,
    ResponseStream,
    StreamContent,
)
from .mime_types import (
    MimeType,
    default_mime_types_map,
    extend_mime_types,
    mime_type_for,
    mk_mime_type,
)
from .request import HTTPParseError, RequestParser, parse_request
from .response import (
    add_header,
    render_head,
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
from .status_codes import HttpCode, Unrecognized, try_parse

__all__ = [
    # Context
    "HttpContext",
    "HttpRequest",
    "HttpResult",
    "HttpRuntime",
    "HttpCookie",
    "Content",
    "NullContent",
    "BytesContent",
    "StreamContent",
    "ResponseStream",

    # MIME types
    "MimeType",
    "mk_mime_type",
    "default_mime_types_map",
    "extend_mime_types",
    "mime_type_for",

    # Request parsing
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response writer
    "respond_with",
    "respond_with_bytes",
    "set_header",
    "add_header",
    "set_cookie",
    "unset_cookie",
    "set_mime_type",
    "set_status",
    "set_user_data",
    "unset_user_data",
    "render_head",

    # Status codes
    "HttpCode",
    "Unrecognized",
    "try_parse",
]
