"""
=============================================================================
HTTP STATUS REGISTRY
=============================================================================

The fixed, closed set of status codes this library can emit, each with
its reason phrase and a long-form message used as the default body of
error responses.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  1xx   │ 100, 101                                                  │
    │  2xx   │ 200 - 206                                                 │
    │  3xx   │ 300 - 305, 307                                            │
    │  4xx   │ 400 - 417, 422, 428, 429                                  │
    │  5xx   │ 500 - 505                                                 │
    └────────┴───────────────────────────────────────────────────────────┘

Code <-> member is a bijection over this set. ``try_parse`` maps any
other integer to ``Unrecognized(code)`` instead of raising.

=============================================================================
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from ..combinators import Matched


class HttpCode(IntEnum):
    """
    HTTP status codes.

    Members compare equal to their integer value:

        >>> HttpCode.OK == 200
        True
        >>> HttpCode.NOT_FOUND.reason
        'Not Found'
    """

    # =========================================================================
    # 1xx INFORMATIONAL
    # =========================================================================
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101

    # =========================================================================
    # 2xx SUCCESS
    # =========================================================================
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NON_AUTHORITATIVE_INFORMATION = 203
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206

    # =========================================================================
    # 3xx REDIRECTION
    # =========================================================================
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    USE_PROXY = 305
    TEMPORARY_REDIRECT = 307

    # =========================================================================
    # 4xx CLIENT ERRORS
    # =========================================================================
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    PAYMENT_REQUIRED = 402
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    PROXY_AUTHENTICATION_REQUIRED = 407
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PRECONDITION_FAILED = 412
    REQUEST_ENTITY_TOO_LARGE = 413
    REQUEST_URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    REQUESTED_RANGE_NOT_SATISFIABLE = 416
    EXPECTATION_FAILED = 417
    UNPROCESSABLE_ENTITY = 422
    PRECONDITION_REQUIRED = 428
    TOO_MANY_REQUESTS = 429

    # =========================================================================
    # 5xx SERVER ERRORS
    # =========================================================================
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def code(self) -> int:
        return int(self)

    @property
    def reason(self) -> str:
        """The reason phrase, as it appears on the status line."""
        return _STATUS_TABLE[self][0]

    @property
    def message(self) -> str:
        """Long-form description, used as the default error body."""
        return _STATUS_TABLE[self][1]

    def describe(self) -> str:
        """``"404 Not Found"``"""
        return f"{int(self)} {self.reason}"

    @property
    def is_informational(self) -> bool:
        return 100 <= self < 200

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a body.

        RFC 7230 section 3.3.3: 1xx, 204 and 304 responses never do.
        """
        return not (self.is_informational or self in (HttpCode.NO_CONTENT, HttpCode.NOT_MODIFIED))


# =============================================================================
# REASON PHRASES AND MESSAGES
# =============================================================================

_STATUS_TABLE = {
    # 1xx Informational
    HttpCode.CONTINUE: ("Continue", "Request received, please continue"),
    HttpCode.SWITCHING_PROTOCOLS: (
        "Switching Protocols", "Switching to new protocol; obey Upgrade header"),

    # 2xx Success
    HttpCode.OK: ("OK", "Request fulfilled, document follows"),
    HttpCode.CREATED: ("Created", "Document created, URL follows"),
    HttpCode.ACCEPTED: ("Accepted", "Request accepted, processing continues off-line"),
    HttpCode.NON_AUTHORITATIVE_INFORMATION: (
        "Non-Authoritative Information", "Request fulfilled from cache"),
    HttpCode.NO_CONTENT: ("No Content", "Request fulfilled, nothing follows"),
    HttpCode.RESET_CONTENT: ("Reset Content", "Clear input form for further input"),
    HttpCode.PARTIAL_CONTENT: ("Partial Content", "Partial content follows"),

    # 3xx Redirection
    HttpCode.MULTIPLE_CHOICES: ("Multiple Choices", "Object has several resources -- see URI list"),
    HttpCode.MOVED_PERMANENTLY: ("Moved Permanently", "Object moved permanently -- see URI list"),
    HttpCode.FOUND: ("Found", "Object moved temporarily -- see URI list"),
    HttpCode.SEE_OTHER: ("See Other", "Object moved -- see Method and URL list"),
    HttpCode.NOT_MODIFIED: ("Not Modified", "Document has not changed since given time"),
    HttpCode.USE_PROXY: (
        "Use Proxy", "You must use proxy specified in Location to access this resource"),
    HttpCode.TEMPORARY_REDIRECT: ("Temporary Redirect", "Object moved temporarily -- see URI list"),

    # 4xx Client Errors
    HttpCode.BAD_REQUEST: ("Bad Request", "Bad request syntax or unsupported method"),
    HttpCode.UNAUTHORIZED: ("Unauthorized", "No permission -- see authorization schemes"),
    HttpCode.PAYMENT_REQUIRED: ("Payment Required", "No payment -- see charging schemes"),
    HttpCode.FORBIDDEN: ("Forbidden", "Request forbidden -- authorization will not help"),
    HttpCode.NOT_FOUND: ("Not Found", "Nothing matches the given URI"),
    HttpCode.METHOD_NOT_ALLOWED: (
        "Method Not Allowed", "Specified method is invalid for this resource"),
    HttpCode.NOT_ACCEPTABLE: ("Not Acceptable", "URI not available in preferred format"),
    HttpCode.PROXY_AUTHENTICATION_REQUIRED: (
        "Proxy Authentication Required", "You must authenticate with this proxy before proceeding"),
    HttpCode.REQUEST_TIMEOUT: ("Request Timeout", "Request timed out; try again later"),
    HttpCode.CONFLICT: ("Conflict", "Request conflict"),
    HttpCode.GONE: ("Gone", "URI no longer exists and has been permanently removed"),
    HttpCode.LENGTH_REQUIRED: ("Length Required", "Client must specify Content-Length"),
    HttpCode.PRECONDITION_FAILED: ("Precondition Failed", "Precondition in headers is false"),
    HttpCode.REQUEST_ENTITY_TOO_LARGE: ("Request Entity Too Large", "Entity is too large"),
    HttpCode.REQUEST_URI_TOO_LONG: ("Request-URI Too Long", "URI is too long"),
    HttpCode.UNSUPPORTED_MEDIA_TYPE: (
        "Unsupported Media Type", "Entity body in unsupported format"),
    HttpCode.REQUESTED_RANGE_NOT_SATISFIABLE: (
        "Requested Range Not Satisfiable", "Cannot satisfy request range"),
    HttpCode.EXPECTATION_FAILED: ("Expectation Failed", "Expect condition could not be satisfied"),
    HttpCode.UNPROCESSABLE_ENTITY: (
        "Unprocessable Entity", "The request was well-formed but had semantic errors"),
    HttpCode.PRECONDITION_REQUIRED: (
        "Precondition Required", "The origin server requires the request to be conditional"),
    HttpCode.TOO_MANY_REQUESTS: (
        "Too Many Requests", "The user has sent too many requests in a given amount of time"),

    # 5xx Server Errors
    HttpCode.INTERNAL_SERVER_ERROR: ("Internal Server Error", "Server got itself in trouble"),
    HttpCode.NOT_IMPLEMENTED: ("Not Implemented", "Server does not support this operation"),
    HttpCode.BAD_GATEWAY: ("Bad Gateway", "Invalid responses from another server/proxy"),
    HttpCode.SERVICE_UNAVAILABLE: (
        "Service Unavailable", "The server cannot process the request due to a high load"),
    HttpCode.GATEWAY_TIMEOUT: (
        "Gateway Timeout", "The gateway server did not receive a timely response"),
    HttpCode.HTTP_VERSION_NOT_SUPPORTED: (
        "HTTP Version Not Supported", "Cannot fulfill request"),
}

_BY_CODE = {int(member): member for member in HttpCode}


# =============================================================================
# PURE LOOKUPS
# =============================================================================

@dataclass(frozen=True)
class Unrecognized:
    """``try_parse`` result for an integer outside the registry."""

    code: int
    matched = False

    def __bool__(self) -> bool:
        return False


def code(status: HttpCode) -> int:
    return int(status)


def reason(status: HttpCode) -> str:
    return status.reason


def message(status: HttpCode) -> str:
    return status.message


def try_parse(value: int) -> Union[Matched, Unrecognized]:
    """
    Look an integer up in the registry.

        try_parse(404)  -> Matched(HttpCode.NOT_FOUND)
        try_parse(418)  -> Unrecognized(418)
    """
    member = _BY_CODE.get(value)
    if member is None:
        return Unrecognized(value)
    return Matched(member)
