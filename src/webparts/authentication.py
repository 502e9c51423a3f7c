"""
=============================================================================
HTTP BASIC AUTHENTICATION
=============================================================================

    Client                                       Server
      │                                             │
      │  GET /admin                                 │
      │ ──────────────────────────────────────────► │
      │                                             │  no Authorization
      │  401 Unauthorized                           │
      │  WWW-Authenticate: Basic realm="Restricted" │
      │ ◄────────────────────────────────────────── │
      │                                             │
      │  GET /admin                                 │
      │  Authorization: Basic YWxpY2U6c2VjcmV0      │
      │ ──────────────────────────────────────────► │  base64("alice:secret")
      │                                             │  predicate("alice", "secret")
      │  200 OK                                     │
      │ ◄────────────────────────────────────────── │

The credentials are only base64 encoded, not encrypted. Serve protected
routes over TLS.

Usage:

    def check(username, password):
        return (username, password) == ("alice", "secret")

    admin = authenticate_basic(check, GET >> path("/admin") >> ok("Hi"))

The user name that passed ends up in ``ctx.user_state["user_name"]``,
where ``log_format`` picks it up.

=============================================================================
"""

import base64
import binascii
import logging
from typing import Callable, Optional

from .combinators import Handler, Matched, NoMatch, RouteResult, WebPart, compose
from .http.context import HttpContext
from .responses import challenge


logger = logging.getLogger(__name__)

USER_NAME_KEY = "user_name"

CredentialsPredicate = Callable[[str, str], bool]


def parse_auth_token(token: str) -> RouteResult:
    """
    Split an Authorization header value.

        "Basic YWxpY2U6c2VjcmV0"  →  Matched(("basic", "alice", "secret"))

    The password may itself contain colons; only the first one separates.
    Anything malformed (no scheme, bad base64, no colon) is NoMatch.
    """
    parts = token.strip().split(" ", 1)
    if len(parts) != 2 or not parts[1].strip():
        return NoMatch

    scheme, encoded = parts[0].lower(), parts[1].strip()
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return NoMatch

    if ":" not in decoded:
        return NoMatch
    username, password = decoded.split(":", 1)
    return Matched((scheme, username, password))


def authenticate_basic(
    predicate: CredentialsPredicate,
    protected: Optional[Handler] = None,
) -> WebPart:
    """
    Guard ``protected`` with HTTP Basic authentication.

    A missing, malformed or non-Basic Authorization header, or
    credentials the predicate rejects, all produce a 401 challenge. On
    success the user name is stored in user state and ``protected`` (if
    given) runs with that context.
    """
    def authenticate(ctx: HttpContext) -> RouteResult:
        header = ctx.request.get_header("authorization")
        if not header:
            return challenge()(ctx)

        token = parse_auth_token(header)
        if not token or token.value[0] != "basic":
            return challenge()(ctx)

        _, username, password = token.value
        if not predicate(username, password):
            logger.info("Rejected credentials for %r from %s", username, ctx.request.client_address[0])
            return challenge()(ctx)

        authenticated = ctx.with_user_state(USER_NAME_KEY, username)
        if protected is None:
            return Matched(authenticated)
        return compose(protected)(authenticated)

    return WebPart(authenticate, name="authenticate_basic")
