"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns raw HTTP/1.x request bytes into an ``HttpRequest``.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    POST /login?next=/home HTTP/1.1\r\n        ← request line         │
    │    Host: example.com\r\n                      ← headers              │
    │    Content-Type: application/x-www-form-urlencoded\r\n               │
    │    Content-Length: 27\r\n                                            │
    │    \r\n                                       ← end of head          │
    │    username=alice&password=pw                 ← body                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Parsing errors carry the status the client should get back:

    ┌────────┬─────────────────────────────────────────────────────┐
    │ Status │ Cause                                               │
    ├────────┼─────────────────────────────────────────────────────┤
    │  400   │ malformed request line, bad Content-Length, short   │
    │        │ body                                                │
    │  405   │ method outside the standard set                     │
    │  413   │ request larger than max_request_size                │
    │  505   │ anything other than HTTP/1.0 or HTTP/1.1            │
    └────────┴─────────────────────────────────────────────────────┘

The path is URL-decoded but otherwise left alone. ``..`` segments are
handled where the path meets the filesystem (``files.local_file``), which
answers 403.

=============================================================================
"""

import re
from types import MappingProxyType
from typing import Dict, Tuple
from urllib.parse import parse_qs, unquote, urlparse

from .context import HttpRequest


FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    ``status_code`` is the HTTP status to answer with (400, 405, 413, 505).
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class RequestParser:
    """
    Parses raw request bytes into ``HttpRequest`` objects.

    One parser can be shared across connections; it holds only limits.
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
        is_secure: bool = False,
    ) -> HttpRequest:
        """
        Parse a complete request (head and body).

        Raises:
            HTTPParseError: if the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        lines = data[:header_end].decode("latin-1").split("\r\n")
        body = data[header_end + 4:]

        method, path, raw_query, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        content_length = self._content_length(headers)
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )
        body = body[:content_length]

        return HttpRequest(
            method=method,
            path=path,
            version=version,
            headers=MappingProxyType(headers),
            query_params=MappingProxyType(parse_qs(raw_query, keep_blank_values=True)),
            form=MappingProxyType(self._parse_form(headers, body)),
            body=body,
            client_address=client_address,
            is_secure=is_secure,
            raw_query=raw_query,
        )

    def expected_body_length(self, head: bytes) -> int:
        """
        Content-Length announced by a request head (request line plus
        headers, with or without the trailing blank line).

        The transport uses this to know how many body bytes to read.
        """
        lines = head.decode("latin-1").split("\r\n")
        return self._content_length(self._parse_headers(lines[1:]))

    def _parse_request_line(self, line: str) -> Tuple[str, str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        return method, path, parsed.query, version

    def _parse_headers(self, lines: list) -> Dict[str, str]:
        """
        Header lines into a dict with lowercase names.

        Repeated headers are joined with ", "; obsolete folded lines are
        appended to the previous header; malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers

    @staticmethod
    def _content_length(headers: Dict[str, str]) -> int:
        raw = headers.get("content-length", "0")
        try:
            length = int(raw)
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {raw!r}") from None
        if length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {raw!r}")
        return length

    @staticmethod
    def _parse_form(headers: Dict[str, str], body: bytes) -> Dict[str, list]:
        content_type = headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type != FORM_CONTENT_TYPE or not body:
            return {}
        return parse_qs(body.decode("utf-8", errors="replace"), keep_blank_values=True)


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> HttpRequest:
    """Parse with a one-off ``RequestParser``."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
