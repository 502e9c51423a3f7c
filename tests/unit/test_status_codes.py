"""
Unit tests for the status registry.
"""

import pytest

from webparts.combinators import Matched
from webparts.http.status_codes import (
    HttpCode,
    Unrecognized,
    code,
    message,
    reason,
    try_parse,
)


class TestHttpCode:
    """Tests for the HttpCode enum."""

    def test_code_reason_message(self):
        assert code(HttpCode.NOT_FOUND) == 404
        assert reason(HttpCode.NOT_FOUND) == "Not Found"
        assert message(HttpCode.NOT_FOUND)
        assert HttpCode.OK.code == 200
        assert HttpCode.OK.reason == "OK"

    def test_describe(self):
        assert HttpCode.NOT_FOUND.describe() == "404 Not Found"
        assert HttpCode.INTERNAL_SERVER_ERROR.describe() == "500 Internal Server Error"

    @pytest.mark.parametrize("member", list(HttpCode))
    def test_every_member_has_reason_and_message(self, member):
        assert member.reason
        assert member.message
        assert 100 <= member.code < 600

    def test_registry_covers_expected_codes(self):
        expected = (
            {100, 101}
            | set(range(200, 207))
            | {300, 301, 302, 303, 304, 305, 307}
            | set(range(400, 418)) | {422, 428, 429}
            | set(range(500, 506))
        )
        assert {int(m) for m in HttpCode} == expected

    def test_category_predicates(self):
        assert HttpCode.CONTINUE.is_informational
        assert HttpCode.CREATED.is_success
        assert HttpCode.FOUND.is_redirect
        assert HttpCode.FORBIDDEN.is_client_error
        assert HttpCode.BAD_GATEWAY.is_server_error
        assert not HttpCode.OK.is_client_error

    @pytest.mark.parametrize("member,allowed", [
        (HttpCode.CONTINUE, False),
        (HttpCode.SWITCHING_PROTOCOLS, False),
        (HttpCode.NO_CONTENT, False),
        (HttpCode.NOT_MODIFIED, False),
        (HttpCode.OK, True),
        (HttpCode.NOT_FOUND, True),
    ])
    def test_allows_body(self, member, allowed):
        assert member.allows_body is allowed


class TestTryParse:
    """Tests for integer lookup."""

    def test_known_code(self):
        assert try_parse(404) == Matched(HttpCode.NOT_FOUND)

    @pytest.mark.parametrize("value", [418, 999, 0, -1, 306])
    def test_unknown_code(self, value):
        result = try_parse(value)
        assert result == Unrecognized(value)
        assert not result
        assert result.code == value

    @pytest.mark.parametrize("member", list(HttpCode))
    def test_code_round_trips(self, member):
        assert try_parse(code(member)) == Matched(member)
