"""
Unit tests for HTTP Basic authentication.
"""

import base64

import pytest

from webparts.authentication import authenticate_basic, parse_auth_token
from webparts.combinators import Matched, NoMatch
from webparts.http.context import HttpRuntime
from webparts.http.status_codes import HttpCode
from webparts.responses import ok


def basic(user: str, password: str) -> str:
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return f"Basic {token}"


def only_alice(username, password):
    return username == "alice" and password == "secret"


class TestParseAuthToken:
    """Tests for Authorization header parsing."""

    def test_basic(self):
        assert parse_auth_token(basic("alice", "secret")) == Matched(("basic", "alice", "secret"))

    def test_password_with_colon(self):
        assert parse_auth_token(basic("bob", "a:b:c")) == Matched(("basic", "bob", "a:b:c"))

    def test_scheme_lowercased(self):
        token = base64.b64encode(b"u:p").decode()
        assert parse_auth_token(f"BASIC {token}").value[0] == "basic"

    @pytest.mark.parametrize("header", [
        "",
        "Basic",
        "Basic !!!not-base64!!!",
        "Basic " + base64.b64encode(b"no-colon").decode(),
        "Basic " + base64.b64encode(b"\xff\xfe:x").decode(),
    ])
    def test_malformed(self, header):
        assert parse_auth_token(header) is NoMatch


class TestAuthenticateBasic:
    """Tests for the authentication guard."""

    def test_missing_header_challenges(self, make_context):
        resp = authenticate_basic(only_alice, ok("in"))(make_context()).value.response
        assert resp.status == HttpCode.UNAUTHORIZED
        assert resp.get_header("WWW-Authenticate") == 'Basic realm="Restricted"'

    def test_valid_credentials_run_protected(self, make_context):
        ctx = make_context(headers={"Authorization": basic("alice", "secret")})
        result = authenticate_basic(only_alice, ok("in"))(ctx).value
        assert result.response.status == HttpCode.OK
        assert result.response.body == b"in"
        assert result.user_state["user_name"] == "alice"

    def test_wrong_password_challenges(self, make_context):
        ctx = make_context(headers={"Authorization": basic("alice", "wrong")})
        resp = authenticate_basic(only_alice, ok("in"))(ctx).value.response
        assert resp.status == HttpCode.UNAUTHORIZED
        assert resp.body != b"in"

    def test_predicate_receives_username_and_password(self, make_context):
        seen = []

        def predicate(username, password):
            seen.append((username, password))
            return True

        ctx = make_context(headers={"Authorization": basic("carol", "pw")})
        authenticate_basic(predicate)(ctx)
        assert seen == [("carol", "pw")]

    def test_other_scheme_challenges(self, make_context):
        ctx = make_context(headers={"Authorization": "Bearer abc.def"})
        resp = authenticate_basic(only_alice, ok("in"))(ctx).value.response
        assert resp.status == HttpCode.UNAUTHORIZED

    def test_malformed_token_challenges(self, make_context):
        ctx = make_context(headers={"Authorization": "Basic ###"})
        resp = authenticate_basic(only_alice, ok("in"))(ctx).value.response
        assert resp.status == HttpCode.UNAUTHORIZED

    def test_without_protected_part_passes_context(self, make_context):
        ctx = make_context(headers={"Authorization": basic("alice", "secret")})
        result = authenticate_basic(only_alice)(ctx)
        assert isinstance(result, Matched)
        assert result.value.user_state["user_name"] == "alice"
        assert result.value.response == ctx.response

    def test_protected_no_match_propagates(self, make_context):
        ctx = make_context(headers={"Authorization": basic("alice", "secret")})
        assert authenticate_basic(only_alice, lambda c: NoMatch)(ctx) is NoMatch

    def test_realm_from_runtime(self, make_context):
        ctx = make_context(runtime_override=HttpRuntime(auth_realm="Staff"))
        resp = authenticate_basic(only_alice)(ctx).value.response
        assert resp.get_header("WWW-Authenticate") == 'Basic realm="Staff"'

    def test_composes_with_rshift(self, make_context):
        app = authenticate_basic(only_alice) >> ok("after auth")
        ctx = make_context(headers={"Authorization": basic("alice", "secret")})
        assert app(ctx).value.response.body == b"after auth"


@pytest.mark.parametrize("headers", [
    {},
    {"Authorization": "garbage"},
    {"Authorization": basic("alice", "secret")},
    {"Authorization": basic("", "")},
])
def test_rejecting_predicate_always_challenges(make_context, headers):
    ctx = make_context(headers=headers)
    resp = authenticate_basic(lambda username, password: False, ok("in"))(ctx).value.response
    assert resp.status == HttpCode.UNAUTHORIZED
    assert resp.get_header("WWW-Authenticate").startswith("Basic realm=")
