"""
Unit tests for the handler algebra.
"""

import pickle

import pytest

from webparts.combinators import (
    Matched,
    NoMatch,
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


def add(n):
    return lambda x: Matched(x + n)


def reject(x):
    return NoMatch


class TestRouteResult:
    """Tests for Matched / NoMatch."""

    def test_no_match_is_falsy_singleton(self):
        assert not NoMatch
        assert NoMatch is fail
        assert type(NoMatch)() is NoMatch
        assert pickle.loads(pickle.dumps(NoMatch)) is NoMatch

    def test_matched_is_truthy_even_for_falsy_values(self):
        """Matched(0), Matched(None) and Matched("") are still matches."""
        assert Matched(0)
        assert Matched(None)
        assert Matched("")
        assert Matched(1).matched is True
        assert NoMatch.matched is False

    def test_matched_equality(self):
        assert Matched(3) == Matched(3)
        assert Matched(3) != Matched(4)

    def test_bind_method(self):
        assert Matched(1).bind(add(1)) == Matched(2)
        assert NoMatch.bind(add(1)) is NoMatch


class TestPrimitives:
    """Tests for succeed, fail, never, bind, delay."""

    def test_succeed(self):
        assert succeed(5) == Matched(5)

    def test_never(self):
        assert never(5) is NoMatch
        assert never(None) is NoMatch

    def test_bind_function(self):
        assert bind(add(2), Matched(1)) == Matched(3)
        assert bind(add(2), NoMatch) is NoMatch

    def test_delay_calls_factory_per_request(self):
        """The factory runs at request time, once per call, never at build time."""
        calls = []

        def factory():
            calls.append(1)
            return succeed

        part = delay(factory)
        assert calls == []

        assert part("a") == Matched("a")
        assert part("b") == Matched("b")
        assert len(calls) == 2


class TestCompose:
    """Tests for sequential composition."""

    def test_runs_in_order(self):
        seen = []

        def record(tag):
            def handler(x):
                seen.append(tag)
                return Matched(x + [tag])
            return handler

        assert compose(record("a"), record("b"))([]) == Matched(["a", "b"])
        assert seen == ["a", "b"]

    def test_short_circuits_on_no_match(self):
        called = []

        def spy(x):
            called.append(x)
            return Matched(x)

        assert compose(reject, spy)(1) is NoMatch
        assert called == []

    def test_succeed_is_identity(self):
        """succeed on either side changes nothing."""
        for part in (add(1), reject):
            for x in (0, 5):
                assert compose(succeed, part)(x) == part(x)
                assert compose(part, succeed)(x) == part(x)

    def test_never_absorbs(self):
        assert compose(never, add(1))(1) is NoMatch
        assert compose(add(1), never)(1) is NoMatch

    def test_associative(self):
        a, b, c = add(1), add(10), add(100)
        left = compose(compose(a, b), c)
        right = compose(a, compose(b, c))
        assert left(0) == right(0) == Matched(111)

    def test_empty_compose_succeeds(self):
        assert compose()("x") == Matched("x")

    def test_rshift_operator(self):
        part = WebPart(add(1)) >> add(2) >> add(3)
        assert isinstance(part, WebPart)
        assert part(0) == Matched(6)

    def test_rshift_with_plain_function_on_left(self):
        part = add(1) >> WebPart(add(2))
        assert part(0) == Matched(3)

    def test_non_matched_return_is_no_match(self):
        assert compose(lambda x: None)(1) is NoMatch


class TestChoose:
    """Tests for first-match-wins choice."""

    def test_first_match_wins(self):
        assert choose([reject, add(1), add(2)])(0) == Matched(1)

    def test_later_candidates_not_evaluated(self):
        called = []

        def spy(x):
            called.append(x)
            return Matched(x)

        choose([add(1), spy])(0)
        assert called == []

    def test_exhausted_is_no_match(self):
        assert choose([reject, never])(0) is NoMatch

    def test_empty_is_no_match(self):
        assert choose([])(0) is NoMatch

    def test_accepts_generator(self):
        part = choose(add(n) for n in (5, 6))
        assert part(0) == Matched(5)
        assert part(1) == Matched(6)

    def test_each_candidate_sees_original_value(self):
        """A failing candidate cannot leak changes into the next one."""
        seen = []

        def spy(x):
            seen.append(x)
            return Matched(x)

        choose([compose(add(1), reject), spy])(0)
        assert seen == [0]


class TestHelpers:
    """Tests for apply_to_self, cnst, cond, webpart."""

    def test_apply_to_self(self):
        f = lambda x: (lambda y: (x, y))
        assert apply_to_self(f)(7) == (7, 7)
        assert warbler is apply_to_self

    def test_cnst_ignores_argument(self):
        assert cnst(3)("anything") == 3
        assert cnst(3)(None) == 3

    def test_cond_with_value(self):
        assert cond(2, lambda v: v * 10, "default") == 20
        assert cond(Matched(2), lambda v: v * 10, "default") == 20

    def test_cond_without_value(self):
        assert cond(None, lambda v: v * 10, "default") == "default"
        assert cond(NoMatch, lambda v: v * 10, "default") == "default"

    def test_cond_keeps_falsy_values(self):
        assert cond(0, lambda v: v + 1, "default") == 1

    def test_webpart_decorator(self):
        @webpart
        def double(x):
            return Matched(x * 2)

        assert isinstance(double, WebPart)
        assert double.name == "double"
        assert (double >> double)(1) == Matched(4)
        assert "double" in repr(double)


@pytest.mark.parametrize("x", [0, 1, "s", None])
def test_never_rejects_everything(x):
    assert never(x) is NoMatch


@pytest.mark.parametrize("x", [0, "s", True, (1, 2)])
def test_apply_to_self_with_cnst_returns_input(x):
    assert warbler(cnst)(x) == cnst(x)(x) == x


def test_choose_order_decides_outcome():
    first, second = add(1), add(2)
    assert choose([reject, second])(0) == second(0)
    assert choose([first, second])(0) == first(0)
    assert choose([second, first])(0) == second(0)
