"""
=============================================================================
COMBINATOR ALGEBRA
=============================================================================

The small algebra every other module is built from.

A handler ("web part") is a function from a request context to a
RouteResult. A RouteResult is one of two things:

    NoMatch          - "this handler does not apply, try the next one"
    Matched(value)   - "this handler applies, here is the updated value"

Handlers are combined with two operators:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      COMPOSITION OPERATORS                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SEQUENCE  (a >> b)                                                 │
    │                                                                      │
    │       ctx ──► a ──Matched(ctx')──► b ──► result                      │
    │                │                                                     │
    │                └──NoMatch──────────────► NoMatch  (b never runs)     │
    │                                                                      │
    │   CHOICE    choose([a, b, c])                                        │
    │                                                                      │
    │       ctx ──► a ──Matched──► result     (b, c never run)             │
    │                │                                                     │
    │                └──NoMatch──► b ──Matched──► result                   │
    │                               │                                      │
    │                               └──NoMatch──► c ──► ...                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Order is significant for both: a sequence stops at the first NoMatch,
a choice stops at the first Matched. Routing a request is one pass
through a choice; first match wins.

=============================================================================
WHY NOT Optional?
=============================================================================

Python's None would blur "handler does not apply" with "handler computed
an empty value". NoMatch is a dedicated sentinel, and Matched(None) is a
perfectly valid match.

=============================================================================
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union


# =============================================================================
# ROUTE RESULT
# =============================================================================

class RouteResult:
    """Base class for the two routing outcomes."""

    matched: bool = False

    def bind(self, f: Callable[[Any], "RouteResult"]) -> "RouteResult":
        return bind(f, self)


class _NoMatch(RouteResult):
    """
    The "try the next candidate" signal.

    There is exactly one instance, exported as ``NoMatch``.
    """

    _instance: Optional["_NoMatch"] = None

    def __new__(cls) -> "_NoMatch":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NoMatch"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_NoMatch, ())


NoMatch = _NoMatch()


@dataclass(frozen=True)
class Matched(RouteResult):
    """A successful match carrying the (possibly updated) value."""

    value: Any

    matched = True

    def __bool__(self) -> bool:
        # Matched(None), Matched(0), Matched("") are all still matches
        return True


# Handler: HttpContext -> RouteResult. Kept loose so that plain functions,
# lambdas and WebPart instances can be mixed freely.
Handler = Callable[[Any], RouteResult]


# =============================================================================
# WEB PART
# =============================================================================

class WebPart:
    """
    A callable handler that supports ``>>`` for sequential composition.

        app = GET >> path("/hello") >> ok("Hello!")

    Plain functions are accepted on either side of ``>>``; the result is
    always a WebPart.
    """

    __slots__ = ("_fn", "name")

    def __init__(self, fn: Handler, name: Optional[str] = None):
        self._fn = fn
        self.name = name or getattr(fn, "__name__", "webpart")

    def __call__(self, ctx: Any) -> RouteResult:
        return self._fn(ctx)

    def __rshift__(self, other: Handler) -> "WebPart":
        return compose(self, other)

    def __rrshift__(self, other: Handler) -> "WebPart":
        return compose(other, self)

    def __repr__(self) -> str:
        return f"<WebPart {self.name}>"


def webpart(fn: Handler) -> WebPart:
    """Decorator turning a ``ctx -> RouteResult`` function into a WebPart."""
    return WebPart(fn)


# =============================================================================
# PRIMITIVES
# =============================================================================

def succeed(x: Any) -> RouteResult:
    """Always match, passing ``x`` through unchanged."""
    return Matched(x)


# The no-match value itself. ``fail`` reads better at call sites that
# return it from inside a handler.
fail = NoMatch


def never(x: Any) -> RouteResult:
    """
    Never match, whatever ``x`` is.

    Useful for switching a branch off without changing the shape of the
    surrounding ``choose``.
    """
    return NoMatch


def bind(f: Callable[[Any], RouteResult], outcome: RouteResult) -> RouteResult:
    """
    Monadic bind for RouteResult.

        bind(f, NoMatch)     == NoMatch
        bind(f, Matched(x))  == f(x)
    """
    if isinstance(outcome, Matched):
        return f(outcome.value)
    return NoMatch


def delay(f: Callable[[], Handler]) -> WebPart:
    """
    Build the handler only when a request actually reaches it.

    ``f`` is called once per request, never at construction time, so any
    side effect it has (reading a clock, a file, a counter) happens when
    the request is routed rather than when the route table is built.
    """
    def delayed(ctx: Any) -> RouteResult:
        return f()(ctx)
    return WebPart(delayed, name="delay")


def compose(*parts: Handler) -> WebPart:
    """
    Sequential (Kleisli) composition.

    Runs each part in order, feeding the matched value of one into the
    next. The first NoMatch short-circuits the rest.

        compose(a, b)(x) == bind(b, a(x))
    """
    if not parts:
        return WebPart(succeed, name="succeed")

    def composed(ctx: Any) -> RouteResult:
        result: RouteResult = Matched(ctx)
        for part in parts:
            result = part(result.value)
            if not isinstance(result, Matched):
                return NoMatch
        return result

    name = " >> ".join(getattr(p, "name", getattr(p, "__name__", "?")) for p in parts)
    return WebPart(composed, name=name)


def choose(candidates: Iterable[Handler]) -> WebPart:
    """
    First-match-wins choice.

    Candidates are tried strictly in list order; evaluation stops at the
    first Matched. An empty or exhausted list yields NoMatch.
    """
    options = tuple(candidates)

    def chosen(ctx: Any) -> RouteResult:
        for candidate in options:
            result = candidate(ctx)
            if isinstance(result, Matched):
                return result
        return NoMatch

    return WebPart(chosen, name=f"choose[{len(options)}]")


# =============================================================================
# HELPERS
# =============================================================================

def apply_to_self(f: Callable[[Any], Callable[[Any], Any]]) -> Callable[[Any], Any]:
    """
    ``apply_to_self(f)(x) == f(x)(x)``

    Lets a handler look at the request before deciding which handler to
    run against that same request:

        echo_path = apply_to_self(lambda ctx: ok(ctx.request.path))
    """
    def applied(x: Any) -> Any:
        return f(x)(x)
    return applied


warbler = apply_to_self


def cnst(x: Any) -> Callable[[Any], Any]:
    """Return a function that ignores its argument and returns ``x``."""
    return lambda _: x


def cond(
    opt_item: Union[Any, RouteResult, None],
    f: Callable[[Any], Any],
    g: Any,
) -> Any:
    """
    Branch on an optional value.

    If ``opt_item`` holds a value (not None, or a Matched), return
    ``f(value)``; otherwise return ``g``.
    """
    if isinstance(opt_item, Matched):
        return f(opt_item.value)
    if opt_item is None or opt_item is NoMatch:
        return g
    return f(opt_item)
