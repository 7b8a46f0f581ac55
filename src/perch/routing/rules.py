"""Endpoint rules: path matchers, method allow-lists, and match results.

A rule pairs one path matcher with an optional set of methods::

    compile_rules("/foo")                          # exact path, any method
    compile_rules({"/foo": "GET"})                 # exact path, GET only
    compile_rules({"/foo": ["GET", "POST"]})       # exact path, GET or POST
    compile_rules(re.compile(r"^/items/(\\d+)$"))  # pattern, any method

Rules are frozen once compiled and evaluated in registration order.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from perch.errors import ConfigurationError
from perch.http.request import Request


@dataclass(frozen=True, slots=True)
class ExactPath:
    """Matches when the request path equals ``path`` exactly."""

    path: str


@dataclass(frozen=True, slots=True)
class PatternPath:
    """Matches when ``pattern`` is found anywhere in the request path."""

    pattern: re.Pattern[str]


Matcher: TypeAlias = ExactPath | PatternPath


@dataclass(frozen=True, slots=True)
class RouteRule:
    """A path matcher plus the methods it accepts (empty means any)."""

    matcher: Matcher
    methods: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class MatchOutcome:
    """Result of evaluating one rule against one request.

    ``captures`` holds the pattern groups in order, or ``None`` for exact
    paths and for patterns without groups.
    """

    matched: bool
    captures: tuple[str | None, ...] | None = None


NO_MATCH = MatchOutcome(matched=False)


# -- Callback results --


@dataclass(frozen=True, slots=True)
class Handled:
    """The endpoint answered; ``body`` is used unless the builder was written to."""

    body: str | bytes | None = None


@dataclass(frozen=True, slots=True)
class Pass:
    """The endpoint declined; the request goes downstream."""


@dataclass(frozen=True, slots=True)
class NotMatched:
    """No rule matched the request."""


PASS = Pass()

EndpointResult: TypeAlias = Handled | Pass | NotMatched


def to_result(value: Any) -> Handled | Pass:
    """Normalise a callback's return value into a result.

    Values other than ``str``, ``bytes``, ``None`` and the result types
    are written as ``str(value)``.
    """
    if isinstance(value, (Handled, Pass)):
        return value
    if value is None or isinstance(value, (str, bytes)):
        return Handled(value)
    return Handled(str(value))


# -- Evaluation --


def _match_path(matcher: Matcher, path: str) -> MatchOutcome:
    match matcher:
        case ExactPath(path=expected):
            return MatchOutcome(matched=True) if path == expected else NO_MATCH
        case PatternPath(pattern=pattern):
            found = pattern.search(path)
            if found is None:
                return NO_MATCH
            groups = found.groups()
            return MatchOutcome(matched=True, captures=groups or None)


def evaluate(rule: RouteRule, request: Request) -> MatchOutcome:
    """Decide whether *rule* applies to *request*."""
    outcome = _match_path(rule.matcher, request.path)
    if not outcome.matched:
        return outcome
    if rule.methods and request.method.upper() not in rule.methods:
        return NO_MATCH
    return outcome


def first_match(rules: Iterable[RouteRule], request: Request) -> MatchOutcome:
    """Evaluate *rules* in order; the first match wins."""
    for rule in rules:
        outcome = evaluate(rule, request)
        if outcome.matched:
            return outcome
    return NO_MATCH


# -- Compilation --


def _to_matcher(spec: Any) -> Matcher:
    if isinstance(spec, (ExactPath, PatternPath)):
        return spec
    if isinstance(spec, str):
        return ExactPath(spec)
    if isinstance(spec, re.Pattern):
        return PatternPath(spec)
    msg = f"path matcher must be a str or compiled pattern, got {type(spec).__name__}"
    raise ConfigurationError(msg)


def _to_methods(spec: Any) -> frozenset[str]:
    if spec is None:
        return frozenset()
    if isinstance(spec, str):
        return frozenset({spec.upper()})
    if isinstance(spec, Iterable):
        methods = []
        for method in spec:
            if not isinstance(method, str):
                msg = f"HTTP method must be a str, got {type(method).__name__}"
                raise ConfigurationError(msg)
            methods.append(method.upper())
        return frozenset(methods)
    msg = f"methods must be a str or a list of str, got {type(spec).__name__}"
    raise ConfigurationError(msg)


def compile_rules(spec: Any) -> tuple[RouteRule, ...]:
    """Build the ordered rule table from the user's declaration.

    Accepts a path, a pattern, a ``RouteRule``, a mapping of path to
    method(s), or an iterable of any of those.

    Raises:
        ConfigurationError: On anything else, or when no rule results.
    """
    rules: list[RouteRule] = []
    _collect(spec, rules)
    if not rules:
        msg = "SimpleEndpoint needs at least one path matcher"
        raise ConfigurationError(msg)
    return tuple(rules)


def _collect(spec: Any, rules: list[RouteRule]) -> None:
    if isinstance(spec, RouteRule):
        rules.append(spec)
    elif isinstance(spec, (str, re.Pattern, ExactPath, PatternPath)):
        rules.append(RouteRule(_to_matcher(spec)))
    elif isinstance(spec, Mapping):
        for matcher, methods in spec.items():
            rules.append(RouteRule(_to_matcher(matcher), _to_methods(methods)))
    elif isinstance(spec, Iterable):
        for item in spec:
            _collect(item, rules)
    else:
        msg = f"cannot build an endpoint rule from {type(spec).__name__}"
        raise ConfigurationError(msg)
