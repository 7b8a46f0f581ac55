"""Routing: endpoint rules evaluated in registration order.

Rules are compiled once when the middleware is built and never change.
"""

from perch.routing.rules import (
    PASS,
    ExactPath,
    Handled,
    MatchOutcome,
    NotMatched,
    Pass,
    PatternPath,
    RouteRule,
    compile_rules,
    evaluate,
    first_match,
)

__all__ = [
    "PASS",
    "ExactPath",
    "Handled",
    "MatchOutcome",
    "NotMatched",
    "Pass",
    "PatternPath",
    "RouteRule",
    "compile_rules",
    "evaluate",
    "first_match",
]
