"""Errors raised by the eskip parser, route model and pre-processors.

All errors derive from ValueError so callers validating configuration can
catch them the same way as any other invalid-value error.
"""

from __future__ import annotations


class EskipError(ValueError):
    """Base class for all eskip errors."""


class ParseError(EskipError):
    """Raised when a route document, filter chain or predicate list is malformed.

    Attributes:
        reason: Human-readable description of the problem.
        line: 1-based line of the offending token, 0 when unknown.
        column: 1-based column of the offending token, 0 when unknown.
    """

    def __init__(self, reason: str, line: int = 0, column: int = 0) -> None:
        self.reason = reason
        self.line = line
        self.column = column
        if line:
            message = f"parse failed at line {line}, column {column}: {reason}"
        else:
            message = f"parse failed: {reason}"
        super().__init__(message)


class InvalidRouteError(ParseError):
    """Raised when a route is syntactically valid but violates a route invariant.

    Examples are a duplicate Path or Method predicate, a predicate with
    arguments of the wrong type, an invalid regular expression, or
    load balancer endpoints with different schemes.

    Errors raised while parsing a document carry the line and column where
    the offending route starts.

    Attributes:
        route_id: Id of the offending route, empty for anonymous routes.
        detail: The problem without the route prefix.
    """

    def __init__(self, reason: str, route_id: str = "", line: int = 0, column: int = 0) -> None:
        self.route_id = route_id
        self.detail = reason
        if route_id:
            reason = f"route {route_id}: {reason}"
        super().__init__(reason, line, column)


class RewriteError(EskipError):
    """Raised when an Editor or Clone substitution produces invalid route text."""

    def __init__(self, route_id: str, text: str, reason: str) -> None:
        self.route_id = route_id
        self.text = text
        super().__init__(
            f"rewritten route {route_id or '<anonymous>'} is invalid: {reason}: {text!r}"
        )


class ConfigError(EskipError):
    """Raised for invalid route processing settings."""
