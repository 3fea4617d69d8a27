"""Recursive descent parser for eskip.

Grammar::

    document   := (route? ';')* route?
    route      := [IDENT ':'] expr
    expr       := [predicates] '->' (call '->')* backend
    predicates := '*' | call ('&&' call)*
    call       := IDENT '(' [arg (',' arg)*] ')'
    arg        := STRING | REGEXP | NUMBER
    backend    := STRING
                | '<' ('shunt' | 'loopback' | 'dynamic') '>'
                | '<' [IDENT ','] STRING (',' STRING)* '>'

Example:
    >>> routes = parse('hello: Path("/hello") -> inlineContent("Hello") -> <shunt>')
    >>> routes[0].id, routes[0].path, routes[0].shunt
    ('hello', '/hello', True)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import NoReturn

import structlog

from eskip.backend import BackendType
from eskip.errors import InvalidRouteError, ParseError
from eskip.lexer import Token, tokenize
from eskip.route import ANY, Arg, Filter, Predicate, Route

logger = structlog.get_logger()


@dataclass
class _ParsedBackend:
    backend_type: BackendType
    address: str = ""
    lb_algorithm: str = ""
    lb_endpoints: list[str] = field(default_factory=list)


class _Parser:
    """Parser over a token list produced by tokenize()."""

    def __init__(self, text: str) -> None:
        self._tokens = tokenize(text)
        self._pos = 0

    # Token helpers

    def _peek(self, offset: int = 0) -> Token:
        index = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[index]

    def _at(self, kind: str, offset: int = 0) -> bool:
        return self._peek(offset).kind == kind

    def _advance(self) -> Token:
        token = self._peek()
        if token.kind != "EOF":
            self._pos += 1
        return token

    def _expect(self, kind: str, what: str) -> Token:
        if not self._at(kind):
            self._fail(f"expected {what}")
        return self._advance()

    def _fail(self, reason: str) -> NoReturn:
        token = self._peek()
        found = "end of input" if token.kind == "EOF" else repr(token.value)
        raise ParseError(f"{reason}, found {found}", token.line, token.column)

    # Grammar rules

    def document(self) -> list[Route]:
        routes: list[Route] = []
        while not self._at("EOF"):
            if self._at("SEMICOLON"):
                self._advance()
                continue
            routes.append(self._route())
            if not self._at("EOF"):
                self._expect("SEMICOLON", "';' between route definitions")
        return routes

    def filter_chain(self) -> list[Filter]:
        filters: list[Filter] = []
        if self._at("EOF"):
            return filters
        name, args = self._call()
        filters.append(Filter(name, args))
        while self._at("ARROW"):
            self._advance()
            name, args = self._call()
            filters.append(Filter(name, args))
        self._expect("EOF", "'->' or end of filters")
        return filters

    def predicate_list(self) -> list[Predicate]:
        if self._at("EOF"):
            return []
        predicates = self._predicates()
        self._expect("EOF", "'&&' or end of predicates")
        return predicates

    def _route(self) -> Route:
        start = self._peek()
        route_id = ""
        if self._at("IDENT") and self._at("COLON", 1):
            route_id = self._advance().value
            self._advance()

        predicates: list[Predicate] = []
        if not self._at("ARROW"):
            predicates = self._predicates()
        self._expect("ARROW", "'->' after predicates")

        filters: list[Filter] = []
        while self._at("IDENT"):
            name, args = self._call()
            filters.append(Filter(name, args))
            self._expect("ARROW", "'->' after filter")

        backend = self._backend()
        try:
            return Route(
                id=route_id,
                predicates=predicates,
                filters=filters,
                backend_type=backend.backend_type,
                backend=backend.address,
                lb_algorithm=backend.lb_algorithm,
                lb_endpoints=backend.lb_endpoints,
            )
        except InvalidRouteError as e:
            raise InvalidRouteError(e.detail, e.route_id, start.line, start.column) from None

    def _predicates(self) -> list[Predicate]:
        if self._at("STAR"):
            self._advance()
            return []

        predicates: list[Predicate] = []
        while True:
            name, args = self._call()
            # Any() is an explicit catch-all, equivalent to *
            if not (name == ANY and not args):
                predicates.append(Predicate(name, args))
            if not self._at("AND"):
                return predicates
            self._advance()

    def _call(self) -> tuple[str, list[Arg]]:
        name = self._expect("IDENT", "predicate or filter name").value
        self._expect("LPAREN", f"'(' after {name}")

        args: list[Arg] = []
        if not self._at("RPAREN"):
            args.append(self._arg())
            while self._at("COMMA"):
                self._advance()
                args.append(self._arg())
        self._expect("RPAREN", f"')' closing the arguments of {name}")
        return name, args

    def _arg(self) -> Arg:
        token = self._peek()
        if token.kind in ("STRING", "REGEXP"):
            self._advance()
            return token.value
        if token.kind == "NUMBER":
            value = float(token.value)
            if not math.isfinite(value):
                raise ParseError(
                    f"number out of range: {token.value}", token.line, token.column
                )
            self._advance()
            return value
        self._fail("expected string, regular expression or number argument")

    def _backend(self) -> _ParsedBackend:
        if self._at("STRING"):
            return _ParsedBackend(BackendType.NETWORK, address=self._advance().value)

        self._expect("LANGLE", "backend address or '<'")

        if self._at("IDENT") and self._at("RANGLE", 1):
            keyword = self._peek()
            try:
                backend_type = BackendType.from_keyword(keyword.value)
            except KeyError:
                raise ParseError(
                    f"unknown backend: <{keyword.value}>", keyword.line, keyword.column
                ) from None
            self._advance()
            self._advance()
            return _ParsedBackend(backend_type)

        algorithm = ""
        if self._at("IDENT"):
            algorithm = self._advance().value
            self._expect("COMMA", "',' after load balancer algorithm")

        endpoints = [self._expect("STRING", "load balancer endpoint").value]
        while self._at("COMMA"):
            self._advance()
            endpoints.append(self._expect("STRING", "load balancer endpoint").value)
        self._expect("RANGLE", "'>' closing the load balancer backend")

        return _ParsedBackend(
            BackendType.LOAD_BALANCER, lb_algorithm=algorithm, lb_endpoints=endpoints
        )


def parse(document: str) -> list[Route]:
    """Parse an eskip document into routes.

    The document is handled as a whole: if any route is invalid, no routes
    are returned.

    Args:
        document: One or more route definitions separated by ';'.

    Returns:
        Routes in document order.

    Raises:
        ParseError: On syntax errors.
        InvalidRouteError: When a route violates a route invariant.
    """
    routes = _Parser(document).document()
    logger.debug("Parsed routes", count=len(routes))
    return routes


def parse_filters(text: str) -> list[Filter]:
    """Parse a filter chain, e.g. `status(418) -> inlineContent("teapot")`.

    Empty or whitespace-only text yields an empty list.
    """
    return _Parser(text).filter_chain()


def parse_predicates(text: str) -> list[Predicate]:
    """Parse a predicate conjunction, e.g. `Path("/") && Method("GET")`.

    Empty text and the catch-all `*` yield an empty list.
    """
    return _Parser(text).predicate_list()
