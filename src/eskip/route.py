"""Eskip route model.

A Route keeps every predicate in one ordered list. The typed accessors the
routing layer historically relied on (path, method, host_regexps, headers,
...) are computed from that list on access, so there is a single source of
truth and the views can never drift apart.

Example:
    >>> route = Route(
    ...     id="api",
    ...     predicates=[Predicate("Path", ["/api"]), Predicate("Weight", [10.0])],
    ...     filters=[Filter("setRequestHeader", ["X-Api", "1"])],
    ...     backend="https://api.example.org",
    ... )
    >>> route.path
    '/api'
    >>> str(route)
    'Path("/api") && Weight(10) -> setRequestHeader("X-Api", "1") -> "https://api.example.org"'
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Union

from eskip.backend import BackendType, validate_lb_endpoints
from eskip.errors import InvalidRouteError
from eskip.serialize import (
    backend_string,
    call_string,
    route_expression,
    route_to_dict,
    route_to_json,
)

Arg = Union[str, float]

PATH = "Path"
METHOD = "Method"
HOST = "Host"
HOST_REGEXP = "HostRegexp"
PATH_REGEXP = "PathRegexp"
HEADER = "Header"
HEADER_REGEXP = "HeaderRegexp"
WEIGHT = "Weight"
ANY = "Any"

HOST_PREDICATES = frozenset({HOST, HOST_REGEXP})
LEGACY_PREDICATES = frozenset({PATH, METHOD, HOST, HOST_REGEXP, PATH_REGEXP, HEADER, HEADER_REGEXP})

_ID_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class Predicate:
    """A named request condition with literal arguments.

    Example:
        >>> str(Predicate("ClientIP", ["1.2.3.4/26", "10.2.3.4/22"]))
        'ClientIP("1.2.3.4/26", "10.2.3.4/22")'
    """

    name: str
    args: list[Arg] = field(default_factory=list)

    def copy(self) -> Predicate:
        return Predicate(self.name, list(self.args))

    def __str__(self) -> str:
        return call_string(self.name, self.args)


@dataclass
class Filter:
    """A named request/response transformation with literal arguments.

    Example:
        >>> str(Filter("uniformRequestLatency", ["100ms", "10ms"]))
        'uniformRequestLatency("100ms", "10ms")'
    """

    name: str
    args: list[Arg] = field(default_factory=list)

    def copy(self) -> Filter:
        return Filter(self.name, list(self.args))

    def __str__(self) -> str:
        return call_string(self.name, self.args)


@dataclass
class Route:
    """A single route: predicates, a filter chain and a backend."""

    id: str = ""
    """Route id, empty for anonymous routes."""

    predicates: list[Predicate] = field(default_factory=list)
    """All predicates in expression order, legacy ones included."""

    filters: list[Filter] = field(default_factory=list)
    """Filters in execution order."""

    backend_type: BackendType = BackendType.NETWORK
    """How requests matching this route are dispatched."""

    backend: str = ""
    """Backend address, used only by network backends."""

    lb_algorithm: str = ""
    """Load balancer algorithm, empty for the default one."""

    lb_endpoints: list[str] = field(default_factory=list)
    """Load balancer endpoints, used only by load balanced backends."""

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check the route invariants.

        Raises:
            InvalidRouteError: If any invariant is violated.
        """
        if self.id and not _ID_PATTERN.match(self.id):
            raise InvalidRouteError(f"invalid route id: {self.id!r}")

        if any(p is None for p in self.predicates):
            raise InvalidRouteError("predicate list contains an empty entry", self.id)
        if any(f is None for f in self.filters):
            raise InvalidRouteError("filter list contains an empty entry", self.id)

        seen: set[str] = set()
        for predicate in self.predicates:
            if predicate.name in (PATH, METHOD):
                if predicate.name in seen:
                    raise InvalidRouteError(f"duplicate {predicate.name} predicate", self.id)
                seen.add(predicate.name)
            _check_legacy_args(predicate, self.id)

        if self.backend_type is BackendType.LOAD_BALANCER:
            validate_lb_endpoints(self.lb_algorithm, self.lb_endpoints, self.id)

    # Legacy views

    @property
    def path(self) -> str:
        for predicate in self.predicates:
            if predicate.name == PATH:
                return predicate.args[0]
        return ""

    @property
    def method(self) -> str:
        for predicate in self.predicates:
            if predicate.name == METHOD:
                return predicate.args[0]
        return ""

    @property
    def host_regexps(self) -> list[str]:
        return [p.args[0] for p in self.predicates if p.name in HOST_PREDICATES]

    @property
    def path_regexps(self) -> list[str]:
        return [p.args[0] for p in self.predicates if p.name == PATH_REGEXP]

    @property
    def headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        for predicate in self.predicates:
            if predicate.name == HEADER:
                headers[predicate.args[0]] = predicate.args[1]
        return headers

    @property
    def header_regexps(self) -> dict[str, list[str]]:
        regexps: dict[str, list[str]] = {}
        for predicate in self.predicates:
            if predicate.name == HEADER_REGEXP:
                regexps.setdefault(predicate.args[0], []).append(predicate.args[1])
        return regexps

    @property
    def custom_predicates(self) -> list[Predicate]:
        """Predicates without a legacy projection, e.g. Weight or Source."""
        return [p for p in self.predicates if p.name not in LEGACY_PREDICATES]

    @property
    def shunt(self) -> bool:
        return self.backend_type is BackendType.SHUNT

    @property
    def backend_string(self) -> str:
        """The backend as used in JSON: address or `<keyword>` form."""
        return backend_string(self)

    def copy(self) -> Route:
        """Return a deep copy sharing no mutable state with this route."""
        return Route(
            id=self.id,
            predicates=[p.copy() for p in self.predicates],
            filters=[f.copy() for f in self.filters],
            backend_type=self.backend_type,
            backend=self.backend,
            lb_algorithm=self.lb_algorithm,
            lb_endpoints=list(self.lb_endpoints),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert the route to its JSON shape."""
        return route_to_dict(self)

    def to_json(self) -> str:
        """Render the route as compact JSON."""
        return route_to_json(self)

    def __str__(self) -> str:
        return route_expression(self)


def _check_legacy_args(predicate: Predicate, route_id: str) -> None:
    name, args = predicate.name, predicate.args

    if name in (PATH, METHOD):
        _require_strings(predicate, 1, route_id)
    elif name in HOST_PREDICATES or name == PATH_REGEXP:
        _require_strings(predicate, 1, route_id)
        _require_regexp(predicate, args[0], route_id)
    elif name == HEADER:
        _require_strings(predicate, 2, route_id)
    elif name == HEADER_REGEXP:
        _require_strings(predicate, 2, route_id)
        _require_regexp(predicate, args[1], route_id)


def _require_strings(predicate: Predicate, count: int, route_id: str) -> None:
    if len(predicate.args) != count or not all(isinstance(a, str) for a in predicate.args):
        plural = "s" if count > 1 else ""
        raise InvalidRouteError(
            f"invalid {predicate.name} predicate, expected {count} string argument{plural}: "
            f"{predicate}",
            route_id,
        )


def _require_regexp(predicate: Predicate, expression: str, route_id: str) -> None:
    try:
        re.compile(expression)
    except re.error as e:
        raise InvalidRouteError(
            f"invalid regular expression in {predicate.name} predicate: {e}", route_id
        ) from e
