"""Canonical form of routes.

Two routes that mean the same thing have equal canonical forms even if
their predicates were written in a different order or used the Host and
HostRegexp spellings interchangeably. Filter order, argument values and
backend type still distinguish routes.
"""

from __future__ import annotations

from collections.abc import Iterable

from eskip.backend import BackendType
from eskip.route import (
    HEADER,
    HEADER_REGEXP,
    HOST,
    METHOD,
    PATH,
    PATH_REGEXP,
    Predicate,
    Route,
)


def canonical_predicates(route: Route) -> list[Predicate]:
    """Order predicates as Path, Host, PathRegexp, Method, Header, HeaderRegexp, others."""
    predicates: list[Predicate] = []

    if any(p.name == PATH for p in route.predicates):
        predicates.append(Predicate(PATH, [route.path]))
    predicates.extend(Predicate(HOST, [rx]) for rx in route.host_regexps)
    predicates.extend(Predicate(PATH_REGEXP, [rx]) for rx in route.path_regexps)
    if any(p.name == METHOD for p in route.predicates):
        predicates.append(Predicate(METHOD, [route.method]))

    headers = [p for p in route.predicates if p.name == HEADER]
    predicates.extend(p.copy() for p in sorted(headers, key=lambda p: p.args[0]))

    header_regexps = route.header_regexps
    for name in sorted(header_regexps):
        predicates.extend(Predicate(HEADER_REGEXP, [name, rx]) for rx in header_regexps[name])

    predicates.extend(p.copy() for p in route.custom_predicates)
    return predicates


def canonical(route: Route) -> Route:
    """Return the canonical form of a route as a new Route."""
    backend = ""
    lb_algorithm = ""
    lb_endpoints: list[str] = []
    if route.backend_type is BackendType.NETWORK:
        backend = route.backend
    elif route.backend_type is BackendType.LOAD_BALANCER:
        lb_algorithm = route.lb_algorithm
        lb_endpoints = list(route.lb_endpoints)

    return Route(
        id=route.id,
        predicates=canonical_predicates(route),
        filters=[f.copy() for f in route.filters],
        backend_type=route.backend_type,
        backend=backend,
        lb_algorithm=lb_algorithm,
        lb_endpoints=lb_endpoints,
    )


def canonical_list(routes: Iterable[Route]) -> list[Route]:
    """Return the canonical forms of routes, keeping their order."""
    return [canonical(r) for r in routes]


def eq(*routes: Route) -> bool:
    """Check whether all routes have the same canonical form.

    Fewer than two routes are trivially equal.
    """
    if len(routes) < 2:
        return True
    first = canonical(routes[0])
    return all(canonical(r) == first for r in routes[1:])


def eq_lists(*route_lists: Iterable[Route]) -> bool:
    """Check whether route lists contain the same routes, regardless of order.

    Routes are matched up by id.
    """
    canonical_lists = [
        sorted(canonical_list(routes), key=lambda r: r.id) for routes in route_lists
    ]
    if len(canonical_lists) < 2:
        return True

    first = canonical_lists[0]
    return all(other == first for other in canonical_lists[1:])
