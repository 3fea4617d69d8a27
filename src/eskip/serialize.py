"""Rendering of routes as eskip text and JSON.

The text form is the inverse of the parser: parsing the output of
route_expression() or routes_to_string() yields an equal route.

JSON output has a fixed shape:

    {"id": "...", "backend": "...",
     "predicates": [{"name": "...", "args": [...]}],
     "filters": [{"name": "...", "args": [...]}]}

Predicates are emitted by category (Method, Path, HostRegexp, PathRegexp,
Header, HeaderRegexp) followed by all other predicates in route order, so
the output is stable for diffing.
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

from eskip.backend import BackendType

if TYPE_CHECKING:
    from eskip.route import Route


def escape(value: str, delimiter: str = '"') -> str:
    """Backslash-escape backslashes and the delimiter."""
    return value.replace("\\", "\\\\").replace(delimiter, "\\" + delimiter)


def quote(value: str) -> str:
    return '"' + escape(value) + '"'


def format_number(value: float) -> str:
    """Format a numeric argument without a trailing ".0" for integral values."""
    if math.isfinite(value) and value == math.floor(value) and abs(value) < 1e21:
        return f"{value:.0f}"
    return repr(float(value))


def format_arg(arg: Any) -> str:
    if isinstance(arg, str):
        return quote(arg)
    if isinstance(arg, (int, float)) and not isinstance(arg, bool):
        return format_number(arg)
    raise TypeError(f"unsupported argument type: {type(arg).__name__}")


def call_string(name: str, args: Sequence[Any]) -> str:
    """Render a predicate or filter call, e.g. `setPath("/foo")`."""
    return f"{name}({', '.join(format_arg(a) for a in args)})"


def backend_expression(route: Route) -> str:
    """Render the backend as it appears in eskip text."""
    if route.backend_type is BackendType.NETWORK:
        return quote(route.backend)
    if route.backend_type is BackendType.LOAD_BALANCER:
        parts = [quote(ep) for ep in route.lb_endpoints]
        if route.lb_algorithm:
            parts.insert(0, route.lb_algorithm)
        return "<" + ", ".join(parts) + ">"
    return f"<{route.backend_type.keyword}>"


def backend_string(route: Route) -> str:
    """Render the backend as it appears in JSON: the raw address for network backends."""
    if route.backend_type is BackendType.NETWORK:
        return route.backend
    return backend_expression(route)


def predicates_expression(route: Route, separator: str = " && ") -> str:
    if not route.predicates:
        return "*"
    return separator.join(str(p) for p in route.predicates)


def filters_expression(route: Route, separator: str = " -> ") -> str:
    return separator.join(str(f) for f in route.filters)


def route_expression(route: Route, pretty: bool = False) -> str:
    """Render a route without its id: `predicates -> filters -> backend`."""
    if pretty:
        and_sep, arrow_sep = "\n  && ", "\n  -> "
    else:
        and_sep, arrow_sep = " && ", " -> "

    parts = [predicates_expression(route, and_sep)]
    parts.extend(str(f) for f in route.filters)
    parts.append(backend_expression(route))
    return arrow_sep.join(parts)


def routes_to_string(routes: Iterable[Route], pretty: bool = False) -> str:
    """Render a list of routes as an eskip document.

    A single anonymous route is rendered as a bare expression, every other
    route as `id: expression;`.
    """
    routes = list(routes)
    if len(routes) == 1 and not routes[0].id:
        return route_expression(routes[0], pretty)

    definitions = []
    for route in routes:
        expression = route_expression(route, pretty)
        if route.id:
            definitions.append(f"{route.id}: {expression};")
        else:
            definitions.append(f"{expression};")

    return ("\n\n" if pretty else "\n").join(definitions)


def _json_arg(arg: Any) -> Any:
    if isinstance(arg, float) and math.isfinite(arg) and arg.is_integer():
        return int(arg)
    return arg


def _json_call(name: str, args: Sequence[Any]) -> dict[str, Any]:
    return {"name": name, "args": [_json_arg(a) for a in args]}


def route_to_dict(route: Route) -> dict[str, Any]:
    """Build the JSON shape of a route."""
    predicates: list[dict[str, Any]] = []

    for name in ("Method", "Path"):
        for predicate in route.predicates:
            if predicate.name == name:
                predicates.append(_json_call(name, predicate.args))
    for expression in route.host_regexps:
        predicates.append(_json_call("HostRegexp", [expression]))
    for expression in route.path_regexps:
        predicates.append(_json_call("PathRegexp", [expression]))
    for predicate in route.predicates:
        if predicate.name == "Header":
            predicates.append(_json_call("Header", predicate.args))
    for name, expressions in route.header_regexps.items():
        for expression in expressions:
            predicates.append(_json_call("HeaderRegexp", [name, expression]))
    for predicate in route.custom_predicates:
        predicates.append(_json_call(predicate.name, predicate.args))

    return {
        "id": route.id,
        "backend": backend_string(route),
        "predicates": predicates,
        "filters": [_json_call(f.name, f.args) for f in route.filters],
    }


def route_to_json(route: Route) -> str:
    return json.dumps(route_to_dict(route), separators=(",", ":"), ensure_ascii=False)
