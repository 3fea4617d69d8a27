"""Route pre-processors.

Pre-processors transform a whole route set before it is handed to the
routing table. They never modify their input: every returned route is a
new object.

- DefaultFilters: prepend and append a fixed filter chain to every route
- Editor: rewrite predicates and filters with a regular expression
- Clone: like Editor, but keep the original and add the rewritten route

Editor and Clone work on the eskip text of a route's predicates and
filters and parse the result back, so a pattern can rename predicates,
filters or arguments alike:

    editor = Editor(r"Source[(](.*)[)]", "ClientIP($1)")
    routes = editor.do(parse('r: Source("1.2.3.4/26") -> <shunt>'))
    # r: ClientIP("1.2.3.4/26") -> <shunt>
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from eskip.errors import ParseError, RewriteError
from eskip.parser import parse_filters, parse_predicates
from eskip.route import Filter, Route

logger = structlog.get_logger()

CLONE_PREFIX = "clone_"

_TEMPLATE_REFERENCE = re.compile(r"\$(?:\$|\{([A-Za-z0-9_]+)\}|([A-Za-z0-9_]+))")


class PreProcessor(Protocol):
    """Anything that transforms a route set."""

    def do(self, routes: list[Route]) -> list[Route]: ...


def apply_pre_processors(
    routes: Iterable[Route], pre_processors: Iterable[PreProcessor]
) -> list[Route]:
    """Run pre-processors in order, each on the output of the previous one."""
    result = list(routes)
    for pre_processor in pre_processors:
        result = pre_processor.do(result)
    return result


@dataclass(frozen=True)
class DefaultFilters:
    """Filters added to the front and the back of every route's filter chain."""

    prepend: Sequence[Filter] = field(default_factory=tuple)
    append: Sequence[Filter] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "prepend", tuple(self.prepend or ()))
        object.__setattr__(self, "append", tuple(self.append or ()))

    def do(self, routes: list[Route]) -> list[Route]:
        result = []
        for route in routes:
            copy = route.copy()
            if self.prepend or self.append:
                copy.filters = (
                    [f.copy() for f in self.prepend]
                    + copy.filters
                    + [f.copy() for f in self.append]
                )
            result.append(copy)

        if self.prepend or self.append:
            logger.debug(
                "Default filters applied",
                routes=len(result),
                prepend=len(self.prepend),
                append=len(self.append),
            )
        return result


def expand_template(match: re.Match[str], template: str) -> str:
    """Expand `$1`, `${1}`, `$name`, `${name}` and `$$` in a replacement template.

    References to groups that do not exist or did not participate in the
    match expand to an empty string.
    """

    def reference(ref: re.Match[str]) -> str:
        name = ref.group(1) or ref.group(2)
        if name is None:
            return "$"
        if name.isdigit():
            index = int(name)
            value = match.group(index) if index <= match.re.groups else None
        else:
            value = match.groupdict().get(name)
        return value or ""

    return _TEMPLATE_REFERENCE.sub(reference, template)


class _Rewriter:
    """Regex substitution over the eskip text of a route."""

    def __init__(self, pattern: str | re.Pattern[str] | None = None, replacement: str = "") -> None:
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        self.pattern = pattern
        self.replacement = replacement

    def __repr__(self) -> str:
        pattern = self.pattern.pattern if self.pattern is not None else None
        return f"{type(self).__name__}(pattern={pattern!r}, replacement={self.replacement!r})"

    def _substitute(self, text: str) -> str:
        return self.pattern.sub(lambda m: expand_template(m, self.replacement), text)

    def rewrite(self, route: Route) -> Route | None:
        """Apply the substitution to a route.

        Returns:
            The rewritten route, or None when the pattern changed nothing.

        Raises:
            RewriteError: If the rewritten text is not a valid route.
        """
        if self.pattern is None:
            return None

        predicates_text = " && ".join(str(p) for p in route.predicates)
        filters_text = " -> ".join(str(f) for f in route.filters)
        new_predicates_text = self._substitute(predicates_text)
        new_filters_text = self._substitute(filters_text)

        if new_predicates_text == predicates_text and new_filters_text == filters_text:
            return None

        try:
            predicates = parse_predicates(new_predicates_text)
        except ParseError as e:
            raise RewriteError(route.id, new_predicates_text, e.reason) from e

        try:
            filters = parse_filters(new_filters_text)
        except ParseError as e:
            raise RewriteError(route.id, new_filters_text, e.reason) from e

        try:
            return Route(
                id=route.id,
                predicates=predicates,
                filters=filters,
                backend_type=route.backend_type,
                backend=route.backend,
                lb_algorithm=route.lb_algorithm,
                lb_endpoints=list(route.lb_endpoints),
            )
        except ParseError as e:
            raise RewriteError(
                route.id, f"{new_predicates_text} -> {new_filters_text}", e.reason
            ) from e


class Editor(_Rewriter):
    """Replace routes with their rewritten version.

    Routes the pattern does not match are returned unchanged (as copies).
    An Editor without a pattern returns copies of all routes.
    """

    def do(self, routes: list[Route]) -> list[Route]:
        result = []
        for route in routes:
            rewritten = self.rewrite(route)
            if rewritten is None:
                result.append(route.copy())
                continue

            logger.debug("Route rewritten", route_id=route.id, route=str(rewritten))
            result.append(rewritten)
        return result


def clone_id(route_id: str) -> str:
    """Id of a cloned route.

    The prefix is added once: cloning a clone keeps its id.
    """
    if route_id.startswith(CLONE_PREFIX):
        return route_id
    return CLONE_PREFIX + route_id


class Clone(_Rewriter):
    """Add a rewritten copy of every route the pattern matches.

    The result holds copies of all input routes in their original order,
    followed by the clones in the order of their source routes.

    Clone ids are not checked for uniqueness. The clone_ prefix is added
    only once, so chained Clones that match both r1 and clone_r1 produce two
    routes with the id clone_r1. Such duplicates are logged as warnings.
    """

    def do(self, routes: list[Route]) -> list[Route]:
        result = [route.copy() for route in routes]
        ids = {route.id for route in routes}
        for route in routes:
            rewritten = self.rewrite(route)
            if rewritten is None:
                continue

            rewritten.id = clone_id(route.id)
            if rewritten.id in ids:
                logger.warning("Duplicate route id", route_id=rewritten.id, source=route.id)
            ids.add(rewritten.id)
            logger.debug("Route cloned", route_id=route.id, clone_id=rewritten.id)
            result.append(rewritten)
        return result
