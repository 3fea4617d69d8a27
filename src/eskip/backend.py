"""Backend types and load balancer endpoint validation.

A route's backend is one of:
- NETWORK: a URL the request is proxied to, e.g. "https://www.example.org"
- SHUNT: the route answers locally, e.g. after a status() filter
- LOOPBACK: the request is matched again against the route table
- DYNAMIC: the target is decided at request time by filters
- LOAD_BALANCER: a group of endpoints sharing one scheme
"""

from __future__ import annotations

from enum import Enum
from urllib.parse import urlsplit

from eskip.errors import InvalidRouteError


class BackendType(Enum):
    """Types of route backends."""

    NETWORK = "network"
    SHUNT = "shunt"
    LOOPBACK = "loopback"
    DYNAMIC = "dynamic"
    LOAD_BALANCER = "lb"

    @classmethod
    def from_keyword(cls, keyword: str) -> BackendType:
        """Return the backend type for a `<keyword>` backend.

        Raises:
            KeyError: If the keyword is not a special backend.
        """
        return _KEYWORDS[keyword]

    @property
    def keyword(self) -> str | None:
        """The `<...>` keyword used in eskip for special backends."""
        for keyword, backend_type in _KEYWORDS.items():
            if backend_type is self:
                return keyword
        return None


_KEYWORDS: dict[str, BackendType] = {
    "shunt": BackendType.SHUNT,
    "loopback": BackendType.LOOPBACK,
    "dynamic": BackendType.DYNAMIC,
}

LB_ALGORITHMS: frozenset[str] = frozenset({
    "roundRobin",
    "random",
    "consistentHash",
    "powerOfRandomNChoices",
})


def endpoint_scheme(endpoint: str) -> str:
    """Return the URL scheme of a load balancer endpoint ("" if it has none)."""
    return urlsplit(endpoint).scheme.lower()


def validate_lb_endpoints(algorithm: str, endpoints: list[str], route_id: str = "") -> None:
    """Check a load balanced backend.

    Args:
        algorithm: The algorithm name, or "" for the default.
        endpoints: Endpoint URLs in declaration order.
        route_id: Route id used in error messages.

    Raises:
        InvalidRouteError: If there are no endpoints, the algorithm is
            unknown, or the endpoints do not share one scheme.
    """
    if algorithm and algorithm not in LB_ALGORITHMS:
        raise InvalidRouteError(f"unknown load balancer algorithm: {algorithm}", route_id)

    if not endpoints:
        raise InvalidRouteError("load balancer backend without endpoints", route_id)

    schemes = {endpoint_scheme(ep) for ep in endpoints}
    if len(schemes) > 1:
        raise InvalidRouteError(
            "load balancer endpoints must share the same scheme, got: "
            + ", ".join(sorted(s or "<none>" for s in schemes)),
            route_id,
        )
