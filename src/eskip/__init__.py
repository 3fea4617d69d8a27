"""eskip - route definitions for HTTP routing gateways.

Parses eskip route documents into an in-memory route model, renders routes
back to eskip text and JSON, and transforms route sets before they are
handed to a routing table.

Features:
- Parser for route documents, filter chains and predicate lists
- Route model with typed views of the well-known predicates
- Network, shunt, loopback, dynamic and load balanced backends
- Deterministic text and JSON rendering
- Pre-processors: default filters, regex editor and regex clone
- Canonical form for comparing route sets

Usage:
    from eskip import Editor, parse, routes_to_string

    routes = parse('''
        hello: Path("/hello") -> inlineContent("Hello") -> <shunt>;
        api: Source("10.0.0.0/8") -> "https://api.example.org";
    ''')

    editor = Editor(r"Source[(](.*)[)]", "ClientIP($1)")
    print(routes_to_string(editor.do(routes)))

Syntax:
    route_id: Predicate("arg") && Other(/regexp/, 42)
        -> filter("arg")
        -> "https://backend.example.org";
"""

from eskip.backend import LB_ALGORITHMS, BackendType
from eskip.canonical import canonical, canonical_list, eq, eq_lists
from eskip.errors import (
    ConfigError,
    EskipError,
    InvalidRouteError,
    ParseError,
    RewriteError,
)
from eskip.parser import parse, parse_filters, parse_predicates
from eskip.preprocess import (
    Clone,
    DefaultFilters,
    Editor,
    PreProcessor,
    apply_pre_processors,
)
from eskip.route import Filter, Predicate, Route
from eskip.serialize import routes_to_string

__version__ = "0.1.0"

__all__ = [
    # Parsing
    "parse",
    "parse_filters",
    "parse_predicates",
    # Model
    "Route",
    "Predicate",
    "Filter",
    "BackendType",
    "LB_ALGORITHMS",
    # Serialization
    "routes_to_string",
    # Pre-processing
    "PreProcessor",
    "DefaultFilters",
    "Editor",
    "Clone",
    "apply_pre_processors",
    # Canonical form
    "canonical",
    "canonical_list",
    "eq",
    "eq_lists",
    # Errors
    "EskipError",
    "ParseError",
    "InvalidRouteError",
    "RewriteError",
    "ConfigError",
]
