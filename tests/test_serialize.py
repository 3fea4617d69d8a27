"""Tests for eskip text and JSON rendering."""

from __future__ import annotations

import json

import pytest

from eskip import BackendType, Filter, ParseError, Predicate, Route, parse, routes_to_string
from eskip.serialize import format_number

BACKEND = "https://www.example.org"


class TestCallString:
    """Tests for str() of predicates and filters."""

    def test_predicate_one_parameter(self):
        """Test a predicate with one argument."""
        assert str(Predicate("ClientIP", ["1.2.3.4/26"])) == 'ClientIP("1.2.3.4/26")'

    def test_predicate_two_parameters(self):
        """Test a predicate with two arguments."""
        predicate = Predicate("ClientIP", ["1.2.3.4/26", "10.2.3.4/22"])
        assert str(predicate) == 'ClientIP("1.2.3.4/26", "10.2.3.4/22")'

    def test_filter_one_parameter(self):
        """Test a filter with one argument."""
        assert str(Filter("setPath", ["/foo"])) == 'setPath("/foo")'

    def test_filter_two_parameters(self):
        """Test a filter with two arguments."""
        filter_ = Filter("uniformRequestLatency", ["100ms", "10ms"])
        assert str(filter_) == 'uniformRequestLatency("100ms", "10ms")'

    def test_no_arguments(self):
        """Test a call without arguments."""
        assert str(Filter("xsrf")) == "xsrf()"

    def test_escaping(self):
        """Test that quotes and backslashes are escaped."""
        assert str(Filter("f", ['a"b\\c'])) == r'f("a\"b\\c")'

    @pytest.mark.parametrize(
        "value,expected",
        [
            (42.0, "42"),
            (-42.0, "-42"),
            (3.14, "3.14"),
            (0.5, "0.5"),
            (3.1415, "3.1415"),
            (1e21, "1e+21"),
        ],
    )
    def test_numbers(self, value, expected):
        """Test that integral numbers have no fraction."""
        assert format_number(value) == expected


class TestRouteString:
    """Tests for str(route) and routes_to_string()."""

    def test_network_route(self):
        """Test predicates, filters and a network backend."""
        route = Route(
            predicates=[Predicate("Path", ["/a"]), Predicate("Weight", [10.0])],
            filters=[Filter("setPath", ["/b"])],
            backend=BACKEND,
        )
        assert str(route) == f'Path("/a") && Weight(10) -> setPath("/b") -> "{BACKEND}"'

    def test_catch_all(self):
        """Test that a route without predicates renders as *."""
        assert str(Route(backend_type=BackendType.SHUNT)) == "* -> <shunt>"

    @pytest.mark.parametrize(
        "backend_type,expected",
        [
            (BackendType.SHUNT, "<shunt>"),
            (BackendType.LOOPBACK, "<loopback>"),
            (BackendType.DYNAMIC, "<dynamic>"),
        ],
    )
    def test_special_backends(self, backend_type, expected):
        """Test the <keyword> backends."""
        assert str(Route(backend_type=backend_type)).endswith(expected)

    def test_load_balancer(self):
        """Test a load balanced backend."""
        route = Route(
            backend_type=BackendType.LOAD_BALANCER,
            lb_algorithm="roundRobin",
            lb_endpoints=["http://a:80", "http://b:80"],
        )
        assert str(route) == '* -> <roundRobin, "http://a:80", "http://b:80">'

    def test_single_anonymous_route(self):
        """Test that a single anonymous route renders without id."""
        routes = parse('Path("/") -> <shunt>')
        assert routes_to_string(routes) == 'Path("/") -> <shunt>'

    def test_multiple_routes(self):
        """Test that routes render as id: expression; lines."""
        routes = parse('r1: Path("/a") -> <shunt>; r2: * -> "http://b"')
        assert routes_to_string(routes) == 'r1: Path("/a") -> <shunt>;\nr2: * -> "http://b";'

    def test_pretty(self):
        """Test pretty printing."""
        routes = parse('r1: Path("/a") && Method("GET") -> setPath("/b") -> <shunt>')
        assert routes_to_string(routes, pretty=True) == (
            'r1: Path("/a")\n'
            '  && Method("GET")\n'
            '  -> setPath("/b")\n'
            "  -> <shunt>;"
        )

    def test_round_trip(self):
        """Test that rendered routes parse back to equal routes."""
        document = r"""
            r1: Path("/some/\"/path") && Host(/^www[.]/) && PathRegexp(/\/\w+Id$/)
                -> setRequestHeader("X-Foo", "a\\b")
                -> "https://www.example.org";
            r2: Method("GET") && Header("X-A", "1") && HeaderRegexp("X-B", "^b")
                && Weight(50) && Custom(3.14, "x", -1)
                -> status(418) -> <shunt>;
            r3: * -> <loopback>;
            r4: * -> <dynamic>;
            r5: * -> <consistentHash, "http://a:80", "http://b:80">;
            r6: Foo(1e21, 0.001) -> <"https://a", "https://b">
        """
        routes = parse(document)
        assert parse(routes_to_string(routes)) == routes
        assert parse(routes_to_string(routes, pretty=True)) == routes
        for route in routes:
            assert parse(str(route))[0] == Route(**{**vars(route), "id": ""})


class TestRouteJSON:
    """Tests for Route.to_json()."""

    def test_zero_route(self):
        """Test that empty lists are emitted, never null."""
        assert Route().to_json() == '{"id":"","backend":"","predicates":[],"filters":[]}'

    def test_empty_args(self):
        """Test that missing arguments are emitted as an empty list."""
        route = Route(filters=[Filter("xsrf")], predicates=[Predicate("Test")])
        assert route.to_json() == (
            '{"id":"","backend":"",'
            '"predicates":[{"name":"Test","args":[]}],'
            '"filters":[{"name":"xsrf","args":[]}]}'
        )

    def test_network_backend(self):
        """Test that network backends are emitted as the address."""
        route = Route(predicates=[Predicate("Method", ["GET"])], backend=BACKEND)
        assert route.to_json() == (
            '{"id":"","backend":"https://www.example.org",'
            '"predicates":[{"name":"Method","args":["GET"]}],"filters":[]}'
        )

    @pytest.mark.parametrize(
        "backend_type,expected",
        [
            (BackendType.SHUNT, "<shunt>"),
            (BackendType.LOOPBACK, "<loopback>"),
            (BackendType.DYNAMIC, "<dynamic>"),
        ],
    )
    def test_special_backends(self, backend_type, expected):
        """Test that special backends are emitted as their keyword."""
        route = Route(
            predicates=[Predicate("Method", ["GET"])],
            backend_type=backend_type,
            backend="ignored",
        )
        assert route.to_json() == (
            f'{{"id":"","backend":"{expected}",'
            '"predicates":[{"name":"Method","args":["GET"]}],"filters":[]}'
        )

    def test_load_balancer_backend(self):
        """Test that load balanced backends are emitted as their expression."""
        route = parse('lb: * -> <roundRobin, "http://a:80", "http://b:80">')[0]
        assert json.loads(route.to_json())["backend"] == (
            '<roundRobin, "http://a:80", "http://b:80">'
        )

    def test_predicate_categories(self):
        """Test the fixed predicate order and one entry per value."""
        route = Route(
            predicates=[
                Predicate("Test", [3.14, "hello"]),
                Predicate("HeaderRegexp", ['ap"key', "slash/value0"]),
                Predicate("Path", ['/some/"/path']),
                Predicate("Host", ["h-expression"]),
                Predicate("PathRegexp", ["p-expression"]),
                Predicate("Header", ['ap"key', 'ap"value']),
                Predicate("HostRegexp", ["slash/h-expression"]),
                Predicate("PathRegexp", ["slash/p-expression"]),
                Predicate("HeaderRegexp", ['ap"key', "slash/value1"]),
                Predicate("Method", ["PUT"]),
            ],
            filters=[
                Filter("filter0", [3.1415, "argvalue"]),
                Filter("filter1", [-42.0, 'ap"argvalue']),
            ],
            backend=BACKEND,
        )
        expected = (
            "{"
            '"id":"",'
            '"backend":"https://www.example.org",'
            '"predicates":['
            '{"name":"Method","args":["PUT"]}'
            ',{"name":"Path","args":["/some/\\"/path"]}'
            ',{"name":"HostRegexp","args":["h-expression"]}'
            ',{"name":"HostRegexp","args":["slash/h-expression"]}'
            ',{"name":"PathRegexp","args":["p-expression"]}'
            ',{"name":"PathRegexp","args":["slash/p-expression"]}'
            ',{"name":"Header","args":["ap\\"key","ap\\"value"]}'
            ',{"name":"HeaderRegexp","args":["ap\\"key","slash/value0"]}'
            ',{"name":"HeaderRegexp","args":["ap\\"key","slash/value1"]}'
            ',{"name":"Test","args":[3.14,"hello"]}'
            "],"
            '"filters":['
            '{"name":"filter0","args":[3.1415,"argvalue"]}'
            ',{"name":"filter1","args":[-42,"ap\\"argvalue"]}'
            "]"
            "}"
        )
        assert route.to_json() == expected

    def test_weight_is_kept(self):
        """Test that Weight and custom predicates follow the legacy ones."""
        route = parse(f'Weight(50) && Path("/a") -> "{BACKEND}"')[0]
        assert json.loads(route.to_json())["predicates"] == [
            {"name": "Path", "args": ["/a"]},
            {"name": "Weight", "args": [50]},
        ]

    def test_to_dict(self):
        """Test the dictionary form used for JSON."""
        route = parse('r1: * -> status(200) -> <shunt>')[0]
        assert route.to_dict() == {
            "id": "r1",
            "backend": "<shunt>",
            "predicates": [],
            "filters": [{"name": "status", "args": [200]}],
        }

    def test_repeated_header_names(self):
        """Test that every Header predicate is emitted, in route order."""
        route = parse('Header("X", "a") && Header("X", "b") -> <shunt>')[0]
        assert json.loads(route.to_json())["predicates"] == [
            {"name": "Header", "args": ["X", "a"]},
            {"name": "Header", "args": ["X", "b"]},
        ]

    def test_non_finite_numbers_rejected_by_parser(self):
        """Test that JSON never has to encode an infinite argument."""
        with pytest.raises(ParseError):
            parse("* -> f(1e999) -> <shunt>")
