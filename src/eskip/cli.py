"""eskip CLI - check, print and rewrite eskip route files."""

from __future__ import annotations

import logging
import sys

import click
import structlog
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from eskip.config import RouteProcessingConfig
from eskip.errors import EskipError
from eskip.parser import parse
from eskip.preprocess import apply_pre_processors
from eskip.route import Route
from eskip.serialize import backend_expression, routes_to_string

console = Console()

logger = structlog.get_logger()


def _configure_logging(log_level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


def _load_routes(files: tuple[str, ...]) -> list[Route]:
    """Parse all files ('-' for stdin), exiting with status 1 on the first error."""
    routes: list[Route] = []
    for path in files:
        try:
            if path == "-":
                text = click.get_text_stream("stdin").read()
            else:
                with open(path, encoding="utf-8") as f:
                    text = f.read()
            parsed = parse(text)
        except (OSError, EskipError) as e:
            console.print(f"[red]{escape(path)}: {escape(str(e))}[/red]")
            sys.exit(1)

        logger.debug("Loaded routes", source=path, count=len(parsed))
        routes.extend(parsed)
    return routes


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="info",
    help="Log level (default: info)",
)
def main(verbose: bool, log_level: str):
    """eskip - parse, check and rewrite route definitions.

    Examples:

        eskip check routes.eskip

        eskip print routes.eskip --pretty

        eskip print routes.eskip --edit-route '/Source[(](.*)[)]/ClientIP($1)/'
    """
    _configure_logging("debug" if verbose else log_level)


@main.command()
@click.argument("files", nargs=-1, required=True)
def check(files: tuple[str, ...]):
    """Check that route files parse and list their routes."""
    routes = _load_routes(files)

    table = Table(title="Routes")
    table.add_column("Id", style="cyan")
    table.add_column("Predicates", justify="right")
    table.add_column("Filters", justify="right")
    table.add_column("Backend")
    for route in routes:
        table.add_row(
            escape(route.id or "-"),
            str(len(route.predicates)),
            str(len(route.filters)),
            escape(backend_expression(route)),
        )

    console.print(table)
    console.print(f"[green]{len(routes)} route(s) OK[/green]")


@main.command(name="print")
@click.argument("files", nargs=-1, required=True)
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True),
    help="Path to YAML or TOML config file",
)
@click.option("--prepend", default=None, help="Filters prepended to every route")
@click.option("--append", default=None, help="Filters appended to every route")
@click.option(
    "--edit-route",
    multiple=True,
    help="Rewrite rule <sep>regex<sep>replacement<sep> replacing matching routes",
)
@click.option(
    "--clone-route",
    multiple=True,
    help="Rewrite rule <sep>regex<sep>replacement<sep> cloning matching routes",
)
@click.option("--pretty", is_flag=True, help="Pretty print routes")
@click.option("--json", "as_json", is_flag=True, help="Print one JSON object per route")
def print_routes(
    files: tuple[str, ...],
    config_file: str | None,
    prepend: str | None,
    append: str | None,
    edit_route: tuple[str, ...],
    clone_route: tuple[str, ...],
    pretty: bool,
    as_json: bool,
):
    """Apply pre-processing to route files and print the result.

    Examples:

        eskip print routes.eskip --prepend 'status(418)'

        eskip print routes.eskip --clone-route '/Source/ClientIP/' --json
    """
    overrides = {
        "default_filters_prepend": prepend,
        "default_filters_append": append,
        "edit_route": list(edit_route) or None,
        "clone_route": list(clone_route) or None,
        "pretty": pretty or None,
    }

    try:
        if config_file:
            config = RouteProcessingConfig.from_file(config_file, **overrides)
        else:
            config = RouteProcessingConfig(**{k: v for k, v in overrides.items() if v is not None})
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        sys.exit(1)

    routes = _load_routes(files)

    try:
        routes = apply_pre_processors(routes, config.pre_processors())
    except EskipError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    if as_json:
        for route in routes:
            click.echo(route.to_json())
    else:
        click.echo(routes_to_string(routes, pretty=config.pretty))


@main.command()
def version():
    """Show version information."""
    from eskip import __version__

    console.print(f"[bold]Version:[/bold] {__version__}")
    console.print(f"[bold]Python:[/bold] {sys.version}")


if __name__ == "__main__":
    main()
