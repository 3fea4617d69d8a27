"""Route processing settings with environment variable support.

All settings can be configured via environment variables with the ESKIP_
prefix, or loaded from a YAML or TOML file.

Example:
    ESKIP_DEFAULT_FILTERS_PREPEND='status(418)' sets the filters prepended
    to every route.
    ESKIP_EDIT_ROUTE='["/Source[(](.*)[)]/ClientIP($1)/"]' renames the
    Source predicate.

Rewrite rules use the form `<sep>regex<sep>replacement<sep>`, where the
first character of the rule is the separator, e.g. `/Source/ClientIP/` or
`#uniformRequestLatency#normalRequestLatency#`.
"""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from eskip.errors import ConfigError, ParseError
from eskip.parser import parse_filters
from eskip.preprocess import Clone, DefaultFilters, Editor, PreProcessor


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Read route processing settings from a YAML or TOML file.

    Args:
        path: Path to a .yaml, .yml or .toml file

    Returns:
        The top-level mapping, empty for an empty YAML file

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigError: If the file cannot be decoded, does not parse, has an
            unknown suffix, or its top level is not a mapping
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in (".yaml", ".yml", ".toml"):
        raise ConfigError(f"Unsupported config format: {path.suffix}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid UTF-8: {e}") from e

    try:
        if suffix == ".toml":
            data = tomllib.loads(content)
        else:
            data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping of settings, got {type(data).__name__}"
        )
    return data


def parse_rewrite_rule(value: str) -> tuple[str, str]:
    """Split a `<sep>regex<sep>replacement<sep>` rule.

    Returns:
        Tuple of (regex, replacement).

    Raises:
        ConfigError: If the rule is malformed or the regex does not compile.
    """
    if len(value) < 3 or value[0] != value[-1]:
        raise ConfigError(
            f"invalid rewrite rule {value!r}, expected <sep>regex<sep>replacement<sep>"
        )

    separator = value[0]
    parts = value[1:-1].split(separator)
    if len(parts) != 2:
        raise ConfigError(
            f"invalid rewrite rule {value!r}, expected exactly one {separator!r} "
            "between regex and replacement"
        )

    pattern, replacement = parts
    try:
        re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"invalid regular expression in rewrite rule {value!r}: {e}") from e
    return pattern, replacement


class RouteProcessingConfig(BaseSettings):
    """Pre-processing applied to every route set.

    Pre-processors run in a fixed order: default filters first, so that
    editors and clones see them, then editors, then clones.
    """

    model_config = SettingsConfigDict(
        env_prefix="ESKIP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_filters_prepend: str = Field(
        default="",
        description="Filter chain prepended to every route, e.g. 'status(418) -> tee(\"x\")'.",
    )
    default_filters_append: str = Field(
        default="",
        description="Filter chain appended to every route.",
    )
    edit_route: list[str] = Field(
        default_factory=list,
        description="Rewrite rules replacing matching routes.",
    )
    clone_route: list[str] = Field(
        default_factory=list,
        description="Rewrite rules adding a clone of matching routes.",
    )
    pretty: bool = Field(
        default=False,
        description="Pretty print routes in CLI output.",
    )
    log_level: str = Field(
        default="info",
        description="Log level (debug, info, warning, error).",
    )

    @field_validator("default_filters_prepend", "default_filters_append")
    @classmethod
    def _check_filters(cls, value: str) -> str:
        try:
            parse_filters(value)
        except ParseError as e:
            raise ValueError(f"invalid default filters: {e}") from e
        return value

    @field_validator("edit_route", "clone_route")
    @classmethod
    def _check_rewrite_rules(cls, value: list[str]) -> list[str]:
        for rule in value:
            parse_rewrite_rule(rule)
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.lower()
        if value not in ("debug", "info", "warning", "error"):
            raise ValueError(f"invalid log level: {value}")
        return value

    @classmethod
    def from_file(cls, path: str | Path, **overrides: Any) -> RouteProcessingConfig:
        """Load settings from a YAML or TOML file.

        Values may be nested under an `eskip` section. Keyword overrides
        take precedence over the file.
        """
        data = load_config_from_file(path)
        if isinstance(data.get("eskip"), dict):
            data = data["eskip"]
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)

    def default_filters(self) -> DefaultFilters:
        return DefaultFilters(
            prepend=parse_filters(self.default_filters_prepend),
            append=parse_filters(self.default_filters_append),
        )

    def editors(self) -> list[Editor]:
        return [Editor(*parse_rewrite_rule(rule)) for rule in self.edit_route]

    def clones(self) -> list[Clone]:
        return [Clone(*parse_rewrite_rule(rule)) for rule in self.clone_route]

    def pre_processors(self) -> list[PreProcessor]:
        """All configured pre-processors in the order they are applied."""
        pre_processors: list[PreProcessor] = []
        if self.default_filters_prepend.strip() or self.default_filters_append.strip():
            pre_processors.append(self.default_filters())
        pre_processors.extend(self.editors())
        pre_processors.extend(self.clones())
        return pre_processors

    def to_display_dict(self) -> dict[str, Any]:
        """Export current settings as a dictionary for display."""
        return {
            "default_filters_prepend": self.default_filters_prepend,
            "default_filters_append": self.default_filters_append,
            "edit_route": list(self.edit_route),
            "clone_route": list(self.clone_route),
            "pretty": self.pretty,
            "log_level": self.log_level,
        }


_config: RouteProcessingConfig | None = None


def get_config() -> RouteProcessingConfig:
    """Get the global configuration instance.

    The instance reads environment variables once and is cached for the
    lifetime of the process. To reload it (e.g., in tests), call
    clear_config() first.
    """
    global _config
    if _config is None:
        _config = RouteProcessingConfig()
    return _config


def clear_config() -> None:
    """Clear the cached configuration."""
    global _config
    _config = None
