"""Configuration loading for the NetBox SSoT."""

import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence

import yaml

from netbox_ssot.base import Pathable
from netbox_ssot.generator import ConfigurationError, parse_relations
from netbox_ssot.generator.relations import RELATION_KINDS, RelationRule

TOKEN_ENVIRONMENT_VARIABLE = "NETBOX_SSOT_TOKEN"


class LoggerOptions(NamedTuple):
    """Logging options.

    `level` is the verbosity: 0 warning, 1-2 info, 3+ debug.
    `color` of None lets colorama decide.
    """

    level: int = 2
    color: Optional[bool] = None


class NetBoxOptions(NamedTuple):
    """NetBox connection and sync behaviour options."""

    url: str
    token: str
    verify_ssl: bool = True
    timeout: float = 30
    retries: int = 3
    page_size: int = 250
    dry_run: bool = False
    adopt_unowned: bool = False
    max_workers: int = 1


class SourceOptions(NamedTuple):
    """Single source options."""

    name: str
    source_type: str
    url: str = ""
    tag: str = ""
    tag_color: str = ""
    relations: Mapping[str, Sequence[RelationRule]] = MappingProxyType({})


class SsotOptions(NamedTuple):
    """All options of a run."""

    logger: LoggerOptions
    netbox: NetBoxOptions
    sources: List[SourceOptions]


def load_config(path: Pathable) -> SsotOptions:
    """Load configuration from the YAML file.

    Raises:
        ConfigurationError: When the file can't be read or the content is invalid.
    """
    try:
        content = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except OSError as error:
        raise ConfigurationError(f"Can't read configuration file {path}: {error}") from error
    except yaml.YAMLError as error:
        raise ConfigurationError(f"Invalid YAML in configuration file {path}: {error}") from error

    return parse_config(content or {})


def parse_config(content: Mapping[str, Any]) -> SsotOptions:
    """Parse already loaded configuration content."""
    if not isinstance(content, Mapping):
        raise ConfigurationError("Configuration must be a mapping")

    sources = content.get("source", None) or []
    if isinstance(sources, Mapping):
        sources = [sources]

    result = SsotOptions(
        logger=_parse_logger(_get_section(content, "logger")),
        netbox=_parse_netbox(_get_section(content, "netbox")),
        sources=[_parse_source(item) for item in sources],
    )

    names = [source.name for source in result.sources]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate source names: {', '.join(duplicates)}")

    return result


def _get_section(content: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = content.get(name, None) or {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"Configuration section `{name}` must be a mapping")
    return section


def _parse_logger(section: Mapping[str, Any]) -> LoggerOptions:
    color = section.get("color", None)
    return LoggerOptions(
        level=_get_int(section, "level", LoggerOptions._field_defaults["level"]),
        color=None if color is None else bool(color),
    )


def _parse_netbox(section: Mapping[str, Any]) -> NetBoxOptions:
    url = section.get("url", None)
    if not url:
        raise ConfigurationError("Missing `netbox.url`")

    token = os.getenv(TOKEN_ENVIRONMENT_VARIABLE, "") or section.get("token", None)
    if not token:
        raise ConfigurationError(f"Missing `netbox.token` or `{TOKEN_ENVIRONMENT_VARIABLE}` environment variable")

    defaults = NetBoxOptions._field_defaults
    result = NetBoxOptions(
        url=str(url),
        token=str(token),
        verify_ssl=bool(section.get("verify_ssl", defaults["verify_ssl"])),
        timeout=float(section.get("timeout", defaults["timeout"])),
        retries=_get_int(section, "retries", defaults["retries"]),
        page_size=_get_int(section, "page_size", defaults["page_size"]),
        dry_run=bool(section.get("dry_run", defaults["dry_run"])),
        adopt_unowned=bool(section.get("adopt_unowned", defaults["adopt_unowned"])),
        max_workers=_get_int(section, "max_workers", defaults["max_workers"]),
    )

    if result.page_size < 1:
        raise ConfigurationError("`netbox.page_size` must be positive")
    if result.max_workers < 1:
        raise ConfigurationError("`netbox.max_workers` must be positive")

    return result


def _parse_source(section: Any) -> SourceOptions:
    if not isinstance(section, Mapping):
        raise ConfigurationError("Source definition must be a mapping")

    name = section.get("name", None)
    if not name:
        raise ConfigurationError("Missing source `name`")
    source_type = section.get("type", None)
    if not source_type:
        raise ConfigurationError(f"Missing `type` of source {name}")

    relations: Dict[str, List[RelationRule]] = {}
    for kind in RELATION_KINDS:
        definitions = section.get(f"{kind}_relations", None)
        if not definitions:
            continue
        if isinstance(definitions, str):
            definitions = [definitions]
        try:
            relations[kind] = parse_relations(definitions)
        except ConfigurationError as error:
            raise ConfigurationError(f"Source {name}, `{kind}_relations`: {error}") from error

    return SourceOptions(
        name=str(name),
        source_type=str(source_type),
        url=str(section.get("url", "")),
        tag=str(section.get("tag", "") or ""),
        tag_color=str(section.get("tag_color", "") or ""),
        relations=relations,
    )


def _get_int(section: Mapping[str, Any], name: str, default: int) -> int:
    value = section.get(name, default)
    try:
        return int(value)
    except (TypeError, ValueError) as error:
        raise ConfigurationError(f"`{name}` must be an integer, got `{value}`") from error
