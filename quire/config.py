"""Site configuration for Quire.

Configuration lives in ``quire.yaml`` at the project root. It is loaded once
at the start of a build into a frozen SiteConfig and passed explicitly to
the selection, rendering and publishing stages.

Key classes:
- SiteConfig: Immutable site-wide settings.
- MenuEntry, SocialLink, DeploySettings: Typed sub-records.

Key functions:
- load_config: Read and validate quire.yaml.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from .errors import ConfigurationError

CONFIG_FILENAME = "quire.yaml"

KNOWN_TAXONOMIES = ("tags",)


@dataclass(frozen=True)
class MenuEntry:
    name: str
    url: str
    weight: int = 0


@dataclass(frozen=True)
class SocialLink:
    name: str
    url: str


@dataclass(frozen=True)
class DeploySettings:
    """Where ``quire publish`` sends the output. Exactly one field is set."""

    target: str | None = None
    command: str | None = None


@dataclass(frozen=True)
class SiteConfig:
    """Immutable site configuration.

    Attributes:
        title: Site title.
        base_url: Absolute URL the site is served from; empty for relative links.
        language: Language code for the HTML and feed.
        theme: Theme name, resolved under themes/ or the bundled themes.
        content_dir: Directory holding the documents.
        output_dir: Directory the build is written to.
        archetype_dir: Directory holding archetype templates.
        static_dir: Directory copied verbatim into the output.
        paginate: Listing page size; 0 disables pagination.
        summary_length: Character limit for generated summaries.
        port: Live preview port.
        menu: Menu entries ordered by weight.
        social: Social links in declaration order.
        taxonomies: Enabled taxonomy names.
        params: Opaque theme parameters.
        deploy: Publish target.
    """

    title: str = "My Blog"
    base_url: str = ""
    language: str = "en"
    theme: str = "default"
    content_dir: str = "content"
    output_dir: str = "public"
    archetype_dir: str = "archetypes"
    static_dir: str = "static"
    paginate: int = 10
    summary_length: int = 160
    port: int = 1313
    menu: tuple[MenuEntry, ...] = ()
    social: tuple[SocialLink, ...] = ()
    taxonomies: tuple[str, ...] = ("tags",)
    params: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    deploy: DeploySettings = field(default_factory=DeploySettings)

    def with_overrides(self, **changes: Any) -> SiteConfig:
        """Return a copy with the given non-None fields replaced."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _expect(value: Any, kind: type | tuple[type, ...], key: str) -> Any:
    if isinstance(value, bool) and kind is int:
        raise ConfigurationError(f"'{key}' must be {_kind_name(kind)}")
    if not isinstance(value, kind):
        raise ConfigurationError(f"'{key}' must be {_kind_name(kind)}")
    return value


def _kind_name(kind: type | tuple[type, ...]) -> str:
    names = {str: "a string", int: "an integer", list: "a list", dict: "a mapping"}
    if isinstance(kind, tuple):
        return " or ".join(names.get(k, k.__name__) for k in kind)
    return names.get(kind, kind.__name__)


def _parse_menu(raw: Any) -> tuple[MenuEntry, ...]:
    entries = []
    for index, item in enumerate(_expect(raw, list, "menu")):
        item = _expect(item, dict, f"menu[{index}]")
        try:
            entry = MenuEntry(
                name=str(item["name"]),
                url=str(item["url"]),
                weight=_expect(item.get("weight", 0), int, f"menu[{index}].weight"),
            )
        except KeyError as exc:
            raise ConfigurationError(f"menu[{index}] is missing {exc}") from None
        entries.append((entry.weight, index, entry))
    return tuple(entry for _, _, entry in sorted(entries, key=lambda e: e[:2]))


def _parse_social(raw: Any) -> tuple[SocialLink, ...]:
    links = []
    for index, item in enumerate(_expect(raw, list, "social")):
        item = _expect(item, dict, f"social[{index}]")
        if "name" not in item or "url" not in item:
            raise ConfigurationError(f"social[{index}] needs 'name' and 'url'")
        links.append(SocialLink(name=str(item["name"]), url=str(item["url"])))
    return tuple(links)


def _parse_taxonomies(raw: Any) -> tuple[str, ...]:
    names = []
    for name in _expect(raw, list, "taxonomies"):
        if name not in KNOWN_TAXONOMIES:
            raise ConfigurationError(f"unknown taxonomy {name!r}")
        if name not in names:
            names.append(name)
    return tuple(names)


def _parse_deploy(raw: Any) -> DeploySettings:
    raw = _expect(raw, dict, "deploy")
    target = raw.get("target")
    command = raw.get("command")
    if (target is None) == (command is None):
        raise ConfigurationError("'deploy' needs exactly one of 'target' or 'command'")
    if target is not None:
        _expect(target, str, "deploy.target")
    if command is not None:
        _expect(command, str, "deploy.command")
    return DeploySettings(target=target, command=command)


def parse_config(data: Mapping[str, Any]) -> SiteConfig:
    """Validate a configuration mapping into a SiteConfig.

    Args:
        data: Mapping loaded from quire.yaml.

    Returns:
        Validated configuration.

    Raises:
        ConfigurationError: On a wrongly typed or unknown value.
    """
    values: dict[str, Any] = {}
    for key in ("title", "base_url", "language", "theme"):
        if key in data:
            values[key] = _expect(data[key], str, key)
    for key in ("content_dir", "output_dir", "archetype_dir", "static_dir"):
        if key in data:
            values[key] = _expect(data[key], str, key)
    for key in ("paginate", "summary_length", "port"):
        if key in data:
            number = _expect(data[key], int, key)
            if number < 0:
                raise ConfigurationError(f"'{key}' must not be negative")
            values[key] = number
    if data.get("menu") is not None:
        values["menu"] = _parse_menu(data["menu"])
    if data.get("social") is not None:
        values["social"] = _parse_social(data["social"])
    if data.get("taxonomies") is not None:
        values["taxonomies"] = _parse_taxonomies(data["taxonomies"])
    if data.get("params") is not None:
        values["params"] = MappingProxyType(dict(_expect(data["params"], dict, "params")))
    if data.get("deploy") is not None:
        values["deploy"] = _parse_deploy(data["deploy"])
    return SiteConfig(**values)


def load_config(project_root: Path) -> SiteConfig:
    """Load site configuration from quire.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Validated, immutable configuration.

    Raises:
        ConfigurationError: If the file is missing, unreadable, not YAML,
            or fails validation.
    """
    config_path = project_root / CONFIG_FILENAME
    try:
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"No {CONFIG_FILENAME} found in {project_root}") from None
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Cannot read {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")
    return parse_config(loaded)
