"""Lint configuration: rulesets, per-rule and per-category settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from speclint.document.index import ResolveOptions
from speclint.linter.rule import VALID_CATEGORIES
from speclint.linter.violation import Severity

logger = logging.getLogger(__name__)

VALID_OUTPUT_FORMATS: frozenset[str] = frozenset({"text", "json"})
DEFAULT_CONFIG_NAMES: tuple[str, ...] = (".speclint.yaml", ".speclint.yml")


class ConfigError(Exception):
    """Raised when a configuration file is missing, unparsable, or invalid."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleSetting:
    id: str
    severity: Severity | None = None
    disabled: bool = False


@dataclass(frozen=True)
class CategorySetting:
    enabled: bool | None = None
    severity: Severity | None = None


@dataclass
class LintConfig:
    """Everything that shapes one lint run.

    ``resolve`` is passed through to the index builder untouched.
    """

    extends: list[str] = field(default_factory=lambda: ["all"])
    rules: dict[str, RuleSetting] = field(default_factory=dict)
    categories: dict[str, CategorySetting] = field(default_factory=dict)
    output_format: str = "text"
    resolve: ResolveOptions = field(default_factory=ResolveOptions)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_config(path: Path) -> LintConfig:
    """Read and validate a YAML configuration file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read config {path}: {exc}"
        raise ConfigError(msg) from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        msg = f"Invalid YAML in {path}: {exc}"
        raise ConfigError(msg) from exc
    try:
        config = parse_config(data or {}, base_dir=path.parent)
    except ValueError as exc:
        msg = f"Invalid config {path}: {exc}"
        raise ConfigError(msg) from exc
    logger.debug("Loaded config from %s", path)
    return config


def find_config(start: Path) -> Path | None:
    """Return the first default config file found in *start*, if any."""
    for name in DEFAULT_CONFIG_NAMES:
        candidate = start / name
        if candidate.is_file():
            return candidate
    return None


def parse_config(data: Any, *, base_dir: Path | None = None) -> LintConfig:
    """Validate already-loaded config data.  Raises ``ValueError`` with the offending key."""
    if not isinstance(data, dict):
        msg = "top level must be a mapping"
        raise ValueError(msg)

    known = {"extends", "rules", "categories", "output_format", "resolve"}
    unknown = sorted(set(data) - known)
    if unknown:
        msg = f"unknown key(s): {', '.join(map(str, unknown))}"
        raise ValueError(msg)

    return LintConfig(
        extends=_parse_extends(data.get("extends", ["all"])),
        rules=_parse_rules(data.get("rules") or []),
        categories=_parse_categories(data.get("categories") or {}),
        output_format=_parse_output_format(data.get("output_format", "text")),
        resolve=_parse_resolve(data.get("resolve") or {}, base_dir),
    )


def _parse_extends(raw: Any) -> list[str]:
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, list) and all(isinstance(item, str) for item in raw):
        return list(raw)
    msg = "'extends' must be a ruleset name or a list of names"
    raise ValueError(msg)


def _parse_severity(raw: Any, where: str) -> Severity | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        msg = f"{where}: 'severity' must be a string"
        raise ValueError(msg)
    try:
        return Severity.parse(raw)
    except ValueError as exc:
        msg = f"{where}: {exc}"
        raise ValueError(msg) from exc


def _parse_rules(raw: Any) -> dict[str, RuleSetting]:
    """Accept a list of ``{id, severity, disabled}`` entries or an id-keyed mapping."""
    entries: list[dict[str, Any]] = []
    if isinstance(raw, dict):
        for rule_id, value in raw.items():
            if value is False or value == "off":
                entries.append({"id": rule_id, "disabled": True})
            elif isinstance(value, str):
                entries.append({"id": rule_id, "severity": value})
            elif isinstance(value, dict):
                entries.append({"id": rule_id, **value})
            else:
                msg = f"rules.{rule_id}: expected a severity, 'off', or a mapping"
                raise ValueError(msg)
    elif isinstance(raw, list):
        entries = raw
    else:
        msg = "'rules' must be a list or a mapping"
        raise ValueError(msg)

    settings: dict[str, RuleSetting] = {}
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
            msg = f"rules[{i}]: each entry needs a string 'id'"
            raise ValueError(msg)
        rule_id = entry["id"]
        extra = sorted(set(entry) - {"id", "severity", "disabled"})
        if extra:
            msg = f"rules.{rule_id}: unknown key(s): {', '.join(extra)}"
            raise ValueError(msg)
        disabled = entry.get("disabled", False)
        if not isinstance(disabled, bool):
            msg = f"rules.{rule_id}: 'disabled' must be true or false"
            raise ValueError(msg)
        settings[rule_id] = RuleSetting(
            id=rule_id,
            severity=_parse_severity(entry.get("severity"), f"rules.{rule_id}"),
            disabled=disabled,
        )
    return settings


def _parse_categories(raw: Any) -> dict[str, CategorySetting]:
    if not isinstance(raw, dict):
        msg = "'categories' must be a mapping"
        raise ValueError(msg)
    settings: dict[str, CategorySetting] = {}
    for name, value in raw.items():
        if name not in VALID_CATEGORIES:
            valid = ", ".join(sorted(VALID_CATEGORIES))
            msg = f"categories.{name}: unknown category (expected one of: {valid})"
            raise ValueError(msg)
        if not isinstance(value, dict):
            msg = f"categories.{name}: expected a mapping"
            raise ValueError(msg)
        enabled = value.get("enabled")
        if enabled is not None and not isinstance(enabled, bool):
            msg = f"categories.{name}: 'enabled' must be true or false"
            raise ValueError(msg)
        settings[name] = CategorySetting(
            enabled=enabled,
            severity=_parse_severity(value.get("severity"), f"categories.{name}"),
        )
    return settings


def _parse_output_format(raw: Any) -> str:
    if raw not in VALID_OUTPUT_FORMATS:
        valid = ", ".join(sorted(VALID_OUTPUT_FORMATS))
        msg = f"'output_format' must be one of: {valid}"
        raise ValueError(msg)
    return str(raw)


def _parse_resolve(raw: Any, base_dir: Path | None) -> ResolveOptions:
    if not isinstance(raw, dict):
        msg = "'resolve' must be a mapping"
        raise ValueError(msg)
    disable = raw.get("disable_external_refs", False)
    if not isinstance(disable, bool):
        msg = "resolve.disable_external_refs must be true or false"
        raise ValueError(msg)
    fs_root: Path | None = None
    if raw.get("fs_root") is not None:
        fs_root = Path(str(raw["fs_root"]))
        if base_dir is not None and not fs_root.is_absolute():
            fs_root = base_dir / fs_root
    return ResolveOptions(fs_root=fs_root, disable_external_refs=disable)
