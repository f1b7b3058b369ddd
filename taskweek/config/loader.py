from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load the optional YAML config (config/taskweek.yml by default)
- Validate it against the bundled JSON schema (unknown keys rejected)
- Apply defaults for everything left out
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/taskweek.yml")

DEFAULT_PLACEHOLDERS = {
    "issue_type": "-",
    "assignee": "Unknown",
    "name": "-",
    "epic_link": "-",
    "module": "Unknown",
}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ExportConfig:
    include_labels: bool = True
    include_stale_flag: bool = True


@dataclass(frozen=True)
class AppConfig:
    column_aliases: dict[str, list[str]] = field(default_factory=dict)  # appended to built-ins
    placeholders: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PLACEHOLDERS))
    keep_na_strings: list[str] | None = None  # strings pandas must not turn into NaN
    error_log_dir: str = "logs"
    export: ExportConfig = field(default_factory=ExportConfig)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing or invalid, or the data fails
            validation (unknown keys, wrong types).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    placeholders = dict(DEFAULT_PLACEHOLDERS)
    placeholders.update(data.get("placeholders", {}))
    export_raw = data.get("export", {})
    return AppConfig(
        column_aliases={k: list(v) for k, v in data.get("column_aliases", {}).items()},
        placeholders=placeholders,
        keep_na_strings=data.get("keep_na_strings"),
        error_log_dir=data.get("error_log_dir", "logs"),
        export=ExportConfig(
            include_labels=export_raw.get("include_labels", True),
            include_stale_flag=export_raw.get("include_stale_flag", True),
        ),
    )


def resolve_config(explicit: Path | None = None, env_value: str | None = None) -> AppConfig:
    """Pick the config source: explicit path, then env var, then the default file.

    An explicit or env-provided path must exist; the default file is optional
    and built-in defaults apply when it is absent.
    """
    if explicit is not None:
        return load_config(explicit)
    if env_value:
        return load_config(Path(env_value))
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return AppConfig()
