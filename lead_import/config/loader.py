from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from lead_import.models.config_models import (
    DEFAULT_BATCH_SIZE,
    ActorConfig,
    AssignmentConfig,
    AssignmentMode,
    DatabaseConfig,
    ImportConfig,
    TargetConfig,
    TeamMember,
)

"""Config loader.

Responsibilities:
- Load YAML config (default: config/import.yml)
- Validate against config_schema.json (shipped next to this module)
- Apply defaults and build the typed ImportConfig
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
    "config_from_dict",
]

DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).parent / "config_schema.json"

# profile -> default collection when target.collection is omitted
_DEFAULT_COLLECTIONS = {"lead": "leads", "driver": "drivers"}


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing / not valid JSON, or data fails
            validation (unknown keys, wrong types, out-of-range batch_size).
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


def config_from_dict(data: dict[str, Any]) -> ImportConfig:
    """Build an ImportConfig from already-parsed data (validated here)."""
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")
    _validate_config_schema(data)

    target_raw = data.get("target") or {}
    profile = target_raw.get("profile", "lead")
    target = TargetConfig(
        collection=target_raw.get("collection") or _DEFAULT_COLLECTIONS[profile],
        tenant_id=target_raw.get("tenant_id"),
        profile=profile,
    )

    assignment_raw = data.get("assignment") or {}
    assignment = AssignmentConfig(
        mode=AssignmentMode(assignment_raw.get("mode", AssignmentMode.UNASSIGNED.value)),
        members=tuple(
            TeamMember(id=m["id"], name=m.get("name") or m["id"])
            for m in assignment_raw.get("members", [])
        ),
    )

    actor_raw = data.get("actor") or {}
    actor = ActorConfig(
        id=actor_raw.get("id", ActorConfig.id),
        name=actor_raw.get("name", ActorConfig.name),
    )

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    return ImportConfig(
        target=target,
        batch_size=data.get("batch_size", DEFAULT_BATCH_SIZE),
        assignment=assignment,
        actor=actor,
        source_label=data.get("source_label"),
        fetch_timeout=float(data.get("fetch_timeout", 30)),
        database=db,
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    return config_from_dict(data)
