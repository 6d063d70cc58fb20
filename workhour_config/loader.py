"""
Settings loader (``workhour_config.loader``).

Responsibility
--------------
Loads the YAML settings document and parses it into the typed,
frozen dataclasses of ``workhour_config.schema``.  Runtime callers use
``workhour_config.get_active_config()`` instead of this module.

Invariants enforced
-------------------
* Unknown sections or keys raise ``ValueError`` -- a typo never silently
  falls back to a default.
* Every value is type-checked against its field.
* ``compute_checksum`` is deterministic for identical documents.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong shape or type  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import fields
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from workhour_config.schema import (
    ApprovalSettings,
    DatabaseSettings,
    KernelSettings,
    LoggingSettings,
)

_SECTIONS: dict[str, type] = {
    "database": DatabaseSettings,
    "logging": LoggingSettings,
    "approval": ApprovalSettings,
}

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its top-level mapping.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: settings document must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settings(
    data: dict[str, Any],
    database_url: str | None = None,
    source: str | None = None,
) -> KernelSettings:
    """
    Parse a settings mapping.

    Args:
        data: Parsed YAML document.
        database_url: Overrides ``database.url`` when given.
        source: Where the document came from, recorded on the result.

    Raises:
        ValueError: unknown section/key, wrong value type, missing
            database URL, unknown log level, or unknown timezone.
    """
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown settings sections: {sorted(unknown)}")

    database_data = dict(_section(data, "database"))
    if database_url:
        database_data["url"] = database_url
    if not database_data.get("url"):
        raise ValueError("database.url is required")

    logging_settings = _build(LoggingSettings, "logging", _section(data, "logging"))
    if logging_settings.level.upper() not in _LOG_LEVELS:
        raise ValueError(f"logging.level: unknown level {logging_settings.level!r}")

    approval_settings = _build(ApprovalSettings, "approval", _section(data, "approval"))
    business_zone(approval_settings)

    return KernelSettings(
        database=_build(DatabaseSettings, "database", database_data),
        logging=logging_settings,
        approval=approval_settings,
        checksum=compute_checksum(data),
        source=source,
    )


def log_level(settings: LoggingSettings) -> int:
    return logging.getLevelName(settings.level.upper())


def business_zone(settings: ApprovalSettings) -> ZoneInfo:
    """Resolve ``approval.timezone``.

    Raises:
        ValueError: the name is not a known IANA timezone.
    """
    try:
        return ZoneInfo(settings.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"approval.timezone: unknown timezone {settings.timezone!r}"
        ) from None


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{name}: section must be a mapping")
    return value


def _build(cls: type, section: str, values: dict[str, Any]):
    known = {f.name: f for f in fields(cls)}
    unknown = set(values) - set(known)
    if unknown:
        raise ValueError(f"{section}: unknown keys {sorted(unknown)}")

    for key, value in values.items():
        expected = _expected_type(known[key].type)
        # bool is a subclass of int; keep them apart
        if expected is int and isinstance(value, bool):
            raise ValueError(f"{section}.{key}: expected int, got bool")
        if not isinstance(value, expected):
            raise ValueError(
                f"{section}.{key}: expected {expected.__name__}, "
                f"got {type(value).__name__}"
            )
    return cls(**values)


def _expected_type(annotation: Any) -> type:
    # Annotations are strings under ``from __future__ import annotations``
    return {"str": str, "bool": bool, "int": int}[str(annotation)]
