"""
Configuration Loader (``capex_config.loader``).

Responsibility
--------------
Loads YAML configuration files and parses them into typed
``capex_config.schema`` dataclass instances.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Sits above ``capex_kernel``
(it builds kernel domain types through the schema bridges); the kernel
never imports from ``capex_config``.

Invariants enforced
-------------------
* Every parse error raises ``ConfigurationError`` naming the source file
  and the offending key; there are no silent defaults for required keys.
* Amounts and rates are parsed to ``Decimal`` from their string form,
  never through float.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``ConfigurationError``.
* Malformed YAML  -> ``ConfigurationError`` (wrapping ``yaml.YAMLError``).
* Missing required keys, bad numbers, unknown role kinds
  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from capex_config.schema import (
    ApprovalMatrixDef,
    CapexConfig,
    EngineSettings,
    HoldPolicyDef,
)
from capex_kernel.domain.approval import RoleKind
from capex_kernel.exceptions import ConfigurationError

# Sentinel for "no upper bound" in the amount_max column.
UNLIMITED_AMOUNT = Decimal("999999999999.99")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: if the file is missing, unreadable, not valid
            YAML, or does not contain a mapping.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigurationError(str(path), "file not found") from None
    except yaml.YAMLError as exc:
        raise ConfigurationError(str(path), f"invalid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def parse_decimal(value: Any, key: str, source: str) -> Decimal:
    """Parse a Decimal from a YAML scalar via its string form."""
    if isinstance(value, bool) or value is None:
        raise ConfigurationError(source, f"{key}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(source, f"{key}: expected a number, got {value!r}") from None


def _require(data: dict[str, Any], key: str, source: str) -> Any:
    if key not in data:
        raise ConfigurationError(source, f"missing required key '{key}'")
    return data[key]


def parse_matrix_row(data: dict[str, Any], source: str = "<dict>") -> ApprovalMatrixDef:
    """
    Parse one approval matrix row.

    ``amount_max: null`` means unbounded and is stored as
    ``UNLIMITED_AMOUNT``.
    """
    level = _require(data, "level", source)
    if not isinstance(level, int) or isinstance(level, bool) or level < 0:
        raise ConfigurationError(source, f"level: expected a non-negative integer, got {level!r}")

    amount_max_raw = data.get("amount_max")
    amount_min = parse_decimal(data.get("amount_min", 0), "amount_min", source)
    amount_max = (
        UNLIMITED_AMOUNT if amount_max_raw is None
        else parse_decimal(amount_max_raw, "amount_max", source)
    )
    if amount_min > amount_max:
        raise ConfigurationError(
            source, f"amount_min {amount_min} exceeds amount_max {amount_max}",
        )

    return ApprovalMatrixDef(
        level=level,
        role=str(_require(data, "role", source)),
        department=str(data.get("department", "All")),
        amount_min=amount_min,
        amount_max=amount_max,
        active=bool(data.get("active", True)),
    )


def parse_hold_policy(data: dict[str, Any], source: str = "<dict>") -> HoldPolicyDef:
    roles = tuple(str(r).lower() for r in data.get("resume_roles", ("admin",)))
    valid = {kind.value for kind in RoleKind}
    for role in roles:
        if role not in valid:
            raise ConfigurationError(source, f"hold_policy.resume_roles: unknown role '{role}'")
    return HoldPolicyDef(
        allow_resume=bool(data.get("allow_resume", True)),
        resume_roles=roles,
        allow_holder_resume=bool(data.get("allow_holder_resume", True)),
    )


def parse_settings(data: dict[str, Any], source: str = "<dict>") -> EngineSettings:
    """Parse engine settings; every key is optional."""
    defaults = EngineSettings()
    return EngineSettings(
        reference_currency=str(data.get("reference_currency", defaults.reference_currency)),
        default_decay_rate=parse_decimal(
            data.get("default_decay_rate", defaults.default_decay_rate),
            "default_decay_rate", source,
        ),
        default_original_roi=parse_decimal(
            data.get("default_original_roi", defaults.default_original_roi),
            "default_original_roi", source,
        ),
        timeline_max_weeks=int(data.get("timeline_max_weeks", defaults.timeline_max_weeks)),
        irr_max_iterations=int(data.get("irr_max_iterations", defaults.irr_max_iterations)),
        irr_tolerance=parse_decimal(
            data.get("irr_tolerance", defaults.irr_tolerance), "irr_tolerance", source,
        ),
        exchange_rate_ttl_seconds=int(
            data.get("exchange_rate_ttl_seconds", defaults.exchange_rate_ttl_seconds)
        ),
        hold_policy=parse_hold_policy(data.get("hold_policy") or {}, source),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any], source: str = "<dict>") -> CapexConfig:
    """Parse a complete configuration set from a dict."""
    rows = _require(data, "approval_matrix", source)
    if not isinstance(rows, list) or not rows:
        raise ConfigurationError(source, "approval_matrix must be a non-empty list")

    return CapexConfig(
        config_id=str(_require(data, "config_id", source)),
        version=int(data.get("version", 1)),
        description=str(data.get("description", "")),
        approval_matrix=tuple(parse_matrix_row(row, source) for row in rows),
        settings=parse_settings(data.get("settings") or {}, source),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> CapexConfig:
    """Load and parse a configuration set from a YAML file."""
    return parse_config(load_yaml_file(path), str(path))
