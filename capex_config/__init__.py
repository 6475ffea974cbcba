"""
capex_config -- approval matrix and engine settings.

Responsibility:
    Load the YAML configuration set that governs approval routing (the
    approval matrix) and the engine tunables (decay rate, IRR limits,
    timeline horizon, exchange-rate TTL, hold policy).

Architecture position:
    Configuration -- sits above ``capex_kernel``.  The kernel MUST NEVER
    import from ``capex_config``; the schema ``to_*`` helpers translate
    parsed definitions into kernel domain types.

Failure modes:
    - ``ConfigurationError`` -- missing file, malformed YAML, or invalid
      values.

Audit relevance:
    Every load emits a ``CAPEX_CONFIG_TRACE`` log entry with the
    config_id, version, checksum and rule count.
"""

from __future__ import annotations

from pathlib import Path

from capex_config.loader import compute_checksum, load_config_file
from capex_config.schema import (
    ApprovalMatrixDef,
    CapexConfig,
    EngineSettings,
    HoldPolicyDef,
)
from capex_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "approval_matrix.yaml"


def load_config(path: Path | str) -> CapexConfig:
    """Load a configuration set from ``path``."""
    config = load_config_file(Path(path))
    _logger.info(
        "CAPEX_CONFIG_TRACE",
        extra={
            "trace_type": "CAPEX_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "rule_count": len(config.approval_matrix),
        },
    )
    return config


def get_default_config() -> CapexConfig:
    """The bundled standard configuration."""
    return load_config(DEFAULT_CONFIG_PATH)


__all__ = [
    "ApprovalMatrixDef",
    "CapexConfig",
    "DEFAULT_CONFIG_PATH",
    "EngineSettings",
    "HoldPolicyDef",
    "compute_checksum",
    "get_default_config",
    "load_config",
]
