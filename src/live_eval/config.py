"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import math
import tomllib
from dataclasses import dataclass
from pathlib import Path

from live_eval.history.store import DEFAULT_HISTORY_CAPACITY
from live_eval.sandbox.evaluator import DEFAULT_TIMEOUT_SECONDS

CONFIG_FILENAME = "live_eval.toml"
DEFAULT_DATA_DIRNAME = ".live_eval"
AUDIT_FILENAME = "audit.jsonl"

TIMEOUT_SECONDS_CAP = 30.0
HISTORY_CAPACITY_CAP = 10_000


@dataclass(slots=True, frozen=True)
class SandboxConfig:
    """Per-unit evaluation limits."""

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(slots=True, frozen=True)
class HistoryConfig:
    """Time-travel recording settings."""

    enabled: bool = True
    capacity: int = DEFAULT_HISTORY_CAPACITY


@dataclass(slots=True, frozen=True)
class AuditConfig:
    enabled: bool
    data_dir: Path

    @property
    def log_path(self) -> Path:
        return self.data_dir / AUDIT_FILENAME


@dataclass(slots=True, frozen=True)
class SessionConfig:
    """Fully merged session configuration."""

    project_root: Path
    sandbox: SandboxConfig
    history: HistoryConfig
    audit: AuditConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot."""
        return {
            "project_root": str(self.project_root),
            "sandbox": {"timeout_seconds": self.sandbox.timeout_seconds},
            "history": {
                "enabled": self.history.enabled,
                "capacity": self.history.capacity,
            },
            "audit": {
                "enabled": self.audit.enabled,
                "data_dir": str(self.audit.data_dir),
            },
        }


@dataclass(slots=True, frozen=True)
class ConfigOverrides:
    """Optional startup overrides applied at highest precedence."""

    timeout_seconds: float | None = None
    history_enabled: bool | None = None
    history_capacity: int | None = None
    audit_enabled: bool | None = None
    data_dir: Path | None = None


def default_config(project_root: Path) -> SessionConfig:
    """Build default config for a given project root."""
    resolved_root = project_root.resolve()
    return SessionConfig(
        project_root=resolved_root,
        sandbox=SandboxConfig(),
        history=HistoryConfig(),
        audit=AuditConfig(enabled=False, data_dir=resolved_root / DEFAULT_DATA_DIRNAME),
    )


def load_config_file(project_root: Path) -> dict[str, object]:
    """Load optional live_eval.toml from the project root."""
    config_path = project_root / CONFIG_FILENAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILENAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def merge_config(
    base: SessionConfig, payload: dict[str, object], overrides: ConfigOverrides
) -> SessionConfig:
    """Merge defaults, project config, then startup overrides."""
    sandbox_payload = _get_table(payload, "sandbox")
    history_payload = _get_table(payload, "history")
    audit_payload = _get_table(payload, "audit")

    timeout_seconds = _optional_positive_float_with_cap(
        sandbox_payload.get("timeout_seconds"),
        "sandbox.timeout_seconds",
        base.sandbox.timeout_seconds,
        TIMEOUT_SECONDS_CAP,
    )
    capacity = _optional_positive_int_with_cap(
        history_payload.get("capacity"),
        "history.capacity",
        base.history.capacity,
        HISTORY_CAPACITY_CAP,
    )
    history_enabled = _optional_bool(
        history_payload.get("enabled"), "history.enabled", base.history.enabled
    )
    audit_enabled = _optional_bool(audit_payload.get("enabled"), "audit.enabled", base.audit.enabled)

    data_dir = base.audit.data_dir
    if "data_dir" in audit_payload:
        raw_data_dir = audit_payload["data_dir"]
        if not isinstance(raw_data_dir, str) or not raw_data_dir.strip():
            raise ValueError("Config field 'audit.data_dir' must be a non-empty string.")
        data_dir = base.project_root / raw_data_dir

    merged = SessionConfig(
        project_root=base.project_root,
        sandbox=SandboxConfig(timeout_seconds=timeout_seconds),
        history=HistoryConfig(enabled=history_enabled, capacity=capacity),
        audit=AuditConfig(enabled=audit_enabled, data_dir=data_dir),
    )
    return apply_overrides(merged, overrides)


def apply_overrides(config: SessionConfig, overrides: ConfigOverrides) -> SessionConfig:
    """Apply startup overrides at highest precedence."""
    timeout_seconds = _optional_positive_float_with_cap(
        overrides.timeout_seconds,
        "overrides.timeout_seconds",
        config.sandbox.timeout_seconds,
        TIMEOUT_SECONDS_CAP,
    )
    capacity = _optional_positive_int_with_cap(
        overrides.history_capacity,
        "overrides.history_capacity",
        config.history.capacity,
        HISTORY_CAPACITY_CAP,
    )
    history_enabled = _optional_bool(
        overrides.history_enabled, "overrides.history_enabled", config.history.enabled
    )
    audit_enabled = _optional_bool(
        overrides.audit_enabled, "overrides.audit_enabled", config.audit.enabled
    )
    data_dir = overrides.data_dir or config.audit.data_dir
    return SessionConfig(
        project_root=config.project_root,
        sandbox=SandboxConfig(timeout_seconds=timeout_seconds),
        history=HistoryConfig(enabled=history_enabled, capacity=capacity),
        audit=AuditConfig(enabled=audit_enabled, data_dir=data_dir.resolve()),
    )


def load_effective_config(
    project_root: Path, overrides: ConfigOverrides | None = None
) -> SessionConfig:
    """Load effective config using merge order defaults -> project config -> overrides."""
    resolved_root = project_root.resolve()
    base = default_config(resolved_root)
    payload = load_config_file(resolved_root)
    return merge_config(base, payload, overrides or ConfigOverrides())


def _optional_bool(value: object, name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"Config field '{name}' must be a boolean.")
    return value


def _optional_positive_int_with_cap(value: object, name: str, default: int, cap: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value


def _optional_positive_float_with_cap(
    value: object, name: str, default: float, cap: float
) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Config field '{name}' must be a positive number.")
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"Config field '{name}' must be a finite positive number.")
    if value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap:g}.")
    return float(value)
