from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True, slots=True)
class Settings:
    redis_url: str
    # Raise on flow contract violations instead of logging them (debug/test).
    strict_flows: bool
    default_locale: str
    log_level: str
    # Directory containing `assets/`; None means the repository root.
    assets_root: Path | None
    lock_ttl_ms: int
    # Fail startup on missing or invalid asset files instead of using the built-in catalog.
    strict_assets: bool = False


def settings_from_env() -> Settings:
    assets_root = os.environ.get("BRAINFLOW_ASSETS_ROOT")
    return Settings(
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        strict_flows=_env_flag("BRAINFLOW_STRICT_FLOWS"),
        default_locale=os.environ.get("BRAINFLOW_DEFAULT_LOCALE", "en"),
        log_level=os.environ.get("BRAINFLOW_LOG_LEVEL", "INFO").upper(),
        assets_root=Path(assets_root) if assets_root else None,
        lock_ttl_ms=int(os.environ.get("BRAINFLOW_LOCK_TTL_MS", "5000")),
        strict_assets=_env_flag("BRAINFLOW_STRICT_ASSETS"),
    )
