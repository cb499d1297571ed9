from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class OwnershipSettings:
    env: str = "dev"

    # Optional YAML declarations; overrides __ownership__ class attributes
    ownership_file: Optional[Path] = None

    # Install the before_flush ownership listener on API sessions
    gate_enabled: bool = True

    database_url: str = "sqlite://"

    # "package.module:Base" - declarative base whose models are served
    models: Optional[str] = None

    host: str = "0.0.0.0"
    port: int = 8001


def _env_str(key: str, default: str) -> str:
    return (os.getenv(key) or default).strip()


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes")


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except (TypeError, ValueError):
        return default


def load_settings() -> OwnershipSettings:
    ownership_file = (os.getenv("OWNERCHAIN_OWNERSHIP_FILE") or "").strip()
    return OwnershipSettings(
        env=_env_str("OWNERCHAIN_ENV", "dev").lower(),
        ownership_file=Path(ownership_file) if ownership_file else None,
        gate_enabled=_env_bool("OWNERCHAIN_GATE_ENABLED", True),
        database_url=_env_str("OWNERCHAIN_DATABASE_URL", "sqlite://"),
        models=(os.getenv("OWNERCHAIN_MODELS") or "").strip() or None,
        host=_env_str("OWNERCHAIN_HOST", "0.0.0.0"),
        port=_env_int("OWNERCHAIN_PORT", 8001),
    )
