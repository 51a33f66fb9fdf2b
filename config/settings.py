# config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class WeightingSettings:
    log_level: str
    party_variable: str
    cap_min: float
    cap_max: float
    cors_allow_origins: Tuple[str, ...]


def load_settings() -> WeightingSettings:
    origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
    return WeightingSettings(
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        party_variable=(os.getenv("WEIGHTING_PARTY_VARIABLE") or "PARTY").strip(),
        cap_min=_float_env("WEIGHTING_CAP_MIN", 0.5),
        cap_max=_float_env("WEIGHTING_CAP_MAX", 2.0),
        cors_allow_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
    )
