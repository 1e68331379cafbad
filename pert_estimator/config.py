# pert_estimator/config.py

"""Settings loaded from environment variables (+ optional .env)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Tuple

from dotenv import load_dotenv

from pert_estimator.tools.aggregator import DEFAULT_CONFIDENCE_LEVELS, ConfidenceLevel
from pert_estimator.tools.csv_export import DEFAULT_EXPORT_PREFIX

# Load .env once
load_dotenv(override=False)

logger = logging.getLogger(__name__)

ENV_PREFIX = "PERT"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def parse_confidence_levels(raw: str) -> Tuple[ConfidenceLevel, ...]:
    """
    "68%:1,95%:2,99.7%:3" -> ConfidenceLevel tuples.

    Malformed or negative entries are skipped; nothing usable means the
    68%/95% defaults.
    """
    levels: List[ConfidenceLevel] = []
    for chunk in (raw or "").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        label, sep, mult = chunk.rpartition(":")
        try:
            multiplier = float(mult)
        except ValueError:
            multiplier = -1.0
        if not sep or not label.strip() or multiplier < 0:
            logger.warning(f"Ignoring malformed confidence level {chunk!r}")
            continue
        levels.append(ConfidenceLevel(label.strip(), multiplier))

    return tuple(levels) or DEFAULT_CONFIDENCE_LEVELS


@dataclass(frozen=True)
class Settings:
    # ---- Estimation ----
    confidence_levels: Tuple[ConfidenceLevel, ...]
    display_decimals: int

    # ---- Export ----
    export_prefix: str

    # ---- Logging ----
    log_level: str
    log_dir: Path
    log_to_file: bool


def load_settings() -> Settings:
    return Settings(
        confidence_levels=parse_confidence_levels(_env(_k("CONFIDENCE_LEVELS"))),
        display_decimals=max(0, _env_int(_k("DISPLAY_DECIMALS"), 2)),
        export_prefix=_env(_k("EXPORT_PREFIX"), DEFAULT_EXPORT_PREFIX),
        log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
        log_dir=Path(_env(_k("LOG_DIR"), ".local/pert")).expanduser(),
        log_to_file=_env_bool(_k("LOG_TO_FILE"), False),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
