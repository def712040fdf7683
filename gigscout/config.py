"""Load settings and env configuration."""
from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from gigscout.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"
PROFILES_PATH: Path = CONFIG_DIR / "profiles.yaml"
DATA_DIR: Path = Path(os.environ.get("GIGSCOUT_DATA_DIR") or ROOT_DIR / "data")
JOBS_CSV: Path = DATA_DIR / "jobs.csv"

DEFAULT_SETTINGS: dict[str, Any] = {
    "monitor": {
        "interval_minutes": 5,
        "run_immediately": True,
    },
    "fetch": {
        "source": "upwork",
        "query": "",
        "limit": 50,
        "category": None,
        "min_budget": None,
        "max_budget": None,
        "skills": [],
        "mock_on_forbidden": True,
    },
    "remote": {
        "model": "gpt-4o-mini",
        "max_tokens": 1000,
        "temperature": 0.3,
        "timeout": 30,
        "max_attempts": 2,
    },
    "distribution": {
        "enabled": True,
        "min_score": 0,
    },
}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(path: Path | None = None) -> dict[str, Any]:
    """Settings from YAML layered over DEFAULT_SETTINGS.

    A missing file is not an error; a malformed one is.
    """
    path = path or SETTINGS_PATH
    if not path.exists():
        log.debug("No settings file at %s — using defaults", path)
        return copy.deepcopy(DEFAULT_SETTINGS)

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    # Older files kept the poll interval at the top level
    if "interval_minutes" in data:
        data.setdefault("monitor", {}).setdefault("interval_minutes", data.pop("interval_minutes"))

    return _deep_merge(DEFAULT_SETTINGS, data)


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def ensure_dirs() -> None:
    for d in (CONFIG_DIR, DATA_DIR):
        d.mkdir(parents=True, exist_ok=True)
