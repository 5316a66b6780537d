from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional


_POLICY_ENV = "PIPELINE_POLICY"
_REFRESH_INTERVAL_ENV = "REFRESH_INTERVAL_SECONDS"
_FEED_NAME_ENV = "FEED_NAME"
_FEED_SEED_ENV = "FEED_SEED_PATH"
_PANEL_SENDERS_ENV = "PANEL_SENDERS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_PANEL_SENDERS: Dict[str, str] = {
    "+593982138667": "CALEDONIA",
    "+593996002370": "TUGULA",
    "+593962380047": "SAN_CRISTOBAL",
}


@dataclass(frozen=True)
class Settings:
    policy_name: str
    refresh_interval: float
    feed_name: str
    feed_seed_path: Optional[str]
    log_level: str
    panel_senders: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PANEL_SENDERS))


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_refresh_interval(default: float) -> float:
    value = os.getenv(_REFRESH_INTERVAL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _read_panel_senders(default: Dict[str, str]) -> Dict[str, str]:
    value = os.getenv(_PANEL_SENDERS_ENV)
    if value is None or not value.strip():
        return dict(default)
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return dict(default)
    if not isinstance(parsed, dict):
        return dict(default)
    return {
        str(sender): panel.strip()
        for sender, panel in parsed.items()
        if isinstance(panel, str) and panel.strip()
    }


@lru_cache
def get_settings() -> Settings:
    return Settings(
        policy_name=_read_str_env(_POLICY_ENV, "voltage").lower(),
        refresh_interval=_read_refresh_interval(60.0),
        feed_name=_read_str_env(_FEED_NAME_ENV, "voltaje/voltios"),
        feed_seed_path=_read_optional_env(_FEED_SEED_ENV, None),
        log_level=_read_log_level("INFO"),
        panel_senders=_read_panel_senders(DEFAULT_PANEL_SENDERS),
    )
