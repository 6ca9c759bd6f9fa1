from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timezone, tzinfo
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


_TABLE_NAME_ENV = "SPACE_STORE_TABLE_NAME"
_TABLE_PATH_ENV = "SPACE_STORE_PERSISTENCE_PATH"
_BILLING_TIMEZONE_ENV = "BILLING_TIMEZONE"
_MAX_ATTEMPTS_ENV = "RECORD_MAX_ATTEMPTS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    table_name: str
    table_persistence_path: Optional[str]
    billing_timezone: str
    record_max_attempts: int
    log_level: str

    @property
    def tzinfo(self) -> tzinfo:
        if self.billing_timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.billing_timezone)


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


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_timezone(default: str) -> str:
    candidate = _read_str_env(_BILLING_TIMEZONE_ENV, default)
    if candidate.upper() == "UTC":
        return "UTC"
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError):
        return default
    return candidate


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        table_name=_read_str_env(_TABLE_NAME_ENV, "spaces"),
        table_persistence_path=_read_optional_env(_TABLE_PATH_ENV, "./tmp/spaces.json"),
        billing_timezone=_read_timezone("UTC"),
        record_max_attempts=_read_positive_int(_MAX_ATTEMPTS_ENV, 3),
        log_level=_read_log_level("INFO"),
    )
