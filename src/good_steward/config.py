"""Application configuration."""

import os
from datetime import UTC, tzinfo
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
_LOCALTIME = Path("/etc/localtime")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    storage_backend: Literal["sqlite", "supabase"] = "sqlite"
    sqlite_path: Path = Path("good_steward.db")
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    admin_token: str | None = None
    timezone: str | None = None
    scan_cache_ttl_seconds: int = 300
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def resolve_timezone(name: str | None) -> tzinfo:
    """Return the named timezone, or the device-local one when unset.

    The device zone keeps its daylight-saving rules, so a winter record read
    in summer still lands on its winter calendar day.
    """
    if name is not None and name.strip():
        return ZoneInfo(name.strip())
    return device_timezone()


def device_timezone(localtime: Path = _LOCALTIME) -> tzinfo:
    """Return the host's IANA zone from ``TZ`` or ``/etc/localtime``."""
    env_name = os.getenv("TZ", "").lstrip(":").strip()
    if env_name:
        try:
            return ZoneInfo(env_name)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    if localtime.is_symlink():
        _, marker, key = str(localtime.resolve()).partition("zoneinfo/")
        if marker and key:
            try:
                return ZoneInfo(key)
            except (ZoneInfoNotFoundError, ValueError):
                pass
    if localtime.is_file():
        with localtime.open("rb") as handle:
            return ZoneInfo.from_file(handle, key="localtime")
    return UTC
