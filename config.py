# config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# ---- secrets: st.secrets first, then the environment ----
try:
    import streamlit as st
    _secrets = getattr(st, "secrets", {})
except ImportError:
    _secrets = {}


def _secret(name: str, default: Optional[str] = None) -> Optional[str]:
    try:
        value = _secrets.get(name)
    except Exception:
        # no secrets.toml for this app
        value = None
    if value in (None, ""):
        value = os.getenv(name)
    return default if value in (None, "") else str(value)


def _int(name: str, default: Optional[int]) -> Optional[int]:
    raw = _secret(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    api_url: Optional[str] = None
    api_token: Optional[str] = None
    api_timeout_s: float = 10.0
    database_url: str = "sqlite:///sprintsync.db"
    max_team_size: int = 9
    near_capacity_margin: int = 2
    max_managers: Optional[int] = None  # unset: no manager ceiling
    log_level: str = "INFO"

    @property
    def capacity_limits(self) -> dict:
        return {
            "max_members": self.max_team_size,
            "max_managers": self.max_managers,
            "near_margin": self.near_capacity_margin,
        }


def load_settings() -> Settings:
    timeout = _secret("SPRINTSYNC_API_TIMEOUT")
    return Settings(
        api_url=_secret("SPRINTSYNC_API_URL"),
        api_token=_secret("SPRINTSYNC_API_TOKEN"),
        api_timeout_s=float(timeout) if timeout else 10.0,
        database_url=_secret("DATABASE_URL", "sqlite:///sprintsync.db"),
        max_team_size=_int("MAX_TEAM_SIZE", 9),
        near_capacity_margin=_int("NEAR_CAPACITY_MARGIN", 2),
        max_managers=_int("MAX_MANAGERS", None),
        log_level=_secret("LOG_LEVEL", "INFO").upper(),
    )


_LOGGING_CONFIGURED = False


def configure_logging(level: str = "INFO") -> None:
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO),
                        format=LOG_FORMAT, datefmt=DATE_FORMAT)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    _LOGGING_CONFIGURED = True
