from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

MIN_PIN_LENGTH = 4
MAX_PIN_LENGTH = 10

SessionMode = Literal["pin", "token"]


class Settings(BaseModel):
    pin: Optional[str] = Field(default=None)
    max_attempts: int = Field(default=5, ge=1)
    lockout_seconds: int = Field(default=15 * 60, ge=1)
    attempt_reset_seconds: int = Field(default=60 * 60, ge=1)
    sweep_interval_seconds: int = Field(default=60, ge=1)
    verify_delay_min_ms: int = Field(default=50, ge=0)
    verify_delay_max_ms: int = Field(default=100, ge=0)
    session_mode: SessionMode = Field(default="pin")
    session_max_age_seconds: int = Field(default=24 * 60 * 60, ge=1)
    environment: str = Field(default="development")
    cookie_secure: bool = Field(default=False)
    data_dir: str = Field(default="data")
    verify_rate_limit: str = Field(default="30/minute")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)

    @field_validator("pin")
    @classmethod
    def _pin_rules(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        if not (MIN_PIN_LENGTH <= len(v) <= MAX_PIN_LENGTH):
            raise ValueError(f"PIN must be between {MIN_PIN_LENGTH} and {MAX_PIN_LENGTH} digits")
        if not (v.isascii() and v.isdigit()):
            raise ValueError("PIN must contain digits only")
        return v

    @model_validator(mode="after")
    def _delay_range(self) -> "Settings":
        if self.verify_delay_max_ms < self.verify_delay_min_ms:
            raise ValueError("verify_delay_max_ms must be >= verify_delay_min_ms")
        return self

    @property
    def pin_required(self) -> bool:
        return self.pin is not None

    @property
    def secure_cookies(self) -> bool:
        return self.cookie_secure or self.environment.lower() == "production"

    @property
    def data_file(self) -> str:
        return os.path.join(self.data_dir, "todos.json")


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


def _load_settings() -> Settings:
    env = os.getenv
    pin = env("PINTODO_PIN")
    if pin is not None:
        pin = pin.strip() or None
    return Settings(
        pin=pin,
        max_attempts=int(env("MAX_ATTEMPTS", "5")),
        lockout_seconds=int(env("LOCKOUT_SECONDS", "900")),
        attempt_reset_seconds=int(env("ATTEMPT_RESET_SECONDS", "3600")),
        sweep_interval_seconds=int(env("SWEEP_INTERVAL_SECONDS", "60")),
        verify_delay_min_ms=int(env("VERIFY_DELAY_MIN_MS", "50")),
        verify_delay_max_ms=int(env("VERIFY_DELAY_MAX_MS", "100")),
        session_mode=(env("SESSION_MODE", "pin") or "pin").strip().lower(),
        session_max_age_seconds=int(env("SESSION_MAX_AGE_SECONDS", "86400")),
        environment=env("ENVIRONMENT", "development") or "development",
        cookie_secure=_flag(env("COOKIE_SECURE", "0")),
        data_dir=env("DATA_DIR", "data") or "data",
        verify_rate_limit=env("VERIFY_RATE_LIMIT", "30/minute") or "30/minute",
        host=env("HOST", "0.0.0.0") or "0.0.0.0",
        port=int(env("PORT", "3000")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return _load_settings()


def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


__all__ = [
    "MAX_PIN_LENGTH",
    "MIN_PIN_LENGTH",
    "SessionMode",
    "Settings",
    "get_settings",
    "reload_settings",
]
