from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_DEFAULT_PAYMENT_PHONE = "318 865 69 61"
_DEFAULT_SUPPORT_CHAT_URL = "https://wa.me/573027214125"
_DEFAULT_CORS_ORIGINS = "http://localhost:5173"


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    admin_emails: frozenset[str] = frozenset()
    group_capacity: int = 6
    receipt_delay_seconds: float = 2.0
    google_client_id: str | None = None
    payment_phone: str = _DEFAULT_PAYMENT_PHONE
    support_chat_url: str = _DEFAULT_SUPPORT_CHAT_URL
    cors_origins: tuple[str, ...] = ()

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")
    capacity_raw = _getenv("GROUP_CAPACITY", "6")
    delay_raw = _getenv("RECEIPT_DELAY_SECONDS", "2.0")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        group_capacity = int(capacity_raw)
    except ValueError:
        raise ValueError(
            f"GROUP_CAPACITY must be an integer (got {capacity_raw!r})"
        ) from None
    if group_capacity < 1:
        raise ValueError(f"GROUP_CAPACITY must be >= 1 (got {group_capacity})")

    try:
        receipt_delay = float(delay_raw)
    except ValueError:
        raise ValueError(
            f"RECEIPT_DELAY_SECONDS must be a number (got {delay_raw!r})"
        ) from None
    if receipt_delay < 0:
        raise ValueError(f"RECEIPT_DELAY_SECONDS must be >= 0 (got {receipt_delay})")

    # Comma-separated; emails are compared normalized
    admin_emails = frozenset(
        e.strip().lower()
        for e in _getenv("ADMIN_EMAILS", "").split(",")
        if e.strip()
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_parse_bool("LOG_JSON", _getenv("LOG_JSON", "false")),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        admin_emails=admin_emails,
        group_capacity=group_capacity,
        receipt_delay_seconds=receipt_delay,
        google_client_id=_getenv("GOOGLE_CLIENT_ID", "") or None,
        payment_phone=_getenv("PAYMENT_PHONE", _DEFAULT_PAYMENT_PHONE),
        support_chat_url=_getenv("SUPPORT_CHAT_URL", _DEFAULT_SUPPORT_CHAT_URL),
        cors_origins=tuple(
            o.strip()
            for o in _getenv("CORS_ORIGINS", _DEFAULT_CORS_ORIGINS).split(",")
            if o.strip()
        ),
    )


SETTINGS = load_settings()
