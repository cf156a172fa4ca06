from __future__ import annotations

import pytest

from sharedplan.core.config import load_settings


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "APP_ENV",
        "LOG_LEVEL",
        "LOG_JSON",
        "GROUP_CAPACITY",
        "RECEIPT_DELAY_SECONDS",
        "ADMIN_EMAILS",
        "PAYMENT_PHONE",
        "SUPPORT_CHAT_URL",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.group_capacity == 6
    assert settings.receipt_delay_seconds == 2.0
    assert settings.admin_emails == frozenset()
    assert settings.payment_phone == "318 865 69 61"
    assert settings.support_chat_url == "https://wa.me/573027214125"
    assert settings.cors_origins == ("http://localhost:5173",)


def test_load_settings_normalizes_case_and_whitespace(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "  PROD ")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.is_prod
    assert settings.log_level == "debug"


def test_admin_emails_are_split_and_lowercased(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ADMIN_EMAILS", " Boss@Example.com, ,ops@example.com ")
    settings = load_settings()
    assert settings.admin_emails == frozenset({"boss@example.com", "ops@example.com"})


def test_empty_urls_mean_in_memory(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "")
    monkeypatch.setenv("REDIS_URL", "  ")
    settings = load_settings()
    assert settings.database_url is None
    assert settings.redis_url is None


@pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("off", False)])
def test_log_json_parses_booleans(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool
) -> None:
    monkeypatch.setenv("LOG_JSON", raw)
    assert load_settings().log_json is expected


@pytest.mark.parametrize(
    "name,value,match",
    [
        ("APP_ENV", "staging", "APP_ENV must be"),
        ("LOG_LEVEL", "verbose", "LOG_LEVEL must be"),
        ("PORT", "eighty", "PORT must be an integer"),
        ("LOG_JSON", "maybe", "LOG_JSON must be a boolean"),
        ("GROUP_CAPACITY", "six", "GROUP_CAPACITY must be an integer"),
        ("GROUP_CAPACITY", "0", "GROUP_CAPACITY must be >= 1"),
        ("RECEIPT_DELAY_SECONDS", "soon", "RECEIPT_DELAY_SECONDS must be a number"),
        ("RECEIPT_DELAY_SECONDS", "-1", "RECEIPT_DELAY_SECONDS must be >= 0"),
    ],
)
def test_load_settings_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, match: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=match):
        load_settings()
