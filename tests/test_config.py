from __future__ import annotations

import json
from pathlib import Path

import pytest

from smartfill.config import Settings, load_dotenv
from smartfill.rules import DEFAULT_RULES

_ENV_KEYS = ("SMART_FILL_HOME_COUNTRY", "SMART_FILL_RULES_PATH", "LOG_LEVEL", "API_HOST", "API_PORT")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        # setenv first so monkeypatch restores keys that load_dotenv adds
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


@pytest.fixture
def rules_file(tmp_path: Path) -> Path:
    p = tmp_path / "rules.json"
    p.write_text(json.dumps({"vendor_match_threshold": 75}), encoding="utf-8")
    return p


def test_settings_defaults() -> None:
    settings = Settings.from_env()
    assert settings.home_country == "NL"
    assert settings.rules_path is None
    assert settings.log_level == "INFO"
    assert settings.api_port == 8080
    assert settings.load_rules() is DEFAULT_RULES


def test_settings_load_rules_file(monkeypatch: pytest.MonkeyPatch, rules_file: Path) -> None:
    monkeypatch.setenv("SMART_FILL_HOME_COUNTRY", "be")
    monkeypatch.setenv("SMART_FILL_RULES_PATH", str(rules_file))
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()
    assert settings.home_country == "BE"
    assert settings.log_level == "DEBUG"
    assert settings.load_rules().vendor_match_threshold == 75


def test_settings_rejects_invalid_home_country(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SMART_FILL_HOME_COUNTRY", "NLD")
    with pytest.raises(ValueError, match="SMART_FILL_HOME_COUNTRY"):
        Settings.from_env()


def test_settings_requires_existing_rules_file(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SMART_FILL_RULES_PATH", "missing-rules.json")
    with pytest.raises(ValueError, match="not found"):
        Settings.from_env()


def test_settings_rejects_non_integer_port(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_PORT", "eighty")
    with pytest.raises(ValueError, match="API_PORT"):
        Settings.from_env()


def test_load_dotenv_does_not_override_existing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("# comment\nSMART_FILL_HOME_COUNTRY='DE'\nAPI_PORT=9000\n", encoding="utf-8")
    monkeypatch.setenv("API_PORT", "9100")

    load_dotenv(env_file)
    settings = Settings.from_env()
    assert settings.home_country == "DE"
    assert settings.api_port == 9100
