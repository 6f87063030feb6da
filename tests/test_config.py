"""
Settings loading tests.

Tests the environment prefixes of each settings group, the validators, and
``.env`` discovery by ``get_settings``.
"""

import os

import pytest
from pydantic import ValidationError

from clinicdesk.core.config import ClinicSettings, ErpSettings, LoggingSettings, Settings, get_settings, reset_settings


@pytest.fixture
def scratch_environ(monkeypatch):
    """Let ``load_dotenv`` write into a throwaway copy of the environment."""
    monkeypatch.setattr(os, "environ", os.environ.copy())


def test_defaults(monkeypatch):
    for name in ("ERP_BASE_URL", "CLINIC_COPAYMENT", "LOG_LEVEL", "APP_ENV"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()

    assert settings.app_name == "ClinicDesk"
    assert settings.erp.base_url == "http://localhost:8080"
    assert settings.erp.models_path == "/api/v1/models"
    assert settings.clinic.copayment == 50
    assert settings.clinic.appointment_window_days == 7
    assert settings.clinic.default_total_days == 7
    assert settings.session.storage_path.endswith("session.json")
    assert settings.is_development


def test_group_prefixes(monkeypatch):
    monkeypatch.setenv("ERP_BASE_URL", "https://erp.example.com/")
    monkeypatch.setenv("ERP_REQUEST_TIMEOUT", "5")
    monkeypatch.setenv("CLINIC_COPAYMENT", "80")
    monkeypatch.setenv("SESSION_STORAGE_PATH", "/tmp/clinic/session.json")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings()

    assert settings.erp.base_url == "https://erp.example.com"
    assert settings.erp.request_timeout == 5
    assert settings.clinic.copayment == 80
    assert settings.session.storage_path == "/tmp/clinic/session.json"
    assert settings.logging.level == "DEBUG"


@pytest.mark.parametrize(
    "factory, name, value",
    [
        (ErpSettings, "ERP_BASE_URL", "erp.example.com"),
        (ErpSettings, "ERP_REQUEST_TIMEOUT", "0"),
        (ClinicSettings, "CLINIC_APPOINTMENT_WINDOW_DAYS", "120"),
        (LoggingSettings, "LOG_FORMAT", "xml"),
        (Settings, "APP_ENV", "qa"),
    ],
)
def test_invalid_values_rejected(monkeypatch, factory, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        factory()


def test_get_settings_is_cached_until_reset(monkeypatch):
    monkeypatch.setenv("CLINIC_COPAYMENT", "60")
    first = get_settings()
    monkeypatch.setenv("CLINIC_COPAYMENT", "70")

    assert get_settings() is first
    assert get_settings().clinic.copayment == 60

    reset_settings()
    assert get_settings().clinic.copayment == 70


def test_dotenv_in_parent_directory(monkeypatch, tmp_path, scratch_environ):
    os.environ.pop("CLINIC_COPAYMENT", None)
    os.environ.pop("ERP_BASE_URL", None)
    (tmp_path / ".env").write_text("CLINIC_COPAYMENT=90\nERP_BASE_URL=https://erp.clinic.test\n")
    nested = tmp_path / "deploy" / "app"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    settings = get_settings()

    assert settings.clinic.copayment == 90
    assert settings.erp.base_url == "https://erp.clinic.test"


def test_environment_wins_over_dotenv(monkeypatch, tmp_path, scratch_environ):
    os.environ["CLINIC_COPAYMENT"] = "25"
    (tmp_path / ".env").write_text("CLINIC_COPAYMENT=90\n")
    monkeypatch.chdir(tmp_path)

    assert get_settings().clinic.copayment == 25
