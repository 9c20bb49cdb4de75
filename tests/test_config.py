import calendar
from pathlib import Path

import pytest

from ops_calendar.config import ConfigError, load_settings


CONFIG_VARS = (
    "OPS_ENV",
    "OPS_MAX_VISIBLE",
    "OPS_WEEK_START",
    "OPS_SALES_MANUAL_SCOPE",
    "OPS_STRICT_LEAD_NAMES",
    "OPS_OWNER_ONLY_DELETE",
    "OPS_DATASET",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings(dotenv=False)

    assert settings.environment == "local"
    assert settings.max_visible == 3
    assert settings.week_start == calendar.SUNDAY
    assert settings.sales_manual_scope == "involved"
    assert settings.strict_lead_names is False
    assert settings.owner_only_delete is False
    assert settings.dataset_path is None


def test_values_from_environment(monkeypatch):
    monkeypatch.setenv("OPS_ENV", "staging")
    monkeypatch.setenv("OPS_MAX_VISIBLE", "5")
    monkeypatch.setenv("OPS_WEEK_START", "Monday")
    monkeypatch.setenv("OPS_SALES_MANUAL_SCOPE", "all")
    monkeypatch.setenv("OPS_STRICT_LEAD_NAMES", "1")
    monkeypatch.setenv("OPS_OWNER_ONLY_DELETE", "1")
    monkeypatch.setenv("OPS_DATASET", "/tmp/ops.json")

    settings = load_settings(dotenv=False)

    assert settings.environment == "staging"
    assert settings.max_visible == 5
    assert settings.week_start == calendar.MONDAY
    assert settings.sales_manual_scope == "all"
    assert settings.strict_lead_names is True
    assert settings.owner_only_delete is True
    assert settings.dataset_path == Path("/tmp/ops.json")


@pytest.mark.parametrize(
    "name,value",
    [
        ("OPS_MAX_VISIBLE", "three"),
        ("OPS_MAX_VISIBLE", "-1"),
        ("OPS_WEEK_START", "friday"),
        ("OPS_SALES_MANUAL_SCOPE", "everyone"),
    ],
)
def test_invalid_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigError):
        load_settings(dotenv=False)
