"""Pytest configuration for the ingestion worker test suite."""

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "packages"))

from copilot_audit import config as config_module  # noqa: E402

from helpers import FakeCloud, FrozenClock  # noqa: E402

_FLAT_ENV_KEYS = (
    "TENANT_ID",
    "CLIENT_ID",
    "CLIENT_SECRET",
    "WORKSPACE_ID",
    "WORKSPACE_KEY",
    "CUSTOM_TABLE_NAME",
    "LOOKBACK_HOURS",
    "OFFICE365_MANAGEMENT_API_BASE_URL",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep host environment and user YAML files out of settings."""
    for key in _FLAT_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    for key in list(os.environ):
        if key.startswith("COPILOT_AUDIT_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config_module, "_USER_CONFIG_PATHS", [])
    monkeypatch.setattr(config_module, "_USER_SECRETS_PATHS", [])
    config_module.get_settings.cache_clear()
    yield
    config_module.get_settings.cache_clear()


@pytest.fixture
def cloud() -> FakeCloud:
    return FakeCloud()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()
