from __future__ import annotations

import pytest
from pydantic import ValidationError

from landgen.backup import DEFAULT_BACKUP_SUFFIX
from landgen.settings import SessionSettings


def test_defaults_from_empty_env(monkeypatch: pytest.MonkeyPatch):
    for name in ("LANDGEN_BACKUP_SUFFIX", "LANDGEN_REGION_EXT", "LANDGEN_RESUME", "LANDGEN_RESET_ON_EXIT", "LANDGEN_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings = SessionSettings.from_env()
    assert settings.backup_suffix == DEFAULT_BACKUP_SUFFIX
    assert settings.region_ext == "mca"
    assert settings.resume is False
    assert settings.log_level == "INFO"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LANDGEN_BACKUP_SUFFIX", ".bak")
    monkeypatch.setenv("LANDGEN_REGION_EXT", ".mcr")
    monkeypatch.setenv("LANDGEN_RESUME", "true")
    monkeypatch.setenv("LANDGEN_LOG_LEVEL", "debug")
    settings = SessionSettings.from_env()
    assert settings.backup_suffix == ".bak"
    assert settings.region_ext == "mcr"
    assert settings.resume is True
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"backup_suffix": ""},
        {"backup_suffix": "/../x"},
        {"region_ext": "m/ca"},
        {"region_ext": "."},
        {"log_level": "LOUD"},
    ],
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValidationError):
        SessionSettings(**kwargs)
