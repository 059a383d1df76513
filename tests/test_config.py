from __future__ import annotations

import pytest

from history_importer.config import (
    ENV_PREFIX, ImporterConfig, get_config, load_config_from_env, validate_config,
)

_VARIABLES = ("MODE", "KEEP_LATLNG", "DEBUG", "SHOW_ERRORS", "SRID", "SRID_FOLLOWS_PROJECTION", "TARGET_CRS")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so that variables loaded from .env files are removed again afterwards
    for name in _VARIABLES:
        monkeypatch.setenv(ENV_PREFIX + name, "")
        monkeypatch.delenv(ENV_PREFIX + name)


def test_defaults_are_valid() -> None:
    config = ImporterConfig()
    validate_config(config)

    assert config.mode == "import"
    assert config.geometry.srid == 900913
    assert not config.geometry.keep_latlng
    assert config.projection.target_crs == "EPSG:3857"
    assert isinstance(get_config(), ImporterConfig)


def test_validation_collects_all_errors() -> None:
    config = ImporterConfig(mode="replay")
    config.geometry.srid = 0
    config.projection.max_latitude = 95.0

    with pytest.raises(ValueError) as excinfo:
        validate_config(config)

    message = str(excinfo.value)
    assert "mode" in message
    assert "geometry.srid" in message
    assert "max_latitude" in message


def test_environment_overrides(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv(ENV_PREFIX + "KEEP_LATLNG", "true")
    monkeypatch.setenv(ENV_PREFIX + "SRID", "4326")
    monkeypatch.setenv(ENV_PREFIX + "MODE", "update")

    config = load_config_from_env(str(tmp_path / "missing.env"))

    assert config.geometry.keep_latlng
    assert config.geometry.srid == 4326
    assert config.mode == "update"
    assert not config.geometry.debug


def test_env_file_is_loaded(tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(f"{ENV_PREFIX}SHOW_ERRORS=1\n{ENV_PREFIX}DEBUG=off\n", encoding="utf-8")

    config = load_config_from_env(str(env_file))

    assert config.geometry.show_errors
    assert not config.geometry.debug


def test_invalid_environment_values(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv(ENV_PREFIX + "SRID", "mercator")
    with pytest.raises(ValueError, match="SRID"):
        load_config_from_env(str(tmp_path / "missing.env"))

    monkeypatch.setenv(ENV_PREFIX + "SRID", "900913")
    monkeypatch.setenv(ENV_PREFIX + "MODE", "sometimes")
    with pytest.raises(ValueError, match="mode"):
        load_config_from_env(str(tmp_path / "missing.env"))
