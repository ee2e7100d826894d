"""Unit tests for mkdelegation.config — Settings loading."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from mkdelegation.config import CONFIG_ENV_VAR, Settings, load_settings
from mkdelegation.errors import ConfigError
from mkdelegation.resolver import DEFAULT_MAX_DEPTH
from mkdelegation.ucan.delegation import UCAN_VERSION
from mkdelegation.validator import KNOWN_ABILITIES


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


class TestSettingsDefaults:
    def test_known_abilities_default(self) -> None:
        assert set(Settings().known_abilities) == set(KNOWN_ABILITIES)

    def test_max_proof_depth_default(self) -> None:
        assert Settings().max_proof_depth == DEFAULT_MAX_DEPTH

    def test_ucan_version_default(self) -> None:
        assert Settings().ucan_version == UCAN_VERSION

    def test_depth_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            Settings(max_proof_depth=0)

    def test_unknown_keys_rejected(self) -> None:
        with pytest.raises(ValueError):
            Settings(colour="blue")


class TestLoadSettings:
    def test_defaults_without_file(self) -> None:
        assert load_settings() == Settings()

    def test_loads_explicit_file(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"known_abilities": ["custom/do"], "max_proof_depth": 8}))
        settings = load_settings(path)
        assert settings.known_abilities == ["custom/do"]
        assert settings.max_proof_depth == 8

    def test_loads_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"max_proof_depth": 3}))
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert load_settings().max_proof_depth == 3

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_settings(tmp_path / "missing.json")

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_invalid_value_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"max_proof_depth": -1}))
        with pytest.raises(ConfigError):
            load_settings(path)
