"""Settings — the known-ability registry and resolution limits.

Settings are a pydantic model with sensible defaults. Operators can
override them with a JSON file, passed explicitly or named by the
``MKDELEGATION_CONFIG`` environment variable::

    {"known_abilities": ["blob/allocate", "blob/accept"], "max_proof_depth": 32}
"""
from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from mkdelegation.errors import ConfigError
from mkdelegation.resolver import DEFAULT_MAX_DEPTH
from mkdelegation.ucan.delegation import UCAN_VERSION
from mkdelegation.validator import KNOWN_ABILITIES

CONFIG_ENV_VAR: str = "MKDELEGATION_CONFIG"


class Settings(BaseModel):
    """Runtime configuration.

    Parameters
    ----------
    known_abilities:
        Abilities accepted by capability validation.
    max_proof_depth:
        Deepest proof level the resolver will descend to.
    ucan_version:
        Version string written into newly built delegations.
    """

    known_abilities: list[str] = Field(default_factory=lambda: sorted(KNOWN_ABILITIES))
    max_proof_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1)
    ucan_version: str = UCAN_VERSION

    model_config = {"extra": "forbid"}


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from *path*, the environment, or defaults.

    Parameters
    ----------
    path:
        JSON file to read. When ``None`` the ``MKDELEGATION_CONFIG``
        environment variable is consulted; when that is unset too the
        defaults are returned.

    Raises
    ------
    ConfigError
        If the file cannot be read or does not validate.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            return Settings()
        path = env_path

    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read settings file {config_path}: {exc}") from exc
    try:
        return Settings.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings in {config_path}: {exc}") from exc


__all__ = ["CONFIG_ENV_VAR", "Settings", "load_settings"]
