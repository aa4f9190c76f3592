"""
Settings loader — reads the optional settings.yml into a Settings model.

Every value has a working default, so a missing file is not an error.
A present but malformed file is: the user asked for it explicitly or
put it in the well-known location, and silently ignoring it would
deploy with the wrong ports.

Environment overrides (applied after the file):
    HTTP_PORT, HTTPS_PORT   default host ports for the unit
    PROV_STRICTNESS         basic | hardened
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from provisioner.core.models.deployment import Strictness

logger = logging.getLogger(__name__)

SETTINGS_FILE = Path("~/.config/provisioner/settings.yml")

_ENV_OVERRIDES: dict[str, str] = {
    "HTTP_PORT": "http_port",
    "HTTPS_PORT": "https_port",
    "PROV_STRICTNESS": "strictness",
}


class ConfigError(Exception):
    """Raised when the settings file or an override is invalid."""


class Settings(BaseModel):
    """Operator settings shared by every service profile."""

    home: Path = Field(default_factory=Path.home)
    http_port: int = Field(default=3010, ge=1, le=65535)
    https_port: int = Field(default=3011, ge=1, le=65535)
    settle_delay: float = Field(default=5.0, ge=0, le=120)
    strictness: Strictness = Strictness.HARDENED
    public_ip_url: str = "https://api.ipify.org"
    puid: int = 1000
    pgid: int = 1000

    def workdir(self, service: str) -> Path:
        """Fixed per-deployment working directory: ``<home>/<service>``."""
        return self.home / service


def default_settings_path() -> Path:
    return SETTINGS_FILE.expanduser()


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from YAML, then apply environment overrides.

    Args:
        path: Explicit settings file. If None, the default location is
            used when it exists.
        environ: Environment mapping (default: ``os.environ``).

    Raises:
        ConfigError: If the file is unreadable, not a mapping, or fails
            validation, or an override has an invalid value.
    """
    environ = os.environ if environ is None else environ
    data: dict = {}

    if path is None:
        candidate = default_settings_path()
        path = candidate if candidate.is_file() else None
    elif not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    if path is not None:
        logger.debug("Loading settings from %s", path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e
        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Expected a YAML mapping in {path}, got {type(loaded).__name__}")
        data.update(loaded)

    for env_key, field_name in _ENV_OVERRIDES.items():
        value = environ.get(env_key, "").strip()
        if value:
            logger.debug("Override %s from $%s", field_name, env_key)
            data[field_name] = value

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first["loc"])
        raise ConfigError(f"Invalid setting '{where}': {first['msg']}") from e

    if "home" in data:
        settings.home = settings.home.expanduser()
    return settings
