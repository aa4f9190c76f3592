"""Service profiles — one per deployable service."""

from __future__ import annotations

from provisioner.core.config.loader import Settings
from provisioner.core.services.profiles.base import ServiceProfile
from provisioner.core.services.profiles.bitz import BitzProfile
from provisioner.core.services.profiles.chromium import ChromiumProfile

PROFILES: dict[str, type[ServiceProfile]] = {
    ChromiumProfile.name: ChromiumProfile,
    BitzProfile.name: BitzProfile,
}

DEFAULT_PROFILE = ChromiumProfile.name


def get_profile(name: str, settings: Settings) -> ServiceProfile:
    """Instantiate the profile registered under *name*.

    Raises:
        KeyError: If no such profile exists.
    """
    try:
        cls = PROFILES[name]
    except KeyError:
        raise KeyError(f"unknown service profile '{name}' (choose from {', '.join(PROFILES)})") from None
    return cls(settings)


__all__ = ["DEFAULT_PROFILE", "PROFILES", "ServiceProfile", "get_profile"]
