"""
APT package manager adapter.

Presence checks use ``dpkg-query`` and never need root; refresh and
install go through the shared command runner with sudo.
"""

from __future__ import annotations

import logging
import shutil
import subprocess

from provisioner.adapters.base import PackageManager
from provisioner.adapters.shell.command import CommandRunner, run_command
from provisioner.core.models.action import Receipt

logger = logging.getLogger(__name__)

_NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


class AptPackageManager(PackageManager):
    """Debian/Ubuntu packages via apt-get and dpkg-query."""

    def __init__(self, runner: CommandRunner = run_command, timeout: int = 600):
        self._run = runner
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "apt"

    def is_available(self) -> bool:
        return shutil.which("apt-get") is not None

    def is_installed(self, package: str) -> bool:
        try:
            r = subprocess.run(
                ["dpkg-query", "-W", "-f=${Status}", package],
                capture_output=True, text=True, timeout=10,
            )
        except FileNotFoundError:
            logger.warning("dpkg-query not found (checking %s)", package)
            return False
        except subprocess.TimeoutExpired:
            logger.warning("Timeout checking package %s", package)
            return False
        except OSError as exc:
            logger.warning("OS error checking package %s: %s", package, exc)
            return False
        return "install ok installed" in r.stdout

    def refresh(self) -> Receipt:
        return self._run(
            ["apt-get", "update", "-y"],
            needs_sudo=True,
            timeout=self._timeout,
            env_overrides=_NONINTERACTIVE,
            adapter=self.name,
            operation="refresh",
        )

    def install(self, packages: list[str]) -> Receipt:
        if not packages:
            return Receipt.success(adapter=self.name, operation="install", output="nothing to install")
        return self._run(
            ["apt-get", "install", "-y", *packages],
            needs_sudo=True,
            timeout=self._timeout,
            env_overrides=_NONINTERACTIVE,
            adapter=self.name,
            operation="install",
        )
