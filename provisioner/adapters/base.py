"""
Adapter base — the contracts between the orchestrator and external tools.

Two collaborators are reached only through these interfaces:

- RuntimeEngine: materializes a unit from a descriptor (docker compose,
  a detached screen session).
- PackageManager: queries and installs OS packages.

Adapters never raise for tool failures. Every mutating call returns a
Receipt; the caller decides what is fatal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from provisioner.core.models.action import Receipt
from provisioner.core.models.state import UnitStatus


class RuntimeEngine(ABC):
    """Starts, stops, and inspects one named unit.

    To add an engine:
        1. Subclass RuntimeEngine
        2. Implement name, is_available, bring_down, bring_up, status, logs
        3. Return it from the service profile's ``engine()``
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The engine identifier (e.g., 'docker', 'screen')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the engine's CLI is on PATH. Fast, never raises."""

    @abstractmethod
    def bring_down(self, unit: str, descriptor_path: Path | None = None) -> Receipt:
        """Tear the unit down.

        A unit that does not exist is already torn down: this MUST
        return a success receipt in that case.
        """

    @abstractmethod
    def bring_up(self, descriptor_path: Path) -> Receipt:
        """Start the unit described by the descriptor file."""

    @abstractmethod
    def status(self, unit: str) -> UnitStatus:
        """Report whether the unit is running, stopped, or absent."""

    @abstractmethod
    def logs(self, unit: str, tail: int = 50) -> Receipt:
        """Fetch the unit's recent output."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class PackageManager(ABC):
    """OS package queries and installs."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The package manager identifier (e.g., 'apt')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the package manager exists on this host."""

    @abstractmethod
    def is_installed(self, package: str) -> bool:
        """Whether *package* is installed. False when the check fails."""

    @abstractmethod
    def refresh(self) -> Receipt:
        """Refresh the package index."""

    @abstractmethod
    def install(self, packages: list[str]) -> Receipt:
        """Install *packages* non-interactively."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
