"""
Mock adapters — test doubles for the runtime engine and package manager.

They simulate the external tools without touching the host and keep a
call log so tests can assert exactly what the orchestrator asked for.
"""

from __future__ import annotations

from pathlib import Path

from provisioner.adapters.base import PackageManager, RuntimeEngine
from provisioner.core.models.action import Receipt
from provisioner.core.models.state import UnitStatus


class MockEngine(RuntimeEngine):
    """In-memory runtime engine.

    By default ``bring_up`` succeeds and the unit then reports running.
    ``status_after_up`` and ``fail_up`` simulate a unit that never
    settles or an engine that rejects the descriptor (e.g. port taken).
    """

    def __init__(
        self,
        engine_name: str = "mock",
        *,
        available: bool = True,
        status_after_up: UnitStatus = UnitStatus.RUNNING,
        fail_up: str | None = None,
        fail_down: str | None = None,
    ):
        self._name = engine_name
        self._available = available
        self.status_after_up = status_after_up
        self.fail_up = fail_up
        self.fail_down = fail_down
        self.units: dict[str, UnitStatus] = {}
        self.descriptors: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def is_available(self) -> bool:
        return self._available

    def bring_down(self, unit: str, descriptor_path: Path | None = None) -> Receipt:
        self.calls.append(("down", unit))
        if self.fail_down:
            return Receipt.failure(adapter=self._name, operation="down", error=self.fail_down)
        self.units.pop(unit, None)
        return Receipt.success(adapter=self._name, operation="down")

    def bring_up(self, descriptor_path: Path) -> Receipt:
        unit = descriptor_path.parent.name
        self.calls.append(("up", str(descriptor_path)))
        if self.fail_up:
            return Receipt.failure(adapter=self._name, operation="up", error=self.fail_up)
        self.descriptors[unit] = descriptor_path.read_text(encoding="utf-8")
        self.units[unit] = self.status_after_up
        return Receipt.success(adapter=self._name, operation="up", output=f"[mock] {unit} up")

    def status(self, unit: str) -> UnitStatus:
        self.calls.append(("status", unit))
        return self.units.get(unit, UnitStatus.ABSENT)

    def logs(self, unit: str, tail: int = 50) -> Receipt:
        self.calls.append(("logs", unit))
        if unit not in self.units:
            return Receipt.failure(adapter=self._name, operation="logs", error=f"no unit '{unit}'")
        return Receipt.success(adapter=self._name, operation="logs", output=f"[mock] logs for {unit}")

    def reset(self) -> None:
        self.calls.clear()


class MockPackageManager(PackageManager):
    """Package manager over an in-memory installed set."""

    def __init__(
        self,
        installed: set[str] | None = None,
        *,
        fail_on: set[str] | None = None,
        available: bool = True,
    ):
        self.installed: set[str] = set(installed or ())
        self.fail_on: set[str] = set(fail_on or ())
        self._available = available
        self.install_calls: list[list[str]] = []
        self.refresh_count = 0
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return "mock-pm"

    def is_available(self) -> bool:
        return self._available

    def is_installed(self, package: str) -> bool:
        return package in self.installed

    def refresh(self) -> Receipt:
        self.refresh_count += 1
        self.calls.append("refresh")
        return Receipt.success(adapter=self.name, operation="refresh")

    def install(self, packages: list[str]) -> Receipt:
        self.install_calls.append(list(packages))
        self.calls.append("install:" + ",".join(packages))
        bad = sorted(set(packages) & self.fail_on)
        if bad:
            return Receipt.failure(
                adapter=self.name, operation="install",
                error=f"Unable to locate package {bad[0]}",
            )
        self.installed.update(packages)
        return Receipt.success(adapter=self.name, operation="install")
