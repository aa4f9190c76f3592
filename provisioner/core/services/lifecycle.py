"""
Lifecycle controller — deploy, verify, and remove the single unit.

States and transitions::

    absent ──deploy──▶ starting ──verify ok──▶ running
                          │                       │
                          └──verify fails──▶ failed
    running / failed / absent ──remove(confirmed)──▶ removed
    removed / failed / running ──deploy──▶ starting

Verification is one bounded settle delay followed by one status
query. A unit that is not running then is reported as failed and left
for the operator to inspect via the engine's own logs; it is not
retried.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from provisioner.adapters.base import RuntimeEngine
from provisioner.adapters.shell.command import CommandRunner, run_command
from provisioner.core.models.deployment import DeploymentDescriptor
from provisioner.core.models.state import (
    TRANSITIONS,
    LifecycleResult,
    ServiceState,
    UnitStatus,
)
from provisioner.core.persistence.files import (
    ensure_private_dir,
    remove_tree,
    write_file_atomic,
)

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 5.0


class InvalidTransition(RuntimeError):
    """A lifecycle call was made from a state that does not allow it."""


class LifecycleController:
    """Owns the unit's working directory and its ServiceState."""

    def __init__(
        self,
        engine: RuntimeEngine,
        workdir: Path,
        unit: str,
        *,
        data_dir: str | None = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        logs_hint: str = "",
        teardown: Sequence[list[str]] = (),
        teardown_env: dict[str, str] | None = None,
        runner: CommandRunner = run_command,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.engine = engine
        self.workdir = workdir
        self.unit = unit
        self.data_dir = data_dir
        self.settle_delay = settle_delay
        self.logs_hint = logs_hint or f"Inspect the {engine.name} logs for '{unit}'."
        self.teardown = list(teardown)
        self.teardown_env = teardown_env
        self._run = runner
        self._sleep = sleep
        self._state: ServiceState | None = None

    # ── State ───────────────────────────────────────────────────

    @property
    def state(self) -> ServiceState:
        if self._state is None:
            self._state = self.observe()
        return self._state

    def observe(self) -> ServiceState:
        """Derive the state from disk and the engine; no side effects."""
        status = self.engine.status(self.unit)
        if status is UnitStatus.RUNNING:
            return ServiceState.RUNNING
        if self.find_descriptor() is not None:
            return ServiceState.FAILED
        return ServiceState.ABSENT

    def find_descriptor(self) -> Path | None:
        """The rendered descriptor in the working directory, if any."""
        if not self.workdir.is_dir():
            return None
        for candidate in sorted(self.workdir.iterdir()):
            if candidate.is_file() and candidate.suffix in (".yaml", ".yml"):
                return candidate
        return None

    def _transition(self, target: ServiceState) -> None:
        current = self.state
        if target not in TRANSITIONS[current]:
            raise InvalidTransition(f"cannot go from {current.value} to {target.value}")
        logger.info("%s: %s → %s", self.unit, current.value, target.value)
        self._state = target

    # ── Deploy ──────────────────────────────────────────────────

    def deploy(self, descriptor: DeploymentDescriptor) -> LifecycleResult:
        """Write the descriptor, replace any prior unit, start, and verify."""
        self._transition(ServiceState.STARTING)

        path = self.workdir / descriptor.filename
        try:
            ensure_private_dir(self.workdir)
            if self.data_dir:
                (self.workdir / self.data_dir).mkdir(exist_ok=True)

            stale = self.find_descriptor()
            if stale is not None and stale != path:
                stale.unlink()
            write_file_atomic(path, descriptor.content, private=descriptor.sensitive)
        except OSError as e:
            return self._fail(
                f"cannot write {path}: {e.strerror or e}",
                None,
                hint=f"Check ownership and permissions of {self.workdir}.",
            )

        down = self.engine.bring_down(self.unit, path)
        if down.failed:
            logger.warning("Tearing down previous %s failed: %s", self.unit, down.error)

        up = self.engine.bring_up(path)
        if up.failed:
            return self._fail(f"{self.engine.name} could not start {self.unit}: {up.error}", path)

        return self.verify(path)

    def verify(self, descriptor_path: Path | None = None) -> LifecycleResult:
        """Wait once for the engine to settle, then check the unit."""
        self._sleep(self.settle_delay)
        status = self.engine.status(self.unit)
        path = str(descriptor_path) if descriptor_path else None

        if status is UnitStatus.RUNNING:
            self._transition(ServiceState.RUNNING)
            return LifecycleResult(state=ServiceState.RUNNING, descriptor_path=path)

        return self._fail(
            f"{self.unit} is {status.value} {self.settle_delay:g}s after start",
            descriptor_path,
        )

    def _fail(
        self, error: str, descriptor_path: Path | None, *, hint: str | None = None
    ) -> LifecycleResult:
        self._transition(ServiceState.FAILED)
        logger.info("%s failed: %s", self.unit, error)
        return LifecycleResult(
            state=ServiceState.FAILED,
            error=error,
            hint=hint or self.logs_hint,
            descriptor_path=str(descriptor_path) if descriptor_path else None,
        )

    # ── Remove ──────────────────────────────────────────────────

    def remove(self, confirmed: bool) -> LifecycleResult:
        """Tear the unit down and delete its working directory.

        A declined confirmation changes nothing. A unit that is already
        gone is not an error.
        """
        if not confirmed:
            logger.info("Removal of %s cancelled", self.unit)
            return LifecycleResult(state=self.state, cancelled=True)

        current = self.state
        if ServiceState.REMOVED not in TRANSITIONS[current]:
            raise InvalidTransition(f"cannot remove {self.unit} while {current.value}")

        down = self.engine.bring_down(self.unit, self.find_descriptor())
        if down.failed:
            return LifecycleResult(
                state=current,
                error=f"{self.engine.name} could not stop {self.unit}: {down.error}",
                hint=self.logs_hint,
            )

        self._transition(ServiceState.REMOVED)
        warnings: list[str] = []

        for cmd in self.teardown:
            r = self._run(
                cmd,
                env_overrides=self.teardown_env,
                adapter="teardown",
                operation=" ".join(cmd[:2]),
            )
            if r.failed:
                warnings.append(f"'{' '.join(cmd)}' failed: {r.error}")

        try:
            if not remove_tree(self.workdir):
                logger.info("Working directory %s was already absent", self.workdir)
        except OSError as e:
            return LifecycleResult(
                state=ServiceState.REMOVED,
                warnings=warnings,
                error=f"{self.unit} stopped, but {self.workdir} could not be deleted: {e.strerror or e}",
                hint=f"Delete it manually: sudo rm -rf {self.workdir}",
            )

        return LifecycleResult(state=ServiceState.REMOVED, warnings=warnings)
