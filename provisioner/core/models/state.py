"""
ServiceState — lifecycle status of the deployed unit.

The state is never stored on disk. It is derived from whether the
descriptor exists and what the runtime engine reports, and otherwise
tracked only as the controller's last transition.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ServiceState(str, Enum):
    ABSENT = "absent"
    STARTING = "starting"
    RUNNING = "running"
    FAILED = "failed"
    REMOVED = "removed"


class UnitStatus(str, Enum):
    """What the runtime engine reports for a named unit."""

    RUNNING = "running"
    STOPPED = "stopped"
    ABSENT = "absent"


# Allowed transitions: source → targets
TRANSITIONS: dict[ServiceState, frozenset[ServiceState]] = {
    ServiceState.ABSENT: frozenset({ServiceState.STARTING, ServiceState.REMOVED}),
    ServiceState.STARTING: frozenset({ServiceState.RUNNING, ServiceState.FAILED}),
    ServiceState.RUNNING: frozenset({ServiceState.STARTING, ServiceState.REMOVED}),
    ServiceState.FAILED: frozenset({ServiceState.STARTING, ServiceState.REMOVED}),
    ServiceState.REMOVED: frozenset({ServiceState.STARTING, ServiceState.REMOVED}),
}


class LifecycleResult(BaseModel):
    """Outcome of a deploy or remove request."""

    state: ServiceState
    error: str | None = None
    hint: str | None = None
    cancelled: bool = False
    descriptor_path: str | None = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None
