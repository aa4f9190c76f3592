"""
Status use case — what is deployed for a profile right now.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from provisioner.adapters.base import RuntimeEngine
from provisioner.core.models.state import ServiceState, UnitStatus
from provisioner.core.services.profiles.base import ServiceProfile


@dataclass
class StatusResult:
    """Observed state of one profile's unit."""

    profile: str
    unit: str
    engine: str
    state: ServiceState
    unit_status: UnitStatus
    descriptor_path: str | None = None
    workdir: str = ""
    commands: list[tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "profile": self.profile,
            "unit": self.unit,
            "engine": self.engine,
            "state": self.state.value,
            "unit_status": self.unit_status.value,
            "descriptor": self.descriptor_path,
            "workdir": self.workdir,
        }


def get_status(profile: ServiceProfile, *, engine: RuntimeEngine | None = None) -> StatusResult:
    """Observe the unit without changing anything."""
    controller = profile.controller(engine)
    descriptor = controller.find_descriptor()
    return StatusResult(
        profile=profile.name,
        unit=profile.unit,
        engine=controller.engine.name,
        state=controller.observe(),
        unit_status=controller.engine.status(profile.unit),
        descriptor_path=str(descriptor) if descriptor else None,
        workdir=str(profile.workdir),
        commands=profile.management_commands(),
    )
