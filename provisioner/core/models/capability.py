"""
HostCapability — what the prober observed about the host.

Recomputed on every run and never persisted.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# Shown in access URLs when the public address could not be discovered
ADDRESS_PLACEHOLDER = "YOUR_VPS_IP"


class HostCapability(BaseModel):
    """Snapshot of the host's current state."""

    tool_present: dict[str, bool] = Field(default_factory=dict)
    tool_version: dict[str, str | None] = Field(default_factory=dict)
    free_ports: set[int] = Field(default_factory=set)
    timezone: str = "UTC"
    public_address: str | None = None

    @property
    def display_address(self) -> str:
        """Public address, or a placeholder the user should substitute."""
        return self.public_address or ADDRESS_PLACEHOLDER

    def missing_tools(self) -> list[str]:
        """Names of baseline tools that were not found."""
        return [name for name, present in self.tool_present.items() if not present]
