"""
Service profile base — everything that differs between deployable services.

The pipeline (probe → install → collect → render → deploy) is shared;
a profile supplies the baseline, the questions, the descriptor
renderer, the runtime engine, and what to tell the operator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from provisioner.adapters.base import RuntimeEngine
from provisioner.adapters.shell.command import CommandRunner, run_command
from provisioner.core.config.loader import Settings
from provisioner.core.models.capability import HostCapability
from provisioner.core.models.deployment import DeploymentConfig, DeploymentDescriptor
from provisioner.core.models.tooling import ToolSpec
from provisioner.core.services.collector import CollectionPlan
from provisioner.core.services.interaction import Prompter
from provisioner.core.services.lifecycle import LifecycleController


class ServiceProfile(ABC):
    #: profile key, also the working directory name under home
    name: str = ""
    title: str = ""
    #: unit name known to the runtime engine
    unit: str = ""
    descriptor_filename: str = "descriptor.yaml"
    #: persistent data subdirectory mounted into the unit
    data_dir: str | None = None
    aux_label: str = "Show useful commands"

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def workdir(self) -> Path:
        return self.settings.workdir(self.name)

    @property
    def descriptor_path(self) -> Path:
        return self.workdir / self.descriptor_filename

    # ── Pipeline hooks ──────────────────────────────────────────

    @abstractmethod
    def baseline(self) -> list[ToolSpec]:
        """Tools the host needs before this service can run, in order."""

    @abstractmethod
    def collection_plan(self) -> CollectionPlan:
        """Questions the collector should ask."""

    @abstractmethod
    def render(self, cfg: DeploymentConfig) -> DeploymentDescriptor:
        """Pure: the same config always renders the same bytes."""

    @abstractmethod
    def engine(self) -> RuntimeEngine: ...

    @abstractmethod
    def access_info(self, cfg: DeploymentConfig, caps: HostCapability) -> list[str]:
        """Lines shown once the unit is running. Secrets are masked."""

    @abstractmethod
    def management_commands(self) -> list[tuple[str, str]]:
        """(command, description) pairs for the auxiliary menu entry."""

    def candidate_ports(self) -> list[int]:
        return []

    def prepare(self, prompter: Prompter, runner: CommandRunner = run_command) -> dict[str, str]:
        """Service-specific setup after the baseline, before collection.

        Returns extra resource hints for the config.
        """
        return {}

    @property
    def removal_warning(self) -> str:
        return f"This will stop and remove {self.title} and its working directory {self.workdir}."

    @property
    def logs_hint(self) -> str:
        return f"Inspect the engine logs for '{self.unit}'."

    def teardown_commands(self) -> list[list[str]]:
        return []

    def teardown_env(self) -> dict[str, str] | None:
        return None

    def controller(
        self,
        engine: RuntimeEngine | None = None,
        *,
        runner: CommandRunner = run_command,
        sleep: Callable[[float], None] | None = None,
    ) -> LifecycleController:
        kwargs = {} if sleep is None else {"sleep": sleep}
        return LifecycleController(
            engine or self.engine(),
            self.workdir,
            self.unit,
            data_dir=self.data_dir,
            settle_delay=self.settings.settle_delay,
            logs_hint=self.logs_hint,
            teardown=self.teardown_commands(),
            teardown_env=self.teardown_env(),
            runner=runner,
            **kwargs,
        )
