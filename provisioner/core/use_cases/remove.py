"""
Remove use case — confirm, tear down, report.
"""

from __future__ import annotations

from provisioner.adapters.base import RuntimeEngine
from provisioner.adapters.shell.command import CommandRunner, run_command
from provisioner.core.models.state import LifecycleResult
from provisioner.core.services.interaction import CollectionAborted, Prompter
from provisioner.core.services.profiles.base import ServiceProfile


def run_remove(
    profile: ServiceProfile,
    prompter: Prompter,
    *,
    assume_yes: bool = False,
    engine: RuntimeEngine | None = None,
    runner: CommandRunner = run_command,
) -> LifecycleResult:
    """Ask for confirmation, then remove the unit and its working directory.

    Ctrl-C at the confirmation counts as declining.
    """
    controller = profile.controller(engine, runner=runner)
    prompter.warn(profile.removal_warning)

    confirmed = assume_yes
    if not confirmed:
        try:
            confirmed = prompter.confirm("Continue?", default=False)
        except CollectionAborted:
            confirmed = False

    return controller.remove(confirmed)
