"""
Deploy use case — probe, install, collect, render, start, verify.

Every fatal condition is returned on the outcome rather than raised,
so the CLI only has to decide how to print it and which exit code to
use. The operator aborting input is not a failure.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from provisioner.adapters.base import PackageManager, RuntimeEngine
from provisioner.adapters.packages.apt import AptPackageManager
from provisioner.adapters.shell.command import CommandRunner, run_command
from provisioner.core.models.capability import HostCapability
from provisioner.core.models.deployment import DeploymentConfig, Strictness
from provisioner.core.models.state import LifecycleResult, ServiceState
from provisioner.core.services.collector import Collector
from provisioner.core.services.installer import InstallError, InstallReport, ensure_baseline
from provisioner.core.services.interaction import CollectionAborted, Prompter
from provisioner.core.services.probe import is_port_free, probe
from provisioner.core.services.profiles.base import ServiceProfile
from provisioner.core.services.wallet import WalletError

logger = logging.getLogger(__name__)


@dataclass
class DeployOutcome:
    """Result of one deploy request."""

    profile: str
    state: ServiceState | None = None
    caps: HostCapability | None = None
    report: InstallReport | None = None
    config: DeploymentConfig | None = None
    result: LifecycleResult | None = None
    access: list[str] = field(default_factory=list)
    error: str | None = None
    hint: str | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and (self.cancelled or self.state is ServiceState.RUNNING)


def run_deploy(
    profile: ServiceProfile,
    prompter: Prompter,
    *,
    strictness: Strictness | None = None,
    pm: PackageManager | None = None,
    engine: RuntimeEngine | None = None,
    runner: CommandRunner = run_command,
    port_checker: Callable[[int], bool] = is_port_free,
    sleep: Callable[[float], None] | None = None,
    discover_address: bool = True,
) -> DeployOutcome:
    """Bring the profile's unit up on this host.

    Args:
        profile: Service to deploy.
        prompter: Operator interaction channel.
        strictness: Collector rule set; defaults to the profile's settings.
        pm: Package manager (default: apt).
        engine: Runtime engine (default: the profile's engine).
        runner: Command runner for install steps and wallet commands.
        port_checker: Live port-occupancy check.
        sleep: Settle-delay hook for the lifecycle controller.
        discover_address: Whether to ask the network for a public IP.

    Returns:
        DeployOutcome; ``error`` is set on any fatal condition.
    """
    pm = pm or AptPackageManager(runner=runner)
    strictness = strictness or profile.settings.strictness
    outcome = DeployOutcome(profile=profile.name)
    baseline = profile.baseline()

    # ── Probe ───────────────────────────────────────────────────
    prompter.info(f"Checking host for {profile.title}...")
    caps = probe(
        baseline,
        pm,
        profile.candidate_ports(),
        address_url=profile.settings.public_ip_url,
        discover_address=discover_address,
    )
    outcome.caps = caps

    # ── Install ─────────────────────────────────────────────────
    try:
        outcome.report = ensure_baseline(baseline, pm, runner=runner, notify=prompter.info)
    except InstallError as e:
        logger.info("Baseline install failed: %s", e)
        outcome.error = str(e)
        return outcome

    # ── Collect ─────────────────────────────────────────────────
    try:
        hints = profile.prepare(prompter, runner=runner)
        plan = profile.collection_plan()
        plan.extra_hints.update(hints)
        collector = Collector(prompter, strictness=strictness, port_checker=port_checker)
        cfg = collector.collect(caps, plan)
    except CollectionAborted:
        logger.info("Deploy of %s cancelled during input", profile.name)
        outcome.cancelled = True
        return outcome
    except WalletError as e:
        outcome.error = f"wallet: {e}"
        return outcome
    except OSError as e:
        outcome.error = f"{profile.name} setup: {e.strerror or e}"
        if e.filename:
            outcome.error += f" ({e.filename})"
        return outcome
    outcome.config = cfg

    # ── Render & start ──────────────────────────────────────────
    descriptor = profile.render(cfg)
    controller = profile.controller(engine, runner=runner, sleep=sleep)
    prompter.info(f"Starting {profile.title}...")
    result = controller.deploy(descriptor)
    outcome.result = result
    outcome.state = result.state

    if result.state is not ServiceState.RUNNING:
        outcome.error = result.error or f"{profile.unit} did not start"
        outcome.hint = result.hint
        return outcome

    outcome.access = profile.access_info(cfg, caps)
    return outcome
