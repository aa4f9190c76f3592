"""
Dependency installer — bring the host up to a baseline, idempotently.

Every tool is checked first and skipped when present, so a second run
after a partial failure only performs the remaining work. The first
failing step aborts the whole call with an InstallError naming the
tool and step; nothing already installed is rolled back.

Ordering guarantees:
- the package index is refreshed before the first package install of
  the run, and refreshed again after any repository registration;
- a tool's steps run in declaration order, so a repository step listed
  before a packages step always precedes it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from provisioner.adapters.base import PackageManager
from provisioner.adapters.shell.command import CommandRunner, extend_path, run_command
from provisioner.core.models.action import Receipt
from provisioner.core.models.tooling import InstallStep, ToolSpec
from provisioner.core.services.probe import find_binary, is_tool_present

logger = logging.getLogger(__name__)

Notify = Callable[[str], None]


class InstallError(Exception):
    """A baseline tool could not be installed."""

    def __init__(self, tool: str, step: str, detail: str):
        self.tool = tool
        self.step = step
        self.detail = detail
        super().__init__(f"{tool} ({step}): {detail}")


@dataclass
class InstallReport:
    """What ensure_baseline did."""

    installed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    refreshes: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.installed)


def search_path(required: Iterable[ToolSpec]) -> str:
    """PATH including every tool's extra directories.

    Later tools may need binaries installed by earlier ones (``cargo``
    under ``~/.cargo/bin``), so the union is used for every step.
    """
    extra: list[str] = []
    for tool in required:
        for d in tool.extra_path:
            if d not in extra:
                extra.append(d)
    return extend_path(extra)


class _Session:
    """Per-run state: whether the package index is fresh."""

    def __init__(self, pm: PackageManager, runner: CommandRunner, path: str, notify: Notify):
        self.pm = pm
        self.run = runner
        self.path = path
        self.notify = notify
        self.index_fresh = False
        self.refreshes = 0

    def refresh(self, tool: ToolSpec, step: InstallStep) -> None:
        if self.index_fresh:
            return
        self.notify("Refreshing package index...")
        _check(self.pm.refresh(), tool, step)
        self.index_fresh = True
        self.refreshes += 1

    def execute(self, tool: ToolSpec, step: InstallStep) -> None:
        if step.kind == "refresh":
            self.refresh(tool, step)

        elif step.kind == "packages":
            missing = [p for p in step.packages if not self.pm.is_installed(p)]
            if not missing:
                logger.debug("%s: packages already installed: %s", tool.name, step.packages)
                return
            self.refresh(tool, step)
            self.notify(f"Installing packages: {' '.join(missing)}")
            _check(self.pm.install(missing), tool, step)

        elif step.kind == "repo":
            self.notify(f"Registering repository: {step.display}")
            for cmd in step.commands:
                _check(self._run(cmd, step), tool, step)
            self.index_fresh = False

        elif step.kind == "command":
            self.notify(f"{tool.display}: {step.display}")
            for cmd in step.commands:
                _check(self._run(cmd, step), tool, step)

    def _run(self, cmd: list[str], step: InstallStep) -> Receipt:
        return self.run(
            cmd,
            needs_sudo=step.needs_sudo,
            timeout=step.timeout,
            env_overrides={"PATH": self.path},
            adapter="installer",
            operation=step.display,
        )


def _check(receipt: Receipt, tool: ToolSpec, step: InstallStep) -> None:
    if receipt.failed:
        raise InstallError(tool.name, step.display, receipt.error or "failed")


def ensure_baseline(
    required: list[ToolSpec],
    pm: PackageManager,
    *,
    runner: CommandRunner = run_command,
    notify: Notify | None = None,
) -> InstallReport:
    """Install whatever part of *required* is missing.

    Args:
        required: Baseline tools, in installation order.
        pm: Package manager used for presence checks and installs.
        runner: Command runner for repo/command steps.
        notify: Receives one-line progress messages for the user.

    Returns:
        InstallReport listing installed and skipped tools.

    Raises:
        InstallError: On the first failing step, or when a tool is
            still not present after its steps ran.
    """
    notify = notify or (lambda _msg: None)
    session = _Session(pm, runner, search_path(required), notify)
    report = InstallReport()

    for tool in required:
        if is_tool_present(tool, pm):
            logger.info("%s already present — skipping", tool.name)
            report.skipped.append(tool.name)
            continue

        notify(f"Installing {tool.display}...")
        for step in tool.steps:
            session.execute(tool, step)

        if not is_tool_present(tool, pm):
            if tool.binary and find_binary(tool) is None:
                detail = f"'{tool.binary}' not found on PATH after install"
            else:
                detail = "packages still missing after install"
            raise InstallError(tool.name, "verify", detail)

        logger.info("%s installed", tool.name)
        report.installed.append(tool.name)

    report.refreshes = session.refreshes
    return report
