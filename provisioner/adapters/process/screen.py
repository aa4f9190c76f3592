"""
Screen session engine — runs the unit as a detached GNU screen session.

The descriptor is a small YAML document::

    unit: bitz
    command: [bitz, collect, --cores, "2"]
    working_dir: /home/me/bitz
    path_prepend: [/home/me/.cargo/bin]
    restart: unless-stopped

``restart: unless-stopped`` wraps the command in a loop so the worker
comes back after a crash; only ``bring_down`` (``screen -X quit``)
stops it.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import shutil
import subprocess
import tempfile
from pathlib import Path

import yaml

from provisioner.adapters.base import RuntimeEngine
from provisioner.adapters.shell.command import extend_path
from provisioner.core.models.action import Receipt
from provisioner.core.models.state import UnitStatus

logger = logging.getLogger(__name__)

RESTART_DELAY_SECONDS = 5


class ScreenEngine(RuntimeEngine):
    """Detached screen sessions named after the unit."""

    def __init__(self, timeout: int = 30):
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "screen"

    def is_available(self) -> bool:
        return shutil.which("screen") is not None

    def bring_down(self, unit: str, descriptor_path: Path | None = None) -> Receipt:
        if not self.is_available():
            return Receipt.success(
                adapter=self.name, operation="down",
                output="screen not installed; nothing to stop",
            )
        r = self._screen(["-S", unit, "-X", "quit"])
        if r.returncode != 0 and self.status(unit) is not UnitStatus.ABSENT:
            return Receipt.failure(
                adapter=self.name, operation="down",
                error=(r.stdout or r.stderr).strip() or f"could not stop session '{unit}'",
            )
        return Receipt.success(adapter=self.name, operation="down", output=r.stdout.strip())

    def bring_up(self, descriptor_path: Path) -> Receipt:
        if not self.is_available():
            return Receipt.failure(adapter=self.name, operation="up", error="screen is not installed")

        try:
            doc = load_unit_descriptor(descriptor_path)
        except (OSError, yaml.YAMLError, ValueError) as e:
            return Receipt.failure(
                adapter=self.name, operation="up",
                error=f"unreadable unit descriptor {descriptor_path}: {e}",
            )

        unit = doc["unit"]
        script = session_script(doc)
        env_path = extend_path(doc.get("path_prepend") or [])
        logger.debug("Starting screen session %s: %s", unit, script)

        r = self._screen(
            ["-S", unit, "-dm", "bash", "-c", script],
            cwd=doc.get("working_dir") or None,
            path=env_path,
        )
        if r.returncode != 0:
            return Receipt.failure(
                adapter=self.name, operation="up",
                error=(r.stderr or r.stdout).strip() or f"screen exited with {r.returncode}",
            )
        return Receipt.success(adapter=self.name, operation="up", output=f"session '{unit}' started")

    def status(self, unit: str) -> UnitStatus:
        if not self.is_available():
            return UnitStatus.ABSENT
        # screen -ls exits non-zero in several normal cases; only stdout matters
        r = self._screen(["-ls"])
        return parse_session_status(r.stdout, unit)

    def logs(self, unit: str, tail: int = 50) -> Receipt:
        if self.status(unit) is UnitStatus.ABSENT:
            return Receipt.failure(adapter=self.name, operation="logs", error=f"no screen session '{unit}'")

        with tempfile.TemporaryDirectory(prefix="prov-screen-") as tmp:
            dump = Path(tmp) / "hardcopy.txt"
            r = self._screen(["-S", unit, "-p", "0", "-X", "hardcopy", "-h", str(dump)])
            if r.returncode != 0 or not dump.is_file():
                return Receipt.failure(
                    adapter=self.name, operation="logs",
                    error=(r.stderr or r.stdout).strip() or "screen hardcopy failed",
                )
            lines = dump.read_text(encoding="utf-8", errors="replace").rstrip().splitlines()
        return Receipt.success(adapter=self.name, operation="logs", output="\n".join(lines[-tail:]))

    def _screen(
        self,
        args: list[str],
        *,
        cwd: str | None = None,
        path: str | None = None,
    ) -> subprocess.CompletedProcess[str]:
        cmd = ["screen", *args]
        env = None
        if path is not None:
            env = {**os.environ, "PATH": path}
        try:
            return subprocess.run(
                cmd, cwd=cwd, env=env,
                capture_output=True, text=True, timeout=self._timeout,
            )
        except subprocess.TimeoutExpired:
            return subprocess.CompletedProcess(
                cmd, returncode=-1, stdout="", stderr=f"screen timed out after {self._timeout}s",
            )


def load_unit_descriptor(path: Path) -> dict:
    """Read and minimally validate a unit descriptor."""
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("descriptor is not a mapping")
    if not data.get("unit"):
        raise ValueError("descriptor has no 'unit'")
    command = data.get("command")
    if not isinstance(command, list) or not command:
        raise ValueError("descriptor 'command' must be a non-empty list")
    return data


def session_script(doc: dict) -> str:
    """Shell script executed inside the screen session."""
    command = shlex.join(str(part) for part in doc["command"])
    if doc.get("restart") == "unless-stopped":
        unit = shlex.quote(str(doc["unit"]))
        return (
            f"while true; do {command}; "
            f"echo {unit} exited with status $?, restarting in {RESTART_DELAY_SECONDS}s; "
            f"sleep {RESTART_DELAY_SECONDS}; done"
        )
    return f"{command}; exec bash"


def parse_session_status(listing: str, unit: str) -> UnitStatus:
    """Find *unit* in ``screen -ls`` output.

    Lines look like ``\\t12345.bitz\\t(04/18/25 10:00:00)\\t(Detached)``.
    """
    pattern = re.compile(rf"^\s*\d+\.{re.escape(unit)}\s.*\(([A-Za-z]+)[^)]*\)\s*$")
    for line in listing.splitlines():
        m = pattern.match(line)
        if not m:
            continue
        if m.group(1) in ("Attached", "Detached", "Multi"):
            return UnitStatus.RUNNING
        return UnitStatus.STOPPED
    return UnitStatus.ABSENT
