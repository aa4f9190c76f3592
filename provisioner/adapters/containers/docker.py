"""
Docker Compose engine — runs the unit as a compose-managed container.

Uses the docker CLI, never the Docker API directly. The unit name is
the container name declared in the compose file.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from provisioner.adapters.base import RuntimeEngine
from provisioner.core.models.action import Receipt
from provisioner.core.models.state import UnitStatus

logger = logging.getLogger(__name__)

# Fragments docker prints when the target simply is not there
_ABSENT_MARKERS = ("no such container", "no such object", "not found")


class ComposeEngine(RuntimeEngine):
    """Bring a single-container compose project up and down."""

    def __init__(self, timeout: int = 300):
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "docker"

    def is_available(self) -> bool:
        return shutil.which("docker") is not None

    # ── Operations ──────────────────────────────────────────────

    def bring_down(self, unit: str, descriptor_path: Path | None = None) -> Receipt:
        if not self.is_available():
            return Receipt.success(
                adapter=self.name, operation="down",
                output="docker not installed; nothing to stop",
            )

        outputs: list[str] = []
        if descriptor_path is not None and descriptor_path.is_file():
            r = self._docker(
                ["compose", "-f", str(descriptor_path), "down", "-v"],
                cwd=descriptor_path.parent,
            )
            if r.returncode != 0:
                logger.debug("compose down failed (continuing): %s", r.stderr.strip())
            outputs.append((r.stdout or r.stderr).strip())

        r = self._docker(["rm", "-f", unit])
        if r.returncode != 0 and not _is_absent(r.stderr):
            return Receipt.failure(
                adapter=self.name, operation="down",
                error=r.stderr.strip() or f"docker rm {unit} failed",
            )
        outputs.append(r.stdout.strip())
        return Receipt.success(
            adapter=self.name, operation="down",
            output="\n".join(o for o in outputs if o),
        )

    def bring_up(self, descriptor_path: Path) -> Receipt:
        if not self.is_available():
            return Receipt.failure(adapter=self.name, operation="up", error="docker is not installed")

        r = self._docker(
            ["compose", "-f", str(descriptor_path), "up", "-d"],
            cwd=descriptor_path.parent,
        )
        if r.returncode != 0:
            return Receipt.failure(
                adapter=self.name, operation="up",
                error=r.stderr.strip() or "docker compose up failed",
                output=r.stdout.strip(),
            )
        # compose reports progress on stderr
        return Receipt.success(
            adapter=self.name, operation="up",
            output=(r.stdout or r.stderr).strip(),
        )

    def status(self, unit: str) -> UnitStatus:
        if not self.is_available():
            return UnitStatus.ABSENT

        r = self._docker(["inspect", "--format", "{{.State.Status}}", unit], timeout=15)
        if r.returncode != 0:
            return UnitStatus.ABSENT if _is_absent(r.stderr) else UnitStatus.STOPPED
        if r.stdout.strip() == "running":
            return UnitStatus.RUNNING
        return UnitStatus.STOPPED

    def logs(self, unit: str, tail: int = 50) -> Receipt:
        if not self.is_available():
            return Receipt.failure(adapter=self.name, operation="logs", error="docker is not installed")

        r = self._docker(["logs", "--tail", str(tail), unit], timeout=15)
        if r.returncode != 0:
            return Receipt.failure(
                adapter=self.name, operation="logs",
                error=r.stderr.strip() or f"no logs for '{unit}'",
            )
        # container output is split across both streams
        combined = "\n".join(s for s in (r.stdout.strip(), r.stderr.strip()) if s)
        return Receipt.success(adapter=self.name, operation="logs", output=combined)

    # ── Helpers ─────────────────────────────────────────────────

    def _docker(
        self,
        args: list[str],
        *,
        cwd: Path | None = None,
        timeout: int | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run a docker command; timeouts come back as a failed result."""
        cmd = ["docker", *args]
        logger.debug("Executing: %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                timeout=timeout or self._timeout,
            )
        except subprocess.TimeoutExpired:
            return subprocess.CompletedProcess(
                cmd, returncode=-1, stdout="",
                stderr=f"docker {args[0]} timed out after {timeout or self._timeout}s",
            )


def _is_absent(stderr: str) -> bool:
    lowered = stderr.lower()
    return any(marker in lowered for marker in _ABSENT_MARKERS)
