"""
Shell command runner — the single place where install and engine
commands reach ``subprocess.run``.

Privilege handling, PATH extension, timing, and failure capture are
centralised here. The runner never raises for command failures;
everything is captured in the returned Receipt.

Privilege rules:
- Already root → the command runs as-is.
- Not root and ``sudo`` on PATH → ``sudo`` is prepended. sudo reads
  any password from the controlling terminal, never from us.
- Not root and no ``sudo`` → failure receipt naming the missing privilege.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from collections.abc import Callable, Sequence

from provisioner.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Signature shared by run_command and the test doubles that replace it
CommandRunner = Callable[..., Receipt]

_TAIL = 2000


def is_root() -> bool:
    return os.geteuid() == 0


def extend_path(extra: Sequence[str], base: str | None = None) -> str:
    """Prepend *extra* directories (``~`` expanded) to a PATH string."""
    base = os.environ.get("PATH", "") if base is None else base
    dirs = [os.path.expanduser(d) for d in extra]
    parts = [d for d in dirs if d] + ([base] if base else [])
    return os.pathsep.join(parts)


def run_command(
    cmd: Sequence[str],
    *,
    needs_sudo: bool = False,
    timeout: int = 300,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
    adapter: str = "shell",
    operation: str = "",
) -> Receipt:
    """Run *cmd* and capture the outcome.

    Args:
        cmd: Argument vector. Pipelines go through ``["bash", "-c", ...]``.
        needs_sudo: Whether the command requires root.
        timeout: Seconds before the process is killed.
        env_overrides: Extra environment variables (e.g. an extended PATH).
        cwd: Working directory.
        adapter: Name recorded on the receipt.
        operation: Operation label recorded on the receipt.

    Returns:
        Receipt with stdout (tail) on success, stderr (tail) on failure.
    """
    argv = list(cmd)
    operation = operation or (argv[0] if argv else "")

    if needs_sudo and not is_root():
        if shutil.which("sudo") is None:
            return Receipt.failure(
                adapter=adapter,
                operation=operation,
                error="root privileges required and sudo is not installed",
                metadata={"command": argv, "needs_sudo": True},
            )
        argv = ["sudo", *argv]

    env = os.environ.copy()
    if env_overrides:
        env.update(env_overrides)

    logger.debug("Executing: %s (cwd=%s)", " ".join(argv), cwd)
    start = time.monotonic()

    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except FileNotFoundError:
        return Receipt.failure(
            adapter=adapter,
            operation=operation,
            error=f"command not found: {argv[0]}",
            metadata={"command": argv},
        )
    except subprocess.TimeoutExpired:
        return Receipt.failure(
            adapter=adapter,
            operation=operation,
            error=f"timed out after {timeout}s",
            metadata={"command": argv, "timeout": timeout},
        )
    except OSError as e:
        return Receipt.failure(
            adapter=adapter,
            operation=operation,
            error=f"cannot execute {argv[0]}: {e}",
            metadata={"command": argv},
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = (result.stdout or "")[-_TAIL:].strip()
    stderr = (result.stderr or "")[-_TAIL:].strip()

    if result.returncode == 0:
        return Receipt.success(
            adapter=adapter,
            operation=operation,
            output=stdout,
            duration_ms=elapsed_ms,
            metadata={"command": argv, "return_code": 0, "stderr": stderr},
        )

    logger.debug("Command failed (exit %d): %s", result.returncode, stderr)
    return Receipt.failure(
        adapter=adapter,
        operation=operation,
        error=stderr or f"exited with code {result.returncode}",
        output=stdout,
        duration_ms=elapsed_ms,
        metadata={"command": argv, "return_code": result.returncode},
    )
