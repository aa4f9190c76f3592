"""
Environment prober — read-only checks of the host.

Nothing here mutates the host. The only network call is public
address discovery, which is best-effort: any failure yields None and
the caller shows a placeholder instead.
"""

from __future__ import annotations

import ipaddress
import logging
import os
import re
import shutil
import socket
import subprocess
import urllib.error
import urllib.request
from collections.abc import Iterable
from pathlib import Path

from provisioner.adapters.base import PackageManager
from provisioner.adapters.shell.command import extend_path
from provisioner.core.models.capability import HostCapability
from provisioner.core.models.tooling import ToolSpec
from provisioner.core.services.validation import is_valid_timezone

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"(\d+\.\d+(?:\.\d+)?)")

DEFAULT_ADDRESS_URL = "https://api.ipify.org"


# ── Tools ───────────────────────────────────────────────────────


def find_binary(tool: ToolSpec) -> str | None:
    """Locate the tool's binary on PATH extended with its extra_path."""
    if not tool.binary:
        return None
    return shutil.which(tool.binary, path=extend_path(tool.extra_path))


def is_tool_present(tool: ToolSpec, pm: PackageManager) -> bool:
    """A tool is present when its binary resolves and its packages are installed."""
    if tool.binary and find_binary(tool) is None:
        return False
    return all(pm.is_installed(pkg) for pkg in tool.packages)


def tool_version(tool: ToolSpec) -> str | None:
    """Run the tool's version command and extract a dotted version."""
    if not tool.version_command:
        return None
    try:
        r = subprocess.run(
            tool.version_command,
            capture_output=True, text=True, timeout=10,
            env={**os.environ, "PATH": extend_path(tool.extra_path)},
        )
    except (FileNotFoundError, subprocess.TimeoutExpired, OSError):
        return None
    if r.returncode != 0:
        return None
    m = _VERSION_RE.search(r.stdout or r.stderr)
    return m.group(1) if m else None


# ── Ports ───────────────────────────────────────────────────────


def listening_ports(ss_output: str) -> set[int]:
    """Parse local ports out of ``ss -tuln`` output."""
    ports: set[int] = set()
    for line in ss_output.splitlines():
        fields = line.split()
        if len(fields) < 5 or fields[0] == "Netid":
            continue
        _, _, port = fields[4].rpartition(":")
        if port.isdigit():
            ports.add(int(port))
    return ports


def is_port_free(port: int) -> bool:
    """Whether nothing on the host is listening on *port* right now.

    Uses ``ss -tuln``; falls back to a bind attempt where ``ss`` is
    missing. The answer can be stale by the time the unit binds.
    """
    try:
        r = subprocess.run(
            ["ss", "-tuln"],
            capture_output=True, text=True, timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired, OSError):
        return _can_bind(port)
    if r.returncode != 0:
        return _can_bind(port)
    return port not in listening_ports(r.stdout)


def _can_bind(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind(("0.0.0.0", port))
        except OSError:
            return False
    return True


# ── Timezone ────────────────────────────────────────────────────


def current_timezone() -> str:
    """Best guess at the host's zone name; ``UTC`` when undetectable."""
    tz = os.environ.get("TZ", "").lstrip(":").strip()
    if tz and is_valid_timezone(tz):
        return tz

    if shutil.which("timedatectl"):
        try:
            r = subprocess.run(
                ["timedatectl", "show", "-p", "Timezone", "--value"],
                capture_output=True, text=True, timeout=5,
            )
            name = r.stdout.strip()
            if r.returncode == 0 and name and is_valid_timezone(name):
                return name
        except (subprocess.TimeoutExpired, OSError):
            pass

    try:
        name = Path("/etc/timezone").read_text(encoding="utf-8").strip()
        if name and is_valid_timezone(name):
            return name
    except OSError:
        pass

    try:
        target = os.readlink("/etc/localtime")
        _, _, name = target.partition("zoneinfo/")
        if name and is_valid_timezone(name):
            return name
    except OSError:
        pass

    return "UTC"


# ── Network ─────────────────────────────────────────────────────


def discover_public_address(url: str = DEFAULT_ADDRESS_URL, timeout: int = 5) -> str | None:
    """Ask an echo service for this host's public IP. Never raises."""
    req = urllib.request.Request(url, headers={"User-Agent": "provisioner/0.1"})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            body = resp.read(64).decode("ascii", errors="replace").strip()
    except (urllib.error.URLError, OSError, ValueError) as exc:
        logger.info("Public address discovery failed: %s", exc)
        return None
    try:
        return str(ipaddress.ip_address(body))
    except ValueError:
        logger.info("Address service returned a non-IP body: %r", body[:40])
        return None


# ── Aggregate ───────────────────────────────────────────────────


def probe(
    tools: Iterable[ToolSpec],
    pm: PackageManager,
    candidate_ports: Iterable[int] = (),
    *,
    address_url: str = DEFAULT_ADDRESS_URL,
    discover_address: bool = True,
) -> HostCapability:
    """Snapshot the host: tool presence and versions, free ports, zone, address."""
    caps = HostCapability(timezone=current_timezone())

    for tool in tools:
        present = is_tool_present(tool, pm)
        caps.tool_present[tool.name] = present
        caps.tool_version[tool.name] = tool_version(tool) if present else None

    caps.free_ports = {p for p in candidate_ports if is_port_free(p)}

    if discover_address:
        caps.public_address = discover_public_address(address_url)

    logger.info(
        "Probe: missing=%s free_ports=%s tz=%s address=%s",
        caps.missing_tools(), sorted(caps.free_ports), caps.timezone, caps.public_address,
    )
    return caps
