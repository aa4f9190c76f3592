"""
Input validation — pure checks used by the configuration collector.

Each parser returns the normalized value or raises ValueError with a
message fit to show the user before re-prompting.
"""

from __future__ import annotations

import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

PROXY_SCHEMES = ("http", "socks5")

# host:port, port 1-5 digits
_PROXY_ADDR_RE = re.compile(r"^([A-Za-z0-9.-]+):([0-9]{1,5})$")
_PROXY_HOST_RE = re.compile(r"[A-Za-z0-9.-]+")

# whitespace and quote characters are stripped from usernames
_USERNAME_STRIP_RE = re.compile(r"[\s'\"`]")

# docker size strings: 512m, 1gb, 2G
_SIZE_RE = re.compile(r"^[0-9]+(?:[bkmg]|[kmg]b)?$", re.IGNORECASE)

_INT_RE = re.compile(r"^-?[0-9]+$")


def parse_port(raw: str) -> int:
    """Integer in [1, 65535]."""
    text = raw.strip()
    if not (text.isascii() and text.isdigit()):
        raise ValueError(f"'{raw}' is not a port number.")
    port = int(text)
    if not 1 <= port <= 65535:
        raise ValueError(f"Port {port} is out of range (1-65535).")
    return port


def parse_proxy_address(raw: str) -> tuple[str, int]:
    """Split ``host:port``; the port must also be a valid port number."""
    m = _PROXY_ADDR_RE.match(raw.strip())
    if not m:
        raise ValueError(f"'{raw}' is not in host:port form (e.g. 1.2.3.4:1080).")
    host, port_text = m.groups()
    port = parse_port(port_text)
    return host, port


def validate_proxy_host(host: str) -> str:
    if not _PROXY_HOST_RE.fullmatch(host):
        raise ValueError(f"'{host}' is not a valid proxy host.")
    return host


def parse_proxy_scheme(raw: str) -> str:
    scheme = raw.strip().lower()
    if scheme not in PROXY_SCHEMES:
        raise ValueError(f"Proxy type must be one of: {', '.join(PROXY_SCHEMES)}.")
    return scheme


def sanitize_username(raw: str) -> str:
    """Strip whitespace and quotes; the result must be non-empty."""
    name = _USERNAME_STRIP_RE.sub("", raw)
    if not name:
        raise ValueError("Username cannot be empty.")
    return name


def is_valid_timezone(name: str) -> bool:
    """Whether *name* is a zone in the system zone database."""
    if not name or name.startswith("/") or ".." in name:
        return False
    if name in available_timezones():
        return True
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        # zone-database directories such as "America" are not zones
        return False
    return True


def parse_timezone(raw: str) -> str:
    name = raw.strip()
    if not is_valid_timezone(name):
        raise ValueError(
            f"Unknown timezone '{name}'. "
            "Run 'timedatectl list-timezones' to see valid names (e.g. Europe/Berlin)."
        )
    return name


def parse_size(raw: str) -> str:
    """Docker size string such as ``1gb`` or ``512m``."""
    text = raw.strip().lower()
    if not _SIZE_RE.match(text):
        raise ValueError(f"'{raw}' is not a size (e.g. 512m, 1gb).")
    return text


def parse_int_range(raw: str, low: int, high: int) -> int:
    text = raw.strip()
    if not _INT_RE.match(text):
        raise ValueError(f"'{raw}' is not a whole number.")
    value = int(text)
    if not low <= value <= high:
        raise ValueError(f"Enter a number between {low} and {high}.")
    return value
