"""
Configuration collector — gather and validate deployment parameters.

Each prompt loops until its own rule holds, showing the problem and
asking again; invalid input never escapes as an exception. The only
way out without a config is CollectionAborted from the prompter.

Strictness:
    basic     port range/occupancy, proxy form, non-empty username
    hardened  basic + password confirmation + zone-database timezone check

Passwords are read with echo off and carried as SecretStr; nothing
here logs them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Literal

from pydantic import BaseModel, Field, SecretStr

from provisioner.core.models.capability import HostCapability
from provisioner.core.models.deployment import (
    Credentials,
    DeploymentConfig,
    PortPair,
    ProxySettings,
    Strictness,
)
from provisioner.core.services.interaction import Prompter
from provisioner.core.services.probe import is_port_free
from provisioner.core.services.validation import (
    PROXY_SCHEMES,
    parse_int_range,
    parse_port,
    parse_proxy_address,
    parse_proxy_scheme,
    parse_size,
    parse_timezone,
    sanitize_username,
)

logger = logging.getLogger(__name__)

DEFAULT_PORTS = PortPair(primary=3010, secondary=3011)


class ResourcePrompt(BaseModel):
    """A profile-specific resource hint, e.g. CPU cores or shm size."""

    key: str
    text: str
    default: str
    kind: Literal["int", "size"] = "int"
    low: int = 1
    high: int = 1024


class CollectionPlan(BaseModel):
    """Which questions a service profile needs answered."""

    profile: str
    ask_credentials: bool = False
    ask_ports: bool = False
    ask_timezone: bool = False
    ask_proxy: bool = False
    default_ports: PortPair | None = None
    port_labels: tuple[str, str] = ("HTTP port", "HTTPS port")
    resources: list[ResourcePrompt] = Field(default_factory=list)
    extra_hints: dict[str, str] = Field(default_factory=dict)


class Collector:
    """Interactive, validated DeploymentConfig builder."""

    def __init__(
        self,
        prompter: Prompter,
        strictness: Strictness = Strictness.HARDENED,
        port_checker: Callable[[int], bool] = is_port_free,
    ):
        self.prompter = prompter
        self.strictness = strictness
        self._port_free = port_checker

    @property
    def hardened(self) -> bool:
        return self.strictness is Strictness.HARDENED

    def collect(self, caps: HostCapability, plan: CollectionPlan) -> DeploymentConfig:
        """Run every prompt the plan asks for and return the validated config."""
        credentials = None
        if plan.ask_credentials and self.prompter.confirm("Require login credentials?", default=False):
            credentials = self.ask_credentials()

        ports = None
        if plan.ask_ports:
            defaults = plan.default_ports or DEFAULT_PORTS
            primary = self.ask_port(plan.port_labels[0], defaults.primary)
            secondary = self.ask_port(plan.port_labels[1], defaults.secondary, taken=(primary,))
            ports = PortPair(primary=primary, secondary=secondary)

        timezone = caps.timezone
        if plan.ask_timezone:
            timezone = self.ask_timezone(caps.timezone)

        proxy = None
        if plan.ask_proxy and self.prompter.confirm("Route traffic through a proxy?", default=False):
            proxy = self.ask_proxy()

        hints = dict(plan.extra_hints)
        for resource in plan.resources:
            hints[resource.key] = self.ask_resource(resource)

        config = DeploymentConfig(
            profile=plan.profile,
            strictness=self.strictness,
            credentials=credentials,
            ports=ports,
            timezone=timezone,
            proxy=proxy,
            resource_hints=hints,
        )
        logger.info(
            "Collected config: profile=%s ports=%s tz=%s proxy=%s credentials=%s",
            config.profile,
            f"{ports.primary}/{ports.secondary}" if ports else "-",
            config.timezone,
            proxy.url(include_secret=False) if proxy else "-",
            "yes" if credentials else "no",
        )
        return config

    # ── Individual prompts ──────────────────────────────────────

    def ask_port(self, label: str, default: int, *, taken: Iterable[int] = ()) -> int:
        taken = set(taken)
        while True:
            raw = self.prompter.ask(label, str(default))
            try:
                port = parse_port(raw)
            except ValueError as e:
                self.prompter.error(str(e))
                continue
            if port in taken:
                self.prompter.error(f"Port {port} is already assigned above. Choose another.")
                continue
            if not self._port_free(port):
                self.prompter.error(f"Port {port} is already in use. Please enter a different port.")
                continue
            return port

    def ask_credentials(self) -> Credentials:
        while True:
            try:
                username = sanitize_username(self.prompter.ask("Username"))
            except ValueError as e:
                self.prompter.error(str(e))
                continue
            break
        return Credentials(username=username, password=self.ask_password())

    def ask_password(self, text: str = "Password") -> SecretStr:
        while True:
            password = self.prompter.ask_secret(text)
            if not self.hardened:
                return SecretStr(password)
            confirmation = self.prompter.ask_secret(f"Confirm {text.lower()}")
            if password != confirmation:
                self.prompter.error("Passwords do not match. Try again.")
                continue
            return SecretStr(password)

    def ask_timezone(self, default: str) -> str:
        while True:
            raw = self.prompter.ask("Timezone", default).strip()
            if not self.hardened:
                if raw:
                    return raw
                self.prompter.error("Timezone cannot be empty.")
                continue
            try:
                return parse_timezone(raw)
            except ValueError as e:
                self.prompter.error(str(e))

    def ask_proxy(self) -> ProxySettings:
        while True:
            try:
                scheme = parse_proxy_scheme(
                    self.prompter.ask(f"Proxy type ({'/'.join(PROXY_SCHEMES)})", PROXY_SCHEMES[0])
                )
                break
            except ValueError as e:
                self.prompter.error(str(e))

        while True:
            try:
                host, port = parse_proxy_address(self.prompter.ask("Proxy address (host:port)"))
                break
            except ValueError as e:
                self.prompter.error(str(e))

        auth_user = ""
        auth_pass = SecretStr("")
        if self.prompter.confirm("Does the proxy require authentication?", default=False):
            while True:
                try:
                    auth_user = sanitize_username(self.prompter.ask("Proxy username"))
                    break
                except ValueError as e:
                    self.prompter.error(str(e))
            auth_pass = self.ask_password("Proxy password")

        return ProxySettings(scheme=scheme, host=host, port=port, auth_user=auth_user, auth_pass=auth_pass)

    def ask_resource(self, resource: ResourcePrompt) -> str:
        while True:
            raw = self.prompter.ask(resource.text, resource.default)
            try:
                if resource.kind == "size":
                    return parse_size(raw)
                return str(parse_int_range(raw, resource.low, resource.high))
            except ValueError as e:
                self.prompter.error(str(e))
