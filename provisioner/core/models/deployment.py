"""
Deployment models — validated configuration and rendered descriptor.

DeploymentConfig is the single value threaded from the collector to
the descriptor renderer. The field validators apply the collector's
structural rules (sanitised username, proxy host, known timezone when
hardened), so a config built by hand gets the same checks.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal
from urllib.parse import quote

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from provisioner.core.services.validation import (
    is_valid_timezone,
    sanitize_username,
    validate_proxy_host,
)


class Strictness(str, Enum):
    """Which validation rules the collector enforces."""

    BASIC = "basic"
    HARDENED = "hardened"


class Credentials(BaseModel):
    """Login pair for the deployed service."""

    username: str = Field(min_length=1)
    password: SecretStr = SecretStr("")

    @field_validator("username")
    @classmethod
    def _sanitize(cls, v: str) -> str:
        return sanitize_username(v)


class PortPair(BaseModel):
    """Host ports forwarded to the unit's two internal ports."""

    primary: int = Field(ge=1, le=65535)
    secondary: int = Field(ge=1, le=65535)

    @model_validator(mode="after")
    def _distinct(self) -> PortPair:
        if self.primary == self.secondary:
            raise ValueError(f"ports must differ (both are {self.primary})")
        return self


class ProxySettings(BaseModel):
    """Upstream proxy the service routes traffic through.

    Absent authentication is modeled as empty strings.
    """

    scheme: Literal["http", "socks5"]
    host: str = Field(min_length=1)
    port: int = Field(ge=1, le=65535)
    auth_user: str = ""
    auth_pass: SecretStr = SecretStr("")

    @field_validator("host")
    @classmethod
    def _host(cls, v: str) -> str:
        return validate_proxy_host(v)

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def has_auth(self) -> bool:
        return bool(self.auth_user)

    def url(self, *, include_secret: bool = True) -> str:
        """``scheme://[user:pass@]host:port``; the password is masked unless asked for."""
        auth = ""
        if self.has_auth:
            secret = quote(self.auth_pass.get_secret_value(), safe="") if include_secret else "****"
            auth = f"{quote(self.auth_user, safe='')}:{secret}@"
        return f"{self.scheme}://{auth}{self.address}"


class DeploymentConfig(BaseModel):
    """Everything needed to render and launch one unit."""

    profile: str
    strictness: Strictness = Strictness.HARDENED
    credentials: Credentials | None = None
    ports: PortPair | None = None
    timezone: str = "UTC"
    proxy: ProxySettings | None = None
    resource_hints: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _timezone(self) -> DeploymentConfig:
        if not self.timezone.strip():
            raise ValueError("timezone cannot be empty")
        if self.strictness is Strictness.HARDENED and not is_valid_timezone(self.timezone):
            raise ValueError(f"unknown timezone '{self.timezone}'")
        return self

    @property
    def embeds_secrets(self) -> bool:
        """Whether rendering this config places secrets in the descriptor."""
        if self.credentials is not None:
            return True
        return self.proxy is not None and bool(self.proxy.auth_pass.get_secret_value())


class DeploymentDescriptor(BaseModel):
    """Rendered artifact handed to the runtime engine.

    ``sensitive`` marks descriptors that embed credentials; writers
    must restrict permissions before any content reaches disk.
    """

    filename: str
    content: str
    sensitive: bool = False
