"""
ToolSpec — one entry of a host baseline.

A tool is present when its binary is on PATH (including ``extra_path``)
and all of its packages are installed. When it is not present, its
steps run in order:

    refresh   refresh the package index (at most once per run unless a
              repository step invalidated it)
    packages  install the listed packages that are still missing
    repo      register a signing key and source list (sub-commands run in
              order); the index is considered stale afterwards
    command   run arbitrary commands (vendor installers, cargo install)
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class InstallStep(BaseModel):
    kind: Literal["refresh", "packages", "repo", "command"]
    label: str = ""
    packages: list[str] = Field(default_factory=list)
    commands: list[list[str]] = Field(default_factory=list)
    needs_sudo: bool = False
    timeout: int = 600

    @model_validator(mode="after")
    def _has_payload(self) -> InstallStep:
        if self.kind == "packages" and not self.packages:
            raise ValueError("packages step needs at least one package")
        if self.kind in ("repo", "command") and not self.commands:
            raise ValueError(f"{self.kind} step needs at least one command")
        return self

    @property
    def display(self) -> str:
        return self.label or self.kind


class ToolSpec(BaseModel):
    name: str
    label: str = ""
    binary: str | None = None
    packages: list[str] = Field(default_factory=list)
    steps: list[InstallStep] = Field(default_factory=list)
    extra_path: list[str] = Field(default_factory=list)
    version_command: list[str] | None = None

    @model_validator(mode="after")
    def _has_presence_check(self) -> ToolSpec:
        if not self.binary and not self.packages:
            raise ValueError(f"tool '{self.name}' needs a binary or packages to check")
        return self

    @property
    def display(self) -> str:
        return self.label or self.name
