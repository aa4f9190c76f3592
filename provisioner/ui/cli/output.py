"""Tagged status lines for the terminal."""

from __future__ import annotations

import sys
from typing import NoReturn

import click


def info(message: str) -> None:
    click.secho(f"[INFO] {message}", fg="cyan")


def warn(message: str) -> None:
    click.secho(f"[WARN] {message}", fg="yellow")


def error(message: str) -> None:
    click.secho(f"[ERROR] {message}", fg="red", err=True)


def fail(message: str, hint: str | None = None, code: int = 1) -> NoReturn:
    """Print one ``[ERROR]`` line (plus an optional hint) and exit."""
    error(message)
    if hint:
        click.secho(f"        {hint}", fg="yellow", err=True)
    sys.exit(code)
