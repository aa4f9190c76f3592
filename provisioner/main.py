"""
Provisioner — CLI entrypoint.

Usage:
    provisioner                      # interactive menu (chromium)
    provisioner --profile bitz       # interactive menu (bitz miner)
    provisioner deploy
    provisioner remove --yes
    provisioner status --json
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import setup_logging
from provisioner.core.services.profiles import DEFAULT_PROFILE, PROFILES
from provisioner.ui.cli import output


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="provisioner")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to settings.yml (default: ~/.config/provisioner/settings.yml).",
)
@click.option(
    "--profile",
    "-p",
    type=click.Choice(sorted(PROFILES)),
    default=DEFAULT_PROFILE,
    show_default=True,
    help="Service to manage.",
)
@click.option(
    "--strictness",
    type=click.Choice(["basic", "hardened"]),
    default=None,
    help="Input validation rules (default: from settings, hardened).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    profile: str,
    strictness: str | None,
) -> None:
    """Provision and manage a single service on this host."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["profile"] = profile

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("PROV_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("PROV_LOG_FILE"),
        log_file_level=os.environ.get("PROV_LOG_FILE_LEVEL"),
    )

    # ── Settings ────────────────────────────────────────────────
    from provisioner.core.config.loader import ConfigError, load_settings
    from provisioner.core.models.deployment import Strictness

    try:
        settings = load_settings(Path(config_path) if config_path else None)
    except ConfigError as e:
        output.fail(str(e))

    ctx.obj["settings"] = settings
    ctx.obj["strictness"] = Strictness(strictness) if strictness else settings.strictness

    if ctx.invoked_subcommand is None:
        ctx.invoke(menu)


from provisioner.ui.cli.service import (  # noqa: E402
    commands,
    deploy,
    logs,
    menu,
    probe,
    remove,
    status,
)

cli.add_command(menu)
cli.add_command(deploy)
cli.add_command(remove)
cli.add_command(status)
cli.add_command(logs)
cli.add_command(commands)
cli.add_command(probe)


if __name__ == "__main__":
    cli()
