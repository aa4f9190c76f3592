"""
CLI commands for the selected service profile.

Thin wrappers over ``provisioner.core.use_cases``. The profile and
settings are resolved once by the top-level group and read from the
click context.
"""

from __future__ import annotations

import json

import click

from provisioner.ui.cli import output


def _profile(ctx: click.Context):
    from provisioner.core.services.profiles import get_profile

    return get_profile(ctx.obj["profile"], ctx.obj["settings"])


# ── Menu ────────────────────────────────────────────────────────


@click.command()
@click.pass_context
def menu(ctx: click.Context) -> None:
    """Interactive menu: install, remove, show commands, or exit."""
    profile = _profile(ctx)

    click.echo()
    click.secho(f"{profile.title} — manager", fg="cyan", bold=True)
    click.echo("   1) Install/Setup")
    click.echo("   2) Remove")
    click.echo(f"   3) {profile.aux_label}")
    click.echo("   4) Exit")
    click.echo()

    try:
        choice = click.prompt("Select an option", default="", show_default=False).strip()
    except click.Abort:
        click.echo()
        return

    if choice == "1":
        ctx.invoke(deploy, no_address=False)
    elif choice == "2":
        ctx.invoke(remove, assume_yes=False)
    elif choice == "3":
        ctx.invoke(commands)
    elif choice == "4":
        output.info("Exiting.")
    else:
        output.fail(f"Invalid option '{choice}'. Choose 1-4.")


# ── Deploy / Remove ─────────────────────────────────────────────


@click.command()
@click.option("--no-address", is_flag=True, help="Skip public IP discovery.")
@click.pass_context
def deploy(ctx: click.Context, no_address: bool) -> None:
    """Install prerequisites, collect settings, and start the service."""
    from provisioner.core.use_cases.deploy import run_deploy
    from provisioner.ui.cli.prompts import ClickPrompter

    profile = _profile(ctx)
    outcome = run_deploy(
        profile,
        ClickPrompter(),
        strictness=ctx.obj.get("strictness"),
        discover_address=not no_address,
    )

    if outcome.cancelled:
        output.info("Cancelled.")
        return

    if outcome.error:
        output.fail(outcome.error, hint=outcome.hint)

    if outcome.report and outcome.report.installed:
        output.info(f"Installed: {', '.join(outcome.report.installed)}")

    click.echo()
    if outcome.access:
        headline, *details = outcome.access
        click.secho(headline, fg="green", bold=True)
        for line in details:
            click.echo(f"   {line}")
    click.echo()
    output.info(f"{profile.title} is running.")


@click.command()
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def remove(ctx: click.Context, assume_yes: bool) -> None:
    """Stop the service and delete its working directory."""
    from provisioner.core.use_cases.remove import run_remove
    from provisioner.ui.cli.prompts import ClickPrompter

    profile = _profile(ctx)
    result = run_remove(profile, ClickPrompter(), assume_yes=assume_yes)

    if result.cancelled:
        output.info("Removal cancelled.")
        return

    for warning in result.warnings:
        output.warn(warning)

    if result.error:
        output.fail(result.error, hint=result.hint)

    output.info(f"{profile.title} removed.")


# ── Observe ─────────────────────────────────────────────────────


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show whether the service is deployed and running."""
    from provisioner.core.use_cases.status import get_status

    result = get_status(_profile(ctx))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    color = {"running": "green", "failed": "red"}.get(result.state.value, "white")
    click.secho(f"{result.profile}: ", bold=True, nl=False)
    click.secho(result.state.value, fg=color)
    click.echo(f"   Engine:     {result.engine} ({result.unit_status.value})")
    click.echo(f"   Workdir:    {result.workdir}")
    click.echo(f"   Descriptor: {result.descriptor_path or '-'}")


@click.command()
@click.option("--tail", "-n", default=50, show_default=True, help="Number of lines.")
@click.pass_context
def logs(ctx: click.Context, tail: int) -> None:
    """Show recent output from the running unit."""
    profile = _profile(ctx)
    receipt = profile.engine().logs(profile.unit, tail=tail)

    if receipt.failed:
        output.fail(receipt.error or "no logs available")
    click.echo(receipt.output)


@click.command()
@click.pass_context
def commands(ctx: click.Context) -> None:
    """List useful commands for managing the service."""
    profile = _profile(ctx)
    click.secho(f"Useful {profile.title} commands:", fg="cyan", bold=True)
    for command, description in profile.management_commands():
        click.echo(f"   {command:<48} {description}")


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--no-address", is_flag=True, help="Skip public IP discovery.")
@click.pass_context
def probe(ctx: click.Context, as_json: bool, no_address: bool) -> None:
    """Inspect the host without changing it."""
    from provisioner.adapters.packages.apt import AptPackageManager
    from provisioner.core.services.probe import probe as probe_host

    profile = _profile(ctx)
    caps = probe_host(
        profile.baseline(),
        AptPackageManager(),
        profile.candidate_ports(),
        address_url=profile.settings.public_ip_url,
        discover_address=not no_address,
    )

    if as_json:
        click.echo(json.dumps(caps.model_dump(mode="json"), indent=2, sort_keys=True))
        return

    click.secho(f"Host check for {profile.title}", fg="cyan", bold=True)
    for name, present in caps.tool_present.items():
        version = caps.tool_version.get(name)
        mark = click.style("✓", fg="green") if present else click.style("✗", fg="red")
        click.echo(f"   {mark} {name}{f' {version}' if version else ''}")
    for port in profile.candidate_ports():
        state = "free" if port in caps.free_ports else "in use"
        click.echo(f"   port {port}: {state}")
    click.echo(f"   timezone: {caps.timezone}")
    click.echo(f"   address:  {caps.display_address}")
