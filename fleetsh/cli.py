"""fleetsh command line interface.

Usage:
    fleetsh ssh -t Role=web -c "uptime"
    fleetsh scp -t Role=web -s app.tar.gz -d /opt/app/app.tar.gz -z --create-dir
"""

import asyncio
import logging
import sys

import click

from fleetsh import __version__
from fleetsh.config import IP_TYPES, HostKeyVerifier, Settings
from fleetsh.errors import FleetError
from fleetsh.models import CommandRequest, SessionConfig, Target, TransferRequest
from fleetsh.services import (
    AuditLog,
    command_action,
    discover_targets,
    dispatch,
    format_failure_report,
    parse_tags,
    transfer_action,
)
from fleetsh.utils import configure_logging

logger = logging.getLogger(__name__)


def _session_options(func):
    """Options shared by every subcommand."""
    options = [
        click.option("--tags", "-t", default="", help="Tag filter, e.g. Env=prod,Role=web"),
        click.option(
            "--ip-type",
            type=click.Choice(IP_TYPES),
            default=None,
            help="Address class to connect to [default: private]",
        ),
        click.option("--user", "-u", default=None, help="Remote user [default: ec2-user]"),
        click.option("--private-key", "-p", default=None, help="Private key path [default: ~/.ssh/id_rsa]"),
        click.option("--port", "-P", type=int, default=None, help="SSH port [default: 22]"),
        click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _session_config(
    settings: Settings,
    user: str | None,
    private_key: str | None,
    port: int | None,
) -> SessionConfig:
    try:
        verifier = HostKeyVerifier.from_env()
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e

    return SessionConfig(
        private_key_path=private_key or settings.private_key,
        user=user or settings.user,
        port=port or settings.port,
        connect_timeout=settings.connect_timeout,
        known_hosts=verifier.get_known_hosts_path(),
    )


def _resolve_targets(settings: Settings, tags: str, ip_type: str | None, yes: bool) -> dict[str, Target]:
    tag_map = parse_tags(tags)
    if not tag_map and not yes:
        if not click.confirm(
            "You have not specified any tags. This will execute the command on "
            "ALL EC2 instances. Do you want to continue?",
            default=False,
        ):
            raise click.Abort()

    try:
        return discover_targets(tag_map, ip_type or settings.ip_type, region=settings.region)
    except FleetError as e:
        raise click.ClickException(f"Failed to create target list: {e}") from e


def _preview(targets: dict[str, Target], details: list[str]) -> None:
    click.echo("Targets:")
    for target in sorted(targets.values(), key=lambda t: t.ip):
        click.echo(f"Name: {target.display_name} / ID: {target.instance_id} / IP: {target.ip}")
    click.echo()
    for line in details:
        click.echo(line)
    click.echo()


def _run(targets: dict[str, Target], action, settings: Settings) -> None:
    with AuditLog(settings.history_file) as audit:
        failures = asyncio.run(dispatch(targets.values(), action(audit)))

    click.echo(format_failure_report(failures), nl=False)
    if failures:
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="fleetsh")
@click.pass_context
def main(ctx: click.Context) -> None:
    """fleetsh - run a command or copy a file on many EC2 hosts in parallel."""
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_colors)
    ctx.obj = settings


@main.command()
@_session_options
@click.option("--command", "-c", required=True, help="Command to execute on every target")
@click.pass_obj
def ssh(settings: Settings, tags, ip_type, user, private_key, port, yes, command):
    """Execute a command on every matching target."""
    config = _session_config(settings, user, private_key, port)
    request = CommandRequest(command=command)
    targets = _resolve_targets(settings, tags, ip_type, yes)

    _preview(targets, [f"Command: {request.command}"])
    if not yes and not click.confirm("Do you want to continue?", default=False):
        raise click.Abort()

    _run(targets, lambda audit: command_action(config, request, audit), settings)


@main.command()
@_session_options
@click.option("--source", "-s", required=True, type=click.Path(exists=True, dir_okay=False), help="Local file to copy")
@click.option("--dest", "-d", required=True, help="Destination path on the targets")
@click.option("--permission", "-m", default="0644", show_default=True, help="Octal permission for the copied file")
@click.option("--decompress", "-z", is_flag=True, help="Decompress the file after copying")
@click.option("--create-dir", is_flag=True, help="Create the destination directory if missing")
@click.pass_obj
def scp(settings: Settings, tags, ip_type, user, private_key, port, yes, source, dest, permission, decompress, create_dir):
    """Copy a local file to every matching target."""
    config = _session_config(settings, user, private_key, port)
    try:
        request = TransferRequest(
            source=source,
            destination=dest,
            permission=permission,
            decompress=decompress,
            create_dir=create_dir,
        )
    except FleetError as e:
        raise click.BadParameter(str(e), param_hint="--permission") from e
    targets = _resolve_targets(settings, tags, ip_type, yes)

    details = [
        f"Source: {request.source}",
        f"Destination: {request.destination}",
        f"Permission: {request.permission}",
    ]
    if request.decompress:
        details.append("Decompression: Enabled")
    if request.create_dir:
        details.append("Directory Creation: Enabled")
    _preview(targets, details)
    if not yes and not click.confirm("Do you want to continue?", default=False):
        raise click.Abort()

    _run(targets, lambda audit: transfer_action(config, request, audit), settings)


if __name__ == "__main__":
    main()
