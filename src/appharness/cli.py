"""CLI entrypoint for running and inspecting a harness outside of tests."""

from __future__ import annotations

import threading
from pathlib import Path

import click

from .context import new_harness
from .errors import HarnessError
from .harness.discovery import find_interpreter, find_server
from .harness.manifests import write_manifests
from .schemas.options import DEFAULT_APP_ID, ComponentSpec, HarnessConfig, LogLevel

LEVEL_CHOICES = [level.name.lower() for level in LogLevel]


def _parse_component(value: str) -> ComponentSpec:
    name, sep, path = value.partition("=")
    if not sep or not name or not path:
        raise click.BadParameter(f"Expected NAME=PATH, got '{value}'", param_hint="--component")
    return ComponentSpec(name=name, manifest=Path(path))


@click.group()
@click.version_option(package_name="appharness")
def main() -> None:
    """Run a local development app server the way the test harness does."""
    pass


@main.command()
@click.option("--app-id", "-a", type=str, default=None, help="Application id to pretend to be")
@click.option("--queue", "-q", "queues", multiple=True, help="Task queue to declare (repeatable)")
@click.option(
    "--component",
    "-c",
    "components",
    multiple=True,
    help="Additional component as NAME=PATH to its manifest (repeatable)",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(LEVEL_CHOICES),
    default="error",
    help="Log threshold; 'child' mirrors the server's own output",
)
@click.option("--timeout", type=float, default=None, help="Startup timeout in seconds")
def up(
    app_id: str | None,
    queues: tuple[str, ...],
    components: tuple[str, ...],
    log_level: str,
    timeout: float | None,
) -> None:
    """Start the server, print component addresses, and wait for Ctrl-C."""
    config = HarnessConfig(
        app_id=app_id,
        task_queues=list(queues),
        log_level=LogLevel.from_name(log_level),
        components=[_parse_component(value) for value in components],
        startup_timeout=timeout,
    )
    click.echo(f"Starting {config.resolved_app_id}...")
    try:
        harness = new_harness(config)
    except HarnessError as exc:
        raise click.ClickException(str(exc)) from exc

    with harness:
        for name in harness.endpoints:
            click.echo(f"{name}: {harness.module_hostname(name)}")
        click.echo("Press Ctrl-C to stop.")
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            click.echo("Stopping...")


@main.command()
@click.option("--app-id", "-a", type=str, default=DEFAULT_APP_ID, help="Application id")
@click.option("--queue", "-q", "queues", multiple=True, help="Task queue to declare (repeatable)")
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Directory to write the manifests into",
)
def render(app_id: str, queues: tuple[str, ...], output: Path) -> None:
    """Write the manifests a harness would generate."""
    output.mkdir(parents=True, exist_ok=True)
    for path in write_manifests(output, app_id, list(queues)):
        click.echo(f"Wrote {path}")


@main.command()
def which() -> None:
    """Show the interpreter and server the harness would launch."""
    try:
        interpreter = find_interpreter()
        server = find_server()
    except HarnessError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Interpreter: {interpreter}")
    click.echo(f"Server: {server}")
