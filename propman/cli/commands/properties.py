"""Property CLI commands."""

import json
import time

import click
from rich.console import Console
from rich.table import Table

from propman.core import properties as codec
from propman.storage.events import Event, EventType

FORMATS = ("table", "json", "properties")


def parse_assignments(assignments: tuple[str, ...]) -> dict[str, str]:
    """Parse KEY=VALUE arguments. Later assignments win."""
    properties = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep or not key:
            raise click.BadParameter(
                f"Expected KEY=VALUE, got {assignment!r}", param_hint="ASSIGNMENTS"
            )
        properties[key] = value
    return properties


def render_table(properties: dict[str, str], title: str | None = None) -> Table:
    """Build a two-column Rich table of properties."""
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value")
    for key in sorted(properties):
        table.add_row(key, properties[key])
    return table


def print_changes(console: Console, event: Event) -> None:
    """Print the keys changed by ``event`` with the values it carries."""
    values = event.values
    for key in event.changed_keys:
        if key in values:
            console.print(f"[cyan]{key}[/cyan] = {values[key]}", highlight=False)
        else:
            console.print(f"[cyan]{key}[/cyan] [dim](removed)[/dim]", highlight=False)


@click.command("get")
@click.argument("key")
@click.option("--default", "-d", help="Value to print when the key is not set")
@click.pass_context
def get_command(ctx: click.Context, key: str, default: str | None) -> None:
    """Print the value of KEY."""
    with ctx.obj.open_store(reload="never", update="local") as store:
        value = store.get_property(key, default)

    if value is None:
        click.echo(f"Property not found: {key}", err=True)
        ctx.exit(1)

    click.echo(value)


@click.command("list")
@click.option(
    "--format",
    "-F",
    "output_format",
    type=click.Choice(FORMATS),
    default="table",
    help="Output format",
)
@click.pass_context
def list_command(ctx: click.Context, output_format: str) -> None:
    """List every property."""
    console = ctx.obj.console
    with ctx.obj.open_store(reload="never", update="local") as store:
        properties = store.get_properties()

    if output_format == "json":
        click.echo(json.dumps(properties, indent=2, sort_keys=True, ensure_ascii=False))
    elif output_format == "properties":
        click.echo(codec.dumps(properties), nl=False)
    elif not properties:
        console.print("[yellow]No properties found[/yellow]")
    else:
        console.print(render_table(properties, title=f"{len(properties)} properties"))


@click.command("set")
@click.argument("assignments", nargs=-1, required=True)
@click.option(
    "--replace",
    is_flag=True,
    help="Discard every existing property and keep only the given ones",
)
@click.pass_context
def set_command(ctx: click.Context, assignments: tuple[str, ...], replace: bool) -> None:
    """Set properties given as KEY=VALUE pairs."""
    console = ctx.obj.console
    properties = parse_assignments(assignments)

    with ctx.obj.open_store(reload="never", update="local") as store:
        store.set_properties(properties, replace=replace)

    action = "Replaced with" if replace else "Updated"
    console.print(f"[green]✓[/green] {action} {len(properties)} properties")


@click.command("watch")
@click.option(
    "--interval",
    "-i",
    type=click.FloatRange(min=0, min_open=True),
    default=5.0,
    show_default=True,
    help="Seconds between reloads",
)
@click.option(
    "--ticks",
    "-n",
    type=click.IntRange(min=0),
    default=0,
    help="Stop after this many intervals (0 watches until interrupted)",
)
@click.pass_context
def watch_command(ctx: click.Context, interval: float, ticks: int) -> None:
    """Reload periodically and print properties as they change."""
    console = ctx.obj.console
    event_bus = ctx.obj.event_bus

    def on_reload(event: Event) -> None:
        print_changes(console, event)

    def on_failure(event: Event) -> None:
        console.print(f"[red]Reload failed:[/red] {event.error}", highlight=False)

    event_bus.subscribe(EventType.PROPERTIES_RELOADED, on_reload)
    event_bus.subscribe(EventType.RELOAD_FAILED, on_failure)
    try:
        with ctx.obj.open_store(
            reload="interval", update="source", interval=interval
        ) as store:
            console.print(render_table(store.get_properties(), title="Watching"))

            remaining = ticks
            while ticks == 0 or remaining > 0:
                time.sleep(interval)
                remaining -= 1
    finally:
        event_bus.unsubscribe(EventType.PROPERTIES_RELOADED, on_reload)
        event_bus.unsubscribe(EventType.RELOAD_FAILED, on_failure)
