"""Main CLI entry point and application setup."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click
from click.exceptions import Exit
from rich.console import Console

from propman import __version__
from propman.cli.commands import get_command, list_command, set_command, watch_command
from propman.cli.config import Config, load_config
from propman.core.exceptions import ConfigurationError, PropertyError
from propman.storage.events import EventBus
from propman.storage.factory import create_store
from propman.storage.store import PropertyStore


@dataclass
class Context:
    """CLI context that holds shared resources."""

    console: Console
    event_bus: EventBus
    settings: dict[str, Any] = field(default_factory=dict)
    debug: bool = False

    def open_store(self, **overrides: Any) -> PropertyStore:
        """Open a store from the merged settings plus per-command overrides."""
        settings = Config.merge_configs(self.settings, overrides)
        if settings.get("backend") == "directory":
            raise ConfigurationError(
                "The directory backend needs a naming context and is not "
                "available from the command line"
            )
        return create_store(settings, event_bus=self.event_bus)


def setup_logging(
    verbose: bool = False, quiet: bool = False, debug: bool = False
) -> None:
    """Configure logging based on CLI flags."""
    if quiet:
        level = logging.ERROR
    elif verbose or debug:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s"
        if not debug
        else "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def create_console(no_color: bool = False, width: int | None = None) -> Console:
    """Create Rich console with appropriate settings."""
    return Console(
        no_color=no_color,
        width=width or 120,
        highlight=not no_color,
        color_system=None if no_color else "auto",
    )


class PropmanGroup(click.Group):
    """Custom group that reports store errors and handles KeyboardInterrupt."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except KeyboardInterrupt:
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            if console:
                console.print("[yellow]Interrupted[/yellow]")
            ctx.exit(130)
        except (click.ClickException, click.Abort, Exit, SystemExit):
            raise
        except (PropertyError, ValueError) as e:
            debug = getattr(ctx.obj, "debug", False) if ctx.obj else False
            if debug:
                raise
            console = getattr(ctx.obj, "console", None) if ctx.obj else None
            if console:
                console.print(f"[red]Error:[/red] {e}", markup=True, highlight=False)
            else:
                click.echo(f"Error: {e}", err=True)
            ctx.exit(1)


@click.group(cls=PropmanGroup)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-error output")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--debug", is_flag=True, help="Enable debug mode with full tracebacks")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--file",
    "-f",
    "file_path",
    type=click.Path(path_type=Path),
    help="Properties file to use (file backend)",
)
@click.option(
    "--database",
    type=click.Path(path_type=Path),
    help="SQLite database to use (sql backend)",
)
@click.option("--table", help="Table holding the properties (sql backend)")
@click.version_option(
    version=__version__, prog_name="propman", message="propman version %(version)s"
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    no_color: bool,
    debug: bool,
    config: Path | None,
    file_path: Path | None,
    database: Path | None,
    table: str | None,
) -> None:
    """Reloadable property store.

    Read and write key/value properties held in a properties file or a
    database table.
    """
    setup_logging(verbose=verbose, quiet=quiet, debug=debug)

    try:
        settings = load_config(config)
    except ValueError as e:
        if debug:
            raise
        click.echo(f"Error loading config file: {e}", err=True)
        ctx.exit(1)

    overrides: dict[str, Any] = {}
    if file_path is not None:
        overrides.update(backend="file", path=str(file_path))
    if database is not None:
        overrides.update(backend="sql", database=str(database))
    if table is not None:
        overrides["table"] = table

    ctx.obj = Context(
        console=create_console(no_color=no_color),
        event_bus=EventBus(),
        settings=Config.merge_configs(settings, overrides),
        debug=debug,
    )


cli.add_command(get_command)
cli.add_command(list_command)
cli.add_command(set_command)
cli.add_command(watch_command)


def main() -> None:
    """Console script entry point."""
    cli()
