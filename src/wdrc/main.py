"""CLI entrypoint for wdrc."""

from pathlib import Path

import rich_click as click

from wdrc import __version__
from wdrc.config import DEFAULT_CONFIG_FILE
from wdrc.controllers import (
    MigrateCommand,
    SyncBotCommand,
    SyncCliController,
    SyncRunCommand,
)
from wdrc.sync.errors import ConfigError, PersistenceError

click.rich_click.USE_MARKDOWN = True
SYNC_CONTROLLER = SyncCliController()

CONFIG_ARGUMENT = click.argument(
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=str(DEFAULT_CONFIG_FILE),
    required=False,
)


@click.group()
@click.version_option(version=__version__, prog_name="wdrc")
def wdrc() -> None:
    """Wikidata recent changes sync."""


@wdrc.command("run")
@CONFIG_ARGUMENT
def run(config_path: Path) -> None:
    """Run one sync cycle and exit."""

    try:
        _emit_lines(SYNC_CONTROLLER.run(SyncRunCommand(config_path=config_path)))
    except (ConfigError, PersistenceError) as error:
        raise click.ClickException(str(error)) from error


@wdrc.command("bot")
@CONFIG_ARGUMENT
@click.option(
    "--max-cycles",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many cycles instead of running forever.",
)
def bot(config_path: Path, max_cycles: int | None) -> None:
    """Run sync cycles continuously."""

    try:
        _emit_lines(
            SYNC_CONTROLLER.bot(SyncBotCommand(config_path=config_path, max_cycles=max_cycles)),
        )
    except ConfigError as error:
        raise click.ClickException(str(error)) from error


@wdrc.command("migrate")
@CONFIG_ARGUMENT
def migrate(config_path: Path) -> None:
    """Create or upgrade the change store schema."""

    try:
        _emit_lines(SYNC_CONTROLLER.migrate(MigrateCommand(config_path=config_path)))
    except ConfigError as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    wdrc()
