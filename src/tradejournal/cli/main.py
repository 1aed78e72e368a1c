"""Tradejournal CLI main entry point."""

from pathlib import Path
from typing import Optional

import click

from tradejournal import __version__
from tradejournal.cli.commands import (
    add_command,
    delete_command,
    edit_command,
    groups_command,
    list_command,
    positions_command,
    show_command,
    summary_command,
)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (YAML). Defaults to $TRADEJOURNAL_CONFIG or config/tradejournal.yaml",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Override logging level",
)
@click.pass_context
def main(ctx: click.Context, config_file: Optional[Path], log_level: Optional[str]):
    """Tradejournal - Personal Trading Journal"""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["log_level"] = log_level


# Register commands
main.add_command(add_command)
main.add_command(list_command)
main.add_command(show_command)
main.add_command(edit_command)
main.add_command(delete_command)
main.add_command(summary_command)
main.add_command(positions_command)
main.add_command(groups_command)


if __name__ == "__main__":
    main()
