"""
LinkDash CLI.

The main Click group is defined here and each command group registers
itself from its own module.

Entry point: linkdash.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="linkdash")
@click.option("--verbose", "-v", is_flag=True, help="Log sync activity.")
def main(verbose: bool):
    """LinkDash: your links, encrypted and in sync."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


# ---------------------------------------------------------------------------
# Register all command groups from modular files
# ---------------------------------------------------------------------------

from .sync_cmd import register_sync_commands
from .team import register_team_commands
from .backup import register_backup_commands

register_sync_commands(main)
register_team_commands(main)
register_backup_commands(main)
