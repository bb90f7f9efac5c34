"""Backup commands: export, import."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from .. import LINKDASH_HOME
from ..backup import default_filename, export_html, export_json, load_json
from ..errors import ImportFormatError
from ._common import console, open_client, run


def register_backup_commands(main: click.Group) -> None:
    """Register the backup command group."""

    @main.group()
    def backup():
        """Export and import the dashboard."""

    @backup.command("export")
    @click.option("--format", "fmt", type=click.Choice(["json", "html"]), default="json")
    @click.option("--output", "-o", default=None, type=click.Path(), help="Output file.")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    def backup_export(fmt, output, home):
        """Write a JSON backup or an HTML bookmark file.

        Examples:

            linkdash backup export

            linkdash backup export --format html -o bookmarks.html
        """
        client = open_client(home)
        path = Path(output) if output else Path(default_filename(fmt))
        if fmt == "html":
            export_html(client.dashboard.snapshot, path)
        else:
            export_json(client.dashboard.snapshot, path)
        console.print(f"Exported to [cyan]{path}[/]")

    @backup.command("import")
    @click.argument("path", type=click.Path(exists=True))
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    def backup_import(path, home):
        """Replace the dashboard with a JSON backup."""
        client = open_client(home)

        async def restore():
            return client.dashboard.import_data(load_json(Path(path)))

        try:
            snapshot = run(client, restore)
        except ImportFormatError as exc:
            console.print(f"[red]Import failed:[/] {exc}")
            sys.exit(1)
        console.print(f"Imported {len(snapshot.categories)} categories.")
