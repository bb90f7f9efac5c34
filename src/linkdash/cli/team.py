"""Team commands: list, share, join, leave."""

from __future__ import annotations

import sys

import click
from rich.table import Table

from .. import LINKDASH_HOME
from ..errors import CodeExhaustionError, ImportFormatError, NetworkError
from ..sharing.codec import encode
from ..sharing.redeem import redeem
from ._common import console, open_client, run


def register_team_commands(main: click.Group) -> None:
    """Register the team command group."""

    @main.group()
    def team():
        """Share categories with others, or join a shared team."""

    @team.command("list")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    def team_list(home):
        """List your categories and the teams you joined."""
        client = open_client(home)
        snapshot = client.dashboard.snapshot

        table = Table(title="Categories")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Links", justify="right")
        for cat in snapshot.categories:
            table.add_row(cat.id, cat.name, str(len(cat.urls)))
        console.print(table)

        if snapshot.teams:
            teams = Table(title="Teams")
            teams.add_column("ID", style="dim")
            teams.add_column("Name", style="magenta")
            teams.add_column("Categories", justify="right")
            for t in snapshot.teams:
                teams.add_row(t.id, t.name, str(len(t.categories)))
            console.print(teams)

    @team.command("share")
    @click.argument("name")
    @click.option("--category", "-c", "category_ids", multiple=True, required=True,
                  help="Category id to include (repeatable).")
    @click.option("--cloud", is_flag=True, help="Publish a short code through the store.")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    def team_share(name, category_ids, cloud, home):
        """Create a team code from selected categories."""
        client = open_client(home)
        payload = client.dashboard.select_team(name, category_ids)
        if not payload.categories:
            console.print("[red]None of those categories exist.[/]")
            sys.exit(1)

        if not cloud:
            # Plain echo: rich would wrap the code across lines
            click.echo(encode(payload))
            return

        try:
            code = run(client, lambda: client.registry.publish(payload))
        except CodeExhaustionError as exc:
            console.print(f"[red]{exc}[/]")
            sys.exit(1)
        except NetworkError as exc:
            console.print(f"[red]Failed to publish team code:[/] {exc}")
            sys.exit(1)
        console.print(f"Team code: [bold green]{code}[/]")

    @team.command("join")
    @click.argument("code")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    def team_join(code, home):
        """Import a team from a short or offline code."""
        client = open_client(home)

        async def join():
            payload = await redeem(code, client.registry)
            return client.dashboard.join_team(payload)

        try:
            joined = run(client, join)
        except ImportFormatError as exc:
            console.print(f"[red]{exc}[/]")
            sys.exit(1)
        except NetworkError as exc:
            console.print(f"[red]Failed to join team.[/] {exc}")
            sys.exit(1)
        console.print(
            f"Joined [magenta]{joined.name}[/] ({len(joined.categories)} categories)"
        )

    @team.command("leave")
    @click.argument("team_id")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    def team_leave(team_id, home):
        """Remove a joined team."""
        client = open_client(home)

        async def leave():
            return client.dashboard.delete_team(team_id)

        if not run(client, leave):
            console.print(f"[yellow]No team with id {team_id}.[/]")
            sys.exit(1)
        console.print("[green]Team removed.[/]")
