"""Sync commands: enable, recover, push, pull, status, watch, disconnect."""

from __future__ import annotations

import asyncio
import sys
from typing import Optional

import click
from rich.panel import Panel

from .. import LINKDASH_HOME
from ..errors import NetworkError, SyncEnableError
from ._common import console, open_client, run, status_icon


def register_sync_commands(main: click.Group) -> None:
    """Register the sync command group."""

    @main.group()
    def sync():
        """Zero-knowledge cloud sync.

        Your dashboard is encrypted with a key that never leaves this
        machine. Keep the key safe: it is the only way back in.
        """

    @sync.command("enable")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    def sync_enable(home):
        """Generate a secret key and push the dashboard."""
        client = open_client(home)
        if client.engine.enabled:
            console.print("[yellow]Sync is already enabled.[/] Run 'linkdash sync disconnect' first.")
            sys.exit(1)

        try:
            key = run(client, client.engine.enable_sync)
        except SyncEnableError as exc:
            console.print(
                Panel(
                    f"[bold]{exc.key}[/]\n\n"
                    "[red]The first push failed.[/] The key is saved; "
                    "run 'linkdash sync push' to retry.",
                    title="Secret Key",
                    border_style="red",
                )
            )
            sys.exit(1)

        console.print(
            Panel(
                f"[bold]{key}[/]\n\n"
                "Write this down. It is shown once and cannot be recovered.",
                title="Secret Key",
                border_style="green",
            )
        )

    @sync.command("recover")
    @click.argument("key")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    def sync_recover(key, home):
        """Replace the local dashboard with the cloud copy for KEY."""
        client = open_client(home)
        console.print("\n  Recovering...", end=" ")
        try:
            ok = run(client, lambda: client.engine.recover_account(key))
        except NetworkError as exc:
            console.print(f"[red]store unreachable[/]\n  [dim]{exc}[/]\n")
            sys.exit(1)

        if not ok:
            console.print("[red]not found or invalid key[/]\n")
            sys.exit(1)
        snapshot = client.dashboard.snapshot
        console.print("[green]done[/]")
        console.print(
            f"  [dim]{len(snapshot.categories)} categories, {len(snapshot.teams)} teams[/]\n"
        )

    @sync.command("push")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    def sync_push(home):
        """Encrypt and upload the dashboard now."""
        client = open_client(home)
        if not client.engine.enabled:
            console.print("[yellow]Sync is not enabled.[/]")
            sys.exit(1)
        if run(client, client.engine.push):
            console.print("[green]Pushed.[/]")
        else:
            console.print(f"[red]{client.engine.state.error}[/]")
            sys.exit(1)

    @sync.command("pull")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    def sync_pull(home):
        """Fetch the cloud copy and apply it locally."""
        client = open_client(home)
        if not client.engine.enabled:
            console.print("[yellow]Sync is not enabled.[/]")
            sys.exit(1)
        if run(client, client.engine.pull_from_cloud):
            console.print("[green]Dashboard is up to date with the cloud.[/]")
        else:
            console.print(f"[red]{client.engine.state.error}[/]")
            sys.exit(1)

    @sync.command("status")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    def sync_status(home):
        """Show sync status."""
        client = open_client(home)
        info = client.engine.status()
        state = client.engine.state
        sync_id = info["sync_id"]
        console.print()
        console.print(
            Panel(
                f"Enabled: {'[green]yes[/]' if info['enabled'] else '[dim]no[/]'}\n"
                f"Status: {status_icon(state.status)}\n"
                f"Store: [cyan]{info['backend']}[/]\n"
                f"Sync ID: {sync_id[:16] + '...' if sync_id else '[dim]none[/]'}",
                title="LinkDash Sync",
                border_style="magenta",
            )
        )
        console.print()

    @sync.command("watch")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    @click.option("--seconds", type=float, default=None, help="Stop after this long.")
    def sync_watch(home, seconds: Optional[float]):
        """Stay subscribed and apply remote changes as they arrive."""
        client = open_client(home)
        if not client.engine.enabled:
            console.print("[yellow]Sync is not enabled.[/]")
            sys.exit(1)

        client.engine.add_state_listener(
            lambda state: console.print(f"  {status_icon(state.status)} {state.error or ''}")
        )

        async def watch() -> None:
            await client.engine.start()
            if seconds is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(seconds)

        console.print("  Watching for remote changes. Ctrl-C to stop.")
        try:
            run(client, watch)
        except KeyboardInterrupt:
            console.print()

    @sync.command("disconnect")
    @click.option("--home", default=LINKDASH_HOME, type=click.Path())
    @click.confirmation_option(prompt="Forget the secret key on this machine?")
    def sync_disconnect(home):
        """Forget the key. Local data and the cloud copy are kept."""
        client = open_client(home)
        client.engine.disconnect()
        console.print("[green]Sync disconnected.[/]")
