"""Shared utilities for all CLI command modules.

Provides the Rich console, the wiring that builds a client from the
home directory, and status formatting helpers.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

from rich.console import Console

from .. import LINKDASH_HOME
from ..config import LinkdashConfig, load_config, resolve_home
from ..dashboard import Dashboard
from ..models import SyncStatus
from ..sharing.registry import ShareRegistry
from ..storage import DurableStore
from ..sync.backends import BlindStore, create_store
from ..sync.engine import SyncEngine

console = Console()
logger = logging.getLogger("linkdash.cli")

T = TypeVar("T")


@dataclass
class Client:
    """Everything a command needs, built once per invocation."""

    home: Path
    config: LinkdashConfig
    dashboard: Dashboard
    store: BlindStore
    engine: SyncEngine
    registry: ShareRegistry


def open_client(home: Optional[str] = None) -> Client:
    """Wire up the client from ``home`` (default LINKDASH_HOME)."""
    home_path = resolve_home(Path(home) if home else Path(LINKDASH_HOME))
    config = load_config(home_path)
    durable = DurableStore(home_path)
    dashboard = Dashboard(durable)
    store = create_store(config, home_path)
    engine = SyncEngine(store, dashboard, durable, debounce_seconds=config.debounce_seconds)
    return Client(
        home=home_path,
        config=config,
        dashboard=dashboard,
        store=store,
        engine=engine,
        registry=ShareRegistry(store),
    )


def run(client: Client, func: Callable[[], Awaitable[T]]) -> T:
    """Run an async command body, then push leftovers and close the engine."""

    async def runner() -> T:
        try:
            return await func()
        finally:
            if client.engine.enabled:
                await client.engine.flush()
            await client.engine.stop()

    return asyncio.run(runner())


def status_icon(status: SyncStatus) -> str:
    """Map sync status to a Rich-formatted indicator."""
    return {
        SyncStatus.IDLE: "[dim]IDLE[/]",
        SyncStatus.SYNCING: "[bold cyan]SYNCING[/]",
        SyncStatus.SYNCED: "[bold green]SYNCED[/]",
        SyncStatus.RECOVERING: "[bold yellow]RECOVERING[/]",
        SyncStatus.ERROR: "[bold red]ERROR[/]",
    }.get(status, "[dim]UNKNOWN[/]")
