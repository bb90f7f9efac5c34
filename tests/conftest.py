"""Shared test fixtures for linkdash."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from linkdash.dashboard import Dashboard
from linkdash.errors import NetworkError
from linkdash.storage import DurableStore
from linkdash.sync.backends import MemoryBlindStore
from linkdash.sync.engine import SyncEngine

FAST_DEBOUNCE = 0.05


class CountingStore(MemoryBlindStore):
    """Memory store that records every save."""

    def __init__(self) -> None:
        super().__init__()
        self.saves: list[tuple[str, str]] = []

    async def save(self, sync_id: str, blob: str) -> None:
        self.saves.append((sync_id, blob))
        await super().save(sync_id, blob)


class SlowStore(CountingStore):
    """Memory store whose saves take a while to land."""

    def __init__(self, delay: float = 0.2) -> None:
        super().__init__()
        self.delay = delay

    async def save(self, sync_id: str, blob: str) -> None:
        await asyncio.sleep(self.delay)
        await super().save(sync_id, blob)


class FailingStore(MemoryBlindStore):
    """Memory store whose network calls all fail."""

    async def save(self, sync_id: str, blob: str) -> None:
        raise NetworkError("permission denied")

    async def load(self, sync_id: str):
        raise NetworkError("store unreachable")


def make_client(home: Path, store: MemoryBlindStore, debounce: float = FAST_DEBOUNCE):
    """Build a (dashboard, engine, keystore) trio rooted at home."""
    home.mkdir(parents=True, exist_ok=True)
    durable = DurableStore(home)
    dashboard = Dashboard(durable)
    engine = SyncEngine(store, dashboard, durable, debounce_seconds=debounce)
    return dashboard, engine, durable


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Provide a temporary linkdash home directory."""
    path = tmp_path / ".linkdash"
    path.mkdir()
    return path


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def durable(home: Path) -> DurableStore:
    return DurableStore(home)


@pytest.fixture
def dashboard(durable: DurableStore) -> Dashboard:
    return Dashboard(durable)
