"""Tests for the blind store backends."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import pytest

from linkdash.config import LinkdashConfig, StoreBackendType
from linkdash.errors import NetworkError
from linkdash.sync.backends import FileBlindStore, MemoryBlindStore, create_store

SYNC_ID = "ab" * 32


class TestMemoryBlindStore:
    """Tests for the in-process store."""

    @pytest.mark.asyncio
    async def test_save_load(self) -> None:
        store = MemoryBlindStore()
        assert await store.load(SYNC_ID) is None
        await store.save(SYNC_ID, "blob-1")
        record = await store.load(SYNC_ID)
        assert record.blob == "blob-1"
        assert record.updated_at is not None

    @pytest.mark.asyncio
    async def test_subscribe_and_unsubscribe(self) -> None:
        store = MemoryBlindStore()
        received: list[str] = []

        async def on_change(blob: str) -> None:
            received.append(blob)

        unsubscribe = store.subscribe(SYNC_ID, on_change)
        await store.save(SYNC_ID, "one")
        await store.save("other", "ignored")
        unsubscribe()
        await store.save(SYNC_ID, "two")

        assert received == ["one"]
        assert store.subscriber_count(SYNC_ID) == 0

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_fail_save(self) -> None:
        store = MemoryBlindStore()

        async def broken(blob: str) -> None:
            raise RuntimeError("boom")

        store.subscribe(SYNC_ID, broken)
        await store.save(SYNC_ID, "blob")
        assert (await store.load(SYNC_ID)).blob == "blob"

    @pytest.mark.asyncio
    async def test_put_if_absent(self) -> None:
        store = MemoryBlindStore()
        assert await store.put_if_absent("ABC-DEF", {"name": "a"}) is True
        assert await store.put_if_absent("ABC-DEF", {"name": "b"}) is False
        assert await store.get("ABC-DEF") == {"name": "a"}
        assert await store.get("NOP-E23") is None


class TestFileBlindStore:
    """Tests for the directory-backed store."""

    @pytest.mark.asyncio
    async def test_save_load(self, tmp_path: Path) -> None:
        store = FileBlindStore(tmp_path / "store")
        assert await store.load(SYNC_ID) is None
        await store.save(SYNC_ID, "blob-1")
        await store.save(SYNC_ID, "blob-2")

        record = await store.load(SYNC_ID)
        assert record.blob == "blob-2"
        on_disk = json.loads((tmp_path / "store" / "blobs" / f"{SYNC_ID}.json").read_text())
        assert on_disk["blob"] == "blob-2"
        assert "updated_at" in on_disk

    @pytest.mark.asyncio
    async def test_put_if_absent(self, tmp_path: Path) -> None:
        store = FileBlindStore(tmp_path / "store")
        assert await store.put_if_absent("ABC-DEF", {"name": "a"}) is True
        assert await store.put_if_absent("ABC-DEF", {"name": "b"}) is False
        assert await store.get("ABC-DEF") == {"name": "a"}
        record = json.loads((tmp_path / "store" / "codes" / "ABC-DEF.json").read_text())
        assert "created_at" in record

    @pytest.mark.asyncio
    async def test_get_rejects_unsafe_names(self, tmp_path: Path) -> None:
        store = FileBlindStore(tmp_path / "store")
        assert await store.get("../secret") is None
        assert await store.get("a/b") is None

    @pytest.mark.asyncio
    async def test_unwritable_root_is_network_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = FileBlindStore(blocker / "store")
        with pytest.raises(NetworkError):
            await store.save(SYNC_ID, "blob")

    @pytest.mark.asyncio
    async def test_corrupt_record_is_network_error(self, tmp_path: Path) -> None:
        store = FileBlindStore(tmp_path / "store")
        await store.save(SYNC_ID, "blob")
        (tmp_path / "store" / "blobs" / f"{SYNC_ID}.json").write_text("{not json")
        with pytest.raises(NetworkError):
            await store.load(SYNC_ID)

    @pytest.mark.asyncio
    async def test_subscription_polls_for_changes(self, tmp_path: Path) -> None:
        writer = FileBlindStore(tmp_path / "store")
        watcher = FileBlindStore(tmp_path / "store", poll_interval=0.01)
        await writer.save(SYNC_ID, "before")

        received: list[str] = []

        async def on_change(blob: str) -> None:
            received.append(blob)

        unsubscribe = watcher.subscribe(SYNC_ID, on_change)
        await asyncio.sleep(0.05)
        assert received == []

        await writer.save(SYNC_ID, "after-with-different-size")
        await asyncio.sleep(0.1)
        assert received == ["after-with-different-size"]

        unsubscribe()
        await writer.save(SYNC_ID, "ignored-after-unsubscribe")
        await asyncio.sleep(0.05)
        assert received == ["after-with-different-size"]

    @pytest.mark.asyncio
    async def test_failing_subscriber_keeps_polling(self, tmp_path: Path) -> None:
        writer = FileBlindStore(tmp_path / "store")
        watcher = FileBlindStore(tmp_path / "store", poll_interval=0.01)
        received: list[str] = []

        async def on_change(blob: str) -> None:
            received.append(blob)
            if len(received) == 1:
                raise OSError("disk full")

        unsubscribe = watcher.subscribe(SYNC_ID, on_change)
        await writer.save(SYNC_ID, "one")
        await asyncio.sleep(0.1)
        await writer.save(SYNC_ID, "two, longer")
        await asyncio.sleep(0.1)
        unsubscribe()

        assert received == ["one", "two, longer"]

    @pytest.mark.asyncio
    async def test_same_size_rewrite_within_one_mtime_tick(self, tmp_path: Path) -> None:
        writer = FileBlindStore(tmp_path / "store")
        watcher = FileBlindStore(tmp_path / "store", poll_interval=0.05)
        path = tmp_path / "store" / "blobs" / f"{SYNC_ID}.json"
        await writer.save(SYNC_ID, "aaaa")
        first = path.stat()

        received: list[str] = []

        async def on_change(blob: str) -> None:
            received.append(blob)

        unsubscribe = watcher.subscribe(SYNC_ID, on_change)
        await writer.save(SYNC_ID, "bbbb")
        os.utime(path, ns=(first.st_atime_ns, first.st_mtime_ns))
        assert path.stat().st_ino != first.st_ino
        await asyncio.sleep(0.2)
        unsubscribe()

        assert received == ["bbbb"]


class TestCreateStore:
    """Tests for the backend factory."""

    def test_memory(self, tmp_path: Path) -> None:
        config = LinkdashConfig(store=StoreBackendType.MEMORY)
        assert isinstance(create_store(config, tmp_path), MemoryBlindStore)

    def test_file_defaults_under_home(self, tmp_path: Path) -> None:
        store = create_store(LinkdashConfig(), tmp_path)
        assert isinstance(store, FileBlindStore)
        assert store.root == tmp_path / "store"

    def test_file_custom_path(self, tmp_path: Path) -> None:
        config = LinkdashConfig(store_path=tmp_path / "shared", poll_interval_seconds=0.5)
        store = create_store(config, tmp_path)
        assert store.root == tmp_path / "shared"
