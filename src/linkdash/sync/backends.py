"""
Blind stores -- where the ciphertext lives.

A blind store keeps opaque blobs under sync ids and team payloads
under share codes. It never sees a key or a plaintext snapshot.

Memory: in-process, delivers change notifications synchronously.
File: a directory on local disk, a NAS, or a Syncthing folder.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from ..config import LinkdashConfig, StoreBackendType
from ..errors import NetworkError
from ..models import EncryptedBlob, StoredBlob

logger = logging.getLogger("linkdash.sync.backends")

BlobCallback = Callable[[EncryptedBlob], Awaitable[None]]
Unsubscribe = Callable[[], Any]

_SAFE_NAME = re.compile(r"^[A-Za-z0-9-]{1,128}$")


class BlindStore(ABC):
    """Abstract blob store with change notification and a code registry."""

    @abstractmethod
    async def save(self, sync_id: str, blob: EncryptedBlob) -> None:
        """Store (overwrite) the blob for a sync id.

        Raises:
            NetworkError: If the store is unreachable.
        """

    @abstractmethod
    async def load(self, sync_id: str) -> Optional[StoredBlob]:
        """Fetch the blob for a sync id, or None if nothing is stored."""

    @abstractmethod
    def subscribe(self, sync_id: str, on_change: BlobCallback) -> Unsubscribe:
        """Register for notifications when the blob for sync_id changes.

        Delivery is at-least-once. Returns a callable that cancels the
        subscription.
        """

    @abstractmethod
    async def put_if_absent(self, code: str, payload: dict[str, Any]) -> bool:
        """Store a team payload under code unless the code is taken.

        Returns:
            True if written, False if the code already existed.
        """

    @abstractmethod
    async def get(self, code: str) -> Optional[dict[str, Any]]:
        """Fetch the team payload stored under code, or None."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""


class MemoryBlindStore(BlindStore):
    """In-process store.

    ``save`` awaits every subscriber before returning, which makes
    two engines sharing one instance behave deterministically.
    """

    def __init__(self) -> None:
        self._blobs: dict[str, StoredBlob] = {}
        self._codes: dict[str, dict[str, Any]] = {}
        self._subscribers: dict[str, list[BlobCallback]] = {}

    @property
    def name(self) -> str:
        return "memory"

    async def save(self, sync_id: str, blob: EncryptedBlob) -> None:
        self._blobs[sync_id] = StoredBlob(blob=blob, updated_at=datetime.now(timezone.utc))
        logger.debug("Saved blob for %s", sync_id[:12])
        for callback in list(self._subscribers.get(sync_id, [])):
            try:
                await callback(blob)
            except Exception:
                logger.exception("Subscriber for %s failed", sync_id[:12])

    async def load(self, sync_id: str) -> Optional[StoredBlob]:
        return self._blobs.get(sync_id)

    def subscribe(self, sync_id: str, on_change: BlobCallback) -> Unsubscribe:
        callbacks = self._subscribers.setdefault(sync_id, [])
        callbacks.append(on_change)

        def unsubscribe() -> None:
            if on_change in callbacks:
                callbacks.remove(on_change)

        return unsubscribe

    def subscriber_count(self, sync_id: str) -> int:
        return len(self._subscribers.get(sync_id, []))

    async def put_if_absent(self, code: str, payload: dict[str, Any]) -> bool:
        if code in self._codes:
            return False
        self._codes[code] = payload
        return True

    async def get(self, code: str) -> Optional[dict[str, Any]]:
        return self._codes.get(code)


class FileBlindStore(BlindStore):
    """Directory-backed store.

    Layout:
        <root>/blobs/<sync_id>.json   {"blob": ..., "updated_at": ...}
        <root>/codes/<code>.json      {"data": ..., "created_at": ...}

    Subscriptions poll the blob file's stat for changes. Disk I/O runs
    in a worker thread.

    Args:
        root: Store directory.
        poll_interval: Seconds between subscription polls.
    """

    def __init__(self, root: Path, poll_interval: float = 1.0) -> None:
        self.root = Path(root)
        self._blobs_dir = self.root / "blobs"
        self._codes_dir = self.root / "codes"
        self._poll_interval = poll_interval

    @property
    def name(self) -> str:
        return "file"

    def _ensure_dirs(self) -> None:
        try:
            self._blobs_dir.mkdir(parents=True, exist_ok=True)
            self._codes_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise NetworkError(f"Store unavailable at {self.root}: {exc}") from exc

    @staticmethod
    def _check_name(name: str) -> str:
        if not _SAFE_NAME.match(name):
            raise ValueError(f"Invalid store key: {name!r}")
        return name

    def _blob_path(self, sync_id: str) -> Path:
        return self._blobs_dir / f"{self._check_name(sync_id)}.json"

    def _code_path(self, code: str) -> Path:
        return self._codes_dir / f"{self._check_name(code)}.json"

    def _read_json(self, path: Path) -> Optional[dict[str, Any]]:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise NetworkError(f"Cannot read {path.name}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise NetworkError(f"Unreadable record {path.name}: {exc}") from exc

    def _write_blob(self, path: Path, record: StoredBlob) -> None:
        self._ensure_dirs()
        tmp_path = path.parent / f".{path.name}.tmp"
        try:
            tmp_path.write_text(record.model_dump_json(), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            raise NetworkError(f"Failed to save blob: {exc}") from exc

    async def save(self, sync_id: str, blob: EncryptedBlob) -> None:
        path = self._blob_path(sync_id)
        record = StoredBlob(blob=blob, updated_at=datetime.now(timezone.utc))
        await asyncio.to_thread(self._write_blob, path, record)
        logger.debug("Saved blob for %s to %s", sync_id[:12], self.root)

    async def load(self, sync_id: str) -> Optional[StoredBlob]:
        data = await asyncio.to_thread(self._read_json, self._blob_path(sync_id))
        if data is None:
            return None
        try:
            return StoredBlob.model_validate(data)
        except ValidationError as exc:
            raise NetworkError(f"Malformed blob record for {sync_id[:12]}") from exc

    @staticmethod
    def _stamp(path: Path) -> Optional[tuple[int, int, int]]:
        # Every save renames a fresh file into place, so the inode changes
        # even when mtime granularity and blob length do not
        try:
            st = path.stat()
        except OSError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def subscribe(self, sync_id: str, on_change: BlobCallback) -> Unsubscribe:
        path = self._blob_path(sync_id)
        last_seen = self._stamp(path)

        async def poll() -> None:
            nonlocal last_seen
            while True:
                await asyncio.sleep(self._poll_interval)
                stamp = await asyncio.to_thread(self._stamp, path)
                if stamp is None or stamp == last_seen:
                    continue
                last_seen = stamp
                try:
                    record = await self.load(sync_id)
                except NetworkError as exc:
                    logger.warning("Poll of %s failed: %s", sync_id[:12], exc)
                    continue
                if record is None:
                    continue
                try:
                    await on_change(record.blob)
                except Exception:
                    logger.exception("Subscriber for %s failed", sync_id[:12])

        task = asyncio.get_running_loop().create_task(poll())
        logger.debug("Watching %s every %.1fs", sync_id[:12], self._poll_interval)
        return task.cancel

    def _claim_code(self, path: Path, record: dict[str, Any]) -> bool:
        self._ensure_dirs()
        try:
            with open(path, "x", encoding="utf-8") as fh:
                json.dump(record, fh, indent=2)
        except FileExistsError:
            return False
        except OSError as exc:
            raise NetworkError(f"Failed to register code: {exc}") from exc
        return True

    async def put_if_absent(self, code: str, payload: dict[str, Any]) -> bool:
        record = {
            "data": payload,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        return await asyncio.to_thread(self._claim_code, self._code_path(code), record)

    async def get(self, code: str) -> Optional[dict[str, Any]]:
        try:
            path = self._code_path(code)
        except ValueError:
            return None
        record = await asyncio.to_thread(self._read_json, path)
        if record is None:
            return None
        return record.get("data")


def create_store(config: LinkdashConfig, home: Path) -> BlindStore:
    """Factory function to create the configured blind store.

    Args:
        config: Client configuration.
        home: Linkdash home directory (default parent of the file store).

    Raises:
        ValueError: If the backend type is not supported.
    """
    if config.store == StoreBackendType.MEMORY:
        return MemoryBlindStore()
    if config.store == StoreBackendType.FILE:
        root = config.store_path or (Path(home) / "store")
        return FileBlindStore(Path(root).expanduser(), config.poll_interval_seconds)
    raise ValueError(f"Unsupported store: {config.store}")
