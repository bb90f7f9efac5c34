"""
Sync Engine -- keeps the local dashboard and the encrypted cloud copy in step.

    local edit  ->  (debounce) -> encrypt -> store.save(sync_id, blob)
    store notify ->  decrypt -> compare by value -> apply locally

Conflict policy is last write observed wins. There is no merge and no
logical clock: two devices editing inside the same debounce window will
lose one of the edits.

Echo suppression: the dashboard bumps a revision on every change.
Before applying a remote snapshot the engine records the revision that
apply will produce, and only revisions newer than that are pushed.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ..dashboard import Dashboard
from ..errors import (
    DecryptionError,
    ImportFormatError,
    LinkdashError,
    SyncEnableError,
)
from ..models import EncryptedBlob, LocalSnapshot, SyncState, SyncStatus
from ..storage import RECOVERY_KEY, DurableStore
from .backends import BlindStore, Unsubscribe
from .crypto import decrypt, derive_sync_id, encrypt, generate_secret_key

logger = logging.getLogger("linkdash.sync.engine")

DEBOUNCE_SECONDS = 2.0

StateListener = Callable[[SyncState], None]


class SyncEngine:
    """Owns the sync lifecycle: enable, recover, push, pull, subscribe, disconnect.

    Args:
        store: The blind store holding encrypted blobs.
        dashboard: Owner of the local snapshot.
        keystore: Durable store where the secret key is persisted.
        debounce_seconds: Quiet interval before a local change is pushed.
    """

    def __init__(
        self,
        store: BlindStore,
        dashboard: Dashboard,
        keystore: DurableStore,
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ) -> None:
        self._store = store
        self._dashboard = dashboard
        self._keystore = keystore
        self._debounce = debounce_seconds

        self._key: Optional[str] = keystore.get(RECOVERY_KEY)
        self.state = SyncState()
        self._state_listeners: list[StateListener] = []

        self._pending: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._dirty = False
        self._unsubscribe: Optional[Unsubscribe] = None
        self._remote_watermark = 0
        self._last_pushed: Optional[LocalSnapshot] = None

        dashboard.add_listener(self._on_local_change)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def key(self) -> Optional[str]:
        """The persisted secret key, or None when sync is off."""
        return self._key

    @property
    def enabled(self) -> bool:
        return self._key is not None

    @property
    def sync_id(self) -> Optional[str]:
        return derive_sync_id(self._key) if self._key else None

    @property
    def has_pending_push(self) -> bool:
        return self._dirty or (self._pending is not None and not self._pending.done())

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def _set_state(self, status: SyncStatus, error: Optional[str] = None) -> None:
        last_synced = self.state.last_synced
        if status == SyncStatus.SYNCED:
            last_synced = datetime.now(timezone.utc)
        self.state = SyncState(status=status, last_synced=last_synced, error=error)
        for listener in list(self._state_listeners):
            listener(self.state)

    def _save_key(self, key: str) -> None:
        self._key = key
        self._keystore.set(RECOVERY_KEY, key)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the live subscription if a key is already persisted."""
        if self._key and self._unsubscribe is None:
            self._subscribe()

    async def stop(self) -> None:
        """Tear down the subscription and any pending push, keeping the key.

        A push already past its debounce interval is allowed to finish.
        """
        self._cancel_pending()
        if self._inflight is not None and not self._inflight.done():
            await asyncio.wait([self._inflight])
        self._unsubscribe_remote()

    async def enable_sync(self, snapshot: Optional[LocalSnapshot] = None) -> str:
        """Generate and persist a new key, then push the current snapshot.

        Returns:
            The new secret key, for one-time display.

        Raises:
            SyncEnableError: If the initial push fails. The key is kept.
        """
        key = generate_secret_key()
        self._save_key(key)
        logger.info("Sync enabled for %s", derive_sync_id(key)[:12])
        try:
            await self._upload(key, snapshot or self._dashboard.snapshot)
        except (LinkdashError, OSError) as exc:
            logger.error("Initial push failed: %s", exc)
            self._set_state(SyncStatus.ERROR, "Failed to enable sync")
            raise SyncEnableError("Failed to enable sync", key) from exc
        finally:
            self._subscribe()
        return key

    async def recover_account(self, key: str) -> bool:
        """Restore the whole local snapshot from the cloud copy for key.

        Returns:
            True on success. False if nothing is stored for the key or the
            blob does not decrypt with it.

        Raises:
            NetworkError: If the store cannot be reached.
        """
        key = key.strip()
        self._set_state(SyncStatus.RECOVERING)
        sync_id = derive_sync_id(key)
        try:
            record = await self._store.load(sync_id)
        except (LinkdashError, OSError) as exc:
            self._set_state(SyncStatus.ERROR, f"Recovery failed: {exc}")
            raise

        if record is None:
            logger.info("No data found for %s", sync_id[:12])
            self._set_state(SyncStatus.ERROR, "No data found for this key")
            return False

        try:
            snapshot = LocalSnapshot.from_wire(decrypt(record.blob, key))
        except (DecryptionError, ImportFormatError) as exc:
            self._set_state(SyncStatus.ERROR, str(exc))
            return False

        self._unsubscribe_remote()
        self._apply_remote(snapshot)
        self._save_key(key)
        self._set_state(SyncStatus.SYNCED)
        self._subscribe()
        logger.info("Recovered dashboard from %s", sync_id[:12])
        return True

    def disconnect(self) -> None:
        """Stop syncing: forget the key and reset state.

        The remote blob and the local dashboard are left untouched. A
        push in flight is cancelled.
        """
        self._cancel_pending()
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None
        self._unsubscribe_remote()
        self._key = None
        self._keystore.delete(RECOVERY_KEY)
        self._dirty = False
        self._last_pushed = None
        self.state = SyncState()
        for listener in list(self._state_listeners):
            listener(self.state)
        logger.info("Sync disconnected")

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    async def _upload(self, key: str, snapshot: LocalSnapshot) -> None:
        owner = self._key
        self._set_state(SyncStatus.SYNCING)
        blob = encrypt(snapshot.to_wire(), key)
        # Set before saving: the store may echo the blob back during save
        previous, self._last_pushed = self._last_pushed, snapshot
        try:
            await self._store.save(derive_sync_id(key), blob)
        except BaseException:
            if self._key == owner:
                self._last_pushed = previous
            raise
        if self._key != owner:
            # Disconnected or re-keyed while saving: the result is stale
            logger.info("Sync key changed during push, not updating state")
            return
        self._dirty = False
        self._set_state(SyncStatus.SYNCED)

    async def push(
        self,
        key: Optional[str] = None,
        snapshot: Optional[LocalSnapshot] = None,
    ) -> bool:
        """Encrypt and upload a snapshot. Never retried, never raises.

        Failures land in ``state`` as ``error`` with a message.

        Args:
            key: Secret key. Defaults to the persisted key.
            snapshot: Snapshot to push. Defaults to the latest local one.

        Returns:
            True if the blob was saved.
        """
        key = key or self._key
        if not key:
            return False
        snapshot = snapshot or self._dashboard.snapshot
        owner = self._key
        try:
            await self._upload(key, snapshot)
        except (LinkdashError, OSError) as exc:
            logger.error("Sync push failed: %s", exc)
            if self._key == owner:
                self._set_state(SyncStatus.ERROR, f"Sync failed: {exc}")
            return False
        logger.debug("Pushed snapshot to %s", derive_sync_id(key)[:12])
        return True

    def _on_local_change(self, revision: int, snapshot: LocalSnapshot) -> None:
        if not self._key:
            return
        if revision <= self._remote_watermark:
            logger.debug("Revision %d came from remote, not pushing", revision)
            return
        self._schedule_push()

    def _schedule_push(self) -> None:
        self._cancel_pending()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: remember the change for the next flush()
            self._dirty = True
            return
        self._dirty = True
        self._pending = loop.create_task(self._debounced_push())

    async def _debounced_push(self) -> None:
        await asyncio.sleep(self._debounce)
        # Past the quiet interval the write is committed; newer edits
        # schedule their own push instead of cancelling this one
        task = asyncio.current_task()
        self._pending = None
        self._inflight = task
        try:
            await self.push()
        finally:
            if self._inflight is task:
                self._inflight = None

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def flush(self) -> bool:
        """Push a pending change now instead of waiting for the debounce.

        Returns:
            True if there was nothing to push or the push succeeded.
        """
        if not self.has_pending_push:
            return True
        self._cancel_pending()
        return await self.push()

    # ------------------------------------------------------------------
    # Pull / subscription
    # ------------------------------------------------------------------

    async def pull_from_cloud(self) -> bool:
        """Fetch, decrypt and apply the cloud copy without touching the key.

        Returns:
            True if the cloud copy was fetched and is now the local state.
            False if sync is off, nothing is stored, the store failed or the
            blob did not decrypt; ``state.error`` says which.
        """
        if not self._key:
            return False
        key = self._key
        try:
            record = await self._store.load(derive_sync_id(key))
        except (LinkdashError, OSError) as exc:
            self._set_state(SyncStatus.ERROR, f"Pull failed: {exc}")
            return False
        if record is None:
            self._set_state(SyncStatus.ERROR, "No data found for this key")
            return False
        try:
            snapshot = LocalSnapshot.from_wire(decrypt(record.blob, key))
        except (DecryptionError, ImportFormatError) as exc:
            self._set_state(SyncStatus.ERROR, str(exc))
            return False

        if not snapshot.same_content(self._dashboard.snapshot):
            self._apply_remote(snapshot)
        self._set_state(SyncStatus.SYNCED)
        return True

    def _apply_remote(self, snapshot: LocalSnapshot) -> None:
        # Last write observed wins: drop the unpushed local edit
        self._cancel_pending()
        self._dirty = False
        self._last_pushed = None
        # Must be visible before replace() notifies the change listener
        self._remote_watermark = self._dashboard.revision + 1
        self._dashboard.replace(snapshot)

    def _subscribe(self) -> None:
        if not self._key:
            return
        self._unsubscribe_remote()
        self._unsubscribe = self._store.subscribe(derive_sync_id(self._key), self._on_remote_blob)

    def _unsubscribe_remote(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_remote_blob(self, blob: Optional[EncryptedBlob]) -> None:
        key = self._key
        if not key or not blob:
            return
        try:
            snapshot = LocalSnapshot.from_wire(decrypt(blob, key))
        except (DecryptionError, ImportFormatError) as exc:
            logger.warning("Failed to decrypt remote update: %s", exc)
            self._set_state(SyncStatus.ERROR, f"Remote update unreadable: {exc}")
            return

        # Compare against the latest local snapshot, never a stale copy
        if snapshot.same_content(self._dashboard.snapshot):
            return
        if self._last_pushed is not None and snapshot.same_content(self._last_pushed):
            logger.debug("Ignoring echo of our own push")
            return

        logger.info("Received remote update")
        self._apply_remote(snapshot)
        self._set_state(SyncStatus.SYNCED)

    def status(self) -> dict[str, Any]:
        """Summary for status displays."""
        return {
            "enabled": self.enabled,
            "sync_id": self.sync_id,
            "backend": self._store.name,
            "state": self.state.model_dump(mode="json"),
            "pending_push": self.has_pending_push,
            "subscribed": self._unsubscribe is not None,
        }
