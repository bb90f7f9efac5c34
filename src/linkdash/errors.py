"""
Error taxonomy for the sync and sharing subsystems.

Crypto and codec code raise these and never catch their own errors.
The sync engine converts them into SyncState for background work and
re-raises them for user-initiated operations.
"""

from __future__ import annotations


class LinkdashError(Exception):
    """Base class for all linkdash errors."""


class EncryptionError(LinkdashError):
    """Raised when a snapshot cannot be encrypted."""


class DecryptionError(LinkdashError):
    """Raised when a blob fails authentication.

    A wrong key and a corrupted payload are indistinguishable here.
    """

    def __init__(self, message: str = "Invalid key or corrupted data") -> None:
        super().__init__(message)


class NetworkError(LinkdashError):
    """Raised when the blind store is unreachable or refuses access."""


class CodeExhaustionError(LinkdashError):
    """Raised when every share code attempt collided with an existing one."""


class ImportFormatError(LinkdashError):
    """Raised when a share payload or backup file is malformed."""


class SyncEnableError(LinkdashError):
    """Raised when the initial push of enable_sync fails.

    The secret key is already persisted when this is raised, so the
    caller can show it and retry the push later.
    """

    def __init__(self, message: str, key: str) -> None:
        super().__init__(message)
        self.key = key
