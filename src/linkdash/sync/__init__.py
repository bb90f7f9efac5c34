"""
Zero-knowledge cloud sync.

The key stays on the device. The store gets a hashed id and an
AES-GCM blob, and pushes change notifications back.
"""

from .backends import BlindStore, FileBlindStore, MemoryBlindStore, create_store
from .engine import SyncEngine

__all__ = [
    "BlindStore",
    "FileBlindStore",
    "MemoryBlindStore",
    "SyncEngine",
    "create_store",
]
