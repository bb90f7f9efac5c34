"""
Zero-knowledge crypto for cloud sync.

The secret key never leaves the client. The store only ever sees:
    sync id = SHA-256(key), hex         -- where the blob lives
    blob    = base64(IV || AES-256-GCM(SHA-256(key), JSON(snapshot)))

Wire format is frozen: 12-byte IV first, then ciphertext with the
16-byte GCM tag appended. Changing either breaks every stored blob.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import os
import secrets
import uuid
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import DecryptionError, EncryptionError
from ..models import EncryptedBlob

IV_SIZE = 12  # 96-bit GCM nonce
KEY_SUFFIX_BYTES = 4


def generate_secret_key() -> str:
    """Generate a new secret key: a random UUID plus extra random hex."""
    return f"{uuid.uuid4()}-{secrets.token_hex(KEY_SUFFIX_BYTES)}"


def derive_sync_id(key: str) -> str:
    """Derive the public storage identifier from a secret key.

    One-way: the store can look the blob up by this id but cannot
    recover the key from it.
    """
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def _symmetric_key(key: str) -> bytes:
    # SHA-256 normalizes any key length to the 256 bits AES-256 needs
    return hashlib.sha256(key.encode("utf-8")).digest()


def encrypt(data: Any, key: str) -> EncryptedBlob:
    """Encrypt a JSON-serializable value with a fresh IV.

    Args:
        data: The snapshot (any JSON-serializable value).
        key: The secret key.

    Returns:
        base64(IV || ciphertext).

    Raises:
        EncryptionError: If serialization or encryption fails.
    """
    try:
        plaintext = json.dumps(data, separators=(",", ":")).encode("utf-8")
        iv = os.urandom(IV_SIZE)
        ciphertext = AESGCM(_symmetric_key(key)).encrypt(iv, plaintext, None)
    except (TypeError, ValueError, OverflowError) as exc:
        raise EncryptionError(f"Failed to encrypt data: {exc}") from exc
    return base64.b64encode(iv + ciphertext).decode("ascii")


def decrypt(blob: EncryptedBlob, key: str) -> Any:
    """Decrypt a blob produced by :func:`encrypt`.

    Raises:
        DecryptionError: On a wrong key or any corruption. The two cases
            cannot be told apart.
    """
    try:
        combined = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise DecryptionError() from exc

    if len(combined) <= IV_SIZE:
        raise DecryptionError()

    iv, ciphertext = combined[:IV_SIZE], combined[IV_SIZE:]
    try:
        plaintext = AESGCM(_symmetric_key(key)).decrypt(iv, ciphertext, None)
    except InvalidTag as exc:
        raise DecryptionError() from exc

    try:
        return json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecryptionError() from exc
