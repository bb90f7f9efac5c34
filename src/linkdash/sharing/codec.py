"""
Offline team codes.

The whole payload travels inside the code: compact JSON, zlib, then
URL-safe base64 without padding. Code length grows with the payload.

Two older formats still decode but are never produced:
    LZString ``compressToEncodedURIComponent`` output from the web client
    plain base64 of URL-encoded JSON
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import zlib
from typing import Any, Optional
from urllib.parse import unquote

from lzstring import LZString

from ..errors import ImportFormatError
from ..models import TeamPayload

logger = logging.getLogger("linkdash.sharing.codec")

# Upper bound on a decompressed payload
MAX_PAYLOAD_BYTES = 1024 * 1024
# LZString decompression can grow quadratically with crafted input
MAX_LZ_CODE_LENGTH = 16 * 1024


def encode(payload: TeamPayload) -> str:
    """Compress a team payload into a URL-safe code."""
    raw = json.dumps(payload.to_wire(), separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(zlib.compress(raw, 9)).decode("ascii").rstrip("=")


def _parse_object(text: Optional[str]) -> Optional[Any]:
    if not text or not text.startswith("{"):
        return None
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError):
        return None


def _decode_compressed(code: str) -> Optional[Any]:
    padded = code + "=" * (-len(code) % 4)
    try:
        inflater = zlib.decompressobj()
        raw = inflater.decompress(base64.urlsafe_b64decode(padded), MAX_PAYLOAD_BYTES)
        if inflater.unconsumed_tail:
            logger.warning("Team code expands past %d bytes", MAX_PAYLOAD_BYTES)
            return None
        text = raw.decode("utf-8")
    except (binascii.Error, ValueError, zlib.error, UnicodeDecodeError):
        return None
    return _parse_object(text)


def _decode_lz(code: str) -> Optional[Any]:
    if len(code) > MAX_LZ_CODE_LENGTH:
        return None
    try:
        text = LZString().decompressFromEncodedURIComponent(code)
    except Exception:
        # The decoder has no error contract; garbage surfaces as anything
        return None
    return _parse_object(text)


def _decode_legacy(code: str) -> Optional[Any]:
    try:
        text = unquote(base64.b64decode(code, validate=True).decode("ascii"), errors="strict")
        return json.loads(text)
    except (binascii.Error, ValueError, UnicodeDecodeError, RecursionError):
        return None


def decode(code: str) -> Optional[TeamPayload]:
    """Decode a team code, trying each known format in turn.

    Returns:
        The payload, or None for anything malformed. Never raises.
    """
    code = (code or "").strip()
    if not code:
        return None

    data = _decode_compressed(code)
    if data is None:
        data = _decode_lz(code)
    if data is None:
        data = _decode_legacy(code)
    if data is None:
        logger.warning("Failed to decode team code (legacy fallback also failed)")
        return None

    try:
        return TeamPayload.from_wire(data)
    except ImportFormatError as exc:
        logger.warning("Team code decoded but payload is invalid: %s", exc)
        return None
    except RecursionError:
        logger.warning("Team code payload is nested too deeply")
        return None
