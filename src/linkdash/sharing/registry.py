"""
Share registry -- short, typable team codes backed by the blind store.

Codes look like ``K7P-Q2M``: six characters from an alphabet without
the look-alikes 0, 1, I and O.
"""

from __future__ import annotations

import logging
import secrets
from typing import Callable, Optional

from ..errors import CodeExhaustionError
from ..models import TeamPayload
from ..sync.backends import BlindStore

logger = logging.getLogger("linkdash.sharing.registry")

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6
# Collisions tolerated before publish gives up
MAX_PUBLISH_ATTEMPTS = 3


def generate_code() -> str:
    """Draw a random ``XXX-YYY`` share code."""
    chars = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    return f"{chars[:3]}-{chars[3:]}"


def normalize_code(code: str) -> str:
    return code.strip().upper()


class ShareRegistry:
    """Publishes team payloads under short codes and resolves them.

    Args:
        store: Blind store providing the code namespace.
        code_factory: Source of candidate codes.
        max_attempts: Collisions tolerated before giving up.
    """

    def __init__(
        self,
        store: BlindStore,
        code_factory: Callable[[], str] = generate_code,
        max_attempts: int = MAX_PUBLISH_ATTEMPTS,
    ) -> None:
        self._store = store
        self._code_factory = code_factory
        self._max_attempts = max_attempts

    async def publish(self, payload: TeamPayload) -> str:
        """Store a payload under a fresh code.

        Returns:
            The share code.

        Raises:
            CodeExhaustionError: If every attempt hit a taken code.
            NetworkError: If the store is unreachable.
        """
        data = payload.to_wire()
        for attempt in range(1, self._max_attempts + 1):
            code = self._code_factory()
            if await self._store.put_if_absent(code, data):
                logger.info("Published team '%s' as %s", payload.name, code)
                return code
            logger.debug("Code %s taken (attempt %d/%d)", code, attempt, self._max_attempts)
        raise CodeExhaustionError(
            "Failed to generate a unique code. Please try again."
        )

    async def resolve(self, code: str) -> Optional[TeamPayload]:
        """Look up a code, tolerating lowercase and a missing dash.

        Returns:
            The payload, or None if no code matches.

        Raises:
            ImportFormatError: If the stored payload is malformed.
        """
        clean = normalize_code(code)
        if not clean:
            return None

        data = await self._store.get(clean)
        if data is None and "-" not in clean and len(clean) == CODE_LENGTH:
            data = await self._store.get(f"{clean[:3]}-{clean[3:]}")
        if data is None:
            return None
        return TeamPayload.from_wire(data)
