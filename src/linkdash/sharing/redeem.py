"""Turn whatever the user pasted into a team payload."""

from __future__ import annotations

from typing import Optional

from ..errors import ImportFormatError
from ..models import TeamPayload
from .codec import decode
from .registry import ShareRegistry

# Anything shorter cannot be a compressed payload, so it must be a registry code
REGISTRY_CODE_MAX_LENGTH = 20


async def redeem(code: str, registry: Optional[ShareRegistry] = None) -> TeamPayload:
    """Resolve a registry code or decode an offline code.

    The caller still has to assign fresh ids before merging, see
    :meth:`linkdash.dashboard.Dashboard.join_team`.

    Raises:
        ImportFormatError: If the code is unknown or malformed.
    """
    code = (code or "").strip()
    if not code:
        raise ImportFormatError("Enter a team code.")

    if len(code) < REGISTRY_CODE_MAX_LENGTH:
        if registry is None:
            raise ImportFormatError("Short team codes need a share registry.")
        payload = await registry.resolve(code)
        if payload is None:
            raise ImportFormatError("Team code not found. Check the code and try again.")
        return payload

    payload = decode(code)
    if payload is None:
        raise ImportFormatError("Invalid or corrupted team code.")
    return payload
