"""
Durable local key/value storage.

One JSON file per key under ``<home>/state/``. Writes go through a
temp file and a rename, so a crash never leaves a half-written value.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger("linkdash.storage")

RECOVERY_KEY = "recovery_key"
DASHBOARD_KEY = "dashboard"


class DurableStore:
    """Get/set store for values that must survive restarts.

    Args:
        home: Linkdash home directory.
    """

    def __init__(self, home: Path) -> None:
        self._dir = Path(home) / "state"

    def _path(self, name: str) -> Path:
        return self._dir / f"{name}.json"

    def get(self, name: str, default: Optional[Any] = None) -> Any:
        """Read a value, or ``default`` if missing or unreadable."""
        path = self._path(name)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to read %s: %s", path.name, exc)
            return default

    def set(self, name: str, value: Any) -> None:
        """Write a JSON-serializable value."""
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._path(name)
        tmp_path = self._dir / f".{path.name}.tmp"
        tmp_path.write_text(json.dumps(value, indent=2), encoding="utf-8")
        tmp_path.replace(path)

    def delete(self, name: str) -> bool:
        """Remove a value. Returns True if it existed."""
        path = self._path(name)
        if path.exists():
            path.unlink()
            return True
        return False
