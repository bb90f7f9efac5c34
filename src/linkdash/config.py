"""
Configuration for the linkdash client.

Lives at ``<home>/config.yaml``. Every field has a default, so a
missing or broken file still yields a working configuration.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from . import LINKDASH_HOME

logger = logging.getLogger("linkdash.config")

CONFIG_FILENAME = "config.yaml"


class StoreBackendType(str, Enum):
    """Supported blind store backends."""

    FILE = "file"
    MEMORY = "memory"


class LinkdashConfig(BaseModel):
    """Client configuration."""

    debounce_seconds: float = Field(
        default=2.0, description="Quiet interval before a local change is pushed"
    )
    store: StoreBackendType = StoreBackendType.FILE
    store_path: Optional[Path] = Field(
        default=None, description="Directory for the file store (default: <home>/store)"
    )
    poll_interval_seconds: float = Field(
        default=1.0, description="How often the file store checks for remote changes"
    )


def resolve_home(home: Optional[Path] = None) -> Path:
    """Expand the linkdash home directory."""
    return Path(home or LINKDASH_HOME).expanduser()


def load_config(home: Optional[Path] = None) -> LinkdashConfig:
    """Load configuration from ``<home>/config.yaml``.

    Args:
        home: Linkdash home directory. Defaults to LINKDASH_HOME.

    Returns:
        The parsed configuration, or defaults if the file is absent or invalid.
    """
    config_file = resolve_home(home) / CONFIG_FILENAME
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return LinkdashConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config %s: %s", config_file, exc)
    return LinkdashConfig()


def save_config(config: LinkdashConfig, home: Optional[Path] = None) -> Path:
    """Persist configuration to ``<home>/config.yaml``."""
    home_path = resolve_home(home)
    home_path.mkdir(parents=True, exist_ok=True)
    config_file = home_path / CONFIG_FILENAME
    data = config.model_dump(mode="json", exclude_none=True)
    config_file.write_text(yaml.dump(data, default_flow_style=False), encoding="utf-8")
    return config_file
