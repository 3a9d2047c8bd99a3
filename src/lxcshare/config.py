"""Load the lxcshare configuration from YAML."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from . import DEFAULT_CONFIG_PATH
from .models import ShareConfig

logger = logging.getLogger("lxcshare.config")


def load_config(path: Optional[Union[str, Path]] = None) -> ShareConfig:
    """Load configuration from disk.

    Args:
        path: YAML file to read. Defaults to ``$LXCSHARE_CONFIG`` or
            ``/etc/lxcshare/config.yaml``.

    Returns:
        ShareConfig loaded from the file, or defaults when the file is
        missing or invalid.
    """
    config_file = Path(path or DEFAULT_CONFIG_PATH).expanduser()
    if not config_file.exists():
        return ShareConfig()
    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")
        return ShareConfig(**data)
    except (OSError, yaml.YAMLError, ValidationError, ValueError) as exc:
        logger.warning("Failed to load config %s: %s — using defaults", config_file, exc)
    return ShareConfig()


def dump_config(config: ShareConfig) -> str:
    """Render a configuration as YAML (paths as plain strings)."""
    return yaml.safe_dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False)
