# -*- coding: utf-8 -*-
"""
Settings management (JSON file) and logging setup.
"""

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from .path_hash import DEFAULT_PATH_ENCODING

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "JxAssetConfig",
    "create_config",
    "load_config",
    "save_config",
    "configure_logging",
]

DEFAULT_CONFIG_FILE = "config/jxasset_config.json"


@dataclass
class JxAssetConfig:
    debug_mode: bool = False
    path_encoding: str = DEFAULT_PATH_ENCODING
    strict_sizes: bool = False
    output_dir: str = "."
    frame_name_format: str = "d{direction}_f{frame:03d}.png"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, settings: Dict[str, Any]) -> "JxAssetConfig":
        """Build from a settings dict; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in settings.items() if k in known})


def create_config(**overrides) -> JxAssetConfig:
    """Create a config object (defaults + keyword overrides)."""
    return JxAssetConfig.from_dict(overrides)


def _resolve_config_path(config_file: str) -> str:
    # frozen builds keep their settings next to the executable
    if getattr(sys, "frozen", False) and not os.path.isabs(config_file):
        return os.path.join(os.path.dirname(sys.executable), config_file)
    return config_file


def load_config(config_file: str = DEFAULT_CONFIG_FILE) -> JxAssetConfig:
    """Load settings from file. Missing or unreadable file -> defaults."""
    path = _resolve_config_path(config_file)
    if not os.path.exists(path):
        return JxAssetConfig()
    try:
        with open(path, "r", encoding="utf-8") as f:
            settings = json.load(f)
    except (OSError, ValueError) as e:
        logging.error(f"Failed to load settings from {path}: {e}")
        return JxAssetConfig()
    if not isinstance(settings, dict):
        logging.error(f"Ignoring settings in {path}: expected a JSON object")
        return JxAssetConfig()
    return JxAssetConfig.from_dict(settings)


def save_config(config: JxAssetConfig, config_file: str = DEFAULT_CONFIG_FILE,
                extra_settings: Optional[Dict[str, Any]] = None) -> str:
    """Write settings to file, creating the directory if needed. Returns the path."""
    path = _resolve_config_path(config_file)
    settings = config.to_dict()
    if extra_settings:
        settings.update(extra_settings)

    config_dir = os.path.dirname(path)
    if config_dir and not os.path.exists(config_dir):
        os.makedirs(config_dir, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings, f, ensure_ascii=False, indent=2)
    return path


def configure_logging(config: Optional[JxAssetConfig] = None) -> None:
    level = logging.DEBUG if config is not None and config.debug_mode else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level)
