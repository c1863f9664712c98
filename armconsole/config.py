"""Unified configuration loader and path constants.

Single source of truth for the console's filesystem paths and YAML config
I/O. Falls back through a chain of config locations for fresh installs and
tests. Arm and PID configuration files are opaque paths handed to the
components, never parsed here.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# --- Path constants (derived from project root) ---

PROJECT_ROOT = Path(__file__).resolve().parents[1]

CONFIGS_DIR = PROJECT_ROOT / "configs"
CONFIG_PATH = CONFIGS_DIR / "console.yaml"
CONFIG_EXAMPLE_PATH = CONFIGS_DIR / "console.example.yaml"

# --- Defaults for the console section ---

DEFAULT_CONSOLE_NAME = "console"
DEFAULT_IO_NAME = "io"
DEFAULT_IO_PERIOD = 0.01

_config_lock = threading.Lock()


def _resolve_config_path() -> Path | None:
    """Find the first existing config file in the fallback chain.

    Order: console.yaml → console.example.yaml.
    Returns None if no config file exists.
    """
    for path in (CONFIG_PATH, CONFIG_EXAMPLE_PATH):
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load the YAML config, falling back through the config chain.

    Args:
        path: Explicit path to load. If None, uses the fallback chain.

    Returns:
        Parsed config dict, or empty dict if no config file found.
    """
    if path is None:
        path = _resolve_config_path()
    if path is None:
        logger.warning("No config file found in fallback chain")
        return {}

    with _config_lock, open(path) as f:
        data = yaml.safe_load(f) or {}

    logger.info("Loaded config from %s", path)
    return data


def save_config(data: dict[str, Any], path: Path | None = None) -> None:
    """Write config data to YAML.

    Args:
        data: Config dict to persist.
        path: Target file. Defaults to CONFIG_PATH (configs/console.yaml).
    """
    if path is None:
        path = CONFIG_PATH
    with _config_lock:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    logger.info("Saved config to %s", path)


def console_section(data: dict[str, Any]) -> dict[str, Any]:
    """Return the ``console`` section with defaults filled in."""
    section = data.get("console") or {}
    return {
        "name": section.get("name", DEFAULT_CONSOLE_NAME),
        "io": section.get("io", DEFAULT_IO_NAME),
        "io_period": float(section.get("io_period", DEFAULT_IO_PERIOD)),
    }
