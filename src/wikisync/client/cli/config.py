"""Configuration utilities for the wikisync CLI.

Defaults for the upload command may be stored in ~/.wikisync/config.json;
explicit command-line arguments always win.
"""

from __future__ import annotations

import json
from pathlib import Path

DEFAULT_ROOT = "./mediawiki-pages"
DEFAULT_API_URL = "http://localhost:8080/w/api.php"
DEFAULT_USERNAME = "Admin"
DEFAULT_PASSWORD = "dockerpass"
DEFAULT_SITE_NAME = "Wiki"


def get_config_dir() -> Path:
    """Get the configuration directory for wikisync.

    Returns:
        Path to ~/.wikisync or equivalent.
    """
    return Path.home() / ".wikisync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def resolve_defaults(config: dict[str, str]) -> dict[str, str]:
    """Merge stored settings over the built-in defaults."""
    return {
        "root": config.get("root", DEFAULT_ROOT),
        "api_url": config.get("api_url", DEFAULT_API_URL),
        "username": config.get("username", DEFAULT_USERNAME),
        "site_name": config.get("site_name", DEFAULT_SITE_NAME),
    }
