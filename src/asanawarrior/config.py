"""Load and manage configuration from ~/.config/asanawarrior/config.toml."""

from __future__ import annotations

import os
import sys
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


CONFIG_DIR = Path.home() / ".config" / "asanawarrior"
CONFIG_PATH = CONFIG_DIR / "config.toml"

TOKEN_ENV = "ASANA_TOKEN"


def default_config() -> dict:
    return {
        "asana": {
            "personal_access_token": "",
            "base_url": "https://app.asana.com/api/1.0",
            "timeout": None,
        },
        "sync": {"max_tasks": 1000, "asana_tag": "asana", "carry_sections": True},
    }


def load_config(path: Path | None = None) -> dict:
    """Load config from disk. Returns defaults if the file doesn't exist.

    ``$ASANA_TOKEN`` takes precedence over the token stored in the file.
    """
    path = path or CONFIG_PATH
    config = default_config()

    if path.exists():
        with open(path, "rb") as f:
            user_cfg = tomllib.load(f)
        for section, vals in config.items():
            if section in user_cfg:
                vals.update(user_cfg[section])

    env_token = os.environ.get(TOKEN_ENV)
    if env_token:
        config["asana"]["personal_access_token"] = env_token

    return config


def config_exists(path: Path | None = None) -> bool:
    return (path or CONFIG_PATH).exists()


def create_default_config(asana_token: str = "", path: Path | None = None) -> Path:
    """Write a starter config file and return its path."""
    path = path or CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    content = f"""\
[asana]
personal_access_token = "{asana_token}"
# base_url = "https://app.asana.com/api/1.0"
# timeout = 30

[sync]
max_tasks = 1000
asana_tag = "asana"
# Keep the last section header active across project boundaries
carry_sections = true
"""
    path.write_text(content)
    return path
