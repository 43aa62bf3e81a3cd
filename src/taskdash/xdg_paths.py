"""XDG-compliant path management for taskdash."""

import os
from pathlib import Path

from xdg_base_dirs import xdg_config_home

APP_NAME = "taskdash"


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return xdg_config_home() / APP_NAME


def get_config_file_path() -> Path:
    """Get the config.yaml file path."""
    return get_config_dir() / "config.yaml"


def get_task_hooks_dir() -> Path:
    """Get the Taskwarrior hooks directory.

    Honors ``TASKDATA`` the same way Taskwarrior does; otherwise falls back
    to ``~/.task/hooks``.

    Returns:
        Path to the hooks directory (may not exist yet).
    """
    task_data = os.environ.get("TASKDATA")
    if task_data:
        return Path(task_data).expanduser() / "hooks"
    return Path.home() / ".task" / "hooks"


def ensure_directories() -> None:
    """Create the config directory if it doesn't exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
