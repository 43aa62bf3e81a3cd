"""Configuration management for taskdash."""

import os
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Literal, cast

import yaml
from pydantic import BaseModel, ValidationError, field_validator
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from taskdash.xdg_paths import get_config_file_path

CONFIG_ENV_VAR = "TASKDASH_CONFIG"

# YAML reads a bare ~ as null, so both spellings mean "pivot"
PIVOT_MARKER = "~"

# Taskwarrior commands that write to the task data
DEFAULT_REFRESH_ACTIONS = [
    "add",
    "annotate",
    "append",
    "delete",
    "denotate",
    "done",
    "duplicate",
    "edit",
    "import",
    "log",
    "modify",
    "prepend",
    "purge",
    "start",
    "stop",
    "undo",
]


class SplitDirection(StrEnum):
    """Direction for a pane split."""

    HORIZONTAL = "h"  # side-by-side (left/right)
    VERTICAL = "v"  # stacked (top/bottom)


class LayoutSpec(BaseModel):
    """A split in the dashboard layout, as written in the config file."""

    split: SplitDirection
    parts: list[int | Literal["~"] | None]
    panes: "list[str | LayoutSpec]"


DEFAULT_LAYOUT = LayoutSpec(
    split=SplitDirection.HORIZONTAL,
    parts=[None, 40],
    panes=[
        "@task next",
        LayoutSpec(
            split=SplitDirection.VERTICAL,
            parts=[None, 50],
            panes=["task summary", "!task calendar"],
        ),
    ],
)


@dataclass
class ConfigWarning:
    """A config validation warning."""

    file: str
    field_name: str
    message: str
    value: object = field(default=None, repr=False)
    fatal: bool = False


class Config(BaseModel):
    """Configuration settings for taskdash."""

    session_name: str = "taskdash"
    window_name: str = "dashboard"
    layout: LayoutSpec | str = DEFAULT_LAYOUT
    refresh_actions: list[str] = DEFAULT_REFRESH_ACTIONS
    clear_on_refresh: bool = True
    hooks_dir: Path | None = None
    attach: bool = True

    @field_validator("hooks_dir")
    @classmethod
    def _expand_hooks_dir(cls, value: Path | None) -> Path | None:
        """Expand ``~`` so the hooks directory matches what Taskwarrior reads."""
        return value.expanduser() if value is not None else None


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Pick the config file: explicit path, then $TASKDASH_CONFIG, then XDG default."""
    if config_path:
        return config_path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return get_config_file_path()


def _load_yaml_file(path: Path) -> tuple[dict[str, object], list[ConfigWarning]]:
    """Load a YAML file and return its contents as a dict with warnings.

    Args:
        path: Path to the YAML file.

    Returns:
        Tuple of (parsed dict, list of warnings). Empty dict on missing/invalid.
    """
    if not path.exists():
        return {}, []
    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        if not isinstance(raw, dict):
            return {}, []
        return cast(dict[str, object], raw), []
    except yaml.YAMLError as e:
        return {}, [
            ConfigWarning(
                file=str(path),
                field_name="(file)",
                message=f"YAML parse error: {e}",
                value=None,
            )
        ]
    except OSError as e:
        return {}, [
            ConfigWarning(
                file=str(path),
                field_name="(file)",
                message=f"File read error: {e}",
                value=None,
            )
        ]


def load_config(
    config_path: Path | None = None,
    strict: bool = False,
) -> tuple[Config, list[ConfigWarning]]:
    """Load configuration from YAML.

    Invalid fields are reported as warnings. Outside strict mode the offending
    top-level keys are dropped and validation is retried, except for
    ``layout``: a broken layout is reported as a fatal warning and is never
    swapped for the default one.

    Args:
        config_path: Optional path to config file. See resolve_config_path.
        strict: If True, do not attempt partial recovery on validation errors.

    Returns:
        Tuple of (loaded Config, list of ConfigWarnings).
    """
    path = resolve_config_path(config_path)
    data, warnings = _load_yaml_file(path)

    try:
        return Config.model_validate(data), warnings
    except ValidationError as e:
        bad_keys: set[str] = set()
        for error in e.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            top_key = str(error["loc"][0]) if error["loc"] else ""
            bad_keys.add(top_key)
            warnings.append(
                ConfigWarning(
                    file=str(path),
                    field_name=field_path or "(root)",
                    message=error["msg"],
                    value=error.get("input"),
                    fatal=top_key == "layout",
                )
            )

        if strict or "layout" in bad_keys:
            return Config(), warnings

        # Attempt partial recovery: remove bad fields and retry
        for key in bad_keys:
            data.pop(key, None)
        try:
            return Config.model_validate(data), warnings
        except ValidationError:
            return Config(), warnings


def display_config_warnings(warnings: list[ConfigWarning], console: Console) -> None:
    """Display config warnings using Rich formatting.

    Args:
        warnings: List of warnings to display.
        console: Rich console to output to.
    """
    if not warnings:
        return

    text = Text()
    for i, warning in enumerate(warnings):
        if i > 0:
            text.append("\n")
        text.append(f"  {warning.file}", style="dim")
        text.append(": ", style="dim")
        text.append(warning.field_name, style="bold")
        text.append(f": {warning.message}", style="red" if warning.fatal else "yellow")
        if warning.value is not None:
            text.append(f" (got: {warning.value!r})", style="dim")

    console.print(Panel(text, title="[yellow]Config Warnings[/]", border_style="yellow"))


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to YAML file.

    Args:
        config: The configuration to save.
        config_path: Optional path to config file. Uses default if None.
    """
    path = config_path or get_config_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json")

    with path.open("w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
