"""Taskwarrior hook registration for taskdash.

Taskwarrior runs every executable in its hooks directory whose name starts
with an event name. taskdash registers itself as an ``on-exit`` hook by
symlinking the ``taskdash-hook`` entry point into that directory.
"""

import shutil
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

HOOK_NAME = "on-exit-taskdash"
HOOK_EXECUTABLE = "taskdash-hook"


@dataclass
class HookStatus:
    """State of the taskdash hook in a hooks directory."""

    path: Path
    installed: bool
    target: Path | None = None
    foreign: bool = False  # something else occupies the hook path


def find_hook_executable() -> Path | None:
    """Locate the taskdash-hook entry point on PATH."""
    found = shutil.which(HOOK_EXECUTABLE)
    return Path(found) if found else None


def hook_status(hooks_dir: Path) -> HookStatus:
    """Report whether the taskdash hook is installed in ``hooks_dir``."""
    path = hooks_dir / HOOK_NAME
    if path.is_symlink():
        target = path.readlink()
        ours = target.name == HOOK_EXECUTABLE
        return HookStatus(path=path, installed=ours, target=target, foreign=not ours)
    if path.exists():
        return HookStatus(path=path, installed=False, foreign=True)
    return HookStatus(path=path, installed=False)


def install_hook(hooks_dir: Path, executable: Path) -> Path:
    """Symlink the hook executable into the Taskwarrior hooks directory.

    Args:
        hooks_dir: Taskwarrior hooks directory (created if missing).
        executable: Path to the taskdash-hook entry point.

    Returns:
        Path of the installed hook.

    Raises:
        FileExistsError: If a file that isn't ours already sits at the hook path.
    """
    status = hook_status(hooks_dir)
    if status.foreign:
        raise FileExistsError(f"{status.path} already exists and was not created by taskdash")

    hooks_dir.mkdir(parents=True, exist_ok=True)
    if status.installed:
        status.path.unlink()
    status.path.symlink_to(executable.resolve())
    return status.path


def uninstall_hook(hooks_dir: Path) -> bool:
    """Remove the taskdash hook symlink.

    Returns:
        True if a hook was removed, False if none was installed.

    Raises:
        FileExistsError: If the hook path holds something taskdash didn't create.
    """
    status = hook_status(hooks_dir)
    if status.foreign:
        raise FileExistsError(f"{status.path} was not created by taskdash; leaving it alone")
    if not status.installed:
        return False
    status.path.unlink()
    return True


def parse_hook_args(argv: Sequence[str]) -> dict[str, str]:
    """Decode Taskwarrior's ``key:value`` hook arguments.

    Taskwarrior (hook API 2) passes ``api:2 args:... command:add rc:...
    data:... version:...``. Arguments without a colon are ignored.

    Args:
        argv: Hook arguments, without the program name.

    Returns:
        Mapping of argument name to value.
    """
    parsed: dict[str, str] = {}
    for arg in argv:
        key, sep, value = arg.partition(":")
        if sep and key:
            parsed[key] = value
    return parsed


def should_refresh(command: str | None, refresh_actions: Iterable[str]) -> bool:
    """Check whether a Taskwarrior command is a write action that warrants a refresh."""
    if not command:
        return False
    return command in set(refresh_actions)
