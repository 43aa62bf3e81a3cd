"""Tmux session management for taskdash."""

import os
import subprocess
from collections.abc import Sequence

from taskdash.compiler import CommandEntry, CompiledLayout, SplitOp, refresh_commands

# Timeout for all tmux subprocess calls (seconds)
_TMUX_TIMEOUT = 10

# Session option holding the pane ids in creation order
PANES_OPTION = "@taskdash-panes"


class DashboardStateError(RuntimeError):
    """Raised when a running dashboard does not match the compiled layout."""


def _run_tmux(cmd: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
    """Run a tmux subprocess command with standard timeout.

    Args:
        cmd: Command to execute.
        **kwargs: Additional arguments for subprocess.run.

    Returns:
        CompletedProcess result.
    """
    return subprocess.run(cmd, check=True, timeout=_TMUX_TIMEOUT, **kwargs)  # type: ignore[arg-type]


def _validate_pane_id(pane_id: str, context: str = "") -> None:
    """Validate that a captured pane ID looks correct.

    Args:
        pane_id: The pane ID string (should start with %).
        context: Description for error messages.

    Raises:
        ValueError: If pane ID is empty or malformed.
    """
    if not pane_id or not pane_id.startswith("%"):
        label = f" ({context})" if context else ""
        raise ValueError(f"Invalid pane ID{label}: {pane_id!r}")


def _dry_run_ref(session_name: str, index: int) -> str:
    return f"{session_name}:0.{index}"


def is_inside_tmux() -> bool:
    """Check if we're running inside a tmux session."""
    return os.environ.get("TMUX") is not None


def session_exists(session_name: str) -> bool:
    """Check if a tmux session with the given name exists.

    Args:
        session_name: The session name to check.

    Returns:
        True if the session exists, False otherwise.
    """
    result = subprocess.run(
        ["tmux", "has-session", "-t", session_name],
        capture_output=True,
        check=False,
    )
    return result.returncode == 0


def split_command(op: SplitOp, target_ref: str) -> list[str]:
    """Build the split-window command for one split operation.

    ``-d`` keeps focus where it is and ``-P -F`` prints the new pane's ID.
    """
    cmd = ["tmux", "split-window", "-d", "-P", "-F", "#{pane_id}", "-t", target_ref, f"-{op.axis.value}"]
    cmd.extend(["-p", str(op.size)])
    if op.insert_before:
        cmd.append("-b")
    return cmd


def apply_split_plan(
    session_name: str,
    splits: Sequence[SplitOp],
    root_pane_id: str,
    dry_run: bool = False,
) -> tuple[list[str], list[str]]:
    """Execute split operations in order, tracking the pane each one creates.

    Args:
        session_name: The session name.
        splits: Split operations in execution order.
        root_pane_id: ID of pane 0 (ignored in dry run).
        dry_run: If True, return commands without executing.

    Returns:
        Tuple of (commands executed, pane references by creation index).
        In dry run the references are positional ``session:0.N`` targets.
    """
    commands: list[str] = []
    panes = [_dry_run_ref(session_name, 0) if dry_run else root_pane_id]

    for split_idx, op in enumerate(splits):
        if op.target >= len(panes):
            raise DashboardStateError(f"Split {split_idx} targets pane {op.target}, which does not exist yet")
        split_cmd = split_command(op, panes[op.target])
        commands.append(" ".join(split_cmd))

        if dry_run:
            panes.append(_dry_run_ref(session_name, split_idx + 1))
            continue

        result = _run_tmux(split_cmd, capture_output=True, text=True)
        new_pane_id = result.stdout.strip()
        _validate_pane_id(new_pane_id, f"split {split_idx}")
        panes.append(new_pane_id)

    return commands, panes


def send_commands(
    pane_refs: Sequence[str],
    entries: Sequence[tuple[int, CommandEntry]],
    clear: bool = False,
    dry_run: bool = False,
) -> list[str]:
    """Send each command to its pane as keystrokes.

    Commands are typed with ``send-keys -l`` so text such as ``Enter`` or
    ``C-c`` is never read as a key name. ``Enter`` follows as its own call.

    Args:
        pane_refs: Pane references by creation index.
        entries: (pane index, entry) pairs.
        clear: If True, send ``clear`` to the pane first.
        dry_run: If True, return commands without executing.

    Returns:
        List of commands that were (or would be) executed.
    """
    commands: list[str] = []
    for index, entry in entries:
        if not entry.command:
            continue
        target = pane_refs[index]
        keys: list[list[str]] = []
        for text in ("clear", entry.command) if clear else (entry.command,):
            keys.append(["tmux", "send-keys", "-t", target, "-l", text])
            keys.append(["tmux", "send-keys", "-t", target, "Enter"])
        for send_cmd in keys:
            commands.append(" ".join(send_cmd))
            if not dry_run:
                _run_tmux(send_cmd)
    return commands


def store_pane_ids(session_name: str, pane_refs: Sequence[str], dry_run: bool = False) -> list[str]:
    """Remember the dashboard's pane IDs on the session itself."""
    cmd = ["tmux", "set-option", "-t", session_name, PANES_OPTION, " ".join(pane_refs)]
    if not dry_run:
        _run_tmux(cmd)
    return [" ".join(cmd)]


def load_pane_ids(session_name: str) -> list[str]:
    """Read the pane IDs stored by store_pane_ids.

    Args:
        session_name: The session name.

    Returns:
        Pane IDs by creation index, or an empty list if none are stored.
    """
    result = subprocess.run(
        ["tmux", "show-options", "-q", "-v", "-t", session_name, PANES_OPTION],
        capture_output=True,
        text=True,
        check=False,
        timeout=_TMUX_TIMEOUT,
    )
    if result.returncode != 0:
        return []
    return result.stdout.split()


def create_session(
    session_name: str,
    compiled: CompiledLayout,
    window_name: str = "dashboard",
    attach: bool = True,
    dry_run: bool = False,
) -> list[str]:
    """Create the dashboard session, build its panes and start their commands.

    Args:
        session_name: The session name.
        compiled: The compiled layout.
        window_name: Name of the dashboard window.
        attach: Whether to attach once the dashboard is ready.
        dry_run: If True, return commands without executing.

    Returns:
        List of commands that were (or would be) executed.
    """
    commands: list[str] = []

    cmd = ["tmux", "new-session", "-d", "-s", session_name, "-n", window_name]
    commands.append(" ".join(cmd))
    if not dry_run:
        _run_tmux(cmd)

    # Capture pane 0 before any splits
    root_pane_id = ""
    if not dry_run:
        get_pane_cmd = ["tmux", "display-message", "-p", "-t", session_name, "#{pane_id}"]
        result = _run_tmux(get_pane_cmd, capture_output=True, text=True)
        root_pane_id = result.stdout.strip()
        _validate_pane_id(root_pane_id, "root pane")

    split_commands, pane_refs = apply_split_plan(session_name, compiled.splits, root_pane_id, dry_run)
    commands.extend(split_commands)
    commands.extend(store_pane_ids(session_name, pane_refs, dry_run))
    commands.extend(send_commands(pane_refs, list(enumerate(compiled.commands)), dry_run=dry_run))

    # Last selected pane wins
    selected = [index for index, entry in enumerate(compiled.commands) if entry.select_after_create]
    if selected:
        focus_cmd = ["tmux", "select-pane", "-t", pane_refs[selected[-1]]]
        commands.append(" ".join(focus_cmd))
        if not dry_run:
            _run_tmux(focus_cmd)

    if attach:
        commands.extend(attach_session(session_name, dry_run))

    return commands


def refresh_session(
    session_name: str,
    compiled: CompiledLayout,
    clear: bool = True,
    dry_run: bool = False,
) -> list[str]:
    """Re-send every refreshable command to its pane.

    Args:
        session_name: The session name.
        compiled: The compiled layout the session was created from.
        clear: If True, clear each pane before re-sending its command.
        dry_run: If True, return commands without executing.

    Returns:
        List of commands that were (or would be) executed.

    Raises:
        DashboardStateError: If the session's stored panes don't match the layout.
    """
    if dry_run:
        pane_refs = [_dry_run_ref(session_name, index) for index in range(compiled.pane_count)]
    else:
        pane_refs = load_pane_ids(session_name)
    if len(pane_refs) != compiled.pane_count:
        raise DashboardStateError(
            f"Session '{session_name}' has {len(pane_refs)} dashboard panes but the layout has "
            f"{compiled.pane_count}; restart the dashboard"
        )
    return send_commands(pane_refs, refresh_commands(compiled.commands), clear=clear, dry_run=dry_run)


def attach_session(session_name: str, dry_run: bool = False) -> list[str]:
    """Attach to an existing tmux session.

    Args:
        session_name: The session name to attach to.
        dry_run: If True, return commands without executing.

    Returns:
        List of commands that were (or would be) executed.
    """
    cmd = ["tmux", "attach-session", "-t", session_name]
    if not dry_run:
        subprocess.run(cmd, check=True)
    return [" ".join(cmd)]


def kill_session(session_name: str, dry_run: bool = False) -> list[str]:
    """Kill the dashboard session."""
    cmd = ["tmux", "kill-session", "-t", session_name]
    if not dry_run:
        _run_tmux(cmd)
    return [" ".join(cmd)]
