"""Tests for taskdash.hooks module."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from taskdash.config import DEFAULT_REFRESH_ACTIONS
from taskdash.hooks import (
    HOOK_EXECUTABLE,
    HOOK_NAME,
    find_hook_executable,
    hook_status,
    install_hook,
    parse_hook_args,
    should_refresh,
    uninstall_hook,
)
from taskdash.xdg_paths import get_task_hooks_dir


@pytest.fixture
def executable(tmp_path: Path) -> Path:
    """A stand-in for the installed taskdash-hook script."""
    path = tmp_path / "bin" / HOOK_EXECUTABLE
    path.parent.mkdir()
    path.write_text("#!/bin/sh\n", encoding="utf-8")
    path.chmod(0o755)
    return path


class TestInstallHook:
    """Tests for install_hook function."""

    def test_creates_symlink(self, tmp_path: Path, executable: Path) -> None:
        """Should symlink the executable into the hooks directory."""
        hooks_dir = tmp_path / "hooks"
        path = install_hook(hooks_dir, executable)
        assert path == hooks_dir / HOOK_NAME
        assert path.is_symlink()
        assert path.resolve() == executable.resolve()

    def test_reinstall_replaces_own_link(self, tmp_path: Path, executable: Path) -> None:
        """Should replace an existing taskdash link."""
        hooks_dir = tmp_path / "hooks"
        install_hook(hooks_dir, executable)
        install_hook(hooks_dir, executable)
        assert hook_status(hooks_dir).installed is True

    def test_refuses_foreign_file(self, tmp_path: Path, executable: Path) -> None:
        """Should not overwrite a hook it didn't create."""
        hooks_dir = tmp_path / "hooks"
        hooks_dir.mkdir()
        (hooks_dir / HOOK_NAME).write_text("#!/bin/sh\n", encoding="utf-8")
        with pytest.raises(FileExistsError):
            install_hook(hooks_dir, executable)


class TestUninstallHook:
    """Tests for uninstall_hook function."""

    def test_removes_link(self, tmp_path: Path, executable: Path) -> None:
        """Should remove an installed hook."""
        hooks_dir = tmp_path / "hooks"
        install_hook(hooks_dir, executable)
        assert uninstall_hook(hooks_dir) is True
        assert not (hooks_dir / HOOK_NAME).exists()

    def test_not_installed(self, tmp_path: Path) -> None:
        """Should report nothing to remove."""
        assert uninstall_hook(tmp_path) is False

    def test_leaves_foreign_link(self, tmp_path: Path) -> None:
        """Should not remove a symlink to something else."""
        other = tmp_path / "other-script"
        other.write_text("#!/bin/sh\n", encoding="utf-8")
        (tmp_path / HOOK_NAME).symlink_to(other)
        with pytest.raises(FileExistsError):
            uninstall_hook(tmp_path)
        assert (tmp_path / HOOK_NAME).is_symlink()


class TestHookStatus:
    """Tests for hook_status function."""

    def test_missing(self, tmp_path: Path) -> None:
        """Should report an empty hook path."""
        status = hook_status(tmp_path)
        assert status.installed is False
        assert status.foreign is False
        assert status.path == tmp_path / HOOK_NAME

    def test_installed(self, tmp_path: Path, executable: Path) -> None:
        """Should report the link target."""
        install_hook(tmp_path / "hooks", executable)
        status = hook_status(tmp_path / "hooks")
        assert status.installed is True
        assert status.target is not None
        assert status.target.name == HOOK_EXECUTABLE


class TestFindHookExecutable:
    """Tests for find_hook_executable function."""

    def test_found(self) -> None:
        """Should return the path shutil.which finds."""
        with patch("taskdash.hooks.shutil.which", return_value="/usr/bin/taskdash-hook"):
            assert find_hook_executable() == Path("/usr/bin/taskdash-hook")

    def test_not_found(self) -> None:
        """Should return None when not on PATH."""
        with patch("taskdash.hooks.shutil.which", return_value=None):
            assert find_hook_executable() is None


class TestParseHookArgs:
    """Tests for parse_hook_args function."""

    def test_taskwarrior_arguments(self) -> None:
        """Should decode the arguments Taskwarrior passes to hooks."""
        argv = [
            "api:2",
            "args:task add Buy milk due:tomorrow",
            "command:add",
            "rc:/home/me/.taskrc",
            "data:/home/me/.task",
            "version:2.6.2",
        ]
        parsed = parse_hook_args(argv)
        assert parsed["api"] == "2"
        assert parsed["command"] == "add"
        assert parsed["args"] == "task add Buy milk due:tomorrow"
        assert parsed["rc"] == "/home/me/.taskrc"

    def test_ignores_bare_words(self) -> None:
        """Should skip arguments that aren't key:value."""
        assert parse_hook_args(["noise", ":novalue", "command:done"]) == {"command": "done"}


class TestShouldRefresh:
    """Tests for should_refresh function."""

    @pytest.mark.parametrize("command", ["add", "modify", "done", "delete", "undo"])
    def test_write_actions(self, command: str) -> None:
        """Should refresh after commands that change tasks."""
        assert should_refresh(command, DEFAULT_REFRESH_ACTIONS) is True

    @pytest.mark.parametrize("command", ["next", "list", "info", "", None])
    def test_read_actions(self, command: str | None) -> None:
        """Should not refresh after reports or without a command."""
        assert should_refresh(command, DEFAULT_REFRESH_ACTIONS) is False


class TestTaskHooksDir:
    """Tests for get_task_hooks_dir function."""

    def test_taskdata_env(self, tmp_path: Path) -> None:
        """Should follow $TASKDATA."""
        with patch.dict(os.environ, {"TASKDATA": str(tmp_path)}):
            assert get_task_hooks_dir() == tmp_path / "hooks"

    def test_default(self) -> None:
        """Should default to ~/.task/hooks."""
        env = os.environ.copy()
        env.pop("TASKDATA", None)
        with patch.dict(os.environ, env, clear=True):
            assert get_task_hooks_dir() == Path.home() / ".task" / "hooks"
