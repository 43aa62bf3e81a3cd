"""Taskwarrior dashboard driven by a declarative tmux layout."""

__version__ = "0.1.0"
