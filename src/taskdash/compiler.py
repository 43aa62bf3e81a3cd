"""Layout compiler: turns a layout tree into tmux split operations.

Panes are numbered in creation order. Pane 0 is the window's first pane and
split operation ``n`` creates pane ``n + 1``. The compiler emits the split
operations in the order they must be executed and a command list whose
position is the pane number the command belongs to.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from taskdash.config import SplitDirection
from taskdash.layout import Leaf, LayoutError, LayoutNode, Part, Size, Split


@dataclass(frozen=True)
class SplitOp:
    """Split pane ``target`` along ``axis``, creating a pane of ``size`` percent.

    With ``insert_before`` the new pane goes left of (or above) the target,
    otherwise right of (or below) it.
    """

    target: int
    axis: SplitDirection
    size: int
    insert_before: bool


@dataclass(frozen=True)
class CommandEntry:
    """Command to run in one pane of the dashboard."""

    command: str
    select_after_create: bool = False
    suppress_on_refresh: bool = False

    @classmethod
    def from_leaf(cls, leaf: Leaf) -> "CommandEntry":
        return cls(
            command=leaf.command,
            select_after_create=leaf.select_after_create,
            suppress_on_refresh=leaf.suppress_on_refresh,
        )


@dataclass(frozen=True)
class CompiledLayout:
    """Result of compiling a layout tree."""

    splits: tuple[SplitOp, ...]
    commands: tuple[CommandEntry, ...]

    @property
    def pane_count(self) -> int:
        return len(self.commands)


@dataclass
class PlanAccumulator:
    """Split operations queued so far in one compilation."""

    splits: list[SplitOp] = field(default_factory=list)


def _size(part: Part) -> int:
    if not isinstance(part, Size):
        raise LayoutError(f"Expected a size, got {part!r}")
    return part.value


def _compile_split(node: Split, pivot_pane_id: int, acc: PlanAccumulator) -> list[CommandEntry]:
    """Queue the splits for ``node`` and return its commands in pane order.

    The first returned entry belongs to ``pivot_pane_id``. The next entries
    belong to the panes this split creates, in creation order, followed by
    everything created by nested splits.
    """
    parts = node.parts
    pivot = node.pivot_index
    id_offset = len(acc.splits)

    # Each insert-before lands between the previous one and the pivot,
    # so ascending order keeps the configured left-to-right order.
    for i in range(pivot):
        acc.splits.append(SplitOp(pivot_pane_id, node.axis, _size(parts[i]), insert_before=True))
    # Each insert-after lands right next to the pivot, so go from the far end inwards.
    after = list(range(len(parts) - 1, pivot, -1))
    for i in after:
        acc.splits.append(SplitOp(pivot_pane_id, node.axis, _size(parts[i]), insert_before=False))

    indices = [pivot, *range(pivot), *after]
    group: list[LayoutNode] = [node.children[i] for i in indices]

    commands: list[CommandEntry] = []
    tail: list[CommandEntry] = []
    for position, child in enumerate(group):
        if isinstance(child, Leaf):
            commands.append(CommandEntry.from_leaf(child))
            continue
        pane_id = pivot_pane_id if position == 0 else id_offset + position
        nested = _compile_split(child, pane_id, acc)
        commands.append(nested[0])
        tail.extend(nested[1:])

    return commands + tail


def compile_layout(root: LayoutNode, pivot_pane_id: int = 0) -> CompiledLayout:
    """Compile a layout tree into split operations and per-pane commands.

    Args:
        root: The layout tree.
        pivot_pane_id: Pane the tree is rooted at (0 for a fresh window).

    Returns:
        The split operations in execution order and the commands indexed
        by pane number.

    Raises:
        LayoutError: If a split in the tree is malformed.
    """
    if isinstance(root, Leaf):
        return CompiledLayout(splits=(), commands=(CommandEntry.from_leaf(root),))

    acc = PlanAccumulator()
    commands = _compile_split(root, pivot_pane_id, acc)
    return CompiledLayout(splits=tuple(acc.splits), commands=tuple(commands))


def refresh_commands(commands: Sequence[CommandEntry]) -> list[tuple[int, CommandEntry]]:
    """Select the commands to re-send on refresh.

    Args:
        commands: A compiled command list, indexed by pane number.

    Returns:
        (pane number, entry) pairs for every entry not marked to be skipped.
        Pane numbers are positions in ``commands``, not in the result.
    """
    return [(index, entry) for index, entry in enumerate(commands) if not entry.suppress_on_refresh]
