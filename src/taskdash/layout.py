"""Layout tree model for taskdash dashboards.

A layout is a tree of ``Split`` and ``Leaf`` nodes. Every ``Split`` names one
of its parts as the pivot: the pane that already exists when the split is
processed. All other parts become new panes cut off the pivot pane.

parts: [30, ~, 30]
    --------------------------
    |  new  | pivot  |  new  |
    |  30%  |        |  30%  |
    --------------------------
"""

from dataclasses import dataclass

from taskdash.config import PIVOT_MARKER, LayoutSpec, SplitDirection

SELECT_MARKER = "@"
NO_REFRESH_MARKER = "!"

_LEAF_MARKERS = (SELECT_MARKER, NO_REFRESH_MARKER)


class LayoutError(ValueError):
    """Raised when a layout tree has an invalid shape."""


@dataclass(frozen=True)
class Size:
    """Relative size (percent) of a pane created by a split."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise LayoutError(f"Split size must be an integer, got {self.value!r}")
        if not 0 < self.value < 100:
            raise LayoutError(f"Split size must be between 1 and 99, got {self.value}")


@dataclass(frozen=True)
class Pivot:
    """Marks the part of a split occupied by the pre-existing pane."""


PIVOT = Pivot()

Part = Size | Pivot


@dataclass(frozen=True)
class Leaf:
    """A pane running a single shell command."""

    command: str
    select_after_create: bool = False
    suppress_on_refresh: bool = False


@dataclass(frozen=True)
class Split:
    """A pane divided along ``axis`` into one pane per part."""

    axis: SplitDirection
    parts: tuple[Part, ...]
    children: tuple["LayoutNode", ...]

    def __post_init__(self) -> None:
        if not self.parts:
            raise LayoutError("Split must have at least one part")
        if len(self.parts) != len(self.children):
            raise LayoutError(
                f"Split has {len(self.parts)} parts but {len(self.children)} panes; the counts must match"
            )
        pivots = sum(1 for part in self.parts if isinstance(part, Pivot))
        if pivots != 1:
            raise LayoutError(f"Split must have exactly one pivot marker '{PIVOT_MARKER}', found {pivots}")

    @property
    def pivot_index(self) -> int:
        """Position of the pivot part."""
        for index, part in enumerate(self.parts):
            if isinstance(part, Pivot):
                return index
        raise LayoutError(f"Split has no pivot marker '{PIVOT_MARKER}'")


LayoutNode = Leaf | Split


def parse_leaf(text: str) -> Leaf:
    """Parse a pane command, stripping its leading markers.

    ``@`` selects the pane once the dashboard is built and ``!`` keeps the
    command from being re-sent on refresh. Both may appear, in any order.

    Args:
        text: The raw command string from the config.

    Returns:
        A Leaf with markers turned into flags.
    """
    select = False
    no_refresh = False
    command = text.lstrip()
    while command[:1] in _LEAF_MARKERS:
        if command[0] == SELECT_MARKER:
            select = True
        else:
            no_refresh = True
        command = command[1:].lstrip()
    return Leaf(command=command, select_after_create=select, suppress_on_refresh=no_refresh)


def _parse_part(raw: int | str | None) -> Part:
    if raw is None or raw == PIVOT_MARKER:
        return PIVOT
    if isinstance(raw, str):
        raise LayoutError(f"Unknown split part {raw!r}; use a size or '{PIVOT_MARKER}'")
    return Size(raw)


def build_layout(spec: LayoutSpec | str) -> LayoutNode:
    """Build a layout tree from its config representation.

    Args:
        spec: A pane command string or a LayoutSpec.

    Returns:
        The root LayoutNode.

    Raises:
        LayoutError: If any split in the tree is malformed.
    """
    if isinstance(spec, str):
        return parse_leaf(spec)
    if not isinstance(spec, LayoutSpec):
        raise LayoutError(f"Unknown layout node: {spec!r}")
    parts = tuple(_parse_part(raw) for raw in spec.parts)
    children = tuple(build_layout(pane) for pane in spec.panes)
    return Split(axis=spec.split, parts=parts, children=children)


def count_panes(node: LayoutNode) -> int:
    """Count the panes a layout tree produces."""
    if isinstance(node, Leaf):
        return 1
    return sum(count_panes(child) for child in node.children)
