"""
Tree view of a parent resource and its children.

Walks a ResourceNode hierarchy depth-first and renders one aligned table
row per node, with box-drawing prefixes showing each node's position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import IO, Iterator, Optional, Union

from .ansi import AnsiFormatter, visible_width
from .config import KIND_ICONS, SUMMARY_LABEL_WIDTH, TREE_HEADER, RenderOptions

COLUMN_PADDING = 2


@dataclass(frozen=True)
class ResourceNode:
    """One entity in the tree (rollout, revision, replica set, pod, ...)."""

    name: str
    kind: str
    icon: str = ""
    status: str = ""
    age: str = ""
    info: tuple[str, ...] = ()
    children: tuple["ResourceNode", ...] = ()

    @property
    def kind_icon(self) -> str:
        return KIND_ICONS.get(self.kind, "")


@dataclass(frozen=True)
class SummaryRow:
    """A "Label: value" line printed above the tree."""

    label: str
    value: str
    icon: str = ""


@dataclass(frozen=True)
class ResourceSnapshot:
    """Everything rendered for one fetch: summary lines and the tree root."""

    root: ResourceNode
    summary: tuple[SummaryRow, ...] = field(default_factory=tuple)


def get_prefixes(is_last: bool, sub_prefix: str) -> tuple[str, str]:
    """
    Return the tree prefix for a child line and the prefix to pass to its children.

    Args:
        is_last: Whether the child is the last of its siblings.
        sub_prefix: Prefix inherited from the parent.

    Returns:
        (line prefix, sub-prefix for grandchildren).
    """
    if not is_last:
        return sub_prefix + "├──", sub_prefix + "│  "
    return sub_prefix + "└──", sub_prefix + "   "


def align_columns(rows: list[list[str]]) -> list[str]:
    """
    Left-align cells into columns separated by two spaces.

    Widths are measured on visible characters, so colorized cells line up
    with plain ones. The last column is not padded and trailing whitespace
    is dropped.
    """
    if not rows:
        return []
    ncols = max(len(r) for r in rows)
    widths = [0] * ncols
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], visible_width(cell))
    lines = []
    for row in rows:
        parts = []
        for i, cell in enumerate(row):
            if i == len(row) - 1:
                parts.append(cell)
            else:
                pad = widths[i] - visible_width(cell) + COLUMN_PADDING
                parts.append(cell + " " * pad)
        lines.append("".join(parts).rstrip())
    return lines


class TreeRenderer:
    """Formats resource snapshots as a colorized tree table."""

    def __init__(self, options: Optional[RenderOptions] = None):
        self.options = options or RenderOptions()
        self.fmt = AnsiFormatter.from_options(self.options)

    def render(self, snapshot: Union[ResourceSnapshot, ResourceNode], out: IO[str]) -> None:
        """Write the summary block (if any) followed by the tree table to out."""
        if isinstance(snapshot, ResourceNode):
            snapshot = ResourceSnapshot(root=snapshot)
        if snapshot.summary:
            for line in self.summary_lines(snapshot.summary):
                out.write(line + "\n")
            out.write("\n")
        for line in align_columns(self.tree_rows(snapshot.root)):
            out.write(line + "\n")

    def summary_lines(self, summary: tuple[SummaryRow, ...]) -> list[str]:
        lines = []
        for row in summary:
            value = row.value
            if row.icon:
                value = f"{self.fmt.colorize(row.icon)} {value}"
            lines.append(f"{row.label + ':':<{SUMMARY_LABEL_WIDTH}}{value}".rstrip())
        return lines

    def tree_rows(self, root: ResourceNode) -> list[list[str]]:
        """Header row followed by one row per node, depth-first pre-order."""
        rows = [list(TREE_HEADER)]
        rows.extend(self._walk(root, "", ""))
        return rows

    def _walk(self, node: ResourceNode, prefix: str, sub_prefix: str) -> Iterator[list[str]]:
        yield self.node_row(node, prefix)
        last = len(node.children) - 1
        for i, child in enumerate(node.children):
            child_prefix, child_sub_prefix = get_prefixes(i == last, sub_prefix)
            yield from self._walk(child, child_prefix, child_sub_prefix)

    def node_row(self, node: ResourceNode, prefix: str) -> list[str]:
        name = f"{prefix}{node.kind_icon} {node.name}" if node.kind_icon else prefix + node.name
        info = ",".join(self.fmt.colorize(tag) for tag in node.info)
        # Revisions only group their children
        if node.kind == "Revision":
            return [name, "", "", "", info]
        status = self.fmt.colorize_status(node.status, node.status)
        if node.icon:
            status = f"{self.fmt.colorize(node.icon)} {status}"
        return [name, node.kind, status, node.age, info]
