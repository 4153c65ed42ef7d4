"""
Strata Console Output
======================

Rich-powered terminal display for loaded binaries: an identification
panel followed by one :class:`rich.tree.Tree` per address space, each
node showing the region name, its hex range and size, and optionally
its notes.

Uses the StrataConsole abstraction for consistent styling.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from rich.tree import Tree

from shared.console import StrataConsole

from strata.core.models import (
    AddressSpace,
    BinaryInfo,
    ExecutableFile,
    Region,
    RegionKind,
    RegionTree,
)


_KIND_STYLES: dict[RegionKind, str] = {
    RegionKind.SYNTHETIC_ROOT: "bold bright_white",
    RegionKind.HEADER: "bold bright_magenta",
    RegionKind.PROGRAM_HEADER_ENTRY: "bright_yellow",
    RegionKind.SECTION_HEADER_ENTRY: "yellow",
    RegionKind.SECTION_CONTENT: "bold bright_cyan",
}

_SPACE_TITLES: dict[AddressSpace, str] = {
    AddressSpace.FILE: "File layout",
    AddressSpace.VIRTUAL: "Virtual memory layout",
}


def format_size(size: int) -> str:
    """Human-readable byte count in decimal units.

    >>> format_size(512)
    '512 B'
    >>> format_size(4096)
    '4.1 KB'
    """
    if size >= 1_000_000:
        return f"{size / 1_000_000:.1f} MB"
    if size >= 1_000:
        return f"{size / 1_000:.1f} KB"
    return f"{size} B"


def region_label(region: Region) -> Text:
    """One-line label: name, ``[start, end)`` in hex, and size."""
    label = Text(region.name, style=_KIND_STYLES.get(region.kind, ""))
    label.append(f"  [0x{region.start:x}, 0x{region.end:x})", style="strata.offset")
    label.append(f"  {format_size(region.size)}", style="strata.size")
    return label


def _walk(region: Region, depth: int = 0):
    """Yield ``(region, depth)`` pairs in pre-order."""
    stack = [(region, depth)]
    while stack:
        node, level = stack.pop()
        yield node, level
        stack.extend((child, level + 1) for child in reversed(node.children))


# ---------------------------------------------------------------------------
# StrataConsoleOutput
# ---------------------------------------------------------------------------

class StrataConsoleOutput:
    """Rich terminal display for :class:`ExecutableFile` objects.

    Usage::

        output = StrataConsoleOutput(show_notes=False, max_depth=2)
        output.display(executable, spaces=[AddressSpace.FILE])
    """

    def __init__(
        self,
        console: StrataConsole | None = None,
        *,
        show_notes: bool = True,
        max_depth: int = 0,
    ) -> None:
        """Initialise the output renderer.

        Args:
            console: Optional StrataConsole instance.  A new one is
                     created if not provided.
            show_notes: Render each region's notes under its label.
            max_depth: Deepest level to expand below the root; ``0``
                       expands everything.
        """
        self._console: StrataConsole = console or StrataConsole()
        self._show_notes = show_notes
        self._max_depth = max_depth

    def display(
        self,
        executable: ExecutableFile,
        spaces: list[AddressSpace] | None = None,
    ) -> None:
        """Display the identification panel and the selected trees.

        Args:
            executable: The loaded binary.
            spaces: Which trees to show; both when ``None``.
        """
        self._console.section("STRATA -- ELF Layout Explorer")
        self.display_header(executable)

        selected = spaces or [AddressSpace.FILE, AddressSpace.VIRTUAL]
        for space in selected:
            self.display_tree(executable.tree(space))

        self.display_summary(executable, selected)
        self._console.divider()

    def display_header(self, executable: ExecutableFile) -> None:
        """Display binary identification panel."""
        info: BinaryInfo = executable.info
        lines: list[str] = [
            f"[bold]File:[/bold]         {escape(executable.name)}",
            f"[bold]Size:[/bold]         {executable.size:,} bytes "
            f"({format_size(executable.size)})",
            f"[bold]Class:[/bold]        ELF{info.bits}, {info.endian}-endian",
            f"[bold]Type:[/bold]         {info.elf_type}",
            f"[bold]Machine:[/bold]      {info.machine}",
            f"[bold]Entry Point:[/bold]  0x{info.entry_point:x}",
        ]
        panel = Panel(
            Text.from_markup("\n".join(lines)),
            title="[bold bright_cyan]Binary Information[/bold bright_cyan]",
            border_style="bright_cyan",
            padding=(1, 2),
        )
        self._console.rich.print(panel)
        self._console.blank()

    def display_tree(self, tree: RegionTree) -> None:
        """Render one address space as a Rich tree."""
        self._console.section(_SPACE_TITLES[tree.space])
        self._console.rich.print(self.build_tree(tree))
        self._console.blank()

    def build_tree(self, tree: RegionTree) -> Tree:
        """Build the :class:`rich.tree.Tree` for *tree* without printing it."""
        root = Tree(region_label(tree.root), guide_style="bright_cyan")
        pending: list[tuple[Tree, Region, int]] = [(root, tree.root, 1)]
        while pending:
            node, region, depth = pending.pop()
            pending.extend(self._add_children(node, region, depth))
        return root

    def _add_children(
        self, node: Tree, region: Region, depth: int
    ) -> list[tuple[Tree, Region, int]]:
        """Attach notes and child labels to *node*; return the new branches."""
        if self._show_notes:
            for label, value in region.notes:
                node.add(Text(f"{label}: {value}", style="strata.note"))

        if not region.children:
            return []
        if self._max_depth and depth > self._max_depth:
            node.add(Text(
                f"... {len(region.children)} nested region(s)",
                style="strata.dim",
            ))
            return []

        return [
            (node.add(region_label(child)), child, depth + 1)
            for child in region.children
        ]

    def display_summary(
        self,
        executable: ExecutableFile,
        spaces: list[AddressSpace],
    ) -> None:
        """Per-space region counts, plus a hint when names failed to resolve."""
        rows = []
        name_errors = 0
        for space in spaces:
            tree = executable.tree(space)
            nodes = list(_walk(tree.root))
            depth = max((d for _, d in nodes), default=0)
            rows.append((
                _SPACE_TITLES[tree.space],
                len(tree.root.children),
                len(nodes) - 1,
                depth,
                format_size(tree.total_size),
            ))
            name_errors += sum(
                1 for region, _ in nodes if region.note("name error") is not None
            )

        self._console.table(
            "Summary",
            ["Space", "Top-level", "Regions", "Depth", "Total size"],
            rows,
            styles=["bold", "", "", "", "strata.size"],
        )
        if name_errors:
            self._console.info(
                f"{name_errors} region(s) have unresolvable section names; "
                "see their 'name error' notes."
            )
