"""
Overlap Resolver / Region Tree Builder
=======================================

Turns a flat, unordered list of byte ranges belonging to one address
space into a single rooted tree in which any two regions are either
disjoint or nested, and siblings are ascending by start.

Algorithm (run to a fixed point):

    1. Scan pairs ``(i, j)``, ``i < j``, in list order for the first pair
       that overlaps.
    2. If there is none, stop.
    3. Otherwise remove both.  The longer one becomes the parent and gains
       the shorter one as its last child; on an exact length tie the one
       at the lower index wins.  The parent's span grows to the union of
       the two, and the merged region goes back in at the lower index.
    4. Rescan from the start -- a merge can create new overlaps.

The same procedure is then applied to every node's children, level by
level, and the survivors are wrapped in a synthetic root
``[0, total_size)``.  Both passes over the tree use an explicit worklist,
so nesting depth is bounded by memory, not by the interpreter stack.

Parenthood decides display depth, so any faster replacement (interval
tree, sweep line) must produce exactly these trees, ties included.

Two regions overlap when an endpoint of either lies strictly inside the
other, or when their spans are identical.  Touching (``a.end == b.start``)
is not an overlap.
"""

from __future__ import annotations

from strata.core.models import AddressSpace, Region, RegionKind, RegionTree

ROOT_NAMES: dict[AddressSpace, str] = {
    AddressSpace.FILE: "ELF file",
    AddressSpace.VIRTUAL: "Virtual memory",
}


class RegionDraft:
    """Mutable region used while extracting and resolving.

    Drafts are consumed by :func:`resolve_overlaps` (which re-parents and
    grows them) and turned into immutable :class:`Region` objects by
    :meth:`freeze`.
    """
    __slots__ = ("name", "start", "end", "kind", "notes", "children", "_grown")

    def __init__(
        self,
        name: str,
        start: int,
        end: int,
        kind: RegionKind,
        notes: list[tuple[str, str]] | None = None,
    ) -> None:
        self.name: str = name
        self.start: int = start
        self.end: int = end
        self.kind: RegionKind = kind
        self.notes: list[tuple[str, str]] = list(notes or [])
        self.children: list[RegionDraft] = []
        self._grown: bool = False

    def __repr__(self) -> str:
        return f"RegionDraft({self.name!r}, 0x{self.start:x}, 0x{self.end:x})"

    @property
    def length(self) -> int:
        return self.end - self.start

    def adopt(self, child: RegionDraft) -> None:
        """Append *child* and grow to cover it if it pokes out."""
        self.children.append(child)
        start = min(self.start, child.start)
        end = max(self.end, child.end)
        if (start, end) != (self.start, self.end):
            if not self._grown:
                self.notes.append((
                    "resolved",
                    f"grown from [0x{self.start:x}, 0x{self.end:x}) "
                    f"to contain overlapping {child.name}",
                ))
                self._grown = True
            self.start, self.end = start, end

    def freeze(self) -> Region:
        """Build the immutable region, children sorted ascending by start.

        Post-order over an explicit stack: a draft is frozen once all of
        its children have been.
        """
        frozen: dict[int, Region] = {}
        stack: list[tuple[RegionDraft, bool]] = [(self, False)]
        while stack:
            draft, children_done = stack.pop()
            if not children_done:
                stack.append((draft, True))
                stack.extend((child, False) for child in draft.children)
                continue
            ordered = sorted(draft.children, key=lambda c: c.start)
            frozen[id(draft)] = Region(
                name=draft.name,
                start=draft.start,
                end=draft.end,
                kind=draft.kind,
                notes=tuple(draft.notes),
                children=tuple(frozen.pop(id(child)) for child in ordered),
            )
        return frozen.pop(id(self))


def _strictly_inside(point: int, region: RegionDraft) -> bool:
    return region.start < point < region.end


def regions_overlap(a: RegionDraft, b: RegionDraft) -> bool:
    """Whether *a* and *b* must be merged into one subtree."""
    if a.start == b.start and a.end == b.end:
        return True
    return (
        _strictly_inside(a.start, b)
        or _strictly_inside(a.end, b)
        or _strictly_inside(b.start, a)
        or _strictly_inside(b.end, a)
    )


def _first_overlap(regions: list[RegionDraft]) -> tuple[int, int] | None:
    for i in range(len(regions)):
        for j in range(i + 1, len(regions)):
            if regions_overlap(regions[i], regions[j]):
                return i, j
    return None


def _merge_siblings(regions: list[RegionDraft]) -> list[RegionDraft]:
    """One level of the fixed-point loop; children are left untouched."""
    pending = list(regions)
    while True:
        pair = _first_overlap(pending)
        if pair is None:
            break
        i, j = pair
        first, second = pending[i], pending[j]
        # Ties go to the earlier region
        if second.length > first.length:
            parent, child = second, first
        else:
            parent, child = first, second
        del pending[j]
        parent.adopt(child)
        pending[i] = parent
    return pending


def resolve_overlaps(regions: list[RegionDraft]) -> list[RegionDraft]:
    """Merge overlapping drafts until every pair is disjoint or nested.

    The drafts are modified in place (re-parented, possibly grown); the
    returned list holds the surviving top-level drafts in scan order.
    Every sibling list in the result is resolved, at any depth.
    """
    top = _merge_siblings(regions)
    stack = list(top)
    while stack:
        region = stack.pop()
        if region.children:
            region.children = _merge_siblings(region.children)
            stack.extend(region.children)
    return top


def build_region_tree(
    regions: list[RegionDraft],
    total_size: int,
    space: AddressSpace,
) -> RegionTree:
    """Resolve *regions* and wrap them in a root spanning ``[0, total_size)``.

    Args:
        regions: Flat drafts for one address space, in extraction order.
        total_size: Size of the space; the root's end.
        space: Which address space the drafts belong to.

    Returns:
        An immutable :class:`RegionTree`.
    """
    root = RegionDraft(ROOT_NAMES[space], 0, total_size, RegionKind.SYNTHETIC_ROOT)
    root.children = resolve_overlaps(regions)
    return RegionTree(space=space, root=root.freeze(), total_size=total_size)
