"""
Strata Data Models
===================

Pydantic models for the region trees produced by Strata.

A :class:`Region` is a named, contiguous byte interval with descriptive
notes and owned children.  Each loaded binary yields two independent
:class:`RegionTree` instances -- one over file offsets, one over
virtual (load-time) addresses -- wrapped in an :class:`ExecutableFile`.

All models are frozen and use tuples for their sequences: once a tree is
built nobody mutates it.  View state such as "collapsed" flags or the
camera transform lives in whatever renders the tree, never here.

References:
    - TIS Committee. (1995). Executable and Linkable Format (ELF) Specification.
    - Pydantic v2 documentation. https://docs.pydantic.dev/latest/
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class AddressSpace(str, enum.Enum):
    """The coordinate system a region tree is expressed in."""
    FILE = "file"
    VIRTUAL = "virtual"


class RegionKind(str, enum.Enum):
    """What part of the container a region was derived from."""
    HEADER = "header"
    PROGRAM_HEADER_ENTRY = "program-header-entry"
    SECTION_HEADER_ENTRY = "section-header-entry"
    SECTION_CONTENT = "section-content"
    SYNTHETIC_ROOT = "synthetic-root"


# ---------------------------------------------------------------------------
# Regions
# ---------------------------------------------------------------------------

class Region(BaseModel):
    """A named byte interval ``[start, end)`` and the regions nested in it.

    Attributes:
        name: Display name (from the string table, or synthesized).
        start: First byte of the interval.
        end: One past the last byte; never less than *start*.
        kind: Which container structure produced the region.
        notes: Ordered ``(label, value)`` pairs -- decoded type, flags,
            address, alignment, cross-references and diagnostics.
        children: Nested regions, disjoint and ascending by ``start``.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    start: int = Field(ge=0)
    end: int = Field(ge=0)
    kind: RegionKind
    notes: tuple[tuple[str, str], ...] = ()
    children: tuple[Region, ...] = ()

    @model_validator(mode="after")
    def _check_span(self) -> Region:
        if self.end < self.start:
            raise ValueError(
                f"region {self.name!r} ends (0x{self.end:x}) "
                f"before it starts (0x{self.start:x})"
            )
        return self

    @property
    def size(self) -> int:
        """Length of the interval in bytes."""
        return self.end - self.start

    def note(self, label: str) -> str | None:
        """Return the first note value stored under *label*, if any."""
        for key, value in self.notes:
            if key == label:
                return value
        return None


class RegionTree(BaseModel):
    """One address space of a binary, as a single rooted region tree.

    Attributes:
        space: File offsets or virtual addresses.
        root: Synthetic region spanning ``[0, total_size)``.
        total_size: Size of the addressable space.  For file space this is
            the buffer length; for virtual space the highest end address
            of any loaded section.
    """
    model_config = ConfigDict(frozen=True)

    space: AddressSpace
    root: Region
    total_size: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Loaded binary
# ---------------------------------------------------------------------------

class BinaryInfo(BaseModel):
    """Identification data decoded from the ELF header.

    Attributes:
        bits: Address width (32 or 64).
        endian: Byte order (``"little"`` or ``"big"``).
        elf_type: Object file type (EXEC, DYN, REL ...).
        machine: Target architecture name.
        entry_point: Virtual address of the entry point.
    """
    model_config = ConfigDict(frozen=True)

    bits: int = 0
    endian: str = "little"
    elf_type: str = ""
    machine: str = "unknown"
    entry_point: int = 0


class ExecutableFile(BaseModel):
    """A successfully parsed binary: both region trees plus identification.

    Attributes:
        name: Display name handed in by whoever acquired the bytes.
        size: Length of the input buffer.
        info: Decoded header identification.
        file_tree: Region tree over file offsets.
        virtual_tree: Region tree over virtual addresses.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    size: int = Field(ge=0)
    info: BinaryInfo = Field(default_factory=BinaryInfo)
    file_tree: RegionTree
    virtual_tree: RegionTree

    def tree(self, space: AddressSpace) -> RegionTree:
        """Return the tree for *space*."""
        if space is AddressSpace.FILE:
            return self.file_tree
        return self.virtual_tree


Region.model_rebuild()
