"""
Region Extractor
================

Turns a parsed ELF image into two flat lists of :class:`RegionDraft`
objects, one per address space.  Nothing here decides nesting; that is
the resolver's job.

File space, in this order:
    - the ELF header itself
    - one region per program-header table entry
    - one region per section-header table entry
    - the contents of every section that stores bytes in the file

Virtual space:
    - the load-time image of every ``SHF_ALLOC`` section

The order above feeds the resolver's tie-break, so it must not change.

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linkable Format (ELF) Specification, Version 1.2.
"""

from __future__ import annotations

from typing import Optional

from shared.logger import StrataLogger
from strata.core.models import RegionKind
from strata.core.resolver import RegionDraft
from strata.errors import StringTableOutOfBounds
from strata.parsers.elf_parser import (
    ELFParser,
    LINKED_SECTION_TYPES,
    ProgramHeader,
    SectionHeader,
    check_bounds,
    section_flags_str,
    section_type_name,
    segment_flags_str,
    segment_type_name,
)
from strata.parsers.string_table import INVALID_NAME_PLACEHOLDER

UNNAMED_SECTION: str = "Unnamed section"
WIDENED_NOTE: tuple[str, str] = ("display", "zero-length range widened to 1 byte")


class RegionExtractor:
    """Build region drafts from an already parsed :class:`ELFParser`.

    Usage::

        parser = ELFParser(data).parse()
        extractor = RegionExtractor(parser)
        file_drafts = extractor.file_regions()
        virtual_drafts = extractor.virtual_regions()

    Section names are resolved once per extractor, so a bad name offset
    is logged a single time even though it shows up in both spaces.
    """

    def __init__(
        self,
        parser: ELFParser,
        logger: Optional[StrataLogger] = None,
    ) -> None:
        self._parser = parser
        self._logger = logger or StrataLogger("extractor")
        self._names: list[tuple[str, list[tuple[str, str]]]] | None = None

    # ------------------------------------------------------------------ #
    #  Public interface
    # ------------------------------------------------------------------ #

    def file_regions(self) -> list[RegionDraft]:
        """Drafts for the file-offset space, in extraction order.

        Raises:
            MalformedTableBounds: If the header region or any section's
                contents fall outside the buffer.
        """
        data_len = len(self._parser.data)
        header = self._parser.header
        drafts: list[RegionDraft] = []

        check_bounds("ELF header", 0, header.e_ehsize, data_len)
        drafts.append(self._make_draft(
            "ELF Header", 0, header.e_ehsize, RegionKind.HEADER,
            limit=data_len,
        ))

        for ph in self._parser.program_headers:
            start = header.e_phoff + ph.index * header.e_phentsize
            drafts.append(self._make_draft(
                f"Program Header Segment #{ph.index}",
                start,
                start + header.e_phentsize,
                RegionKind.PROGRAM_HEADER_ENTRY,
                notes=self._segment_notes(ph),
                limit=data_len,
            ))

        sections = self._parser.sections
        for sh in sections:
            name, name_notes = self._section_name(sh.index)
            start = header.e_shoff + sh.index * header.e_shentsize
            drafts.append(self._make_draft(
                f"ELF Section Header for {name}",
                start,
                start + header.e_shentsize,
                RegionKind.SECTION_HEADER_ENTRY,
                notes=[("index", str(sh.index))] + name_notes,
                limit=data_len,
            ))

        for sh in sections:
            if not sh.has_file_bits:
                continue
            name, name_notes = self._section_name(sh.index)
            check_bounds(
                f"contents of section #{sh.index} ({name})",
                sh.sh_offset, sh.sh_size, data_len,
            )
            drafts.append(self._make_draft(
                name,
                sh.sh_offset,
                sh.sh_offset + sh.sh_size,
                RegionKind.SECTION_CONTENT,
                notes=self._section_notes(sh) + name_notes,
                limit=data_len,
            ))

        self._logger.debug(f"Extracted {len(drafts)} file-space regions")
        return drafts

    def virtual_regions(self) -> list[RegionDraft]:
        """Drafts for the virtual-address space (allocated sections only)."""
        drafts: list[RegionDraft] = []
        for sh in self._parser.sections:
            if not sh.is_allocated:
                continue
            name, name_notes = self._section_name(sh.index)
            drafts.append(self._make_draft(
                name,
                sh.sh_addr,
                sh.sh_addr + sh.sh_size,
                RegionKind.SECTION_CONTENT,
                notes=self._section_notes(sh) + name_notes,
            ))

        self._logger.debug(f"Extracted {len(drafts)} virtual-space regions")
        return drafts

    # ------------------------------------------------------------------ #
    #  Names
    # ------------------------------------------------------------------ #

    def _section_name(self, index: int) -> tuple[str, list[tuple[str, str]]]:
        """Display name of section *index* and any ``name error`` note."""
        if self._names is None:
            self._names = [
                self._resolve_name(sh) for sh in self._parser.sections
            ]
        name, notes = self._names[index]
        return name, list(notes)

    def _resolve_name(self, sh: SectionHeader) -> tuple[str, list[tuple[str, str]]]:
        table = self._parser.names
        if table is None:
            return UNNAMED_SECTION, []
        try:
            name = table.lookup(sh.sh_name)
        except StringTableOutOfBounds as exc:
            self._logger.warning(
                f"Section #{sh.index}: {exc}",
                section=sh.index,
                name_offset=sh.sh_name,
            )
            return INVALID_NAME_PLACEHOLDER, [("name error", str(exc))]
        return (name or UNNAMED_SECTION), []

    # ------------------------------------------------------------------ #
    #  Notes
    # ------------------------------------------------------------------ #

    @staticmethod
    def _segment_notes(ph: ProgramHeader) -> list[tuple[str, str]]:
        return [
            ("type", segment_type_name(ph.p_type)),
            ("flags", segment_flags_str(ph.p_flags)),
            ("file offset", f"0x{ph.p_offset:x}"),
            ("virtual address", f"0x{ph.p_vaddr:x}"),
            ("file size", f"0x{ph.p_filesz:x}"),
            ("memory size", f"0x{ph.p_memsz:x}"),
            ("alignment", str(ph.p_align)),
        ]

    def _section_notes(self, sh: SectionHeader) -> list[tuple[str, str]]:
        notes = [
            ("type", section_type_name(sh.sh_type)),
            ("flags", section_flags_str(sh.sh_flags)),
            ("address", f"0x{sh.sh_addr:x}"),
            ("alignment", str(sh.sh_addralign)),
        ]
        if sh.sh_type in LINKED_SECTION_TYPES:
            if sh.sh_link < len(self._parser.sections):
                linked, _ = self._section_name(sh.sh_link)
            else:
                linked = f"<invalid section index {sh.sh_link}>"
            notes.append(("linked section", linked))
        return notes

    # ------------------------------------------------------------------ #
    #  Drafts
    # ------------------------------------------------------------------ #

    @staticmethod
    def _make_draft(
        name: str,
        start: int,
        end: int,
        kind: RegionKind,
        notes: list[tuple[str, str]] | None = None,
        limit: int | None = None,
    ) -> RegionDraft:
        """Create a draft, widening an empty range to one byte.

        When *limit* is given and the empty range sits exactly at it, the
        byte before is used instead so the draft stays inside ``[0, limit)``.
        """
        notes = list(notes or [])
        if start == end:
            if limit is not None and start >= limit and start > 0:
                start -= 1
            else:
                end += 1
            notes.append(WIDENED_NOTE)
        return RegionDraft(name, start, end, kind, notes)


def extract_regions(
    data: bytes,
    logger: Optional[StrataLogger] = None,
) -> tuple[list[RegionDraft], list[RegionDraft]]:
    """Parse *data* and return ``(file_drafts, virtual_drafts)``.

    Raises:
        ParseError: Any fatal container problem.
    """
    parser = ELFParser(data).parse()
    extractor = RegionExtractor(parser, logger)
    return extractor.file_regions(), extractor.virtual_regions()
