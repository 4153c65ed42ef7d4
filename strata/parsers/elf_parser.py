"""
ELF Container Parser
=====================

Manual struct-based parser for the Executable and Linkable Format (ELF).
Both 32-bit (ELF32) and 64-bit (ELF64) images in either byte order are
supported.

Everything the header says about where tables live is untrusted: every
offset/count/entry-size combination is checked against the buffer before
a single byte is unpacked, and any violation raises
:class:`~strata.errors.MalformedTableBounds` instead of reading out of
range.

The parser extracts:
    - ELF header (class, byte order, type, machine, table locations)
    - Program headers / segments
    - Section headers
    - The section-name string table (``e_shstrndx``)

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linkable Format (ELF) Specification, Version 1.2.
    - System V Application Binary Interface, Edition 4.1.
    - Linux man page: elf(5).
"""

from __future__ import annotations

import struct

from strata.core.models import BinaryInfo
from strata.errors import BadMagic, MalformedTableBounds, TruncatedHeader
from strata.parsers.string_table import StringTable


# ---------------------------------------------------------------------------
# ELF Constants
# ---------------------------------------------------------------------------

ELF_MAGIC: bytes = b"\x7fELF"
EI_NIDENT: int = 16

ELFCLASS32: int = 1
ELFCLASS64: int = 2

ELFDATA2LSB: int = 1  # Little-endian
ELFDATA2MSB: int = 2  # Big-endian

# Fixed header sizes (Elf32_Ehdr / Elf64_Ehdr)
EHDR32_SIZE: int = 52
EHDR64_SIZE: int = 64

# ELF type
ET_NONE: int = 0
ET_REL: int = 1
ET_EXEC: int = 2
ET_DYN: int = 3
ET_CORE: int = 4

_ET_NAMES: dict[int, str] = {
    ET_NONE: "NONE",
    ET_REL: "REL (Relocatable)",
    ET_EXEC: "EXEC (Executable)",
    ET_DYN: "DYN (Shared object)",
    ET_CORE: "CORE (Core dump)",
}

# Machine architectures
EM_NONE: int = 0
EM_SPARC: int = 2
EM_386: int = 3
EM_MIPS: int = 8
EM_PPC: int = 20
EM_PPC64: int = 21
EM_ARM: int = 40
EM_X86_64: int = 62
EM_AARCH64: int = 183
EM_RISCV: int = 243

_EM_NAMES: dict[int, str] = {
    EM_NONE: "None",
    EM_SPARC: "SPARC",
    EM_386: "x86",
    EM_MIPS: "MIPS",
    EM_PPC: "PowerPC",
    EM_PPC64: "PowerPC64",
    EM_ARM: "ARM",
    EM_X86_64: "x86_64",
    EM_AARCH64: "AArch64",
    EM_RISCV: "RISC-V",
}

# Section header types
SHT_NULL: int = 0
SHT_PROGBITS: int = 1
SHT_SYMTAB: int = 2
SHT_STRTAB: int = 3
SHT_RELA: int = 4
SHT_HASH: int = 5
SHT_DYNAMIC: int = 6
SHT_NOTE: int = 7
SHT_NOBITS: int = 8
SHT_REL: int = 9
SHT_SHLIB: int = 10
SHT_DYNSYM: int = 11
SHT_INIT_ARRAY: int = 14
SHT_FINI_ARRAY: int = 15
SHT_PREINIT_ARRAY: int = 16
SHT_GROUP: int = 17
SHT_SYMTAB_SHNDX: int = 18
SHT_GNU_HASH: int = 0x6FFFFFF6
SHT_GNU_VERDEF: int = 0x6FFFFFFD
SHT_GNU_VERNEED: int = 0x6FFFFFFE
SHT_GNU_VERSYM: int = 0x6FFFFFFF

_SHT_NAMES: dict[int, str] = {
    SHT_NULL: "NULL",
    SHT_PROGBITS: "PROGBITS",
    SHT_SYMTAB: "SYMTAB",
    SHT_STRTAB: "STRTAB",
    SHT_RELA: "RELA",
    SHT_HASH: "HASH",
    SHT_DYNAMIC: "DYNAMIC",
    SHT_NOTE: "NOTE",
    SHT_NOBITS: "NOBITS",
    SHT_REL: "REL",
    SHT_SHLIB: "SHLIB",
    SHT_DYNSYM: "DYNSYM",
    SHT_INIT_ARRAY: "INIT_ARRAY",
    SHT_FINI_ARRAY: "FINI_ARRAY",
    SHT_PREINIT_ARRAY: "PREINIT_ARRAY",
    SHT_GROUP: "GROUP",
    SHT_SYMTAB_SHNDX: "SYMTAB_SHNDX",
    SHT_GNU_HASH: "GNU_HASH",
    SHT_GNU_VERDEF: "GNU_VERDEF",
    SHT_GNU_VERNEED: "GNU_VERNEED",
    SHT_GNU_VERSYM: "GNU_VERSYM",
}

# Section types whose sh_link names another section worth showing
LINKED_SECTION_TYPES: frozenset[int] = frozenset({
    SHT_DYNAMIC,
    SHT_DYNSYM,
    SHT_HASH,
    SHT_GNU_HASH,
    SHT_REL,
    SHT_RELA,
})

# Section header flags
SHF_WRITE: int = 0x1
SHF_ALLOC: int = 0x2
SHF_EXECINSTR: int = 0x4
SHF_MERGE: int = 0x10
SHF_STRINGS: int = 0x20
SHF_INFO_LINK: int = 0x40
SHF_LINK_ORDER: int = 0x80
SHF_OS_NONCONFORMING: int = 0x100
SHF_GROUP: int = 0x200
SHF_TLS: int = 0x400
SHF_COMPRESSED: int = 0x800
SHF_EXCLUDE: int = 0x80000000

_SHF_NAMES: tuple[tuple[int, str], ...] = (
    (SHF_WRITE, "WRITE"),
    (SHF_ALLOC, "ALLOC"),
    (SHF_EXECINSTR, "EXECINSTR"),
    (SHF_MERGE, "MERGE"),
    (SHF_STRINGS, "STRINGS"),
    (SHF_INFO_LINK, "INFO_LINK"),
    (SHF_LINK_ORDER, "LINK_ORDER"),
    (SHF_OS_NONCONFORMING, "OS_NONCONFORMING"),
    (SHF_GROUP, "GROUP"),
    (SHF_TLS, "TLS"),
    (SHF_COMPRESSED, "COMPRESSED"),
    (SHF_EXCLUDE, "EXCLUDE"),
)

# Program header types
PT_NULL: int = 0
PT_LOAD: int = 1
PT_DYNAMIC: int = 2
PT_INTERP: int = 3
PT_NOTE: int = 4
PT_SHLIB: int = 5
PT_PHDR: int = 6
PT_TLS: int = 7
PT_GNU_EH_FRAME: int = 0x6474E550
PT_GNU_STACK: int = 0x6474E551
PT_GNU_RELRO: int = 0x6474E552
PT_GNU_PROPERTY: int = 0x6474E553

_PT_NAMES: dict[int, str] = {
    PT_NULL: "NULL",
    PT_LOAD: "LOAD",
    PT_DYNAMIC: "DYNAMIC",
    PT_INTERP: "INTERP",
    PT_NOTE: "NOTE",
    PT_SHLIB: "SHLIB",
    PT_PHDR: "PHDR",
    PT_TLS: "TLS",
    PT_GNU_EH_FRAME: "GNU_EH_FRAME",
    PT_GNU_STACK: "GNU_STACK",
    PT_GNU_RELRO: "GNU_RELRO",
    PT_GNU_PROPERTY: "GNU_PROPERTY",
}

# Program header flags
PF_X: int = 0x1  # Execute
PF_W: int = 0x2  # Write
PF_R: int = 0x4  # Read

# Special section indices
SHN_UNDEF: int = 0


# ---------------------------------------------------------------------------
# Parsed structures
# ---------------------------------------------------------------------------

class ElfHeader:
    """Decoded ELF file header."""
    __slots__ = (
        "ei_class", "ei_data", "ei_version", "ei_osabi",
        "e_type", "e_machine", "e_version", "e_entry",
        "e_phoff", "e_shoff", "e_flags", "e_ehsize",
        "e_phentsize", "e_phnum", "e_shentsize", "e_shnum",
        "e_shstrndx",
    )

    def __init__(self) -> None:
        self.ei_class: int = 0
        self.ei_data: int = 0
        self.ei_version: int = 0
        self.ei_osabi: int = 0
        self.e_type: int = 0
        self.e_machine: int = 0
        self.e_version: int = 0
        self.e_entry: int = 0
        self.e_phoff: int = 0
        self.e_shoff: int = 0
        self.e_flags: int = 0
        self.e_ehsize: int = 0
        self.e_phentsize: int = 0
        self.e_phnum: int = 0
        self.e_shentsize: int = 0
        self.e_shnum: int = 0
        self.e_shstrndx: int = 0

    @property
    def is_64bit(self) -> bool:
        return self.ei_class == ELFCLASS64

    @property
    def endian(self) -> str:
        """``struct`` byte-order prefix for this image."""
        return "<" if self.ei_data == ELFDATA2LSB else ">"


class SectionHeader:
    """Decoded section header entry plus its position in the table."""
    __slots__ = (
        "index", "sh_name", "sh_type", "sh_flags", "sh_addr",
        "sh_offset", "sh_size", "sh_link", "sh_info",
        "sh_addralign", "sh_entsize",
    )

    def __init__(self, index: int = 0) -> None:
        self.index: int = index
        self.sh_name: int = 0
        self.sh_type: int = 0
        self.sh_flags: int = 0
        self.sh_addr: int = 0
        self.sh_offset: int = 0
        self.sh_size: int = 0
        self.sh_link: int = 0
        self.sh_info: int = 0
        self.sh_addralign: int = 0
        self.sh_entsize: int = 0

    @property
    def has_file_bits(self) -> bool:
        """Whether the section's contents are stored in the file."""
        return self.sh_type not in (SHT_NULL, SHT_NOBITS)

    @property
    def is_allocated(self) -> bool:
        """Whether the section occupies memory at load time."""
        return bool(self.sh_flags & SHF_ALLOC)


class ProgramHeader:
    """Decoded program header (segment) entry."""
    __slots__ = (
        "index", "p_type", "p_flags", "p_offset", "p_vaddr",
        "p_paddr", "p_filesz", "p_memsz", "p_align",
    )

    def __init__(self, index: int = 0) -> None:
        self.index: int = index
        self.p_type: int = 0
        self.p_flags: int = 0
        self.p_offset: int = 0
        self.p_vaddr: int = 0
        self.p_paddr: int = 0
        self.p_filesz: int = 0
        self.p_memsz: int = 0
        self.p_align: int = 0


# ---------------------------------------------------------------------------
# Bounds checking
# ---------------------------------------------------------------------------

def check_bounds(
    table: str,
    offset: int,
    length: int,
    buffer_length: int,
    detail: str = "",
) -> None:
    """Raise :class:`MalformedTableBounds` unless ``[offset, offset+length)``
    lies inside a buffer of *buffer_length* bytes."""
    if offset < 0 or length < 0 or offset + length > buffer_length:
        raise MalformedTableBounds(table, offset, length, buffer_length, detail)


# ---------------------------------------------------------------------------
# Header parsing
# ---------------------------------------------------------------------------

def parse_header(data: bytes) -> ElfHeader:
    """Validate the identification bytes and decode the ELF header.

    Args:
        data: Complete file contents.

    Returns:
        The decoded :class:`ElfHeader`.

    Raises:
        BadMagic: Signature missing/wrong, or unknown class / byte order.
        TruncatedHeader: Buffer shorter than the fixed header layout.
    """
    if len(data) < len(ELF_MAGIC) or data[:4] != ELF_MAGIC:
        raise BadMagic()
    if len(data) < EI_NIDENT:
        raise TruncatedHeader(EI_NIDENT, len(data))

    h = ElfHeader()
    h.ei_class = data[4]
    h.ei_data = data[5]
    h.ei_version = data[6]
    h.ei_osabi = data[7]

    if h.ei_class not in (ELFCLASS32, ELFCLASS64):
        raise BadMagic(f"Unsupported ELF class byte: {h.ei_class}")
    if h.ei_data not in (ELFDATA2LSB, ELFDATA2MSB):
        raise BadMagic(f"Unsupported ELF data encoding byte: {h.ei_data}")

    if h.is_64bit:
        # ELF64 header: offsets 16..63
        required = EHDR64_SIZE
        fmt = f"{h.endian}HHIQQQIHHHHHH"
    else:
        # ELF32 header: offsets 16..51
        required = EHDR32_SIZE
        fmt = f"{h.endian}HHIIIIIHHHHHH"

    if len(data) < required:
        raise TruncatedHeader(required, len(data))

    (
        h.e_type, h.e_machine, h.e_version, h.e_entry,
        h.e_phoff, h.e_shoff, h.e_flags, h.e_ehsize,
        h.e_phentsize, h.e_phnum, h.e_shentsize, h.e_shnum,
        h.e_shstrndx,
    ) = struct.unpack_from(fmt, data, EI_NIDENT)
    return h


# ---------------------------------------------------------------------------
# Table parsing
# ---------------------------------------------------------------------------

def parse_section_headers(data: bytes, header: ElfHeader) -> list[SectionHeader]:
    """Decode every entry of the section header table.

    Raises:
        MalformedTableBounds: If the table extends past the end of *data*,
            or its entries are smaller than one record.
    """
    if header.e_shnum == 0:
        return []

    check_bounds(
        "section header table",
        header.e_shoff,
        header.e_shnum * header.e_shentsize,
        len(data),
    )

    if header.is_64bit:
        # Elf64_Shdr: 64 bytes
        fmt = f"{header.endian}IIQQQQIIQQ"
    else:
        # Elf32_Shdr: 40 bytes
        fmt = f"{header.endian}IIIIIIIIII"
    record_size = struct.calcsize(fmt)

    if header.e_shentsize < record_size:
        raise MalformedTableBounds(
            "section header table", header.e_shoff,
            header.e_shnum * header.e_shentsize, len(data),
            detail=f"e_shentsize {header.e_shentsize} < record size {record_size}",
        )

    sections: list[SectionHeader] = []
    for i in range(header.e_shnum):
        offset = header.e_shoff + i * header.e_shentsize
        sh = SectionHeader(i)
        (
            sh.sh_name, sh.sh_type, sh.sh_flags, sh.sh_addr,
            sh.sh_offset, sh.sh_size, sh.sh_link, sh.sh_info,
            sh.sh_addralign, sh.sh_entsize,
        ) = struct.unpack_from(fmt, data, offset)
        sections.append(sh)
    return sections


def parse_program_headers(data: bytes, header: ElfHeader) -> list[ProgramHeader]:
    """Decode every entry of the program header table.

    Raises:
        MalformedTableBounds: If the table extends past the end of *data*,
            or its entries are smaller than one record.
    """
    if header.e_phnum == 0:
        return []

    check_bounds(
        "program header table",
        header.e_phoff,
        header.e_phnum * header.e_phentsize,
        len(data),
    )

    fmt = f"{header.endian}IIQQQQQQ" if header.is_64bit else f"{header.endian}IIIIIIII"
    record_size = struct.calcsize(fmt)

    if header.e_phentsize < record_size:
        raise MalformedTableBounds(
            "program header table", header.e_phoff,
            header.e_phnum * header.e_phentsize, len(data),
            detail=f"e_phentsize {header.e_phentsize} < record size {record_size}",
        )

    segments: list[ProgramHeader] = []
    for i in range(header.e_phnum):
        offset = header.e_phoff + i * header.e_phentsize
        ph = ProgramHeader(i)
        fields = struct.unpack_from(fmt, data, offset)
        if header.is_64bit:
            # Elf64_Phdr: 56 bytes, flags second
            (
                ph.p_type, ph.p_flags, ph.p_offset, ph.p_vaddr,
                ph.p_paddr, ph.p_filesz, ph.p_memsz, ph.p_align,
            ) = fields
        else:
            # Elf32_Phdr: 32 bytes, flags seventh
            (
                ph.p_type, ph.p_offset, ph.p_vaddr, ph.p_paddr,
                ph.p_filesz, ph.p_memsz, ph.p_flags, ph.p_align,
            ) = fields
        segments.append(ph)
    return segments


def load_name_table(
    data: bytes,
    header: ElfHeader,
    sections: list[SectionHeader],
) -> StringTable | None:
    """Return the section-name string table, or ``None`` when the header
    declares none (``e_shstrndx == SHN_UNDEF``).

    Raises:
        MalformedTableBounds: If ``e_shstrndx`` names no existing section,
            or that section's contents lie outside *data*.
    """
    index = header.e_shstrndx
    if index == SHN_UNDEF or not sections:
        return None
    if index >= len(sections):
        raise MalformedTableBounds(
            "section name string table",
            header.e_shoff + index * header.e_shentsize,
            header.e_shentsize,
            len(data),
            detail=f"e_shstrndx {index} but only {len(sections)} section headers",
        )
    strtab = sections[index]
    check_bounds(
        "section name string table", strtab.sh_offset, strtab.sh_size, len(data)
    )
    return StringTable(data[strtab.sh_offset:strtab.sh_offset + strtab.sh_size])


# ---------------------------------------------------------------------------
# Decoding helpers
# ---------------------------------------------------------------------------

def section_type_name(sh_type: int) -> str:
    """Symbolic name of a section type, hex for unknown values."""
    return _SHT_NAMES.get(sh_type, f"0x{sh_type:x}")


def section_flags_str(flags: int) -> str:
    """Decode a section flag mask, e.g. ``"WRITE|ALLOC"``.

    Unknown bits are appended as a single hex value; no bits at all gives
    ``"NONE"``.
    """
    parts: list[str] = []
    known = 0
    for bit, name in _SHF_NAMES:
        known |= bit
        if flags & bit:
            parts.append(name)
    unknown = flags & ~known
    if unknown:
        parts.append(f"0x{unknown:x}")
    return "|".join(parts) if parts else "NONE"


def segment_type_name(p_type: int) -> str:
    return _PT_NAMES.get(p_type, f"0x{p_type:x}")


def segment_flags_str(flags: int) -> str:
    """Decode program header flags, e.g. ``"R|X"``, ``"NONE"`` when empty."""
    parts: list[str] = []
    if flags & PF_R:
        parts.append("R")
    if flags & PF_W:
        parts.append("W")
    if flags & PF_X:
        parts.append("X")
    return "|".join(parts) if parts else "NONE"


# ---------------------------------------------------------------------------
# ELF Parser
# ---------------------------------------------------------------------------

class ELFParser:
    """Decode the header, both header tables and the section-name table.

    Usage::

        parser = ELFParser(raw_bytes)
        parser.parse()              # raises ParseError on bad input
        info = parser.get_binary_info()
        for sh in parser.sections:
            print(parser.names.resolve(sh.sh_name))
    """

    def __init__(self, data: bytes) -> None:
        """Initialise the parser with raw binary data.

        Args:
            data: Complete ELF file contents as bytes.
        """
        self._data: bytes = data
        self._header: ElfHeader | None = None
        self._sections: list[SectionHeader] = []
        self._program_headers: list[ProgramHeader] = []
        self._names: StringTable | None = None

    # ------------------------------------------------------------------ #
    #  Public interface
    # ------------------------------------------------------------------ #

    def parse(self) -> ELFParser:
        """Parse the ELF image.

        Returns:
            ``self``, for chaining.

        Raises:
            ParseError: Any fatal container problem.
        """
        self._header = parse_header(self._data)
        self._program_headers = parse_program_headers(self._data, self._header)
        self._sections = parse_section_headers(self._data, self._header)
        self._names = load_name_table(self._data, self._header, self._sections)
        return self

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def header(self) -> ElfHeader:
        if self._header is None:
            raise RuntimeError("ELFParser.parse() has not been called")
        return self._header

    @property
    def sections(self) -> list[SectionHeader]:
        return list(self._sections)

    @property
    def program_headers(self) -> list[ProgramHeader]:
        return list(self._program_headers)

    @property
    def names(self) -> StringTable | None:
        """The section-name string table, if the image has one."""
        return self._names

    def get_binary_info(self) -> BinaryInfo:
        """Build a :class:`BinaryInfo` from the parsed ELF header."""
        h = self.header
        return BinaryInfo(
            bits=64 if h.is_64bit else 32,
            endian="little" if h.endian == "<" else "big",
            elf_type=_ET_NAMES.get(h.e_type, f"0x{h.e_type:x}"),
            machine=_EM_NAMES.get(h.e_machine, f"unknown({h.e_machine})"),
            entry_point=h.e_entry,
        )
