"""Tests for the ELF header and table parser."""

import struct

import pytest

from elf_builder import (
    PF_R,
    PF_X,
    SHF_ALLOC,
    SHF_EXECINSTR,
    Section,
    Segment,
    build_elf,
    sample_sections,
)
from strata.errors import BadMagic, MalformedTableBounds, ParseError, TruncatedHeader
from strata.parsers.elf_parser import (
    ELFParser,
    check_bounds,
    parse_header,
    section_flags_str,
    section_type_name,
    segment_flags_str,
    segment_type_name,
)


class TestParseHeader:
    """Tests for identification and header decoding."""

    def test_parse_elf64_little_endian(self):
        """Test decoding a 64-bit little-endian header."""
        header = parse_header(build_elf(sample_sections()))

        assert header.is_64bit
        assert header.endian == "<"
        assert header.e_ehsize == 64
        assert header.e_shentsize == 64
        assert header.e_shnum == 5
        assert header.e_shstrndx == 4
        assert header.e_shoff == 120

    def test_parse_elf32_big_endian(self):
        """Test decoding a 32-bit big-endian header."""
        header = parse_header(build_elf(sample_sections(), bits=32, little=False))

        assert not header.is_64bit
        assert header.endian == ">"
        assert header.e_ehsize == 52
        assert header.e_shentsize == 40
        assert header.e_shnum == 5

    def test_bad_magic(self):
        """Test that a non-ELF signature is rejected."""
        with pytest.raises(BadMagic, match="Magic ELF bytes were wrong"):
            parse_header(b"MZ\x90\x00" + b"\x00" * 60)

    def test_buffer_shorter_than_magic(self):
        """Test that a 3-byte buffer is a signature failure."""
        with pytest.raises(BadMagic):
            parse_header(b"\x7fEL")

    def test_truncated_identification(self):
        """Test a buffer that stops inside e_ident."""
        with pytest.raises(TruncatedHeader) as excinfo:
            parse_header(b"\x7fELF\x02\x01")

        assert excinfo.value.expected == 16
        assert excinfo.value.actual == 6

    def test_truncated_elf64_header(self):
        """Test a 64-bit header cut off after 20 bytes."""
        data = build_elf(sample_sections())[:20]

        with pytest.raises(TruncatedHeader) as excinfo:
            parse_header(data)

        assert excinfo.value.expected == 64
        assert excinfo.value.actual == 20

    def test_truncated_elf32_header(self):
        """Test a 32-bit header needs 52 bytes, not 64."""
        data = build_elf(sample_sections(), bits=32)

        parse_header(data[:52])
        with pytest.raises(TruncatedHeader) as excinfo:
            parse_header(data[:51])
        assert excinfo.value.expected == 52

    def test_unknown_class_byte(self):
        """Test that an ELF class other than 1 or 2 is rejected."""
        data = bytearray(build_elf(sample_sections()))
        data[4] = 3

        with pytest.raises(BadMagic, match="class"):
            parse_header(bytes(data))

    def test_unknown_data_encoding(self):
        """Test that a byte order other than 1 or 2 is rejected."""
        data = bytearray(build_elf(sample_sections()))
        data[5] = 0

        with pytest.raises(BadMagic, match="encoding"):
            parse_header(bytes(data))

    def test_errors_share_base_class(self):
        """Test that every fatal error is a ParseError."""
        assert issubclass(BadMagic, ParseError)
        assert issubclass(TruncatedHeader, ParseError)
        assert issubclass(MalformedTableBounds, ParseError)


class TestTables:
    """Tests for section and program header tables."""

    def test_sections_decoded_in_order(self):
        """Test section header fields for the sample image."""
        parser = ELFParser(build_elf(sample_sections())).parse()
        sections = parser.sections

        assert [sh.index for sh in sections] == [0, 1, 2, 3, 4]
        assert sections[0].sh_type == 0
        assert sections[1].sh_offset == 64
        assert sections[1].sh_size == 16
        assert sections[1].sh_addr == 0x1000
        assert sections[2].sh_offset == 80
        assert sections[3].sh_size == 32
        assert sections[4].sh_offset == 88
        assert sections[4].sh_size == 28

    def test_section_names(self):
        """Test resolving names through the section-name table."""
        parser = ELFParser(build_elf(sample_sections())).parse()
        names = [parser.names.resolve(sh.sh_name) for sh in parser.sections]

        assert names == ["", ".text", ".data", ".bss", ".shstrtab"]

    def test_section_predicates(self):
        """Test has_file_bits and is_allocated."""
        parser = ELFParser(build_elf(sample_sections())).parse()
        null, text, data, bss, shstrtab = parser.sections

        assert not null.has_file_bits
        assert text.has_file_bits and text.is_allocated
        assert data.is_allocated
        assert not bss.has_file_bits and bss.is_allocated
        assert shstrtab.has_file_bits and not shstrtab.is_allocated

    def test_elf32_big_endian_sections(self):
        """Test that 32-bit big-endian records decode to the same values."""
        parser = ELFParser(build_elf(sample_sections(), bits=32, little=False)).parse()

        text = parser.sections[1]
        assert text.sh_offset == 52
        assert text.sh_size == 16
        assert text.sh_addr == 0x1000
        assert text.sh_flags == SHF_ALLOC | SHF_EXECINSTR
        assert parser.names.resolve(text.sh_name) == ".text"

    def test_program_headers_elf64(self):
        """Test program header decoding, flags second in ELF64."""
        seg = Segment(flags=PF_R | PF_X, offset=0, vaddr=0x400000,
                      filesz=0x200, memsz=0x300)
        parser = ELFParser(build_elf(sample_sections(), [seg])).parse()

        assert parser.header.e_phoff == 64
        (ph,) = parser.program_headers
        assert ph.p_type == 1
        assert ph.p_flags == PF_R | PF_X
        assert ph.p_vaddr == 0x400000
        assert ph.p_filesz == 0x200
        assert ph.p_memsz == 0x300

    def test_program_headers_elf32(self):
        """Test program header decoding, flags seventh in ELF32."""
        seg = Segment(flags=PF_R, offset=0x34, vaddr=0x8048000,
                      filesz=0x20, memsz=0x20)
        parser = ELFParser(build_elf([], [seg], bits=32)).parse()

        (ph,) = parser.program_headers
        assert ph.p_flags == PF_R
        assert ph.p_offset == 0x34
        assert ph.p_vaddr == 0x8048000
        assert ph.p_align == 0x1000

    def test_no_sections(self):
        """Test an image without a section header table."""
        parser = ELFParser(build_elf([], shstrtab=False)).parse()

        # The NULL entry is always emitted by the builder
        assert len(parser.sections) == 1
        assert parser.names is None

    def test_section_table_past_end(self):
        """Test a section header table cut off by the end of the buffer."""
        data = build_elf(sample_sections())[:-10]

        with pytest.raises(MalformedTableBounds) as excinfo:
            ELFParser(data).parse()

        assert excinfo.value.table == "section header table"
        assert excinfo.value.buffer_length == len(data)

    def test_program_table_past_end(self):
        """Test a program header count larger than the buffer allows."""
        data = bytearray(build_elf(sample_sections(), [Segment()]))
        struct.pack_into("<H", data, 56, 200)  # e_phnum

        with pytest.raises(MalformedTableBounds, match="program header table"):
            ELFParser(bytes(data)).parse()

    def test_entry_size_smaller_than_record(self):
        """Test that a tiny e_shentsize cannot cause short reads."""
        data = bytearray(build_elf(sample_sections()))
        struct.pack_into("<H", data, 58, 8)  # e_shentsize

        with pytest.raises(MalformedTableBounds, match="e_shentsize"):
            ELFParser(bytes(data)).parse()

    def test_shstrndx_out_of_range(self):
        """Test e_shstrndx naming a section that does not exist."""
        data = build_elf(sample_sections(), shstrndx=9)

        with pytest.raises(MalformedTableBounds, match="e_shstrndx 9"):
            ELFParser(data).parse()

    def test_name_table_contents_out_of_range(self):
        """Test a name table whose contents lie past the buffer."""
        sections = sample_sections() + [
            Section(".strtab", 3, offset=0x10000, size=0x40),
        ]
        data = build_elf(sections, shstrndx=4)

        with pytest.raises(MalformedTableBounds, match="section name string table"):
            ELFParser(data).parse()

    def test_input_not_modified(self):
        """Test that parsing leaves the input bytes alone."""
        data = bytearray(build_elf(sample_sections()))
        before = bytes(data)

        ELFParser(data).parse()

        assert bytes(data) == before

    def test_header_requires_parse(self):
        """Test accessing the header before parse() fails loudly."""
        with pytest.raises(RuntimeError):
            ELFParser(b"").header


class TestBinaryInfo:
    """Tests for identification summary."""

    def test_binary_info(self):
        """Test the BinaryInfo built from the header."""
        info = ELFParser(build_elf(sample_sections(), entry=0x1234)).parse().get_binary_info()

        assert info.bits == 64
        assert info.endian == "little"
        assert info.machine == "x86_64"
        assert info.elf_type.startswith("EXEC")
        assert info.entry_point == 0x1234

    def test_unknown_machine(self):
        """Test that unknown machine numbers are still reported."""
        info = ELFParser(build_elf([], machine=0x9999)).parse().get_binary_info()

        assert info.machine == f"unknown({0x9999})"


class TestDecoding:
    """Tests for type and flag decoding helpers."""

    def test_section_type_names(self):
        assert section_type_name(1) == "PROGBITS"
        assert section_type_name(0x6FFFFFF6) == "GNU_HASH"
        assert section_type_name(0x12345) == "0x12345"

    def test_section_flags(self):
        assert section_flags_str(0) == "NONE"
        assert section_flags_str(0x6) == "ALLOC|EXECINSTR"
        assert section_flags_str(0x3 | 0x10000) == "WRITE|ALLOC|0x10000"

    def test_segment_helpers(self):
        assert segment_type_name(1) == "LOAD"
        assert segment_type_name(0x6474E551) == "GNU_STACK"
        assert segment_flags_str(0x5) == "R|X"
        assert segment_flags_str(0x7) == "R|W|X"
        assert segment_flags_str(0) == "NONE"

    def test_check_bounds(self):
        check_bounds("blob", 0, 10, 10)
        with pytest.raises(MalformedTableBounds):
            check_bounds("blob", 5, 6, 10)
        with pytest.raises(MalformedTableBounds):
            check_bounds("blob", -1, 1, 10)
