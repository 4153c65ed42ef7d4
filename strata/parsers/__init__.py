"""ELF container parsing: headers, header tables and string tables."""

from strata.parsers.elf_parser import ELFParser
from strata.parsers.string_table import StringTable

__all__ = ["ELFParser", "StringTable"]
