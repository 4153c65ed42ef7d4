"""
Strata Error Taxonomy
======================

Exceptions raised while turning an ELF image into region trees.

:class:`ParseError` and its subclasses are fatal: the load attempt is
abandoned and no tree is produced.  :class:`StringTableOutOfBounds` is
raised by the string-table resolver but is always caught by the region
extractor, which records it as a note on the affected region and keeps
going.  :class:`AcquisitionError` covers the step *before* parsing --
getting the bytes in the first place.
"""

from __future__ import annotations


class StrataError(Exception):
    """Base class for every exception raised by the Strata package."""


class ParseError(StrataError):
    """A fatal problem with the container that prevents building trees."""


class BadMagic(ParseError):
    """The leading identification bytes are missing or not ELF."""

    def __init__(self, message: str = "Magic ELF bytes were wrong.") -> None:
        super().__init__(message)


class TruncatedHeader(ParseError):
    """The buffer ends before the fixed-size ELF header does.

    Attributes:
        expected: Number of bytes the header layout requires.
        actual: Number of bytes available.
    """

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"ELF header truncated: need {expected} bytes, buffer has {actual}"
        )


class MalformedTableBounds(ParseError):
    """A header-derived offset/length would reach outside the buffer.

    Attributes:
        table: Human-readable name of the structure being read.
        offset: Start offset the structure claims.
        length: Length in bytes the structure claims.
        buffer_length: Actual size of the input buffer.
    """

    def __init__(
        self,
        table: str,
        offset: int,
        length: int,
        buffer_length: int,
        detail: str = "",
    ) -> None:
        self.table = table
        self.offset = offset
        self.length = length
        self.buffer_length = buffer_length
        message = (
            f"{table} out of bounds: offset 0x{offset:x}, length 0x{length:x}, "
            f"buffer is 0x{buffer_length:x} bytes"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class StringTableOutOfBounds(StrataError):
    """A name offset points past the end of its string table.

    Non-fatal: callers substitute a placeholder name.

    Attributes:
        offset: The offending name offset.
        table_size: Size of the string table in bytes.
    """

    def __init__(self, offset: int, table_size: int) -> None:
        self.offset = offset
        self.table_size = table_size
        super().__init__(
            f"name offset 0x{offset:x} outside string table of {table_size} bytes"
        )


class AcquisitionError(StrataError):
    """The input bytes could not be obtained (missing, too large, unreadable)."""
