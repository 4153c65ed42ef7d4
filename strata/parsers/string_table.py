"""
ELF String Table Resolver
==========================

Resolves ``sh_name``-style offsets against a raw string-table blob
(``.shstrtab``, ``.strtab`` ...).  String tables are a sequence of
NUL-terminated byte strings; an offset may point at the start of any
string *or into the middle of one* (suffix sharing), so lookup is a
plain "read until NUL" from the offset.

Corrupt offsets are common in damaged or hand-crafted binaries.  A single
bad name must never abort the parse, so :meth:`StringTable.resolve`
degrades to :data:`INVALID_NAME_PLACEHOLDER`.
"""

from __future__ import annotations

from strata.errors import StringTableOutOfBounds

INVALID_NAME_PLACEHOLDER: str = "<invalid name offset>"


class StringTable:
    """Read-only view over a NUL-separated string blob.

    Usage::

        table = StringTable(b"\\0.text\\0.data\\0")
        table.lookup(1)     # ".text"
        table.resolve(99)   # "<invalid name offset>"
    """

    __slots__ = ("_blob",)

    def __init__(self, blob: bytes) -> None:
        self._blob: bytes = bytes(blob)

    def __len__(self) -> int:
        return len(self._blob)

    def lookup(self, offset: int) -> str:
        """Return the string starting at *offset*.

        The string runs up to, not including, the next NUL byte.  When no
        terminator follows, the rest of the blob is the name.

        Raises:
            StringTableOutOfBounds: If *offset* lies past the blob.
        """
        if offset < 0 or offset > len(self._blob):
            raise StringTableOutOfBounds(offset, len(self._blob))
        end = self._blob.find(b"\x00", offset)
        if end == -1:
            end = len(self._blob)
        return self._blob[offset:end].decode("utf-8", errors="replace")

    def resolve(self, offset: int) -> str:
        """Like :meth:`lookup` but returns a placeholder instead of raising."""
        try:
            return self.lookup(offset)
        except StringTableOutOfBounds:
            return INVALID_NAME_PLACEHOLDER
