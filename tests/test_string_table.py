"""Tests for the NUL-separated string table."""

import pytest

from strata.errors import StringTableOutOfBounds
from strata.parsers.string_table import INVALID_NAME_PLACEHOLDER, StringTable


@pytest.fixture
def table():
    return StringTable(b"\0.text\0.data\0")


class TestStringTable:
    """Tests for StringTable lookups."""

    def test_lookup_names(self, table):
        """Test lookups at the start of each name."""
        assert table.lookup(1) == ".text"
        assert table.lookup(7) == ".data"

    def test_lookup_suffix(self, table):
        """Test that offsets into the middle of a name return its tail."""
        assert table.lookup(2) == "text"

    def test_lookup_zero_is_empty(self, table):
        assert table.lookup(0) == ""

    def test_lookup_at_end_is_empty(self, table):
        """Test that the offset equal to the table size is still valid."""
        assert table.lookup(len(table)) == ""

    def test_lookup_past_end_raises(self, table):
        """Test that offsets past the table raise a non-fatal error."""
        with pytest.raises(StringTableOutOfBounds) as excinfo:
            table.lookup(len(table) + 1)

        assert excinfo.value.offset == len(table) + 1
        assert excinfo.value.table_size == len(table)

    def test_missing_terminator(self):
        """Test that an unterminated final name runs to the end."""
        assert StringTable(b"\0abc").lookup(1) == "abc"

    def test_invalid_utf8_is_replaced(self):
        """Test that undecodable bytes do not abort the lookup."""
        assert StringTable(b"\0\xff.x\0").lookup(1) == "�.x"

    def test_resolve_returns_placeholder(self, table):
        assert table.resolve(1000) == INVALID_NAME_PLACEHOLDER
        assert table.resolve(1) == ".text"
