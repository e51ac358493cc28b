"""Tests for the process-listing parser."""

import pytest

from pstree_prof.errors import MalformedTableError
from pstree_prof.parser import PS_COLUMNS, parse_columns, parse_process_line, parse_process_table

from conftest import HEADER, ps_line


class TestParseColumns:
    """Tests for parse_columns."""

    def test_padded_line(self):
        """Test padding between columns is skipped."""
        line = "alice   1234   1      1000   /bin/sh -c foo"

        assert parse_columns(line, PS_COLUMNS) == ["alice", "1234", "1", "1000", "/bin/sh -c foo"]

    def test_last_column_keeps_internal_spaces(self):
        """Test the last column is taken verbatim, spaces included."""
        line = "a b c   with   lots  of   spaces "

        assert parse_columns(line, ["x", "y", "z", "rest"]) == ["a", "b", "c", "with   lots  of   spaces "]

    def test_leading_spaces(self):
        """Test right-aligned first columns are not read as empty fields."""
        line = "   42     1 init"

        assert parse_columns(line, ["pid", "ppid", "command"]) == ["42", "1", "init"]

    def test_single_column_is_greedy(self):
        """Test a single column captures the whole line."""
        assert parse_columns("  hello world", ["only"]) == ["hello world"]

    def test_missing_trailing_columns_are_empty(self):
        """Test columns the line never reaches are empty strings."""
        assert parse_columns("alice 12", PS_COLUMNS) == ["alice", "12", "", "", ""]

    def test_empty_line(self):
        """Test an empty line yields only empty fields."""
        assert parse_columns("", ["a", "b"]) == ["", ""]

    def test_last_column_empty_after_padding(self):
        """Test trailing padding before a missing last column yields an empty field."""
        assert parse_columns("a b   ", ["a", "b", "c"]) == ["a", "b", ""]

    def test_no_columns(self):
        """Test an empty column list is rejected."""
        with pytest.raises(ValueError):
            parse_columns("a b", [])

    @pytest.mark.parametrize(
        "fields",
        [
            ["root", "1", "0", "1", "/sbin/init splash"],
            ["www-data", "31337", "2048", "31337", "nginx: worker process"],
            ["bob", "7", "6", "5", "python  -c  'print(1)'"],
        ],
    )
    def test_rejoin_preserves_fields(self, fields):
        """Test joining fields with single spaces and parsing them again is lossless."""
        assert parse_columns(" ".join(fields), PS_COLUMNS) == fields


class TestParseProcessLine:
    """Tests for parse_process_line."""

    def test_parse_line(self):
        """Test a padded ps line becomes a ProcessRecord."""
        record = parse_process_line("alice   1234   1      1000   /bin/sh -c foo")

        assert record.user == "alice"
        assert record.pid == 1234
        assert record.ppid == 1
        assert record.pgid == 1000
        assert record.command == "/bin/sh -c foo"
        assert record.children == []

    def test_parse_formatted_line(self):
        """Test a line in real ps layout parses."""
        record = parse_process_line(ps_line("root", 1, 0, 1, "/sbin/init"))

        assert (record.pid, record.ppid, record.pgid) == (1, 0, 1)

    @pytest.mark.parametrize(
        "line",
        [
            "alice abc 1 1000 /bin/sh",
            "alice 1234 x 1000 /bin/sh",
            "alice 1234 1 1.5 /bin/sh",
            "alice 1234",
        ],
    )
    def test_malformed_numeric_field(self, line):
        """Test non-integer pid, ppid or pgid fields are fatal."""
        with pytest.raises(MalformedTableError):
            parse_process_line(line)

    def test_malformed_error_is_value_error(self):
        """Test MalformedTableError can be caught as ValueError."""
        with pytest.raises(ValueError, match="invalid pid"):
            parse_process_line("alice pid 1 1 cmd")


class TestParseProcessTable:
    """Tests for parse_process_table."""

    def test_header_and_trailing_blank_skipped(self):
        """Test the header line and trailing newline are discarded."""
        text = "\n".join([HEADER, ps_line("root", 1, 0, 1, "init"), ps_line("root", 2, 1, 2, "sh")]) + "\n"

        records = parse_process_table(text)

        assert [r.pid for r in records] == [1, 2]

    def test_header_only(self):
        """Test a table with only a header yields no records."""
        assert parse_process_table(HEADER + "\n") == []

    def test_empty_text(self):
        """Test empty output yields no records."""
        assert parse_process_table("") == []

    def test_header_is_not_parsed(self):
        """Test the non-numeric header never triggers a parse error."""
        parse_process_table(HEADER)
