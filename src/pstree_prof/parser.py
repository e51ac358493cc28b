"""Parsing of whitespace-padded process listings."""

from collections.abc import Sequence

from pstree_prof.errors import MalformedTableError
from pstree_prof.models import ProcessRecord

PS_COLUMNS: tuple[str, ...] = ("user", "pid", "ppid", "pgid", "command")
NUMERIC_COLUMNS = ("pid", "ppid", "pgid")


def parse_columns(line: str, columns: Sequence[str]) -> list[str]:
    """
    Split one line of a padded table into len(columns) fields.

    Fields are runs of non-space characters separated by any amount of
    padding. The last column is greedy: from its first non-space character
    to the end of the line is taken verbatim, spaces included. Columns the
    line never reaches are returned as empty strings.

    Args:
        line: One line of table text, without its newline.
        columns: Names of the expected columns, in order.

    Returns:
        The field values, one per column.
    """
    if not columns:
        raise ValueError("at least one column is required")

    last = len(columns) - 1
    fields = [""] * len(columns)
    col = 0
    start: int | None = None  # index where the current field opened

    for i, char in enumerate(line):
        if char == " ":
            if start is not None:
                # first space after a run of non-spaces closes the field
                fields[col] = line[start:i]
                col += 1
                start = None
        elif start is None:
            if col == last:
                fields[col] = line[i:]
                return fields
            start = i

    if start is not None:
        fields[col] = line[start:]
    return fields


def _strict_int(value: str, column: str, line: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise MalformedTableError(
            f"invalid {column} {value!r} in process table line {line!r}"
        ) from None


def parse_process_line(line: str) -> ProcessRecord:
    """Parse one `ps` output line into a ProcessRecord."""
    fields = dict(zip(PS_COLUMNS, parse_columns(line, PS_COLUMNS)))
    numbers = {name: _strict_int(fields[name], name, line) for name in NUMERIC_COLUMNS}
    return ProcessRecord(
        user=fields["user"],
        pid=numbers["pid"],
        ppid=numbers["ppid"],
        pgid=numbers["pgid"],
        command=fields["command"],
    )


def parse_process_table(text: str) -> list[ProcessRecord]:
    """
    Parse a full `ps` listing.

    The first line is a header and is discarded, as are blank lines
    (including the trailing one left by the final newline).
    """
    lines = text.split("\n")[1:]
    return [parse_process_line(line) for line in lines if line.strip()]
