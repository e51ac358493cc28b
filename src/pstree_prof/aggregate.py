"""Reports summarising a sequence of snapshots."""

import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from pstree_prof.models import Snapshot


@dataclass(slots=True, frozen=True)
class OccurrenceCount:
    """Number of snapshots a process appeared in."""

    pid: int
    count: int
    command: str


class LifecycleKind(Enum):
    """Kinds of lifecycle events."""

    STARTED = "started"
    ENDED = "ended"


@dataclass(slots=True, frozen=True)
class LifecycleEvent:
    """A process starting or ending, anchored to a sample index."""

    event: LifecycleKind
    pid: int
    sample: int
    command: str


def count_occurrences(samples: Iterable[Snapshot]) -> list[OccurrenceCount]:
    """
    Count in how many snapshots each pid appears.

    The command shown for a pid is the one from its latest observation.
    Rows are sorted by count, highest first. Equal counts keep the order in
    which the pids were first seen; sort on pid yourself if you need a
    deterministic order.
    """
    counts: dict[int, int] = {}
    commands: dict[int, str] = {}
    for snapshot in samples:
        for pid, proc in snapshot.processes.items():
            counts[pid] = counts.get(pid, 0) + 1
            commands[pid] = proc.command

    rows = [
        OccurrenceCount(pid=pid, count=count, command=commands[pid])
        for pid, count in counts.items()
        if count > 0
    ]
    rows.sort(key=lambda row: row.count, reverse=True)
    return rows


def starts_and_ends(samples: Sequence[Snapshot]) -> list[LifecycleEvent]:
    """
    Diff consecutive snapshots into started/ended events.

    A pid is "started" at the first sample it appears in and "ended" at the
    first later sample it is missing from. Every pid still alive at the last
    sample is ended there as well, after the pids that actually disappeared,
    so each started event has exactly one matching ended event.

    Note that an ended event at the last sample index does not mean the
    process exited: sampling may simply have stopped while it was running.
    """
    events: list[LifecycleEvent] = []
    alive: dict[int, str] = {}
    last_index = len(samples) - 1

    for index, snapshot in enumerate(samples):
        for pid, proc in snapshot.processes.items():
            if pid not in alive:
                alive[pid] = proc.command
                events.append(LifecycleEvent(LifecycleKind.STARTED, pid, index, proc.command))

        gone = [pid for pid in alive if pid not in snapshot.processes]
        if index == last_index:
            gone += [pid for pid in alive if pid in snapshot.processes]
        for pid in gone:
            events.append(LifecycleEvent(LifecycleKind.ENDED, pid, index, alive.pop(pid)))

    return events


def format_counts(rows: Iterable[OccurrenceCount]) -> str:
    """Render occurrence counts as a tab-separated report."""
    lines = ["count\tcommand"]
    lines.extend(f"{row.count}\t{row.command}" for row in rows)
    return "\n".join(lines) + "\n"


def format_starts_and_ends(events: Iterable[LifecycleEvent]) -> str:
    """Render lifecycle events as a tab-separated report."""
    lines = ["event\tpid\tsample\tcmd"]
    lines.extend(
        f"{event.event.value}\t{event.pid}\t{event.sample}\t{event.command}"
        for event in events
    )
    return "\n".join(lines) + "\n"


def print_counts(samples: Iterable[Snapshot], out: TextIO | None = None) -> None:
    """Write the count report to stdout."""
    stream = out if out is not None else sys.stdout
    stream.write(format_counts(count_occurrences(samples)))


def print_starts_and_ends(samples: Sequence[Snapshot], out: TextIO | None = None) -> None:
    """Write the lifecycle report to stderr."""
    stream = out if out is not None else sys.stderr
    stream.write(format_starts_and_ends(starts_and_ends(samples)))
