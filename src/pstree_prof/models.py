"""Data models for pstree-prof."""

import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

from pstree_prof.errors import SequenceFrozenError


@dataclass(slots=True)
class ProcessRecord:
    """One process observed in a single snapshot."""

    user: str
    pid: int
    ppid: int  # 0 when the process has no parent
    pgid: int
    command: str
    # Filled in while the subtree is reconstructed, never by the parser
    children: list[int] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class ProcessTable:
    """Raw output of one process-listing run."""

    text: str
    helper_pid: int  # pid of the `ps` process that produced the text
    captured_at: float


@dataclass(slots=True, frozen=True)
class Snapshot:
    """
    Immutable capture of the target process's subtree.

    Snapshots built from a process table hold a read-only mapping. The
    records in it are shared with the tree reconstruction and are not
    copied, so treat them as read-only too.
    """

    timestamp: float
    processes: Mapping[int, ProcessRecord]

    def __len__(self) -> int:
        return len(self.processes)

    def __contains__(self, pid: object) -> bool:
        return pid in self.processes


class SampleSequence:
    """
    Append-only, ordered history of snapshots for one supervised command.

    A single sampler thread appends while the command runs. The driver calls
    freeze() once sampling has stopped; from then on the sequence is
    read-only and any further append raises SequenceFrozenError.
    """

    def __init__(self) -> None:
        """Initialize an empty SampleSequence."""
        self._snapshots: list[Snapshot] = []
        self._lock = threading.Lock()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        """Check if the sequence no longer accepts snapshots."""
        return self._frozen

    def append(self, snapshot: Snapshot) -> int:
        """Append a snapshot and return its sample index."""
        with self._lock:
            if self._frozen:
                raise SequenceFrozenError("sample sequence is frozen")
            self._snapshots.append(snapshot)
            return len(self._snapshots) - 1

    def freeze(self) -> None:
        """Stop accepting snapshots."""
        with self._lock:
            self._frozen = True

    def snapshots(self) -> tuple[Snapshot, ...]:
        """Get a stable copy of the snapshots taken so far."""
        with self._lock:
            return tuple(self._snapshots)

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)

    def __getitem__(self, index: int) -> Snapshot:
        with self._lock:
            return self._snapshots[index]

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(self.snapshots())
