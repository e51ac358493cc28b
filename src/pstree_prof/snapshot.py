"""Process-table acquisition and subtree snapshots."""

import logging
import subprocess
import time
from collections import deque
from collections.abc import Callable, Sequence
from types import MappingProxyType

from pstree_prof.errors import AcquisitionError
from pstree_prof.models import ProcessRecord, ProcessTable, Snapshot
from pstree_prof.parser import PS_COLUMNS, parse_process_table

log = logging.getLogger(__name__)

Acquire = Callable[[], ProcessTable]


def acquire_process_table(columns: Sequence[str] = PS_COLUMNS) -> ProcessTable:
    """
    Run `ps` once and capture its listing.

    Raises:
        AcquisitionError: If `ps` cannot be started or exits with an error.
    """
    args = ["ps", "-axwwo", ",".join(columns)]
    try:
        proc = subprocess.Popen(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as e:
        raise AcquisitionError(f"could not start `ps`: {e}") from e

    out, err = proc.communicate()
    captured_at = time.time()
    if proc.returncode != 0:
        raise AcquisitionError(
            f"`ps` exited with status {proc.returncode}: {err.strip()}"
        )
    if not out:
        raise AcquisitionError("expected at least one line of output from `ps`")

    return ProcessTable(text=out, helper_pid=proc.pid, captured_at=captured_at)


def link_children(procs: dict[int, ProcessRecord]) -> None:
    """Record every process's pid in its parent's children list."""
    for pid, proc in procs.items():
        parent = procs.get(proc.ppid)
        if parent is not None and parent is not proc:
            parent.children.append(pid)


def collect_subtree(procs: dict[int, ProcessRecord], root: int) -> dict[int, ProcessRecord]:
    """
    Breadth-first walk of the process tree starting at root.

    Each pid is visited once, so cycles or repeated children in a malformed
    table cannot loop forever. Returns an empty dict if root is not present.
    """
    visited: dict[int, ProcessRecord] = {}
    queue = deque([root])
    while queue:
        pid = queue.popleft()
        if pid in visited or pid not in procs:
            continue
        proc = procs[pid]
        visited[pid] = proc
        queue.extend(proc.children)
    return visited


def build_snapshot(table: ProcessTable, target_pid: int) -> Snapshot:
    """Build the snapshot of target_pid's subtree from one process table."""
    procs: dict[int, ProcessRecord] = {}
    for proc in parse_process_table(table.text):
        if proc.pid == table.helper_pid:
            # the `ps` run itself is not part of the supervised tree
            continue
        procs[proc.pid] = proc

    link_children(procs)
    subtree = collect_subtree(procs, target_pid)
    return Snapshot(timestamp=table.captured_at, processes=MappingProxyType(subtree))


class SnapshotBuilder:
    """Takes snapshots of one target process's subtree."""

    def __init__(self, target_pid: int, acquire: Acquire = acquire_process_table) -> None:
        """
        Initialize the SnapshotBuilder.

        Args:
            target_pid: Root of the subtree to capture.
            acquire: Callable producing a fresh ProcessTable on each call.
        """
        self._target_pid = target_pid
        self._acquire = acquire

    @property
    def target_pid(self) -> int:
        """Get the pid whose subtree is captured."""
        return self._target_pid

    def take(self) -> Snapshot:
        """Acquire the process table and build one snapshot."""
        snapshot = build_snapshot(self._acquire(), self._target_pid)
        if not snapshot.processes:
            log.debug("target pid %d not found in process table", self._target_pid)
        return snapshot
