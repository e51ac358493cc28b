"""Shared fixtures for pstree-prof tests."""

import logging

import pytest

from pstree_prof.models import ProcessRecord, ProcessTable, Snapshot

HEADER = "USER       PID  PPID  PGID COMMAND"


def ps_line(user: str, pid: int, ppid: int, pgid: int, command: str) -> str:
    """Format one line the way `ps -axwwo user,pid,ppid,pgid,command` does."""
    return f"{user:<8} {pid:>5} {ppid:>5} {pgid:>5} {command}"


def ps_table(*lines: str, helper_pid: int = 99999, captured_at: float = 0.0) -> ProcessTable:
    """Build a ProcessTable with a header and a trailing newline."""
    text = "\n".join([HEADER, *lines]) + "\n"
    return ProcessTable(text=text, helper_pid=helper_pid, captured_at=captured_at)


def make_snapshot(*pids: int, timestamp: float = 0.0, commands: dict[int, str] | None = None) -> Snapshot:
    """Build a snapshot containing the given pids."""
    commands = commands or {}
    processes = {
        pid: ProcessRecord(
            user="alice",
            pid=pid,
            ppid=0,
            pgid=pids[0] if pids else pid,
            command=commands.get(pid, f"cmd-{pid}"),
        )
        for pid in pids
    }
    return Snapshot(timestamp=timestamp, processes=processes)


@pytest.fixture
def three_samples() -> list[Snapshot]:
    """S0={1,2}, S1={1,2,3}, S2={1,3}."""
    return [
        make_snapshot(1, 2, timestamp=10.0),
        make_snapshot(1, 2, 3, timestamp=10.5),
        make_snapshot(1, 3, timestamp=11.0),
    ]


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo logger changes made by the CLI between tests."""
    logger = logging.getLogger("pstree_prof")
    handlers, level, propagate = logger.handlers[:], logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
