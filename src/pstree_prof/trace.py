"""Chrome trace-event export of process lifetimes.

The resulting JSON loads in chrome://tracing or Perfetto. Each process
becomes one complete ("X") event on a track grouped by process group.
"""

import json
import sys
from collections.abc import Sequence
from typing import Any, TextIO

from pstree_prof.aggregate import LifecycleKind, starts_and_ends
from pstree_prof.models import Snapshot


def _micros(seconds: float) -> int:
    return int(round(seconds * 1_000_000))


def build_trace(samples: Sequence[Snapshot]) -> dict[str, Any]:
    """Build a trace-event document from a sequence of snapshots."""
    trace_events: list[dict[str, Any]] = []
    if not samples:
        return {"traceEvents": trace_events, "displayTimeUnit": "ms"}

    origin = samples[0].timestamp
    started: dict[int, int] = {}

    for event in starts_and_ends(samples):
        if event.event is LifecycleKind.STARTED:
            started[event.pid] = event.sample
            continue

        first = started.pop(event.pid)
        proc = samples[first].processes[event.pid]
        begin = samples[first].timestamp
        end = samples[event.sample].timestamp
        trace_events.append(
            {
                "name": event.command,
                "ph": "X",
                "pid": proc.pgid,
                "tid": event.pid,
                "ts": _micros(begin - origin),
                "dur": _micros(end - begin),
                "args": {
                    "ppid": proc.ppid,
                    "user": proc.user,
                    "start_sample": first,
                    "end_sample": event.sample,
                },
            }
        )

    return {"traceEvents": trace_events, "displayTimeUnit": "ms"}


def format_trace(samples: Sequence[Snapshot]) -> str:
    """Serialize the trace document as indented JSON."""
    return json.dumps(build_trace(samples), indent=2) + "\n"


def print_trace(samples: Sequence[Snapshot], out: TextIO | None = None) -> None:
    """Write the trace report to stdout."""
    stream = out if out is not None else sys.stdout
    stream.write(format_trace(samples))
