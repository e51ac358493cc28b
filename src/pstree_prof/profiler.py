"""Sampling driver for pstree-prof."""

import logging
import shlex
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import psutil

from pstree_prof.aggregate import print_counts, print_starts_and_ends
from pstree_prof.errors import ConfigError, LaunchError, UnknownFormatError
from pstree_prof.models import SampleSequence
from pstree_prof.snapshot import Acquire, SnapshotBuilder, acquire_process_table
from pstree_prof.trace import print_trace

log = logging.getLogger(__name__)

DEFAULT_FREQUENCY = 100


class OutputFormat(Enum):
    """Reports that can be produced once the command exits."""

    COUNT = "count"
    STARTS_AND_ENDS = "starts_and_ends"
    TRACE = "trace"

    @classmethod
    def parse(cls, value: str) -> "OutputFormat":
        """Look up a format by its selector string."""
        try:
            return cls(value)
        except ValueError:
            raise UnknownFormatError(f"unrecognized output format: {value}") from None


@dataclass(slots=True, frozen=True)
class ProfilerConfig:
    """What to run and how to sample it."""

    command: str
    output_format: OutputFormat = OutputFormat.COUNT
    frequency: int = DEFAULT_FREQUENCY  # samples per second

    def __post_init__(self) -> None:
        if not self.command.strip():
            raise ConfigError("a non-empty command must be specified")
        if self.frequency <= 0:
            raise ConfigError(f"sampling frequency must be positive, got {self.frequency}")
        try:
            shlex.split(self.command)
        except ValueError as e:
            raise ConfigError(f"could not parse command: {e}") from None

    @property
    def argv(self) -> list[str]:
        """Get the command split into program and arguments."""
        return shlex.split(self.command)

    @property
    def period_ms(self) -> int:
        """Get the sampling period in whole milliseconds."""
        return 1000 // self.frequency

    @property
    def period(self) -> float:
        """Get the sampling period in seconds."""
        return self.period_ms / 1000


class TreeSampler:
    """
    Samples a process subtree on a fixed period.

    Runs in a separate daemon thread and is the only writer of its
    SampleSequence. An exception raised while sampling stops the loop; it
    is kept in `error` and `on_error` is called so the driver can give up.
    """

    def __init__(
        self,
        builder: SnapshotBuilder,
        sequence: SampleSequence,
        period: float,
        on_error: Callable[[], None] | None = None,
    ) -> None:
        """
        Initialize the TreeSampler.

        Args:
            builder: Produces one snapshot per call to take().
            sequence: Sequence the snapshots are appended to.
            period: Delay between two samples (in seconds).
            on_error: Called once if sampling fails.
        """
        self._builder = builder
        self._sequence = sequence
        self._period = period
        self._on_error = on_error
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.error: Exception | None = None

    @property
    def period(self) -> float:
        """Get the sampling period."""
        return self._period

    @property
    def is_running(self) -> bool:
        """Check if the sampler thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sampling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sample_loop,
            daemon=True,
            name="TreeSampler",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the sampling thread.

        Once this returns with the thread joined, no further snapshot will
        be appended.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _sample_loop(self) -> None:
        """Main sampling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                snapshot = self._builder.take()
                index = self._sequence.append(snapshot)
            except Exception as e:
                self.error = e
                if self._on_error is not None:
                    self._on_error()
                return

            log.debug("sample %d: %d processes", index, len(snapshot))
            self._stop_event.wait(timeout=self._period)


class Profiler:
    """
    Runs a command and samples its process tree until it exits.

    The command's exit and any sampling failure both set a single
    "finished" event. The driver then stops and joins the sampler before
    freezing the sequence, so the report always sees every snapshot that
    was taken and nothing is appended while it is being read.
    """

    def __init__(
        self,
        config: ProfilerConfig,
        acquire: Acquire = acquire_process_table,
        on_finished: Callable[[SampleSequence], None] | None = None,
    ) -> None:
        """
        Initialize the Profiler.

        Args:
            config: Command, report format and sampling frequency.
            acquire: Produces the process table for each sample.
            on_finished: Called exactly once with the frozen sequence after
                the command exits. Defaults to printing the configured report.
        """
        self._config = config
        self._acquire = acquire
        self._on_finished = on_finished if on_finished is not None else self.report
        self._finished = threading.Event()
        self._process: psutil.Popen | None = None
        self._returncode: int | None = None

    @property
    def config(self) -> ProfilerConfig:
        """Get the profiler configuration."""
        return self._config

    @property
    def returncode(self) -> int | None:
        """Get the supervised command's exit status, once it has exited."""
        return self._returncode

    def run(self) -> SampleSequence:
        """
        Run the command, sample it, and hand the result to on_finished.

        Returns:
            The frozen sequence of snapshots.

        Raises:
            LaunchError: If the command cannot be started.
            ProfilerError: If sampling failed; the command is terminated.
        """
        if self._config.period_ms <= 0:
            log.warning("sampling period rounds down to 0ms, sampling continuously")
        log.info("sampling every %dms", self._config.period_ms)

        # fresh state per run so a previous command cannot finish this one
        finished = self._finished = threading.Event()
        self._returncode = None

        process = self._launch()
        sequence = SampleSequence()
        sampler = TreeSampler(
            SnapshotBuilder(process.pid, self._acquire),
            sequence,
            self._config.period,
            on_error=finished.set,
        )
        watcher = threading.Thread(
            target=self._watch,
            args=(process, finished),
            daemon=True,
            name="CommandWatcher",
        )

        try:
            sampler.start()
            watcher.start()
            finished.wait()
        finally:
            sampler.stop(timeout=None)
            sequence.freeze()
            if sampler.error is not None or self._returncode is None:
                self._terminate(process)

        if sampler.error is not None:
            raise sampler.error

        log.info("collected %d samples", len(sequence))
        self._on_finished(sequence)
        return sequence

    def report(self, sequence: SampleSequence) -> None:
        """Print the configured report for a finished sequence."""
        samples = sequence.snapshots()
        fmt = self._config.output_format
        if fmt is OutputFormat.COUNT:
            print_counts(samples)
        elif fmt is OutputFormat.STARTS_AND_ENDS:
            print_starts_and_ends(samples)
        elif fmt is OutputFormat.TRACE:
            print_trace(samples)
        else:
            raise UnknownFormatError(f"unrecognized output format: {fmt}")

    def _launch(self) -> psutil.Popen:
        argv = self._config.argv
        log.info("start of output from command:")
        try:
            self._process = psutil.Popen(argv)
        except OSError as e:
            raise LaunchError(f"failed to start command: {e}") from e
        return self._process

    def _watch(self, process: psutil.Popen, finished: threading.Event) -> None:
        """Wait for the command to exit, then signal the driver."""
        returncode = process.wait()
        if finished is self._finished:
            self._returncode = returncode
        log.info("end of output from command")
        finished.set()

    def _terminate(self, process: psutil.Popen) -> None:
        """Stop the command and everything it spawned after a failure or interrupt."""
        try:
            children = process.children(recursive=True)
        except psutil.NoSuchProcess:
            children = []

        procs = [*children, process]
        for proc in procs:
            try:
                proc.terminate()
            except psutil.NoSuchProcess:
                pass

        _, alive = psutil.wait_procs(procs, timeout=5)
        for proc in alive:
            try:
                proc.kill()
            except psutil.NoSuchProcess:
                pass
