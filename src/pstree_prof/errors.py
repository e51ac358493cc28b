"""Exceptions raised by pstree-prof."""


class ProfilerError(Exception):
    """Base class for every fatal profiler error."""


class AcquisitionError(ProfilerError):
    """The process-listing command could not be run or failed."""


class MalformedTableError(ProfilerError, ValueError):
    """A process-table line could not be parsed into a record."""


class UnknownFormatError(ProfilerError, ValueError):
    """An output-format selector names no known report."""


class ConfigError(ProfilerError, ValueError):
    """The profiler was configured with unusable values."""


class SequenceFrozenError(ProfilerError, RuntimeError):
    """A snapshot was appended to a sequence that is already being read."""


class LaunchError(ProfilerError):
    """The supervised command could not be started."""
