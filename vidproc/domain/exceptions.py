"""
Defines custom exception types for vidproc.

These exceptions allow for more specific and expressive error handling throughout
the stabilize-and-join pipeline. A failing ffmpeg invocation is not an exception:
it is reported as a result value (see `vidproc.domain.stage`) and the pipeline
decides to abort. Exceptions are reserved for conditions the pipeline cannot
decide about: bad configuration, filesystem errors, failed cleanup, and
interrupts.

All custom exceptions inherit from the base `VidProcException`.
"""
from pathlib import Path
from typing import List, Optional


class VidProcException(Exception):
    """Base class for all custom exceptions in vidproc."""

    pass


class ConfigurationException(VidProcException):
    """
    Raised when the run is misconfigured and no work may be started.

    Examples are an output filename without the required container suffix, or
    two inputs that share a base name and would therefore share checkpoints.
    """

    pass


class WorkDirectoryException(VidProcException):
    """
    Raised when a filesystem operation on a checkpoint or temp artifact fails.

    The operation and the path are kept on the exception so the top level can
    report exactly what could not be done.
    """

    def __init__(self, operation: str, path: Path, cause: Optional[BaseException] = None):
        self.operation = operation
        self.path = path
        self.cause = cause
        message = f"Failed to {operation}: {path}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class ExternalToolException(VidProcException):
    """
    Raised when an external command cannot be started at all.

    A command that starts and exits non-zero is reported through `ToolResult`
    instead. `returncode` is None when the process never ran.
    """

    def __init__(self, cmd: List[str], message: str, returncode: Optional[int] = None):
        self.cmd = cmd
        self.returncode = returncode
        super().__init__(message)


class CleanupException(VidProcException):
    """
    Raised when run-scoped temp artifacts cannot be removed.

    Leaving a stale temp transforms file behind could make the next run apply
    the wrong transforms, so this is always fatal.
    """

    pass


class RunInterrupted(VidProcException):
    """
    Raised from the SIGTERM handler so termination unwinds like Ctrl-C.
    """

    pass
