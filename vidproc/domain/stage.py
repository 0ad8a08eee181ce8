"""
Defines the value objects passed between the invoker, the per-video state
machine, and the pipeline.

Every stage of a run returns one of these instead of appending to shared state:
the pipeline collects them and prints a single summary at the end of the run.
"""

import shlex
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..config.common import EXIT_CONFIGURATION_ERROR, EXIT_FAILURE, EXIT_OK
from ..utils.format_utils import format_timedelta


class StabilizationState(str, Enum):
    """
    Checkpoint state of a single input video.

    The state is never stored: it is derived from the files present in the
    work directory every time an input is visited.
    """

    NEEDS_ANALYSIS = "needs_analysis"
    NEEDS_TRANSFORM = "needs_transform"
    COMPLETE = "complete"


class StageKind(str, Enum):
    ANALYSIS = "analysis"
    TRANSFORM = "transform"
    CONCAT = "concat"


class RunStatus(str, Enum):
    """Outcome of a whole run, mapped onto a process exit code."""

    COMPLETED = "completed"
    ALREADY_DONE = "already_done"
    NO_INPUTS = "no_inputs"
    CONFIG_ERROR = "config_error"
    FAILED = "failed"

    @property
    def exit_code(self) -> int:
        if self in (RunStatus.COMPLETED, RunStatus.ALREADY_DONE, RunStatus.NO_INPUTS):
            return EXIT_OK
        if self is RunStatus.CONFIG_ERROR:
            return EXIT_CONFIGURATION_ERROR
        return EXIT_FAILURE


@dataclass
class ToolResult:
    """
    Outcome of one external command.

    Attributes:
        cmd: The command list that was executed.
        returncode: The process exit status.
        elapsed: Wall-clock time between spawn and exit.
    """

    cmd: List[str]
    returncode: int
    elapsed: timedelta = timedelta(0)

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def display_cmd(self) -> str:
        return shlex.join(self.cmd)


@dataclass
class StageResult:
    """
    Timing record of a finished stage, printed in the end-of-run summary.
    """

    kind: StageKind
    subject: str
    elapsed: timedelta
    message: str

    def summary_line(self) -> str:
        return f"[{self.kind.value}] {self.subject}: {self.message} in {format_timedelta(self.elapsed)}"

    def to_dict(self) -> dict:
        return {
            "stage": self.kind.value,
            "subject": self.subject,
            "elapsed_seconds": round(self.elapsed.total_seconds(), 3),
            "message": self.message,
        }


@dataclass
class StabilizationResult:
    """
    Outcome of driving one input video through the state machine.

    Attributes:
        input_video: The original video.
        start_state: The state derived from the work directory on entry.
        state: The state reached. COMPLETE unless a stage failed.
        stabilized_video: The durable stabilized video, once COMPLETE.
        stages: The stages actually run on this visit.
        failure: The failing tool result, if any.
    """

    input_video: Path
    start_state: StabilizationState
    state: StabilizationState
    stabilized_video: Optional[Path] = None
    stages: List[StageResult] = field(default_factory=list)
    failure: Optional[ToolResult] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.state is StabilizationState.COMPLETE


@dataclass
class RunResult:
    """
    Outcome of a whole stabilize-and-join run.
    """

    status: RunStatus
    output_path: Path
    stages: List[StageResult] = field(default_factory=list)
    elapsed: timedelta = timedelta(0)
    message: str = ""
    stabilized_videos: List[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status.exit_code == EXIT_OK

    @property
    def exit_code(self) -> int:
        return self.status.exit_code
