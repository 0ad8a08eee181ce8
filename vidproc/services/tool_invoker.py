"""
Runs external commands (FFmpeg) one at a time.

The invoker streams the child's stdout/stderr straight to the terminal so the
user sees FFmpeg's own progress output, blocks until the child exits, and
reports the exit status as a `ToolResult`. It never retries: a failed
invocation is retried naturally by the next run, thanks to the checkpoints.

The running process is represented by a `ToolProcess` handle that is returned
to the caller and kept in local scope. If waiting is interrupted (Ctrl-C, the
SIGTERM handler, or any other exception), `ToolInvoker.run` terminates the
child before letting the exception propagate, so no FFmpeg process outlives
the run.
"""

import subprocess
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..config.common import TERMINATE_GRACE_SECONDS
from ..domain.exceptions import ExternalToolException
from ..domain.stage import ToolResult
from ..utils.ffmpeg_utils import display_cmd


class ToolProcess:
    """
    Handle on one running external command.

    Attributes:
        cmd: The command list being executed.
        popen: The underlying process object.
        started_at: When the process was spawned.
    """

    def __init__(self, cmd: List[str], popen: subprocess.Popen):
        self.cmd = cmd
        self.popen = popen
        self.started_at = datetime.now()

    @property
    def pid(self) -> int:
        return self.popen.pid

    def is_running(self) -> bool:
        return self.popen.poll() is None

    def wait(self) -> ToolResult:
        """Blocks until the process exits and returns its result."""
        returncode = self.popen.wait()
        elapsed = datetime.now() - self.started_at
        logger.debug(f"'{display_cmd(self.cmd)}' exited with code {returncode}")
        return ToolResult(cmd=self.cmd, returncode=returncode, elapsed=elapsed)

    def terminate(self, grace_seconds: float = TERMINATE_GRACE_SECONDS):
        """
        Asks the process to stop, killing it if it ignores the request.

        Safe to call on a process that has already exited.
        """
        if not self.is_running():
            return
        logger.warning(f"Terminating external process {self.pid}: {display_cmd(self.cmd)}")
        self.popen.terminate()
        try:
            self.popen.wait(timeout=grace_seconds)
        except subprocess.TimeoutExpired:
            logger.warning(f"Process {self.pid} did not exit after {grace_seconds}s. Killing it.")
            self.popen.kill()
            self.popen.wait()


class ToolInvoker:
    """
    Spawns external commands with inherited standard streams.
    """

    def spawn(self, cmd: List[str], cwd: Optional[Path] = None) -> ToolProcess:
        """
        Starts a command without waiting for it.

        Args:
            cmd: The command list. The first element is the executable.
            cwd: Working directory for the child. FFmpeg's vid.stab filters read
                 and write their transforms file relative to it.

        Returns:
            A handle on the running process.

        Raises:
            ExternalToolException: If the executable cannot be started.
        """
        if not cmd:
            raise ExternalToolException(cmd, "Cannot run an empty command.")
        logger.info(f"Started: {display_cmd(cmd)}")
        try:
            # stdout/stderr are inherited so FFmpeg's progress is visible.
            popen = subprocess.Popen(cmd, cwd=str(cwd) if cwd else None)
        except FileNotFoundError as e:
            raise ExternalToolException(
                cmd, f"Command not found: '{cmd[0]}'. Ensure it's in your PATH or configured in config.user.yaml."
            ) from e
        except OSError as e:
            raise ExternalToolException(cmd, f"Could not start '{display_cmd(cmd)}': {e}") from e
        return ToolProcess(cmd, popen)

    def run(self, cmd: List[str], cwd: Optional[Path] = None) -> ToolResult:
        """
        Runs a command to completion.

        A non-zero exit status is returned, not raised; the caller decides what a
        failure means for the run.

        Args:
            cmd: The command list.
            cwd: Working directory for the child.

        Returns:
            The exit status and elapsed time of the command.
        """
        process = self.spawn(cmd, cwd=cwd)
        try:
            result = process.wait()
        except BaseException:
            process.terminate()
            raise
        if not result.ok:
            logger.error(f"'{result.display_cmd}' failed with exit code {result.returncode}")
        return result
