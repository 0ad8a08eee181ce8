"""
This module provides the Modules class to locate and verify the external tools
required by the application: FFmpeg built with the vid.stab filters, and ffprobe.
"""
import subprocess
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.common import MODULE_PATH
from ..config.video import REQUIRED_FILTERS
from ..domain.exceptions import ExternalToolException


class Modules:
    """
    A utility class to handle operations related to external modules like FFmpeg.

    It reads the FFmpeg directory from the user's `config.user.yaml` file and
    falls back to the system's PATH if no specific path is configured.
    """

    @staticmethod
    def _get_executable_path(exe_base_name: str, module_path: Optional[Path] = MODULE_PATH) -> str:
        """
        Determines the executable path to use for an FFmpeg tool.

        It prioritizes the path from the user configuration (`ffmpeg_dir`). If that
        is not set or does not contain the tool, it falls back to the bare command
        name, which relies on the executable being available in the system's PATH.
        It also handles platform-specific executable names (e.g., adding '.exe' on
        Windows).

        Args:
            exe_base_name: "ffmpeg" or "ffprobe".
            module_path: The configured tool directory, if any.

        Returns:
            A string containing the command or absolute path to the executable.
        """
        exe_name = f"{exe_base_name}.exe" if sys.platform == "win32" else exe_base_name

        if module_path and module_path.is_dir():
            configured_path = module_path / exe_name
            if configured_path.is_file():
                return str(configured_path)
            logger.warning(
                f"`ffmpeg_dir` is configured, but '{exe_name}' was not found there. Falling back to system PATH."
            )

        return exe_base_name

    @staticmethod
    def ffmpeg_path() -> str:
        return Modules._get_executable_path("ffmpeg")

    @staticmethod
    def ffprobe_path() -> str:
        return Modules._get_executable_path("ffprobe")

    @staticmethod
    def verify_ffmpeg():
        """
        Verifies that FFmpeg can be executed and was built with vid.stab.

        Runs `ffmpeg -version` and `ffmpeg -filters` and checks that both
        stabilization filters are listed.

        Raises:
            ExternalToolException: If FFmpeg is missing, fails to run, or lacks a
                required filter.
        """
        ffmpeg_cmd = Modules.ffmpeg_path()

        try:
            result = subprocess.run(
                [ffmpeg_cmd, "-version"],
                check=True,
                capture_output=True,
                text=True,
                encoding="utf-8",
            )
            version_output_lines = result.stdout.splitlines()
            if version_output_lines:
                logger.info(f"FFmpeg version check successful: {version_output_lines[0]}")

            filters_result = subprocess.run(
                [ffmpeg_cmd, "-hide_banner", "-filters"],
                check=True,
                capture_output=True,
                text=True,
                encoding="utf-8",
            )
        except subprocess.CalledProcessError as e:
            raise ExternalToolException(
                e.cmd, f"FFmpeg check failed (return code {e.returncode}):\n{e.stderr}", e.returncode
            ) from e
        except FileNotFoundError as e:
            raise ExternalToolException(
                [ffmpeg_cmd],
                "FFmpeg command not found. Please ensure FFmpeg is installed and accessible.\n"
                "You can either add it to your system's PATH or specify its location in the "
                "'config.user.yaml' file.",
            ) from e

        missing_filters = [name for name in REQUIRED_FILTERS if name not in filters_result.stdout]
        if missing_filters:
            raise ExternalToolException(
                [ffmpeg_cmd, "-filters"],
                f"FFmpeg was built without the vid.stab filters: {', '.join(missing_filters)}",
            )
        logger.debug(f"FFmpeg provides the required filters: {', '.join(REQUIRED_FILTERS)}")

    @staticmethod
    def run_all():
        """
        Runs all startup checks in sequence.
        This is typically called once when the application starts.
        """
        Modules.verify_ffmpeg()
