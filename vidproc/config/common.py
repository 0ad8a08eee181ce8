"""
Common configuration settings used throughout the application.

This module contains globally shared configuration settings and constants that are
used across vidproc. It centralizes parameters for logging, the layout of the work
directory, the run-scoped temporary files, and process exit codes. It also handles
the loading of user-specific configuration from an external YAML file, allowing for
easy customization without modifying the source code.
"""
import os
from pathlib import Path

import yaml
from loguru import logger

# --- User-Defined Configuration ---
# This block loads user-specific settings from a 'config.user.yaml' file located
# at the project root (or the file named by the VIDPROC_CONFIG environment
# variable). This allows users to specify the location of FFmpeg and tune the
# vid.stab filters without hardcoding anything.

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
USER_CONFIG_ENV_VAR = "VIDPROC_CONFIG"
USER_CONFIG_PATH = Path(os.environ.get(USER_CONFIG_ENV_VAR, PROJECT_ROOT / "config.user.yaml"))


def load_user_config(config_path: Path) -> dict:
    """
    Reads the user configuration YAML file.

    A missing file is not an error: vidproc then relies on the system PATH for
    executables and on the default filter settings. An unreadable or malformed
    file is logged and ignored.

    Args:
        config_path: The path of the YAML file to read.

    Returns:
        The parsed mapping, or an empty dict if nothing usable was found.
    """
    if not config_path.is_file():
        logger.debug(f"User config '{config_path}' not found. Using built-in defaults.")
        return {}
    try:
        with config_path.open("r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load or parse '{config_path}': {e}")
        return {}
    if not isinstance(user_config, dict):
        logger.warning(f"Ignoring '{config_path}': expected a mapping at the top level.")
        return {}
    return user_config


USER_CONFIG: dict = load_user_config(USER_CONFIG_PATH)

# The directory containing the FFmpeg and ffprobe executables, from 'paths.ffmpeg_dir'.
# If not provided, the application assumes the executables are in the system's PATH.
MODULE_PATH: Path | None = None

_paths_config = USER_CONFIG.get("paths") or {}
if _paths_config.get("ffmpeg_dir"):
    MODULE_PATH = Path(_paths_config["ffmpeg_dir"])


# --- Logging Configuration ---

# The format string for the Loguru logger.
LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


# --- Work Directory Layout ---
# The side directory holds one transform descriptor and/or one stabilized video
# per input base name. These files are the only durable state of a run and the
# whole directory may be deleted to force a full re-run.

WORK_FOLDER = "vidproc"
TRANSFORMS_FILE_SUFFIX = ".trf"

# Suffix of staging copies written next to a durable artifact right before they
# are renamed into place. Leftovers are removed with the other temp files.
PARTIAL_FILE_SUFFIX = ".part"

# The YAML file inside the work folder that records completed runs.
RUN_HISTORY_FILE_NAME = "run_history.yaml"


# --- Run-Scoped Temporary Files ---
# These are scratch space, never checkpoints. They are deleted at the start and
# at the end of every run attempt.

# vid.stab reads and writes this file in the working directory by default. Don't change it.
TEMP_TRANSFORMS_FILE = "transforms.trf"

# Written inside the work folder by the transform stage, then renamed into place.
TEMP_STABILIZED_VIDEO_FILE = "temp_stabilized.mp4"

# The ffmpeg concat demuxer listing, written next to the inputs.
LISTING_FILENAME = "files.txt"


# --- Output ---

DEFAULT_OUTPUT_VIDEO_FILENAME = "out.mp4"


# --- Process Exit Codes ---

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_INTERRUPTED = 130

# Seconds to wait for ffmpeg to exit after a terminate request before killing it.
TERMINATE_GRACE_SECONDS = 10
