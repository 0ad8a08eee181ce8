"""
Command-Line Interface (CLI) setup for vidproc.

This module uses Python's `argparse` to define and parse the command-line
arguments that control the application's behavior.
"""
import argparse
from pathlib import Path
from typing import List, Optional

from .config.common import DEFAULT_OUTPUT_VIDEO_FILENAME


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for vidproc.

    Args:
        argv: Arguments to parse instead of `sys.argv[1:]`.

    Returns:
        argparse.Namespace: An object containing the parsed command-line
                            arguments as attributes.
    """
    parser = argparse.ArgumentParser(
        description=(
            "Stabilize the video files of a folder with FFmpeg (vid.stab) and join them, "
            "in filename order, into a single MP4 file. An interrupted run resumes from "
            "the checkpoints kept in the 'vidproc' sub-folder."
        )
    )
    parser.add_argument(
        "output", nargs="?", default=DEFAULT_OUTPUT_VIDEO_FILENAME,
        help=(
            f"Output video filename, must end in .mp4 (default: {DEFAULT_OUTPUT_VIDEO_FILENAME}). "
            "A relative name is taken relative to the input directory."
        ),
    )
    parser.add_argument(
        "--input-dir", type=str, default=None,
        help="Folder containing the input videos (default: current working directory).",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level."
    )
    parser.add_argument(
        "--no-probe", action="store_true",
        help="Skip the ffprobe check that all inputs are videos with the same resolution.",
    )
    parser.add_argument(
        "--skip-ffmpeg-check", action="store_true",
        help="Do not verify at startup that FFmpeg is installed with the vid.stab filters.",
    )

    args = parser.parse_args(argv)

    input_dir = Path(args.input_dir) if args.input_dir else Path.cwd()
    if not input_dir.is_dir():
        parser.error(f"The input directory '{input_dir}' does not exist or is not a directory.")
    args.input_dir = input_dir.resolve()

    return args
