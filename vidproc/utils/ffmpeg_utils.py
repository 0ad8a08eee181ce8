"""
This module builds the FFmpeg command lines used by vidproc and formats them for
logging. Executing them is the job of `vidproc.services.tool_invoker`.

All commands are lists of arguments, never shell strings.
"""

import shlex
from pathlib import Path
from typing import List, Union

from ..config.video import DETECT_FILTER, TRANSFORM_FILTER
from .module_updater import Modules


def display_cmd(cmd_list: List[str]) -> str:
    """Returns a shell-quoted rendering of a command list, for logs only."""
    return shlex.join([str(part) for part in cmd_list])


def build_analysis_cmd(input_file: Union[str, Path], detect_filter: str = DETECT_FILTER) -> List[str]:
    """
    Builds the first stabilization pass.

    vid.stab writes the transforms to `transforms.trf` in the working directory
    of the process; the video output is discarded.

    Args:
        input_file: The original video.
        detect_filter: The vidstabdetect filter expression.

    Returns:
        The command as a list of arguments.
    """
    return [Modules.ffmpeg_path(), "-i", str(input_file), "-vf", detect_filter, "-f", "null", "-"]


def build_transform_cmd(
    input_file: Union[str, Path],
    output_file: Union[str, Path],
    transform_filter: str = TRANSFORM_FILTER,
) -> List[str]:
    """
    Builds the second stabilization pass.

    The transforms are read from `transforms.trf` in the working directory of
    the process. The output is encoded with FFmpeg's default MP4 codecs
    (H.264/AAC), so every stabilized clip shares the same codecs and can later
    be joined without re-encoding.

    Args:
        input_file: The original video.
        output_file: Where FFmpeg should write the stabilized video.
        transform_filter: The vidstabtransform filter expression.

    Returns:
        The command as a list of arguments.
    """
    return [Modules.ffmpeg_path(), "-i", str(input_file), "-vf", transform_filter, str(output_file)]


def build_concat_cmd(listing_file: Union[str, Path], output_file: Union[str, Path]) -> List[str]:
    """
    Builds the stream-copy concatenation of the files named in `listing_file`.

    `-safe 0` allows absolute paths in the listing.
    """
    return [
        Modules.ffmpeg_path(),
        "-f", "concat",
        "-safe", "0",
        "-i", str(listing_file),
        "-c", "copy",
        str(output_file),
    ]


def concat_listing_line(video_path: Path) -> str:
    """
    Formats one entry of an FFmpeg concat demuxer listing.

    Single quotes inside the path are closed, escaped, and reopened, which is
    the quoting rule of the concat demuxer.

    Args:
        video_path: The file to list.

    Returns:
        A line such as `file '/work/vidproc/a.mp4'` without the trailing newline.
    """
    quoted = str(video_path).replace("'", "'\\''")
    return f"file '{quoted}'"
