"""
Joins the stabilized videos into the final output without re-encoding.

The ordered list of stabilized videos is written to an FFmpeg concat demuxer
listing right before the join, and the listing is deleted right after,
whatever the outcome.
"""

from pathlib import Path
from typing import List, Tuple

from loguru import logger

from ..config.common import LISTING_FILENAME
from ..domain.exceptions import WorkDirectoryException
from ..domain.stage import StageKind, StageResult, ToolResult
from ..utils.ffmpeg_utils import build_concat_cmd, concat_listing_line
from .tool_invoker import ToolInvoker
from .work_directory import WorkDirectoryStore


class VideoConcatenator:
    """
    Writes the concat listing and runs the stream-copy join.

    Attributes:
        invoker: Runs FFmpeg.
        root: The directory FFmpeg runs in; the listing is written there.
        listing_file: The concat demuxer listing path.
    """

    def __init__(self, invoker: ToolInvoker, root: Path, listing_filename: str = LISTING_FILENAME):
        self.invoker = invoker
        self.root = root.resolve()
        self.listing_file = self.root / listing_filename

    def write_listing(self, stabilized_videos: List[Path]) -> Path:
        """
        Writes one `file '...'` line per video, in the given order.

        Raises:
            WorkDirectoryException: If the listing cannot be written.
        """
        WorkDirectoryStore.delete_file(self.listing_file)
        content = "".join(f"{concat_listing_line(video.resolve())}\n" for video in stabilized_videos)
        try:
            self.listing_file.write_text(content, encoding="utf-8")
        except OSError as e:
            raise WorkDirectoryException("write concat listing", self.listing_file, e) from e
        logger.debug(f"Wrote concat listing {self.listing_file}:\n{content}")
        return self.listing_file

    def remove_listing(self):
        WorkDirectoryStore.delete_file(self.listing_file)

    def join(self, stabilized_videos: List[Path], output_path: Path) -> Tuple[ToolResult, StageResult]:
        """
        Joins `stabilized_videos`, in order, into `output_path`.

        Args:
            stabilized_videos: The durable stabilized videos in input order.
            output_path: The final MP4 file.

        Returns:
            The FFmpeg result and the timing record of the join.
        """
        logger.info(
            f"Joining {len(stabilized_videos)} video file(s) without re-encoding, into {output_path}"
        )
        self.write_listing(stabilized_videos)
        try:
            tool_result = self.invoker.run(
                build_concat_cmd(self.listing_file, output_path), cwd=self.root
            )
        finally:
            self.remove_listing()

        stage = StageResult(
            kind=StageKind.CONCAT,
            subject=output_path.name,
            elapsed=tool_result.elapsed,
            message=(
                f"joined {len(stabilized_videos)} stabilized video file(s)"
                if tool_result.ok
                else f"join failed with exit code {tool_result.returncode}"
            ),
        )
        if tool_result.ok:
            logger.info(stage.summary_line())
        return tool_result, stage
