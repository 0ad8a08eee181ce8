"""
Represents an input video and the metadata needed to check, before any heavy
work starts, that the inputs can be joined by stream copy.

Stream-copy concatenation only produces a playable file when every stabilized
clip has the same resolution. The transform stage re-encodes each clip with the
same codecs but keeps its resolution, so mismatched inputs are worth a warning
up front rather than a broken output after hours of stabilization.
"""

from pathlib import Path
from pprint import pformat
from typing import List, Optional, Sequence

import ffmpeg
from loguru import logger

from ..config.video import CONCAT_MATCH_KEYS
from ..utils.module_updater import Modules
from .exceptions import VidProcException


class MediaFileException(VidProcException):
    """
    Raised when a file cannot be probed or carries no video stream.
    """

    pass


class MediaFile:
    """
    A probed input video.

    The constructor runs ffprobe (via the ffmpeg-python library) and keeps the
    first video stream.

    Attributes:
        path (Path): The absolute path to the file.
        filename (str): The name of the file, including its extension.
        probe (dict | None): The raw ffprobe output.
        video_stream (dict | None): The first video stream of the probe.
    """

    def __init__(self, path: Path):
        """
        Probes the file at `path`.

        Raises:
            MediaFileException: If ffprobe fails on the file, cannot be started,
                                or finds no video stream.
        """
        self.path: Path = path.resolve()
        self.filename: str = self.path.name
        self.probe: dict | None = None
        self.video_stream: dict | None = None
        self.set_probe()
        self.set_video_stream()

    def set_probe(self):
        try:
            self.probe = ffmpeg.probe(str(self.path), cmd=Modules.ffprobe_path())
        except ffmpeg.Error as e:
            stderr = e.stderr.decode("utf-8", errors="replace") if isinstance(e.stderr, bytes) else e.stderr
            raise MediaFileException(f"ffprobe failed for {self.path}: {stderr}") from e
        except OSError as e:
            raise MediaFileException(f"Could not run ffprobe for {self.path}: {e}") from e
        logger.trace(f"Probe data for {self.filename}:\n{pformat(self.probe)}")

    def set_video_stream(self):
        for stream in (self.probe or {}).get("streams", []):
            if stream.get("codec_type") == "video":
                self.video_stream = stream
                return
        raise MediaFileException(f"No video stream found in {self.path}")

    @property
    def resolution(self) -> str:
        return f"{self.video_stream.get('width')}x{self.video_stream.get('height')}"

    def concat_signature(self) -> tuple:
        """The stream properties that must match across inputs."""
        return tuple(self.video_stream.get(key) for key in CONCAT_MATCH_KEYS)


def preflight_check(paths: Sequence[Path]) -> List[str]:
    """
    Probes every input and describes the problems that would spoil the join.

    Nothing here is fatal: files that cannot be probed are reported, and so
    are inputs whose resolution differs from the first probed input. The
    analysis stage will fail on its own for files FFmpeg cannot read at all.

    Args:
        paths: The inputs in join order.

    Returns:
        Human-readable warnings, empty if everything looks joinable.
    """
    warnings: List[str] = []
    reference: Optional[MediaFile] = None
    for path in paths:
        try:
            media_file = MediaFile(path)
        except MediaFileException as e:
            warnings.append(str(e))
            continue
        if reference is None:
            reference = media_file
            logger.debug(f"Reference input {media_file.filename}: {media_file.resolution}")
            continue
        if media_file.concat_signature() != reference.concat_signature():
            warnings.append(
                f"{media_file.filename} ({media_file.resolution}) differs from "
                f"{reference.filename} ({reference.resolution}); "
                f"the joined video may not play correctly."
            )
    return warnings
