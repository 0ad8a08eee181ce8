"""
Bookkeeping for the work directory, the durable side folder that holds the
checkpoint artifacts of every input video.

For an input whose base name is `clip`, the work directory may contain:

- `clip.trf`: the vid.stab transforms. Its presence means analysis is done.
- `clip.mp4`: the stabilized video. Its presence means the input is done.

A durable artifact only ever appears through `os.replace` of a complete file
living in the same directory, so a crash can never leave a half-written
checkpoint behind. The run-scoped temp files (the FFmpeg default transforms
file, the temp stabilized video, and `.part` staging copies) are owned here
too, and `clear_temp_artifacts` removes them.
"""

import errno
import os
import shutil
from pathlib import Path

from loguru import logger

from ..config.common import (
    PARTIAL_FILE_SUFFIX,
    TEMP_STABILIZED_VIDEO_FILE,
    TEMP_TRANSFORMS_FILE,
    TRANSFORMS_FILE_SUFFIX,
    WORK_FOLDER,
)
from ..config.video import VIDEO_FILE_SUFFIX
from ..domain.exceptions import CleanupException, WorkDirectoryException


class WorkDirectoryStore:
    """
    Owns the work directory and answers checkpoint queries by base name.

    Nothing is cached: every query goes to the filesystem, so a store can be
    shared by all the inputs of a run and always reflects what is on disk.

    Attributes:
        root (Path): The directory the tool runs in (the input directory).
        work_dir (Path): The durable side directory, `<root>/vidproc`.
        temp_transforms_file (Path): Where FFmpeg reads/writes transforms.
        temp_stabilized_video (Path): Where the transform stage writes its output.
    """

    def __init__(self, root: Path, work_folder: str = WORK_FOLDER):
        self.root: Path = root.resolve()
        self.work_dir: Path = self.root / work_folder
        self.temp_transforms_file: Path = self.root / TEMP_TRANSFORMS_FILE
        self.temp_stabilized_video: Path = self.work_dir / TEMP_STABILIZED_VIDEO_FILE

    def ensure_directory(self) -> Path:
        """
        Creates the work directory if it does not exist yet.

        Returns:
            The work directory path.

        Raises:
            WorkDirectoryException: If the directory cannot be created, or a
                                    non-directory file is in the way.
        """
        if self.work_dir.is_dir():
            logger.debug(f"Work folder already exists: {self.work_dir}")
            return self.work_dir
        try:
            self.work_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkDirectoryException("create work folder", self.work_dir, e) from e
        logger.info(f"Created work folder: {self.work_dir}")
        return self.work_dir

    # --- Path derivation ---

    def stabilized_video_path(self, base_name: str) -> Path:
        return self.work_dir / f"{base_name}{VIDEO_FILE_SUFFIX}"

    def transform_descriptor_path(self, base_name: str) -> Path:
        return self.work_dir / f"{base_name}{TRANSFORMS_FILE_SUFFIX}"

    def clashes_with_temp_artifact(self, base_name: str) -> bool:
        """
        Tells whether an input's checkpoints would live at a temp file path.

        Such checkpoints would be removed by `clear_temp_artifacts`, e.g. the
        stabilized video of `temp_stabilized.mov`.
        """
        temp_paths = {self.temp_transforms_file, self.temp_stabilized_video}
        checkpoints = {self.stabilized_video_path(base_name), self.transform_descriptor_path(base_name)}
        return bool(temp_paths & checkpoints)

    # --- Checkpoint queries ---

    def has_stabilized_video(self, base_name: str) -> bool:
        return self.stabilized_video_path(base_name).is_file()

    def has_transform_descriptor(self, base_name: str) -> bool:
        return self.transform_descriptor_path(base_name).is_file()

    # --- Commits ---

    def commit_temp_as_stabilized_video(self, temp_path: Path, base_name: str) -> Path:
        """
        Moves a finished temp video into its checkpoint location.

        Args:
            temp_path: The video written by the transform stage.
            base_name: The base name of the input it belongs to.

        Returns:
            The durable stabilized video path.
        """
        target = self.stabilized_video_path(base_name)
        self._atomic_move(temp_path, target)
        return target

    def commit_temp_as_transform_descriptor(self, temp_path: Path, base_name: str) -> Path:
        """
        Saves a finished temp transforms file into its checkpoint location.

        The temp file is left in place, because the transform stage reads it
        from FFmpeg's default location right after.

        Args:
            temp_path: The transforms file written by the analysis stage.
            base_name: The base name of the input it belongs to.

        Returns:
            The durable transform descriptor path.
        """
        target = self.transform_descriptor_path(base_name)
        self._atomic_copy(temp_path, target)
        return target

    def restore_transform_descriptor(self, base_name: str, temp_path: Path) -> Path:
        """
        Copies a checkpointed transforms file back to FFmpeg's default location.

        The temp location is scratch space, so a plain copy is enough here.
        """
        source = self.transform_descriptor_path(base_name)
        try:
            shutil.copyfile(source, temp_path)
        except OSError as e:
            raise WorkDirectoryException(f"copy transforms file to {temp_path}", source, e) from e
        logger.info(f"Copied {source} to {temp_path}")
        return temp_path

    def _atomic_copy(self, source: Path, target: Path):
        staging = target.with_name(target.name + PARTIAL_FILE_SUFFIX)
        try:
            shutil.copyfile(source, staging)
            os.replace(staging, target)
        except OSError as e:
            self._discard(staging)
            raise WorkDirectoryException(f"commit {source} as", target, e) from e
        logger.info(f"Copied {source} to {target}")

    def _atomic_move(self, source: Path, target: Path):
        try:
            os.replace(source, target)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise WorkDirectoryException(f"move {source} to", target, e) from e
            # Different filesystems: stage a copy next to the target, then rename it.
            self._atomic_copy(source, target)
            self.delete_file(source)
            return
        logger.info(f"Moved {source} to {target}")

    @staticmethod
    def _discard(path: Path):
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove staging file {path}: {e}")

    # --- Temp artifact cleanup ---

    @staticmethod
    def delete_file(path: Path) -> bool:
        """
        Deletes a file if it exists.

        Returns:
            True if a file was deleted.

        Raises:
            WorkDirectoryException: If the file exists but cannot be deleted.
        """
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise WorkDirectoryException("delete", path, e) from e
        logger.info(f"Deleted {path}")
        return True

    def temp_artifacts(self) -> list:
        """Lists the run-scoped temp files currently on disk."""
        candidates = [self.temp_transforms_file, self.temp_stabilized_video]
        if self.work_dir.is_dir():
            candidates.extend(sorted(self.work_dir.glob(f"*{PARTIAL_FILE_SUFFIX}")))
        return [path for path in candidates if path.is_file()]

    def clear_temp_artifacts(self):
        """
        Removes every run-scoped temp file.

        Raises:
            CleanupException: If any of them cannot be removed.
        """
        for path in self.temp_artifacts():
            try:
                self.delete_file(path)
            except WorkDirectoryException as e:
                raise CleanupException(str(e)) from e
