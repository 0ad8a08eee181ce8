"""
Provides services for discovering the input videos of a run.

The input directory is scanned non-recursively: every regular file in it is an
input, and the sorted filenames give the order in which the stabilized videos
are joined. The run's own scratch files and the output file are never treated
as inputs.
"""

from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from loguru import logger

from ..domain.exceptions import WorkDirectoryException
from ..utils.format_utils import formatted_size


def base_name_of(path: Path) -> str:
    """
    Returns the filename without its last suffix.

    This is the key under which an input's checkpoints are stored, e.g.
    `clip.01.mov` -> `clip.01`.
    """
    return Path(path.name).stem


class InputVideoFiles:
    """
    Discovers the input videos of a run.

    Attributes:
        source_dir (Path): The directory that is scanned.
        excluded_names (Set[str]): Filenames that are never inputs.
        excluded_paths (Set[Path]): Resolved paths that are never inputs.
        files (Tuple[Path, ...]): The discovered inputs, sorted by filename.
    """

    source_dir: Path
    excluded_names: Set[str]
    excluded_paths: Set[Path]
    files: Tuple[Path, ...] = tuple()

    def __init__(
        self,
        source_dir: Path,
        excluded_names: Optional[Iterable[str]] = None,
        excluded_paths: Optional[Iterable[Path]] = None,
    ):
        """
        Scans `source_dir` right away.

        Args:
            source_dir: The input directory.
            excluded_names: Filenames to ignore (the run's scratch files).
            excluded_paths: Files to ignore wherever they are, e.g. the output.
                            Compared after resolving, so an output elsewhere
                            never hides an input that shares its name.

        Raises:
            WorkDirectoryException: If the directory does not exist or cannot be listed.
        """
        self.source_dir = source_dir.resolve()
        self.excluded_names = set(excluded_names or ())
        self.excluded_paths = {path.resolve() for path in excluded_paths or ()}
        self.set_files_to_process()

    def set_files_to_process(self):
        """
        Lists the regular files of `source_dir`, sorted lexicographically by name.

        The sort is done here rather than trusting the filesystem's enumeration
        order, which differs between platforms.
        """
        if not self.source_dir.is_dir():
            raise WorkDirectoryException("list input directory", self.source_dir)
        try:
            discovered = [
                path
                for path in self.source_dir.iterdir()
                if path.is_file()
                and path.name not in self.excluded_names
                and path.resolve() not in self.excluded_paths
            ]
        except OSError as e:
            raise WorkDirectoryException("list input directory", self.source_dir, e) from e

        self.files = tuple(sorted(discovered, key=lambda p: p.name))
        logger.info(f"Found {len(self.files)} input file(s) in {self.source_dir}")
        for i, f_path in enumerate(self.files):
            logger.debug(f"  {i + 1}. {f_path.name} ({formatted_size(f_path.stat().st_size)})")

    def duplicate_base_names(self) -> Dict[str, List[str]]:
        """
        Finds inputs that would share checkpoint files.

        Returns:
            A mapping of base name to the filenames sharing it, only for base
            names used more than once.
        """
        by_base_name: Dict[str, List[str]] = defaultdict(list)
        for path in self.files:
            by_base_name[base_name_of(path)].append(path.name)
        return {name: files for name, files in by_base_name.items() if len(files) > 1}
