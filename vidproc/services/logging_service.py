"""
This module keeps a machine-readable history of completed runs.

Console output goes through loguru. In addition, every successful run appends
one entry to `run_history.yaml` inside the work folder: the output file, the
inputs in join order, the time spent in each stage, and the total time. The
history lives next to the checkpoints, so deleting the work folder to force a
full re-run also clears it.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List

import yaml
from loguru import logger

from ..config.common import RUN_HISTORY_FILE_NAME
from ..domain.stage import RunResult
from ..utils.format_utils import format_timedelta


class RunHistory:
    """
    Handles structured logging of completed runs in YAML format.

    Attributes:
        log_file_path (Path): The YAML file holding the list of run entries.
    """

    def __init__(self, work_dir: Path, filename: str = RUN_HISTORY_FILE_NAME):
        self.log_file_path: Path = work_dir / filename

    def read(self) -> List[Dict]:
        """
        Loads the existing entries.

        Returns:
            The list of entries, or an empty list if the file is missing,
            empty, or does not hold a list.
        """
        if not self.log_file_path.is_file():
            return []
        try:
            with self.log_file_path.open("r", encoding="utf-8") as f:
                loaded_entries = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error reading/parsing run history {self.log_file_path}: {e}. Starting a new history.")
            return []
        if loaded_entries is None:
            return []
        if not isinstance(loaded_entries, list):
            logger.warning(f"Run history {self.log_file_path} contained unexpected data. Starting a new history.")
            return []
        return loaded_entries

    def write(self, new_log_entry: dict):
        """
        Appends an entry, giving it the next sequential index.

        The whole list is rewritten so the file is always a valid YAML list.
        A failure to write the history is logged and otherwise ignored: the
        output video is already complete at this point.
        """
        log_entries = self.read()
        current_max_index = max(
            (entry.get("index", 0) for entry in log_entries if isinstance(entry, dict)),
            default=0,
        )
        new_log_entry["index"] = current_max_index + 1
        log_entries.append(new_log_entry)

        try:
            with self.log_file_path.open("w", encoding="utf-8") as f:
                yaml.dump(
                    log_entries,
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    allow_unicode=True,
                    indent=4,
                    width=220,
                )
        except OSError as e:
            logger.error(f"Failed to write run history {self.log_file_path}: {e}")

    def record(self, run_result: RunResult, input_videos: List[Path]):
        """Builds the entry for a completed run and writes it."""
        self.write(
            {
                "ended_datetime": datetime.now().isoformat(timespec="seconds"),
                "output_file": str(run_result.output_path),
                "inputs": [video.name for video in input_videos],
                "stages": [stage.to_dict() for stage in run_result.stages],
                "total_time": format_timedelta(run_result.elapsed),
            }
        )
