from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger

from ..config.common import LISTING_FILENAME, TEMP_TRANSFORMS_FILE
from ..config.video import DETECT_FILTER, TRANSFORM_FILTER, VIDEO_FILE_SUFFIX
from ..domain.exceptions import (
    CleanupException,
    ConfigurationException,
    RunInterrupted,
    VidProcException,
    WorkDirectoryException,
)
from ..domain.media import preflight_check
from ..domain.stage import RunResult, RunStatus, StageResult
from ..services.concatenator import VideoConcatenator
from ..services.file_processing_service import InputVideoFiles, base_name_of
from ..services.logging_service import RunHistory
from ..services.stabilizer import VideoStabilizer
from ..services.tool_invoker import ToolInvoker
from ..services.work_directory import WorkDirectoryStore
from ..utils.format_utils import format_timedelta, formatted_size


class StabilizeJoinPipeline:
    """
    Stabilizes every video of a directory and joins them into one MP4 file.

    The videos are processed one at a time, in filename order. Work finished by
    an earlier, interrupted run is picked up from the checkpoints in the work
    folder. Whatever happens, the run-scoped temp files are removed before
    `run` returns or raises, and a partially written output file is deleted.
    """

    def __init__(
        self,
        input_dir: Path,
        output_path: Path,
        invoker: Optional[ToolInvoker] = None,
        probe_inputs: bool = True,
        detect_filter: str = DETECT_FILTER,
        transform_filter: str = TRANSFORM_FILTER,
    ):
        self.input_dir: Path = input_dir.resolve()
        # A relative output name is relative to the input directory, not to the cwd.
        self.output_path: Path = (self.input_dir / output_path).resolve()
        self.invoker = invoker or ToolInvoker()
        self.probe_inputs = probe_inputs

        self.store = WorkDirectoryStore(self.input_dir)
        self.stabilizer = VideoStabilizer(
            self.store, self.invoker, detect_filter=detect_filter, transform_filter=transform_filter
        )
        self.concatenator = VideoConcatenator(self.invoker, self.input_dir)

    def validate_output_path(self):
        if self.output_path.suffix.lower() != VIDEO_FILE_SUFFIX:
            raise ConfigurationException(
                f"Output video filename suffix should be {VIDEO_FILE_SUFFIX}: {self.output_path.name}"
            )

    def run(self) -> RunResult:
        """
        Runs the whole stabilize-and-join process.

        Short-circuits, in order:
        - an output filename without the `.mp4` suffix is a configuration error;
        - an existing output file means there is nothing to do.
        Neither touches the filesystem.

        Returns:
            The outcome of the run. Tool failures and filesystem errors are
            reported here with status FAILED, not raised.

        Raises:
            KeyboardInterrupt, RunInterrupted: After the active FFmpeg process
                has been terminated and the temp files removed.
        """
        started = datetime.now()
        try:
            self.validate_output_path()
        except ConfigurationException as e:
            logger.info(str(e))
            return self._result(RunStatus.CONFIG_ERROR, started, message=str(e))

        if self.output_path.exists():
            logger.info(f"{self.output_path} already exists. Nothing to do")
            return self._result(RunStatus.ALREADY_DONE, started)

        run_result: Optional[RunResult] = None
        try:
            self._clear_scratch_files()
            run_result = self._process(started)
        except ConfigurationException as e:
            logger.error(str(e))
            run_result = self._result(RunStatus.CONFIG_ERROR, started, message=str(e))
        except (WorkDirectoryException, CleanupException) as e:
            logger.error(f"Run aborted: {e}")
            run_result = self._result(RunStatus.FAILED, started, message=str(e))
        except RunInterrupted:
            raise
        except VidProcException as e:
            logger.error(f"Run aborted: {e}")
            run_result = self._result(RunStatus.FAILED, started, message=str(e))
        finally:
            if run_result is None or run_result.status is not RunStatus.COMPLETED:
                self._discard_partial_output()
            cleanup_error = self._final_cleanup()

        if cleanup_error and run_result.ok:
            run_result = self._result(
                RunStatus.FAILED, started, stages=run_result.stages, message=cleanup_error
            )
        return run_result

    def _process(self, started: datetime) -> RunResult:
        input_files = InputVideoFiles(
            self.input_dir,
            excluded_names={LISTING_FILENAME, TEMP_TRANSFORMS_FILE},
            excluded_paths={self.output_path},
        )
        input_videos = list(input_files.files)
        if not input_videos:
            logger.info(f"No input files found in {self.input_dir}. Nothing to do")
            return self._result(RunStatus.NO_INPUTS, started)

        duplicates = input_files.duplicate_base_names()
        if duplicates:
            clashes = "; ".join(", ".join(names) for names in duplicates.values())
            raise ConfigurationException(
                f"Input files must have distinct names without their suffix: {clashes}"
            )

        reserved = [path.name for path in input_videos if self.store.clashes_with_temp_artifact(base_name_of(path))]
        if reserved:
            raise ConfigurationException(
                f"Input file names are reserved for the temp files of a run, rename them: {', '.join(reserved)}"
            )

        if self.probe_inputs:
            for warning in preflight_check(input_videos):
                logger.warning(warning)

        self.store.ensure_directory()

        stages: List[StageResult] = []
        stabilized_videos: List[Path] = []
        for i, input_video in enumerate(input_videos, start=1):
            logger.info(f"[{i}/{len(input_videos)}] {input_video.name}")
            stabilization = self.stabilizer.stabilize(input_video)
            stages.extend(stabilization.stages)
            if not stabilization.ok:
                failure = stabilization.failure
                message = (
                    f"Stabilizing {input_video.name} failed in state {stabilization.state.value}: "
                    f"'{failure.display_cmd}' exited with code {failure.returncode}"
                )
                logger.error(message)
                return self._result(RunStatus.FAILED, started, stages=stages, message=message)
            stabilized_videos.append(stabilization.stabilized_video)

        concat_result, concat_stage = self.concatenator.join(stabilized_videos, self.output_path)
        stages.append(concat_stage)
        if not concat_result.ok:
            message = f"Joining failed: '{concat_result.display_cmd}' exited with code {concat_result.returncode}"
            logger.error(message)
            return self._result(RunStatus.FAILED, started, stages=stages, message=message)

        run_result = self._result(
            RunStatus.COMPLETED, started, stages=stages, stabilized_videos=stabilized_videos
        )
        self._report(run_result)
        RunHistory(self.store.work_dir).record(run_result, input_videos)
        return run_result

    def _report(self, run_result: RunResult):
        for stage in run_result.stages:
            logger.info(stage.summary_line())
        size = formatted_size(self.output_path.stat().st_size) if self.output_path.is_file() else "?"
        logger.success(
            f"Stabilized and joined videos in {format_timedelta(run_result.elapsed)} "
            f"into {self.output_path} ({size})"
        )

    def _clear_scratch_files(self):
        self.store.clear_temp_artifacts()
        self.concatenator.remove_listing()

    def _discard_partial_output(self):
        # The output did not exist when the run started, so anything there now is ours.
        try:
            if WorkDirectoryStore.delete_file(self.output_path):
                logger.warning(f"Removed incomplete output {self.output_path}")
        except WorkDirectoryException as e:
            logger.error(f"{e}. Delete it by hand before the next run.")

    def _final_cleanup(self) -> Optional[str]:
        try:
            self._clear_scratch_files()
        except (CleanupException, WorkDirectoryException) as e:
            logger.critical(f"Could not remove temp files: {e}")
            return str(e)
        return None

    def _result(
        self,
        status: RunStatus,
        started: datetime,
        stages: Optional[List[StageResult]] = None,
        message: str = "",
        stabilized_videos: Optional[List[Path]] = None,
    ) -> RunResult:
        return RunResult(
            status=status,
            output_path=self.output_path,
            stages=stages or [],
            elapsed=datetime.now() - started,
            message=message,
            stabilized_videos=stabilized_videos or [],
        )
