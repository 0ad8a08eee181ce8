"""
The per-video stabilization state machine.

Each input video moves through three states:

    NEEDS_ANALYSIS -> NEEDS_TRANSFORM -> COMPLETE

The current state is never remembered between visits; it is derived from the
checkpoint files in the work directory every time `VideoStabilizer.stabilize`
is called. This is what makes a run resumable: if a previous run was killed
after the (expensive) analysis pass committed its transforms, the next run
starts at the (cheaper) transform pass for that video.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.video import DETECT_FILTER, TRANSFORM_FILTER
from ..domain.stage import (
    StabilizationResult,
    StabilizationState,
    StageKind,
    StageResult,
)
from ..utils.ffmpeg_utils import build_analysis_cmd, build_transform_cmd
from .file_processing_service import base_name_of
from .tool_invoker import ToolInvoker
from .work_directory import WorkDirectoryStore


class VideoStabilizer:
    """
    Drives one input video through analysis and transform, skipping whatever
    the work directory says is already done.

    Attributes:
        store: The work directory holding the checkpoints.
        invoker: Runs the FFmpeg commands.
        detect_filter: vid.stab detect filter expression for the analysis pass.
        transform_filter: vid.stab transform filter expression.
    """

    def __init__(
        self,
        store: WorkDirectoryStore,
        invoker: ToolInvoker,
        detect_filter: str = DETECT_FILTER,
        transform_filter: str = TRANSFORM_FILTER,
    ):
        self.store = store
        self.invoker = invoker
        self.detect_filter = detect_filter
        self.transform_filter = transform_filter

    def determine_state(self, base_name: str) -> StabilizationState:
        """
        Derives the checkpoint state of an input from the work directory.

        Args:
            base_name: The input filename without its suffix.

        Returns:
            The first state that still has work to do, or COMPLETE.
        """
        if self.store.has_stabilized_video(base_name):
            return StabilizationState.COMPLETE
        if self.store.has_transform_descriptor(base_name):
            return StabilizationState.NEEDS_TRANSFORM
        return StabilizationState.NEEDS_ANALYSIS

    def stabilize(self, input_video: Path) -> StabilizationResult:
        """
        Brings one input video to the COMPLETE state.

        Steps, starting from the state found on disk:
        1. COMPLETE: return the existing stabilized video. No FFmpeg call.
        2. Otherwise remove leftover temp files from a crashed attempt, so the
           analysis never appends to a stale transforms file.
        3. NEEDS_TRANSFORM: copy the saved transforms to FFmpeg's default location.
        4. NEEDS_ANALYSIS: run the analysis pass and checkpoint its transforms.
        5. Run the transform pass, checkpoint the stabilized video, and remove
           the temp transforms.

        A failing FFmpeg call stops the sequence and is reported in the returned
        result; nothing is committed for the failed stage.

        Args:
            input_video: The original video.

        Returns:
            The outcome of this visit, including the stages that were run.

        Raises:
            WorkDirectoryException: If a checkpoint file cannot be read or written.
            CleanupException: If leftover temp files cannot be removed.
        """
        base_name = base_name_of(input_video)
        start_state = self.determine_state(base_name)
        result = StabilizationResult(
            input_video=input_video, start_state=start_state, state=start_state
        )

        if start_state is StabilizationState.COMPLETE:
            result.stabilized_video = self.store.stabilized_video_path(base_name)
            logger.info(f"Stabilized video already exists: {result.stabilized_video}")
            return result

        self.store.clear_temp_artifacts()

        if start_state is StabilizationState.NEEDS_TRANSFORM:
            self._warn_if_descriptor_older_than_input(input_video, base_name)
            logger.info(
                f"Transforms file already exists: {self.store.transform_descriptor_path(base_name)}"
            )
            self.store.restore_transform_descriptor(base_name, self.store.temp_transforms_file)
        else:
            analysis_stage = self._analyze(input_video, base_name, result)
            if analysis_stage is None:
                return result
            result.stages.append(analysis_stage)
            result.state = StabilizationState.NEEDS_TRANSFORM

        transform_stage = self._transform(input_video, base_name, result)
        if transform_stage is None:
            return result
        result.stages.append(transform_stage)
        result.state = StabilizationState.COMPLETE
        result.stabilized_video = self.store.stabilized_video_path(base_name)
        return result

    def _analyze(
        self, input_video: Path, base_name: str, result: StabilizationResult
    ) -> Optional[StageResult]:
        logger.info(f"Creating transforms file for: {input_video}")
        tool_result = self.invoker.run(
            build_analysis_cmd(input_video, self.detect_filter), cwd=self.store.root
        )
        if not tool_result.ok:
            result.failure = tool_result
            return None

        transforms_file = self.store.commit_temp_as_transform_descriptor(
            self.store.temp_transforms_file, base_name
        )
        stage = StageResult(
            kind=StageKind.ANALYSIS,
            subject=input_video.name,
            elapsed=tool_result.elapsed,
            message=f"analysed and saved transforms to {transforms_file}",
        )
        logger.info(stage.summary_line())
        return stage

    def _transform(
        self, input_video: Path, base_name: str, result: StabilizationResult
    ) -> Optional[StageResult]:
        logger.info(f"Creating stabilized video for: {input_video}")
        temp_video = self.store.temp_stabilized_video
        tool_result = self.invoker.run(
            build_transform_cmd(input_video, temp_video, self.transform_filter),
            cwd=self.store.root,
        )
        if not tool_result.ok:
            result.failure = tool_result
            return None

        stabilized_video = self.store.commit_temp_as_stabilized_video(temp_video, base_name)
        self.store.delete_file(self.store.temp_transforms_file)
        stage = StageResult(
            kind=StageKind.TRANSFORM,
            subject=input_video.name,
            elapsed=tool_result.elapsed,
            message=f"stabilized into {stabilized_video}",
        )
        logger.info(stage.summary_line())
        return stage

    def _warn_if_descriptor_older_than_input(self, input_video: Path, base_name: str):
        # Saved transforms are reused as-is; only the timestamps are compared.
        descriptor = self.store.transform_descriptor_path(base_name)
        try:
            input_mtime = input_video.stat().st_mtime
            descriptor_mtime = descriptor.stat().st_mtime
        except OSError:
            return
        if input_mtime > descriptor_mtime:
            logger.warning(
                f"{input_video.name} was modified after {descriptor.name} was written "
                f"({datetime.fromtimestamp(input_mtime):%Y-%m-%d %H:%M:%S} > "
                f"{datetime.fromtimestamp(descriptor_mtime):%Y-%m-%d %H:%M:%S}). "
                f"Reusing the saved transforms anyway; delete {descriptor} to re-analyse."
            )
