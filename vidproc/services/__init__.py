"""
Services Package for vidproc.

This package contains the "service layer" of the application: classes that each
perform one well-defined task for the pipeline.

- **Work Directory (`WorkDirectoryStore`):** owns the checkpoint files and the
  run-scoped temp files, and commits finished files atomically.
- **Tool Invoker (`ToolInvoker`):** runs one FFmpeg command at a time and can
  terminate it.
- **Stabilizer (`VideoStabilizer`):** the per-video state machine that skips
  whatever the checkpoints say is already done.
- **Input Discovery (`InputVideoFiles`):** lists the inputs in join order.
- **Concatenator (`VideoConcatenator`):** writes the concat listing and joins
  the stabilized videos without re-encoding.
- **Run History (`RunHistory`):** appends a YAML record of each completed run.
"""
from .concatenator import VideoConcatenator
from .file_processing_service import InputVideoFiles
from .logging_service import RunHistory
from .stabilizer import VideoStabilizer
from .tool_invoker import ToolInvoker, ToolProcess
from .work_directory import WorkDirectoryStore

__all__ = [
    "InputVideoFiles",
    "RunHistory",
    "ToolInvoker",
    "ToolProcess",
    "VideoConcatenator",
    "VideoStabilizer",
    "WorkDirectoryStore",
]
