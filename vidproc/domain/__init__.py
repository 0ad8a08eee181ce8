"""
This package contains the core domain models of vidproc.

Modules:
    exceptions.py: Custom exception types for configuration, filesystem,
                   cleanup and interrupt conditions.
    stage.py: The checkpoint states of an input video and the result values
              returned by every stage of a run (tool, stage, per-video and
              whole-run results).
    media.py: `MediaFile`, a probed input video, and the preflight check that
              warns about inputs that cannot be joined by stream copy.
"""
