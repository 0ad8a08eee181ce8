"""
vidproc: stabilize a folder of video files with FFmpeg and join them into one MP4.

Layout:
    cli.py      Command-line arguments.
    config/     Static settings and the optional user YAML configuration.
    domain/     Exceptions, result values, and the probed input model.
    services/   Work directory, FFmpeg invoker, per-video state machine,
                input discovery, concatenation, run history.
    pipeline/   The run orchestrator.
    utils/      FFmpeg command builders and formatting helpers.
"""
