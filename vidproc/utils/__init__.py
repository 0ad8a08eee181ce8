"""
Utilities Package for vidproc.

Modules:
    - ffmpeg_utils.py: Builds the FFmpeg command lines and the concat listing lines.
    - format_utils.py: Formats durations and file sizes for log messages.
    - module_updater.py: Locates FFmpeg/ffprobe and verifies the vid.stab filters.
"""
