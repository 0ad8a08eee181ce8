"""
Configuration settings related to video processing.

This module defines the container suffix required for the output, the vid.stab
filters used for the two stabilization passes, and the ffprobe fields checked
before a run.
"""
from .common import USER_CONFIG

# --- Output Container ---
# Stream-copy concatenation keeps the codecs produced by the transform stage
# (H.264/AAC by default), so the joined file is always an MP4.
VIDEO_FILE_SUFFIX = ".mp4"

# --- vid.stab Filters ---
# 'filters.detect' and 'filters.transform' in config.user.yaml may carry options,
# e.g. "vidstabdetect=shakiness=8:accuracy=15". The detect filter must not set
# 'result=', because the transform stage reads the default transforms file.
DEFAULT_DETECT_FILTER = "vidstabdetect"
DEFAULT_TRANSFORM_FILTER = "vidstabtransform"

_filters_config = USER_CONFIG.get("filters") or {}
DETECT_FILTER: str = _filters_config.get("detect") or DEFAULT_DETECT_FILTER
TRANSFORM_FILTER: str = _filters_config.get("transform") or DEFAULT_TRANSFORM_FILTER

# Filters that must be listed by `ffmpeg -filters` for a run to make sense.
REQUIRED_FILTERS = ("vidstabdetect", "vidstabtransform")

# --- Preflight Probe ---
# Keys of the first video stream that must match across all inputs for the
# stream-copy concatenation to produce a playable file.
CONCAT_MATCH_KEYS = ("width", "height")
