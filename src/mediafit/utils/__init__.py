"""
A module providing constants, utility functions, and logging mechanisms
for media splitting and compression tasks.

This module includes the canonical planner constants, run settings read from
the environment, naming helpers, progress event types, and a structured
logging mechanism for safe and controlled outputs.
"""

from .constants import (
    AUDIO_FORMATS,
    DEFAULT_CHUNK_SIZE_MB,
    DEFAULT_TARGET_MB,
    FFMPEG_BINARY,
    IMAGE_FORMATS,
    MEBIBYTE,
    MEDIA_EXTENSIONS,
    SIZE_PRESETS_MB,
    STATUS_DRY_RUN,
    STATUS_FAIL,
    STATUS_OK,
    STATUS_SKIP,
    VIDEO_EXTENSIONS,
    VIDEO_FORMATS,
)
from .logger import LogLevel
from .progress import ChunkProgress, ProgressEvent, ProgressSink

__all__ = [
    "FFMPEG_BINARY",
    "DEFAULT_CHUNK_SIZE_MB",
    "DEFAULT_TARGET_MB",
    "MEBIBYTE",
    "SIZE_PRESETS_MB",
    "VIDEO_FORMATS",
    "AUDIO_FORMATS",
    "IMAGE_FORMATS",
    "VIDEO_EXTENSIONS",
    "MEDIA_EXTENSIONS",
    "STATUS_OK",
    "STATUS_SKIP",
    "STATUS_FAIL",
    "STATUS_DRY_RUN",
    "LogLevel",
    "ProgressEvent",
    "ChunkProgress",
    "ProgressSink",
]
