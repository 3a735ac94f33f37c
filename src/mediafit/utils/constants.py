"""
Constants and configuration settings for media splitting and compression.

This module contains the canonical numbers used by the chunk and compression
planners, the static lists of recognized media extensions, status codes used
by the batch workflows, and the environment-driven run settings. A `.env` file
in the working directory is honored for the run settings.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Run settings
FFMPEG_BINARY = os.getenv("MEDIAFIT_FFMPEG", "ffmpeg")
DEFAULT_CHUNK_SIZE_MB = _env_int("MEDIAFIT_CHUNK_SIZE_MB", 200)
DEFAULT_TARGET_MB = _env_int("MEDIAFIT_TARGET_MB", 25)
LOG_DIR = os.getenv("MEDIAFIT_LOG_DIR")

MEBIBYTE = 1024 * 1024

# Target size presets offered by the compressor (bytes)
SIZE_PRESETS_MB = (8, 25, 50, 100)

# Chunk planner parameters
CHUNK_MARGIN_FACTOR = 0.95  # Fraction of the byte budget used when estimating chunk duration
CHUNK_MARGIN_BYTES = 5 * MEBIBYTE  # Byte margin for the fixed-margin policy
CHUNK_MIN_BUDGET_FRACTION = 0.5  # Fixed-margin budget never drops below this share of the cap
CHUNK_QUALITY_MARGIN = 0.95  # Bitrate discount for the oversize re-encode
CHUNK_END_EPSILON = 0.1  # Seconds; absorbs rounding at the end of the stream
MARGIN_POLICY_PERCENT = "percent"
MARGIN_POLICY_FIXED = "fixed"

# Compression planner parameters
BASE_AUDIO_BITRATE = 96_000  # bits/sec reserved for audio
DEFAULT_AUDIO_BITRATE = 128_000  # bits/sec assumed when the probe finds no audio bitrate
MIN_BPP = 0.04  # Minimum bits per pixel per second for acceptable quality
STANDARD_RESOLUTIONS = (
    ("1080p", 1080),
    ("720p", 720),
    ("480p", 480),
    ("360p", 360),
    ("240p", 240),
    ("144p", 144),
)
FLOOR_HEIGHT = 144
DEFAULT_VIDEO_ENCODER = "libx264"

# Two-pass progress windows (percent)
PASS1_SPAN = 45
PASS2_BASE = 50
READ_OUTPUT_PERCENT = 98

# Engine workspace artifact names
PASSLOG_PREFIX = "ffmpeg2pass"
PASSLOG_FILES = (f"{PASSLOG_PREFIX}-0.log", f"{PASSLOG_PREFIX}-0.log.mbtree")
COMPRESSED_OUTPUT = "compressed_output.mp4"
DEFAULT_CHUNK_EXT = ".mp4"

# Accepted media file extensions
VIDEO_FORMATS = (
    "mp4", "m4v", "mp4v", "3gp", "3g2", "avi", "mov", "wmv", "mkv", "flv", "ogv", "webm",
    "h264", "264", "hevc", "265",
)
AUDIO_FORMATS = ("mp3", "wav", "ogg", "aac", "wma", "flac", "m4a")
IMAGE_FORMATS = ("jpg", "jpeg", "png", "gif", "bmp", "webp", "ico", "tif", "tiff", "svg", "raw", "tga")
VIDEO_EXTENSIONS = {f".{ext}" for ext in VIDEO_FORMATS}
MEDIA_EXTENSIONS = VIDEO_EXTENSIONS | {f".{ext}" for ext in AUDIO_FORMATS + IMAGE_FORMATS}

# Processing status codes
STATUS_OK = "OK"
STATUS_SKIP = "SKIP"
STATUS_FAIL = "FAIL"
STATUS_DRY_RUN = "DRY-RUN"
