"""Media format conversion for mediafit."""

from .core import (
    build_convert_args,
    convert_media,
    is_image,
    is_video_to_audio,
    probe_media_duration,
)

__all__ = [
    "build_convert_args",
    "convert_media",
    "is_image",
    "is_video_to_audio",
    "probe_media_duration",
]
