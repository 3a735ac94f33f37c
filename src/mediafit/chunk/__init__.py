"""Byte-bounded splitting for mediafit.

This package provides two levels of functionality:
- core: the feedback-corrected split loop (Chunk, ChunkSettings, split_video)
- batch: whole-file and multi-file orchestration, chunk estimates, file discovery
"""

from .core import (
    Chunk,
    ChunkSettings,
    chunk_budget,
    estimate_chunk_count,
    estimate_chunk_duration,
    oversize_target_bitrate,
    split_video,
)
from .batch import (
    SplitResult,
    estimate_total_chunks,
    iter_video_files,
    split_file,
    split_files,
)

__all__ = [
    # Split loop
    "Chunk",
    "ChunkSettings",
    "chunk_budget",
    "estimate_chunk_count",
    "estimate_chunk_duration",
    "oversize_target_bitrate",
    "split_video",
    # Batch
    "SplitResult",
    "estimate_total_chunks",
    "iter_video_files",
    "split_file",
    "split_files",
]
