"""Size-targeted compression for mediafit.

This package provides two levels of functionality:
- core: the pure compression planner and the two-pass encode orchestrator
- batch: single-file orchestration (mount, probe, plan, encode, write)
"""

from .core import (
    CompressionPlan,
    build_pass_args,
    calculate_compression,
    compress_video,
    even_width,
)
from .batch import compress_file, compressed_path

__all__ = [
    # Planning
    "CompressionPlan",
    "calculate_compression",
    "even_width",
    # Encoding
    "build_pass_args",
    "compress_video",
    "compress_file",
    "compressed_path",
]
