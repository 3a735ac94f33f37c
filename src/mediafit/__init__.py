"""
A media processing package for size-bounded splitting and size-targeted compression.

This package drives an external FFmpeg process and reacts to its diagnostic
output to cut large media files into byte-bounded chunks, or to re-encode them
so the result lands on a target byte budget. Core functionalities include
probing media facts from FFmpeg's log stream, planning chunk ranges with
feedback from the engine, and planning and running two-pass encodes.

The package is organized into several categories:
- Engine session, diagnostic parsing, and probing (mediafit.engine).
- Byte-bounded splitting (mediafit.chunk).
- Size-targeted compression (mediafit.compress).
- Format conversion (mediafit.convert).
- Utility functions for logging, configuration, and file handling.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
