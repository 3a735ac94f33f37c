"""FFmpeg engine access for mediafit.

This package provides three layers:
- session: the Engine (exec, line subscription, mount slot, workspace artifacts)
- diagnostics: fact extraction from FFmpeg's stderr text
- probe: zero-output probes producing VideoInfo / MediaAsset
"""

from .diagnostics import (
    DiagnosticFact,
    DiagnosticParser,
    FactKind,
    extract_facts,
    parse_lines,
    subscribed,
)
from .probe import (
    MediaAsset,
    VideoInfo,
    probe_asset,
    probe_duration,
    probe_video_info,
)
from .session import Engine, load_engine, output_ref

__all__ = [
    # Session
    "Engine",
    "load_engine",
    "output_ref",
    # Diagnostics
    "DiagnosticFact",
    "DiagnosticParser",
    "FactKind",
    "extract_facts",
    "parse_lines",
    "subscribed",
    # Probing
    "MediaAsset",
    "VideoInfo",
    "probe_asset",
    "probe_duration",
    "probe_video_info",
]
