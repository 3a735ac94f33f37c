"""
Functions to gather media facts by running a zero-output FFmpeg pass.

FFmpeg is asked to process nothing (`-t 0` into the null muxer); what it prints
about the input on the way is harvested by a DiagnosticParser. Each probe costs
exactly one engine invocation.
"""
from dataclasses import dataclass
from typing import Optional

from mediafit.engine.diagnostics import DiagnosticParser, FactKind, subscribed
from mediafit.errors import EngineError, MissingDuration, MissingResolution
from mediafit.utils import logger, LogLevel
from mediafit.utils.constants import DEFAULT_AUDIO_BITRATE


@dataclass(frozen=True)
class VideoInfo:
    duration: float
    width: int
    height: int
    audio_bitrate: int = DEFAULT_AUDIO_BITRATE


@dataclass(frozen=True)
class MediaAsset:
    name: str
    path: str
    size: int
    duration: float
    width: Optional[int] = None
    height: Optional[int] = None
    audio_bitrate: int = DEFAULT_AUDIO_BITRATE


def probe_args(input_path: str) -> list:
    return ["-i", input_path, "-f", "null", "-t", "0", "-"]


def _run_probe(engine, input_path: str, parser: DiagnosticParser) -> Optional[EngineError]:
    """Run the probe invocation; an engine failure is returned instead of raised."""
    with subscribed(engine, parser):
        try:
            engine.exec(probe_args(input_path))
        except EngineError as e:
            logger.log("probe.exec_failed", LogLevel.DEBUG, path=input_path, exit_code=e.returncode)
            return e
    return None


def probe_duration(engine, input_path: str) -> float:
    """
    Probe the duration of `input_path` in seconds.

    Raises:
        MissingDuration: FFmpeg never printed a Duration line.
    """
    parser = DiagnosticParser({FactKind.DURATION})
    failure = _run_probe(engine, input_path, parser)

    if not parser.duration:
        raise MissingDuration(input_path) from failure

    logger.log("probe.duration", LogLevel.DEBUG, path=input_path, duration=parser.duration)
    return parser.duration


def probe_video_info(engine, input_path: str) -> VideoInfo:
    """
    Probe duration, resolution, and audio bitrate of `input_path`.

    The audio bitrate falls back to DEFAULT_AUDIO_BITRATE when FFmpeg reports none.

    Raises:
        MissingDuration: no Duration line was printed.
        MissingResolution: no video stream with a WxH size was printed.
    """
    parser = DiagnosticParser({FactKind.DURATION, FactKind.RESOLUTION, FactKind.AUDIO_BITRATE})
    failure = _run_probe(engine, input_path, parser)

    if not parser.duration:
        raise MissingDuration(input_path) from failure
    if not parser.resolution or not all(parser.resolution):
        raise MissingResolution(input_path) from failure

    width, height = parser.resolution
    info = VideoInfo(
        duration=parser.duration,
        width=width,
        height=height,
        audio_bitrate=parser.audio_bitrate or DEFAULT_AUDIO_BITRATE,
    )
    logger.log("probe.video_info", LogLevel.DEBUG,
               path=input_path,
               duration=info.duration,
               res=f"{info.width}x{info.height}",
               audio_bitrate=info.audio_bitrate)
    return info


def probe_asset(engine, input_path: str, name: str, size: int, with_video: bool = False) -> MediaAsset:
    """Build a MediaAsset from one probe of `input_path`."""
    if with_video:
        info = probe_video_info(engine, input_path)
        return MediaAsset(name, input_path, size, info.duration, info.width, info.height, info.audio_bitrate)
    return MediaAsset(name, input_path, size, probe_duration(engine, input_path))
