"""
Byte-bounded splitting of one media asset.

The planner estimates how many seconds of the source fit in one chunk from the
average bitrate, then cuts chunks one at a time with a stream copy under a hard
FFmpeg size cap (`-fs`). After each cut it advances by the time FFmpeg actually
reached (its last `time=` report) rather than the estimate, so a cap that stops
a high-bitrate stretch early simply makes the next chunk start earlier.
"""
import math
from dataclasses import dataclass
from typing import List, Optional

from mediafit.engine.diagnostics import DiagnosticParser, FactKind, subscribed
from mediafit.engine.probe import MediaAsset
from mediafit.engine.session import output_ref
from mediafit.errors import EngineError, SplitAborted
from mediafit.utils import logger, LogLevel
from mediafit.utils.constants import (
    BASE_AUDIO_BITRATE,
    CHUNK_END_EPSILON,
    CHUNK_MARGIN_BYTES,
    CHUNK_MARGIN_FACTOR,
    CHUNK_MIN_BUDGET_FRACTION,
    CHUNK_QUALITY_MARGIN,
    DEFAULT_VIDEO_ENCODER,
    MARGIN_POLICY_FIXED,
    MARGIN_POLICY_PERCENT,
)
from mediafit.utils.file_util import chunk_name
from mediafit.utils.progress import ChunkProgress, ProgressSink
from mediafit.utils.time_util import round_half_up


@dataclass
class Chunk:
    name: str
    data: bytes
    size: int
    start: float
    end: float


@dataclass(frozen=True)
class ChunkSettings:
    """
    Tunables of the split loop.

    margin_policy: "percent" budgets margin_factor * max bytes per chunk;
        "fixed" budgets max bytes minus margin_bytes (never below
        CHUNK_MIN_BUDGET_FRACTION of the cap).
    reencode_oversize: re-encode a chunk that still came out above the cap
        with a bitrate ceiling. When False the size cap alone is trusted.
    quality_margin: bitrate discount applied by that re-encode.
    """
    margin_policy: str = MARGIN_POLICY_PERCENT
    margin_factor: float = CHUNK_MARGIN_FACTOR
    margin_bytes: int = CHUNK_MARGIN_BYTES
    reencode_oversize: bool = True
    quality_margin: float = CHUNK_QUALITY_MARGIN
    audio_bitrate: int = BASE_AUDIO_BITRATE
    video_encoder: str = DEFAULT_VIDEO_ENCODER

    def __post_init__(self):
        if self.margin_policy not in (MARGIN_POLICY_PERCENT, MARGIN_POLICY_FIXED):
            raise ValueError(f"Unknown margin policy: {self.margin_policy!r}")


def chunk_budget(max_chunk_bytes: int, settings: ChunkSettings) -> float:
    """Bytes of source assumed to fit one chunk when estimating its duration."""
    if settings.margin_policy == MARGIN_POLICY_FIXED:
        return max(max_chunk_bytes - settings.margin_bytes, max_chunk_bytes * CHUNK_MIN_BUDGET_FRACTION)
    return max_chunk_bytes * settings.margin_factor


def estimate_chunk_duration(file_size: int, duration: float, max_chunk_bytes: int,
                            settings: ChunkSettings = ChunkSettings()) -> float:
    avg_bitrate = file_size / duration  # bytes per second
    return chunk_budget(max_chunk_bytes, settings) / avg_bitrate


def estimate_chunk_count(duration: float, estimated_chunk_duration: float) -> int:
    return math.ceil(duration / estimated_chunk_duration)


def oversize_target_bitrate(max_chunk_bytes: int, quality_margin: float, actual_duration: float) -> int:
    """Total bits/sec that fits `max_chunk_bytes` over `actual_duration` after the margin."""
    return math.floor(max_chunk_bytes * quality_margin * 8 / actual_duration)


def _copy_args(input_path: str, start: float, length: float, max_chunk_bytes: int, name: str) -> List[str]:
    return [
        "-ss", str(start),
        "-i", input_path,
        "-t", str(length),
        "-fs", str(max_chunk_bytes),
        "-c", "copy",
        "-avoid_negative_ts", "make_zero",
        output_ref(name),
    ]


def _reencode_args(input_path: str, start: float, length: float, max_chunk_bytes: int, name: str,
                   target_bitrate: int, settings: ChunkSettings) -> List[str]:
    audio_k = max(1, round_half_up(settings.audio_bitrate / 1000))
    video_k = max(1, round_half_up((target_bitrate - settings.audio_bitrate) / 1000))
    return [
        "-ss", str(start),
        "-i", input_path,
        "-t", str(length),
        "-fs", str(max_chunk_bytes),
        "-c:v", settings.video_encoder,
        "-b:v", f"{video_k}k",
        "-maxrate", f"{video_k}k",
        "-bufsize", f"{video_k * 2}k",
        "-c:a", "aac",
        "-b:a", f"{audio_k}k",
        "-avoid_negative_ts", "make_zero",
        output_ref(name),
    ]


def _discard(engine, name: str) -> None:
    try:
        engine.delete_artifact(name)
    except OSError as e:
        logger.log("chunk.cleanup_failed", LogLevel.DEBUG, artifact=name, error=str(e))


def _cut(engine, args: List[str], name: str):
    """Run one cut and return (bytes, elapsed seconds reported by FFmpeg or None)."""
    parser = DiagnosticParser({FactKind.ELAPSED_TIME})
    try:
        with subscribed(engine, parser):
            engine.exec(args)
        data = engine.read_artifact(name)
    finally:
        _discard(engine, name)
    return data, parser.elapsed


def split_video(engine, asset: MediaAsset, max_chunk_bytes: int,
                on_progress: Optional[ProgressSink] = None,
                settings: ChunkSettings = ChunkSettings()) -> List[Chunk]:
    """
    Cut `asset` into chunks of at most `max_chunk_bytes` (best effort).

    Returns the chunks in source order. A final 100% event is always emitted,
    even when the loop produced nothing.

    Raises:
        ValueError: non-positive size, duration, or byte limit.
        SplitAborted: an engine invocation failed; carries the chunks cut so far.
    """
    if asset.size <= 0 or asset.duration <= 0 or max_chunk_bytes <= 0:
        raise ValueError("File size, duration and max chunk bytes must all be positive")

    duration = asset.duration
    estimated_chunk_duration = estimate_chunk_duration(asset.size, duration, max_chunk_bytes, settings)
    estimated_total = estimate_chunk_count(duration, estimated_chunk_duration)

    logger.log("chunk.plan", LogLevel.INFO,
               file=asset.name,
               duration=round(duration, 2),
               chunk_seconds=round(estimated_chunk_duration, 2),
               est_chunks=estimated_total,
               policy=settings.margin_policy)

    chunks: List[Chunk] = []
    current_time = 0.0
    chunk_index = 0

    while current_time < duration - CHUNK_END_EPSILON:
        chunk_index += 1
        name = chunk_name(asset.name, chunk_index)

        if on_progress:
            on_progress(ChunkProgress(
                percent=round_half_up(current_time / duration * 100),
                message=f"Splitting chunk {chunk_index} of ~{estimated_total}...",
                current=chunk_index,
                total=max(estimated_total, chunk_index),
            ))

        try:
            data, elapsed = _cut(engine, _copy_args(asset.path, current_time, estimated_chunk_duration,
                                                    max_chunk_bytes, name), name)
            actual_duration = elapsed if elapsed else estimated_chunk_duration

            if len(data) > max_chunk_bytes and settings.reencode_oversize:
                target_bitrate = oversize_target_bitrate(max_chunk_bytes, settings.quality_margin,
                                                         actual_duration)
                logger.log("chunk.oversize", LogLevel.WARN,
                           chunk=name,
                           size=len(data),
                           limit=max_chunk_bytes,
                           target_bitrate=target_bitrate)
                data, elapsed = _cut(engine, _reencode_args(asset.path, current_time, actual_duration,
                                                            max_chunk_bytes, name, target_bitrate,
                                                            settings), name)
                actual_duration = elapsed if elapsed else actual_duration
        except EngineError as e:
            logger.log("chunk.failed", LogLevel.ERROR, file=asset.name, chunk=name, produced=len(chunks))
            raise SplitAborted(chunks, e) from e

        chunks.append(Chunk(name=name, data=data, size=len(data),
                            start=current_time, end=current_time + actual_duration))
        logger.log("chunk.written", LogLevel.DEBUG,
                   chunk=name,
                   size=len(data),
                   start=round(current_time, 2),
                   seconds=round(actual_duration, 2))

        current_time += actual_duration

    if on_progress:
        on_progress(ChunkProgress(percent=100, message="Done!", current=chunk_index, total=chunk_index))

    logger.log("chunk.complete", LogLevel.INFO, file=asset.name, chunks=len(chunks))
    return chunks
