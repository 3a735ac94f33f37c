"""
Functions to plan and run a size-targeted two-pass encode.

calculate_compression() is a pure function: it reserves a fixed audio bitrate,
spreads the rest of the byte target over the duration, and picks the tallest
standard resolution whose bits-per-pixel stays above MIN_BPP. compress_video()
realizes such a plan with a rate-controlled two-pass FFmpeg encode.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from mediafit.engine.diagnostics import DiagnosticParser, FactKind, subscribed
from mediafit.errors import EncodeFailed, EngineError, TargetTooSmall
from mediafit.utils import logger, LogLevel
from mediafit.utils.constants import (
    BASE_AUDIO_BITRATE,
    COMPRESSED_OUTPUT,
    DEFAULT_VIDEO_ENCODER,
    FLOOR_HEIGHT,
    MIN_BPP,
    PASS1_SPAN,
    PASS2_BASE,
    PASSLOG_FILES,
    PASSLOG_PREFIX,
    READ_OUTPUT_PERCENT,
    STANDARD_RESOLUTIONS,
)
from mediafit.utils.progress import ProgressSink, emit, scaled_percent
from mediafit.utils.time_util import round_half_up


@dataclass(frozen=True)
class CompressionPlan:
    video_bitrate: int
    audio_bitrate: int
    width: int
    height: int
    min_width: int
    min_height: int
    min_video_bitrate: int


def even_width(height: int, aspect: float) -> int:
    """Aspect-preserving width for `height`, rounded to an even number of pixels."""
    return round_half_up(height * aspect / 2) * 2


def _pick_resolution(video_bitrate: float, width: int, height: int) -> Tuple[int, int]:
    if video_bitrate / (width * height) >= MIN_BPP:
        return width, height

    aspect = width / height
    for _label, h in STANDARD_RESOLUTIONS:
        if h >= height:
            continue
        w = even_width(h, aspect)
        if video_bitrate / (w * h) >= MIN_BPP:
            return w, h

    return even_width(FLOOR_HEIGHT, aspect), FLOOR_HEIGHT


def calculate_compression(file_size: int, duration: float, width: int, height: int,
                          target_bytes: int) -> CompressionPlan:
    """
    Plan bitrates and output resolution so the encode lands near `target_bytes`.

    Args:
        file_size: Source size in bytes (informational)
        duration: Source duration in seconds
        width: Source width in pixels
        height: Source height in pixels
        target_bytes: Desired output size in bytes

    Returns:
        CompressionPlan with the chosen resolution plus the 144p floor figures

    Raises:
        TargetTooSmall: the target cannot even hold the reserved audio
        ValueError: non-positive duration or dimensions
    """
    if duration <= 0 or width <= 0 or height <= 0:
        raise ValueError("Duration, width and height must be positive")

    audio_bitrate = BASE_AUDIO_BITRATE
    audio_bits = audio_bitrate * duration
    available_video_bits = target_bytes * 8 - audio_bits
    if available_video_bits <= 0:
        raise TargetTooSmall(target_bytes, audio_bits)

    video_bitrate = available_video_bits / duration
    new_width, new_height = _pick_resolution(video_bitrate, width, height)

    return CompressionPlan(
        video_bitrate=round_half_up(video_bitrate),
        audio_bitrate=audio_bitrate,
        width=new_width,
        height=new_height,
        min_width=even_width(FLOOR_HEIGHT, width / height),
        min_height=FLOOR_HEIGHT,
        min_video_bitrate=round_half_up(video_bitrate),
    )


def _video_args(input_path: str, plan: CompressionPlan, encoder: str) -> List[str]:
    video_k = max(1, round_half_up(plan.video_bitrate / 1000))
    return [
        "-i", input_path,
        "-vf", f"scale={plan.width}:{plan.height}",
        "-c:v", encoder,
        "-b:v", f"{video_k}k",
    ]


def build_pass_args(input_path: str, plan: CompressionPlan, pass_number: int,
                    encoder: str = DEFAULT_VIDEO_ENCODER) -> List[str]:
    """Build the FFmpeg arguments of pass 1 (analysis) or pass 2 (final)."""
    args = _video_args(input_path, plan, encoder)
    args += ["-pass", str(pass_number), "-passlogfile", PASSLOG_PREFIX]
    if pass_number == 1:
        return args + ["-an", "-f", "null", "-"]
    audio_k = round_half_up(plan.audio_bitrate / 1000)
    return args + ["-c:a", "aac", "-b:a", f"{audio_k}k", COMPRESSED_OUTPUT]


def _run_pass(engine, args: List[str], pass_number: int, duration: float, base: int,
              on_progress: Optional[ProgressSink]) -> None:
    label = "Analyzing" if pass_number == 1 else "Encoding"
    parser = DiagnosticParser({FactKind.ELAPSED_TIME})

    def _on_line(line: str) -> None:
        if not parser.feed(line) or duration <= 0:
            return
        pct = scaled_percent(parser.elapsed, duration, PASS1_SPAN)
        emit(on_progress, base + pct, f"Pass {pass_number}/2: {label}... {pct}%")

    try:
        with subscribed(engine, _on_line):
            engine.exec(args)
    except EngineError as e:
        logger.log("compress.pass_failed", LogLevel.ERROR, pass_number=pass_number, exit_code=e.returncode)
        raise EncodeFailed(pass_number, e) from e


def _discard(engine, name: str) -> None:
    try:
        engine.delete_artifact(name)
    except OSError as e:
        logger.log("compress.cleanup_failed", LogLevel.DEBUG, artifact=name, error=str(e))


def compress_video(engine, input_path: str, plan: CompressionPlan, duration: float,
                   on_progress: Optional[ProgressSink] = None,
                   encoder: str = DEFAULT_VIDEO_ENCODER) -> bytes:
    """
    Run the two-pass encode described by `plan` and return the encoded bytes.

    Pass 1 reports progress in [0, 45], pass 2 in [50, 95]. The output and the
    pass statistics are removed from the workspace whether or not the encode
    succeeds.

    Raises:
        EncodeFailed: either pass exited with an error
    """
    logger.log("compress.start", LogLevel.INFO,
               path=input_path,
               res=f"{plan.width}x{plan.height}",
               video_bitrate=plan.video_bitrate,
               audio_bitrate=plan.audio_bitrate,
               encoder=encoder)
    try:
        emit(on_progress, 0, "Pass 1/2: Analyzing video...")
        _run_pass(engine, build_pass_args(input_path, plan, 1, encoder), 1, duration, 0, on_progress)

        emit(on_progress, PASS2_BASE, "Pass 2/2: Encoding video...")
        _run_pass(engine, build_pass_args(input_path, plan, 2, encoder), 2, duration, PASS2_BASE, on_progress)

        emit(on_progress, READ_OUTPUT_PERCENT, "Reading output file...")
        data = engine.read_artifact(COMPRESSED_OUTPUT)
    finally:
        for name in (COMPRESSED_OUTPUT, *PASSLOG_FILES):
            _discard(engine, name)

    logger.log("compress.complete", LogLevel.INFO, path=input_path, size=len(data))
    return data
