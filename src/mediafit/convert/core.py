"""
Container/format conversion with progress from FFmpeg's time= reports.

Conversions let FFmpeg pick codecs from the output extension. Converting a video
container to an audio-only format drops the video track; converting to an image
format keeps only the first frame.
"""
from typing import Optional

from mediafit.engine.diagnostics import DiagnosticParser, FactKind, subscribed
from mediafit.engine.probe import probe_duration
from mediafit.errors import MissingDuration
from mediafit.utils import AUDIO_FORMATS, IMAGE_FORMATS, VIDEO_FORMATS, logger, LogLevel
from mediafit.utils.file_util import extension_of
from mediafit.utils.progress import ProgressSink, emit, scaled_percent


def probe_media_duration(engine, input_path: str) -> float:
    """Duration in seconds, or 0.0 when FFmpeg reports none (progress becomes indeterminate)."""
    try:
        return probe_duration(engine, input_path)
    except MissingDuration:
        logger.log("convert.no_duration", LogLevel.WARN, path=input_path)
        return 0.0


def is_video_to_audio(input_ext: str, output_ext: str) -> bool:
    return input_ext.lower() in VIDEO_FORMATS and output_ext.lower() in AUDIO_FORMATS


def is_image(ext: str) -> bool:
    return ext.lower() in IMAGE_FORMATS


def build_convert_args(input_path: str, output_format: str) -> list:
    args = ["-i", input_path]
    if is_video_to_audio(extension_of(input_path), output_format):
        args.append("-vn")
    if is_image(output_format):
        # Image outputs hold exactly one frame
        args += ["-frames:v", "1"]
    args.append(f"output.{output_format}")
    return args


def convert_media(engine, input_path: str, output_format: str, duration: float,
                  on_progress: Optional[ProgressSink] = None) -> bytes:
    """Convert `input_path` to `output_format` and return the converted bytes."""
    output_name = f"output.{output_format}"
    parser = DiagnosticParser({FactKind.ELAPSED_TIME})

    def _on_line(line: str) -> None:
        if parser.feed(line) and duration > 0:
            pct = scaled_percent(parser.elapsed, duration, 100)
            emit(on_progress, pct, f"Converting... {pct}%")

    try:
        with subscribed(engine, _on_line):
            engine.exec(build_convert_args(input_path, output_format))
        data = engine.read_artifact(output_name)
    finally:
        try:
            engine.delete_artifact(output_name)
        except OSError as e:
            logger.log("convert.cleanup_failed", LogLevel.DEBUG, artifact=output_name, error=str(e))

    logger.log("convert.complete", LogLevel.INFO, path=input_path, fmt=output_format, size=len(data))
    return data
