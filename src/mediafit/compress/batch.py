"""
High-level compression of single files to a target size.

compress_file() mounts a file, probes it, plans the encode, runs it, and writes
`<name>_compressed.mp4` under the output folder, mirroring the source folder
layout below `src_root` when one is given. It never raises for per-file
problems; the outcome is reported as a (source, destination, status) tuple so
callers can keep going with the next file.
"""
from pathlib import Path
from typing import Optional, Tuple

from mediafit.engine.probe import probe_video_info
from mediafit.errors import MediaFitError
from mediafit.utils import STATUS_DRY_RUN, STATUS_FAIL, STATUS_OK, STATUS_SKIP, logger, LogLevel
from mediafit.utils.constants import DEFAULT_VIDEO_ENCODER
from mediafit.utils.file_util import compressed_name, mirrored_dir, sanitize_filename, write_output
from mediafit.utils.progress import ProgressSink, emit, rebased
from mediafit.utils.stage import Stage, StageTracker
from . import core


def compressed_path(src: Path, out_root: Path, src_root: Optional[Path] = None) -> Path:
    """Where the result for `src` is written; mirrors the folder below `src_root` when given."""
    out_dir = out_root if src_root is None else mirrored_dir(src, src_root, out_root)
    return out_dir / sanitize_filename(compressed_name(src.name))


def compress_file(engine, src: Path, target_bytes: int, out_root: Path,
                  on_progress: Optional[ProgressSink] = None, dry_run: bool = False,
                  encoder: str = DEFAULT_VIDEO_ENCODER,
                  src_root: Optional[Path] = None) -> Tuple[Path, Optional[Path], str]:
    """Compress a single file to roughly `target_bytes`."""
    size = src.stat().st_size
    if target_bytes >= size:
        return src, None, f"{STATUS_SKIP} (already under target)"

    tracker = StageTracker(src.name)
    input_path = None
    try:
        emit(on_progress, 0, f"Mounting {src.name}...")
        input_path = engine.mount(src)

        tracker.advance(Stage.PROBING)
        info = probe_video_info(engine, input_path)

        tracker.advance(Stage.PLANNING)
        plan = core.calculate_compression(size, info.duration, info.width, info.height, target_bytes)
        logger.log("compress.plan", LogLevel.INFO,
                   file=src.name,
                   source_res=f"{info.width}x{info.height}",
                   target_res=f"{plan.width}x{plan.height}",
                   video_bitrate=plan.video_bitrate,
                   floor_res=f"{plan.min_width}x{plan.min_height}")
        if dry_run:
            return src, None, STATUS_DRY_RUN

        tracker.advance(Stage.EXECUTING)
        data = core.compress_video(engine, input_path, plan, info.duration,
                                   rebased(on_progress, 2, 96, factor=0.01), encoder)

        tracker.advance(Stage.FINALIZING)
        dst = compressed_path(src, out_root, src_root)
        dst = write_output(dst.parent, dst.name, data)
        tracker.advance(Stage.DONE)
    except (MediaFitError, OSError, ValueError) as e:
        tracker.advance(Stage.FAILED)
        logger.log("compress.failed", LogLevel.ERROR, file=src.name, error=str(e))
        return src, None, f"{STATUS_FAIL} ({e})"
    finally:
        if input_path is not None:
            engine.unmount()

    emit(on_progress, 100, "Done!")
    return src, dst, STATUS_OK
