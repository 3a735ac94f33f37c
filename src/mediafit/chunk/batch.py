"""
This module provides functionality for splitting whole files and lists of files
into byte-bounded chunks written to an output folder.

Files are processed strictly one at a time because the engine has a single
mount slot. A failure on one file is recorded in its result and the batch moves
on to the next file.
"""
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Iterable, List, Optional

from mediafit.engine.probe import probe_asset
from mediafit.errors import MediaFitError, SplitAborted
from mediafit.utils import STATUS_FAIL, STATUS_OK, STATUS_SKIP, VIDEO_EXTENSIONS, logger, LogLevel
from mediafit.utils.constants import CHUNK_MARGIN_FACTOR
from mediafit.utils.file_util import common_root, mirrored_dir, write_output
from mediafit.utils.progress import ProgressSink, emit, rebased
from mediafit.utils.stage import Stage, StageTracker
from . import core


@dataclass
class SplitResult:
    source: Path
    status: str
    outputs: List[Path] = field(default_factory=list)
    error: Optional[str] = None


def estimate_total_chunks(sizes: Iterable[int], max_chunk_bytes: int) -> int:
    """Rough chunk count across files, from size alone."""
    return sum(math.ceil(size / (max_chunk_bytes * CHUNK_MARGIN_FACTOR)) for size in sizes)


def split_file(engine, src: Path, max_chunk_bytes: int, out_root: Path,
               on_progress: Optional[ProgressSink] = None,
               settings: core.ChunkSettings = core.ChunkSettings()) -> SplitResult:
    """Mount, probe, split, and write the chunks of a single file."""
    size = src.stat().st_size
    if size <= max_chunk_bytes:
        return SplitResult(src, f"{STATUS_SKIP} (already under limit)")

    tracker = StageTracker(src.name)
    outputs: List[Path] = []
    input_path = None
    try:
        emit(on_progress, 0, f"Mounting {src.name}...")
        input_path = engine.mount(src)

        tracker.advance(Stage.PROBING)
        emit(on_progress, 5, f"Analyzing {src.name}...")
        asset = probe_asset(engine, input_path, src.name, size)

        tracker.advance(Stage.PLANNING)
        tracker.advance(Stage.EXECUTING)
        try:
            chunks = core.split_video(engine, asset, max_chunk_bytes,
                                      rebased(on_progress, 0, 100, offset=0.1, factor=0.009),
                                      settings)
        except SplitAborted as e:
            for chunk in e.chunks:
                try:
                    outputs.append(write_output(out_root, chunk.name, chunk.data))
                except OSError as write_error:
                    logger.log("split.partial_write_failed", LogLevel.ERROR,
                               file=src.name, chunk=chunk.name, error=str(write_error))
            raise

        tracker.advance(Stage.FINALIZING)
        for chunk in chunks:
            outputs.append(write_output(out_root, chunk.name, chunk.data))
        tracker.advance(Stage.DONE)
    except (MediaFitError, OSError, ValueError) as e:
        tracker.advance(Stage.FAILED)
        logger.log("split.failed", LogLevel.ERROR, file=src.name, error=str(e), partial=len(outputs))
        return SplitResult(src, f"{STATUS_FAIL} ({e})", outputs, str(e))
    finally:
        if input_path is not None:
            engine.unmount()

    return SplitResult(src, STATUS_OK, outputs)


def split_files(engine, files: List[Path], max_chunk_bytes: int, out_root: Path,
                on_progress: Optional[ProgressSink] = None,
                settings: core.ChunkSettings = core.ChunkSettings(),
                src_root: Optional[Path] = None) -> List[SplitResult]:
    """
    Split every file in order; each file gets an equal slice of the overall progress.

    Chunks of `src` land in `out_root/<folder of src below src_root>/<src stem>/`,
    so equally named files from different folders never share an output folder.
    `src_root` defaults to the deepest folder holding all `files`.
    """
    results = []
    total = len(files)
    if not total:
        return results
    per_file = 100 / total
    if src_root is None:
        src_root = common_root(files)

    for i, src in enumerate(files):
        label = f"({i + 1}/{total}) {src.name}" if total > 1 else src.name
        logger.log("split.start", LogLevel.INFO, file=label, limit=max_chunk_bytes)

        result = split_file(engine, src, max_chunk_bytes, mirrored_dir(src, src_root, out_root) / src.stem,
                            rebased(on_progress, per_file * i, per_file), settings)
        results.append(result)
        logger.log("split.done", LogLevel.INFO, file=src.name, status=result.status, chunks=len(result.outputs))

    emit(on_progress, 100, "Done!")
    return results


def iter_video_files(root: Path, extensions: AbstractSet[str] = VIDEO_EXTENSIONS) -> list[Path]:
    """Find all files with one of `extensions` recursively (or return `root` itself when it is a file)."""
    if root.is_file():
        return [root]
    files = []
    for p in sorted(root.rglob("*")):
        if p.is_file() and p.suffix.lower() in extensions:
            files.append(p)
    return files
