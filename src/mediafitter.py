#!/usr/bin/env python3
"""
mediafitter: split or compress media files to fit a size limit.

Subcommands:
- probe: print duration, resolution and audio bitrate of files
- split: cut files into chunks no larger than --chunk-size-mb
- compress: two-pass encode files to about --target-mb
- convert: convert files to another container/format
"""

import argparse
import atexit
import sys
import time
from datetime import datetime
from pathlib import Path

from tqdm import tqdm

import mediafit as mediafit_module
from mediafit import chunk, compress, convert
from mediafit.engine import Engine, probe_video_info
from mediafit.errors import MediaFitError
from mediafit.utils import LogLevel, logger, system_util, time_util
from mediafit.utils.constants import (
    DEFAULT_CHUNK_SIZE_MB,
    DEFAULT_TARGET_MB,
    DEFAULT_VIDEO_ENCODER,
    FFMPEG_BINARY,
    LOG_DIR,
    MARGIN_POLICY_FIXED,
    MARGIN_POLICY_PERCENT,
    MEBIBYTE,
    AUDIO_FORMATS,
    MEDIA_EXTENSIONS,
    SIZE_PRESETS_MB,
    STATUS_DRY_RUN,
    STATUS_FAIL,
    STATUS_OK,
    STATUS_SKIP,
    VIDEO_EXTENSIONS,
)
from mediafit.utils.file_util import common_root, converted_name, mirrored_dir, sanitize_filename, write_output

SPLITTABLE_EXTENSIONS = VIDEO_EXTENSIONS | {f".{ext}" for ext in AUDIO_FORMATS}


class _ProgressBar:
    """ProgressEvent sink rendering onto a tqdm bar."""

    def __init__(self, desc: str):
        self._bar = tqdm(total=100, desc=desc, unit="%", bar_format="{l_bar}{bar}| {n:.0f}% {postfix}")

    def __call__(self, event) -> None:
        target = max(0.0, min(100.0, float(event.percent)))
        self._bar.n = target
        self._bar.set_postfix_str(event.message, refresh=False)
        self._bar.refresh()

    def close(self) -> None:
        self._bar.close()


def _collect_inputs(paths, extensions=VIDEO_EXTENSIONS) -> list[Path]:
    files = []
    for raw in paths:
        root = Path(raw).expanduser().resolve()
        if not root.exists():
            logger.log("startup.error", LogLevel.ERROR, msg="Input does not exist", path=str(root))
            sys.exit(2)
        files.extend(chunk.iter_video_files(root, extensions))
    return files


def _claim(claimed: dict, dst: Path, src: Path):
    """Reserve `dst` for `src`; returns a FAIL status when another input already produces it."""
    if dst in claimed:
        return f"{STATUS_FAIL} (output {dst.name} already produced from {claimed[dst]})"
    claimed[dst] = src
    return None


def _summarize(results) -> None:
    ok = sum(1 for _, _, s in results if s.startswith(STATUS_OK))
    skip = sum(1 for _, _, s in results if s.startswith(STATUS_SKIP))
    fail = sum(1 for _, _, s in results if s.startswith(STATUS_FAIL))
    dry = sum(1 for _, _, s in results if s.startswith(STATUS_DRY_RUN))
    logger.safe_print(f"\nDone. OK={ok} SKIP={skip} FAIL={fail} DRY-RUN={dry}")


def cmd_probe(engine: Engine, args) -> int:
    failed = 0
    for src in _collect_inputs(args.inputs):
        input_path = engine.mount(src)
        try:
            info = probe_video_info(engine, input_path)
            logger.safe_print(f"{src.name}: duration={info.duration:.2f}s "
                              f"resolution={info.width}x{info.height} audio={info.audio_bitrate // 1000}k "
                              f"size={src.stat().st_size}")
        except MediaFitError as e:
            failed += 1
            logger.safe_print(f"{src.name}: {e}")
        finally:
            engine.unmount()
    return 1 if failed else 0


def cmd_split(engine: Engine, args) -> int:
    files = _collect_inputs(args.inputs, SPLITTABLE_EXTENSIONS)
    max_bytes = int(args.chunk_size_mb * MEBIBYTE)
    out_root = Path(args.out).expanduser().resolve()

    logger.log("split.batch", LogLevel.INFO,
               files=len(files),
               limit_mb=args.chunk_size_mb,
               est_chunks=chunk.estimate_total_chunks((f.stat().st_size for f in files), max_bytes),
               out=str(out_root))

    settings = chunk.ChunkSettings(
        margin_policy=args.margin_policy,
        reencode_oversize=not args.trust_size_cap,
        video_encoder=args.encoder,
    )
    bar = _ProgressBar("split")
    try:
        results = chunk.split_files(engine, files, max_bytes, out_root, bar, settings)
    finally:
        bar.close()

    for result in results:
        logger.safe_print(f"[{result.status}] {result.source} ({len(result.outputs)} chunk(s))")
    _summarize([(r.source, None, r.status) for r in results])
    return 1 if any(r.status.startswith(STATUS_FAIL) for r in results) else 0


def cmd_compress(engine: Engine, args) -> int:
    files = _collect_inputs(args.inputs)
    target_bytes = int(args.target_mb * MEBIBYTE)
    out_root = Path(args.out).expanduser().resolve()
    src_root = common_root(files) if files else None
    start_time = time.time()

    results = []
    claimed = {}
    for i, src in enumerate(files, start=1):
        collision = _claim(claimed, compress.compressed_path(src, out_root, src_root), src)
        if collision:
            result = (src, None, collision)
        else:
            bar = _ProgressBar(f"({i}/{len(files)}) {src.name}")
            try:
                result = compress.compress_file(engine, src, target_bytes, out_root, bar,
                                                dry_run=args.dry_run, encoder=args.encoder, src_root=src_root)
            finally:
                bar.close()
        results.append(result)
        logger.log("compress.progress", LogLevel.INFO,
                   completed=i,
                   total=len(files),
                   status=result[2],
                   eta=time_util.get_eta_total(i, len(files), time.time() - start_time))

    for src, dst, status in results:
        logger.safe_print(f"[{status}] {src}" + (f" -> {dst}" if dst else ""))
    _summarize(results)
    return 1 if any(s.startswith(STATUS_FAIL) for _, _, s in results) else 0


def cmd_convert(engine: Engine, args) -> int:
    out_root = Path(args.out).expanduser().resolve()
    files = _collect_inputs(args.inputs, MEDIA_EXTENSIONS)
    src_root = common_root(files) if files else None
    results = []
    claimed = {}
    for src in files:
        dst = mirrored_dir(src, src_root, out_root) / sanitize_filename(converted_name(src.name, args.format))
        collision = _claim(claimed, dst, src)
        if collision:
            results.append((src, None, collision))
            continue
        input_path = engine.mount(src)
        bar = _ProgressBar(src.name)
        try:
            duration = convert.probe_media_duration(engine, input_path)
            data = convert.convert_media(engine, input_path, args.format, duration, bar)
            dst = write_output(dst.parent, dst.name, data)
            results.append((src, dst, STATUS_OK))
        except (MediaFitError, OSError) as e:
            logger.log("convert.failed", LogLevel.ERROR, file=src.name, error=str(e))
            results.append((src, None, f"{STATUS_FAIL} ({e})"))
        finally:
            bar.close()
            engine.unmount()

    _summarize(results)
    return 1 if any(s.startswith(STATUS_FAIL) for _, _, s in results) else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Split media files into size-bounded chunks or compress them to a target size with FFmpeg.",
        epilog="Example: mediafitter split movie.mkv --chunk-size-mb 200 --out ./chunks",
    )
    parser.add_argument("--ffmpeg", default=FFMPEG_BINARY, help="FFmpeg binary to use (default: $MEDIAFIT_FFMPEG or ffmpeg)")
    parser.add_argument("--log-file", help="Also append console output to this file")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--trace", action="store_true", help="Log every FFmpeg diagnostic line")
    parser.add_argument("--version", action="version", version=f"%(prog)s {mediafit_module.__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("probe", help="Print media facts")
    p.add_argument("inputs", nargs="+", help="Files or folders")
    p.set_defaults(func=cmd_probe)

    p = sub.add_parser("split", help="Split into chunks no larger than a size limit")
    p.add_argument("inputs", nargs="+", help="Files or folders")
    p.add_argument("--chunk-size-mb", type=float, default=DEFAULT_CHUNK_SIZE_MB, help="Max chunk size in MiB")
    p.add_argument("--out", default="./chunks", help="Output root folder (one subfolder per file)")
    p.add_argument("--margin-policy", choices=[MARGIN_POLICY_PERCENT, MARGIN_POLICY_FIXED],
                   default=MARGIN_POLICY_PERCENT, help="How the chunk duration estimate discounts the limit")
    p.add_argument("--trust-size-cap", action="store_true",
                   help="Keep chunks that overshoot the limit instead of re-encoding them")
    p.add_argument("--encoder", default=DEFAULT_VIDEO_ENCODER,
                   help="Encoder used when an oversize chunk is re-encoded")
    p.set_defaults(func=cmd_split)

    p = sub.add_parser("compress", help="Two-pass encode to a target size")
    p.add_argument("inputs", nargs="+", help="Files or folders")
    p.add_argument("--target-mb", type=float, default=DEFAULT_TARGET_MB,
                   help=f"Target size in MiB (presets: {', '.join(str(mb) for mb in SIZE_PRESETS_MB)})")
    p.add_argument("--out", default="./compressed", help="Output folder")
    p.add_argument("--encoder", default=DEFAULT_VIDEO_ENCODER, help="FFmpeg video encoder")
    p.add_argument("--dry-run", action="store_true", help="Probe and plan only")
    p.set_defaults(func=cmd_compress)

    p = sub.add_parser("convert", help="Convert to another format")
    p.add_argument("inputs", nargs="+", help="Files or folders")
    p.add_argument("--format", required=True, help="Output format extension, e.g. mp3 or webm")
    p.add_argument("--out", default="./converted", help="Output folder")
    p.set_defaults(func=cmd_convert)

    return parser


def _open_log_file(args) -> None:
    if args.log_file:
        log_path = Path(args.log_file).expanduser().resolve()
    elif LOG_DIR:
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        log_path = (Path(LOG_DIR) / f"mediafitter-{timestamp}.log").resolve()
    else:
        return

    class _TeeStream:
        def __init__(self, *streams):
            self._streams = streams

        def write(self, data):
            for stream in self._streams:
                stream.write(data)
            return len(data)

        def flush(self):
            for stream in self._streams:
                stream.flush()

        def isatty(self):
            return any(getattr(stream, "isatty", lambda: False)() for stream in self._streams)

    log_path.parent.mkdir(parents=True, exist_ok=True)
    log_file_handle = open(log_path, "a", encoding="utf-8", buffering=1)
    sys.stdout = _TeeStream(sys.stdout, log_file_handle)
    atexit.register(log_file_handle.close)
    print(f"Logging to: {log_path}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.trace:
        logger.set_log_level(LogLevel.TRACE)
    elif args.debug:
        logger.set_log_level(LogLevel.DEBUG)
    else:
        logger.set_log_level(LogLevel.INFO)

    _open_log_file(args)
    system_util.which_or_die(args.ffmpeg)

    start_time = time.time()
    engine = Engine(args.ffmpeg).load()
    try:
        code = args.func(engine, args)
    finally:
        engine.close()

    logger.log("mediafitter.end", LogLevel.INFO,
               command=args.command,
               runtime=time_util.format_runtime(time.time() - start_time),
               exit_code=code)
    return code


if __name__ == "__main__":
    sys.exit(main())
