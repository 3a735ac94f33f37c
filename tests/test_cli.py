"""End-to-end runs of the command line against the stand-in ffmpeg script."""

import sys

import pytest

import mediafit
import mediafitter
from mediafit.utils import LogLevel, constants, logger
from mediafit.utils.constants import DEFAULT_CHUNK_SIZE_MB, DEFAULT_TARGET_MB

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script as ffmpeg")


def test_parser_defaults():
    args = mediafitter.build_parser().parse_args(["split", "movie.mkv"])
    assert args.chunk_size_mb == DEFAULT_CHUNK_SIZE_MB
    assert args.margin_policy == "percent"
    assert args.trust_size_cap is False
    assert args.func is mediafitter.cmd_split

    args = mediafitter.build_parser().parse_args(["compress", "movie.mkv", "--dry-run"])
    assert args.target_mb == DEFAULT_TARGET_MB
    assert args.dry_run is True


def test_parser_rejects_unknown_margin_policy():
    with pytest.raises(SystemExit):
        mediafitter.build_parser().parse_args(["split", "movie.mkv", "--margin-policy", "median"])


@posix_only
def test_main_convert_writes_output(fake_ffmpeg, tmp_path):
    src = tmp_path / "clip.mp4"
    src.write_bytes(b"0123456789")
    out = tmp_path / "converted"

    code = mediafitter.main(["--ffmpeg", str(fake_ffmpeg), "convert", str(src), "--format", "mp3", "--out", str(out)])

    assert code == 0
    assert (out / "clip.mp3").read_bytes() == b"data"


@posix_only
def test_main_split_writes_chunks(fake_ffmpeg, tmp_path):
    src = tmp_path / "clip.mp4"
    src.write_bytes(b"0123456789")
    out = tmp_path / "chunks"

    code = mediafitter.main(["--ffmpeg", str(fake_ffmpeg), "split", str(src), "--chunk-size-mb", "0.000002",
                             "--trust-size-cap", "--out", str(out)])

    assert code == 0
    assert sorted(p.name for p in (out / "clip").iterdir()) == ["clip_part001.mp4", "clip_part002.mp4"]


@posix_only
def test_main_probe_prints_media_facts(fake_ffmpeg, tmp_path, capsys):
    src = tmp_path / "clip.mp4"
    src.write_bytes(b"0")

    code = mediafitter.main(["--ffmpeg", str(fake_ffmpeg), "probe", str(src)])

    assert code == 0
    assert "clip.mp4: duration=4.00s resolution=1280x720" in capsys.readouterr().out


@posix_only
def test_main_convert_to_image_writes_single_frame(fake_ffmpeg, tmp_path):
    src = tmp_path / "clip.mp4"
    src.write_bytes(b"0123456789")
    out = tmp_path / "converted"

    code = mediafitter.main(["--ffmpeg", str(fake_ffmpeg), "convert", str(src), "--format", "png", "--out", str(out)])

    assert code == 0
    assert (out / "clip.png").read_bytes() == b"data"


@posix_only
def test_main_compress_mirrors_source_folders(fake_ffmpeg, tmp_path):
    for folder in ("a", "b"):
        (tmp_path / "in" / folder).mkdir(parents=True)
        (tmp_path / "in" / folder / "x.mp4").write_bytes(b"\0" * 1_000_000)
    out = tmp_path / "out"

    code = mediafitter.main(["--ffmpeg", str(fake_ffmpeg), "compress", str(tmp_path / "in"),
                             "--target-mb", "0.5", "--out", str(out)])

    assert code == 0
    assert (out / "a" / "x_compressed.mp4").read_bytes() == b"data"
    assert (out / "b" / "x_compressed.mp4").read_bytes() == b"data"


@posix_only
def test_main_compress_rejects_inputs_sharing_an_output(fake_ffmpeg, tmp_path, capsys):
    (tmp_path / "in").mkdir()
    for name in ("movie.mkv", "movie.mp4"):
        (tmp_path / "in" / name).write_bytes(b"\0" * 1_000_000)
    out = tmp_path / "out"

    code = mediafitter.main(["--ffmpeg", str(fake_ffmpeg), "compress", str(tmp_path / "in"),
                             "--target-mb", "0.5", "--out", str(out)])

    assert code == 1
    assert "already produced from" in capsys.readouterr().out
    assert (out / "movie_compressed.mp4").read_bytes() == b"data"


@posix_only
def test_main_debug_flag_only_sets_log_level(fake_ffmpeg, tmp_path):
    src = tmp_path / "clip.mp4"
    src.write_bytes(b"0")
    previous = logger.get_log_level()
    try:
        assert mediafitter.main(["--ffmpeg", str(fake_ffmpeg), "--debug", "probe", str(src)]) == 0
        assert logger.get_log_level() is LogLevel.DEBUG
    finally:
        logger.set_log_level(previous)
    assert not hasattr(mediafit, "DEBUG")
    assert not hasattr(constants, "DEBUG")
