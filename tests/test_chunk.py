"""Tests for the feedback-corrected split loop."""

import pytest

from conftest import FakeEngine, Reply, progress_line
from mediafit.chunk import (
    ChunkSettings,
    chunk_budget,
    estimate_chunk_count,
    estimate_chunk_duration,
    oversize_target_bitrate,
    split_video,
)
from mediafit.engine import MediaAsset
from mediafit.errors import EngineError, SplitAborted
from mediafit.utils import MEBIBYTE, ChunkProgress

MAX_200_MIB = 200 * MEBIBYTE


def _asset(size=1_000_000_000, duration=600.0, name="movie.mkv"):
    return MediaAsset(name=name, path=f"/work/{name}", size=size, duration=duration)


def _arg(args, flag):
    return args[args.index(flag) + 1]


def test_estimate_matches_reference_numbers():
    estimated = estimate_chunk_duration(1_000_000_000, 600, MAX_200_MIB)

    assert estimated == pytest.approx(209_715_200 * 0.95 / (1_000_000_000 / 600))
    assert estimated == pytest.approx(119.54, abs=0.01)
    assert estimate_chunk_count(600, estimated) == 6


def test_chunk_budget_policies():
    assert chunk_budget(MAX_200_MIB, ChunkSettings()) == pytest.approx(MAX_200_MIB * 0.95)
    fixed = ChunkSettings(margin_policy="fixed")
    assert chunk_budget(MAX_200_MIB, fixed) == MAX_200_MIB - 5 * MEBIBYTE
    # A limit smaller than the margin still leaves a positive budget
    assert chunk_budget(MEBIBYTE, fixed) == pytest.approx(MEBIBYTE * 0.5)


def test_unknown_margin_policy_rejected():
    with pytest.raises(ValueError):
        ChunkSettings(margin_policy="nope")


def test_oversize_target_bitrate():
    assert oversize_target_bitrate(10_000_000, 0.95, 60) == 1_266_666


def test_split_advances_by_reported_time():
    engine = FakeEngine(lambda args: Reply(lines=[progress_line("00:00:30.00"), progress_line("00:01:00.00")],
                                           output=b"x" * 1000))
    events = []

    chunks = split_video(engine, _asset(), MAX_200_MIB, events.append)

    assert len(chunks) == 10
    assert [c.start for c in chunks] == [60.0 * i for i in range(10)]
    assert [c.name for c in chunks[:2]] == ["movie_part001.mkv", "movie_part002.mkv"]
    assert all(c.size == 1000 and c.data == b"x" * 1000 for c in chunks)
    assert chunks[-1].end == pytest.approx(600.0)
    assert engine.artifacts == {}
    assert engine.listener_count == 0

    first_cut = engine.calls[0]
    assert _arg(first_cut, "-ss") == "0.0"
    assert _arg(first_cut, "-fs") == str(MAX_200_MIB)
    assert _arg(first_cut, "-c") == "copy"
    assert _arg(first_cut, "-avoid_negative_ts") == "make_zero"
    assert first_cut[-1] == "./movie_part001.mkv"
    assert _arg(engine.calls[1], "-ss") == "60.0"


def test_split_progress_events():
    engine = FakeEngine(lambda args: Reply(lines=[progress_line("00:01:00.00")], output=b"x"))
    events = []

    split_video(engine, _asset(), MAX_200_MIB, events.append)

    assert all(isinstance(e, ChunkProgress) for e in events)
    assert len(events) == 11
    assert (events[0].percent, events[0].current, events[0].total) == (0, 1, 6)
    assert events[0].message == "Splitting chunk 1 of ~6..."
    assert events[1].percent == 10
    # Total estimate grows once the real count passes it
    assert (events[6].current, events[6].total) == (7, 7)
    assert (events[-1].percent, events[-1].message) == (100, "Done!")
    assert (events[-1].current, events[-1].total) == (10, 10)


def test_split_falls_back_to_estimate_without_time_reports():
    engine = FakeEngine(lambda args: Reply(output=b"x"))

    chunks = split_video(engine, _asset(), MAX_200_MIB)

    estimated = estimate_chunk_duration(1_000_000_000, 600, MAX_200_MIB)
    assert len(chunks) == 6
    assert chunks[1].start == pytest.approx(estimated)
    assert _arg(engine.calls[0], "-t") == str(estimated)


def test_split_start_times_strictly_increase_under_variable_bitrate():
    reported = iter(["00:00:10.00", "00:02:00.00", "00:00:00.50", "00:03:00.00", "00:05:00.00"])
    engine = FakeEngine(lambda args: Reply(lines=[progress_line(next(reported))], output=b"x"))

    chunks = split_video(engine, _asset(), MAX_200_MIB)

    starts = [c.start for c in chunks]
    assert starts == sorted(set(starts))
    assert len(chunks) == 5
    assert chunks[-1].end >= 600 - 0.1


def test_split_reencodes_oversize_chunk():
    max_bytes = 1000

    def responder(args):
        if "-c:v" in args:
            return Reply(lines=[progress_line("00:00:50.00")], output=b"y" * 100)
        return Reply(lines=[progress_line("00:00:50.00")], output=b"x" * (max_bytes + 10))

    engine = FakeEngine(responder)
    chunks = split_video(engine, _asset(size=3000, duration=100.0), max_bytes)

    assert len(chunks) == 2
    assert all(c.data == b"y" * 100 for c in chunks)
    assert len(engine.calls) == 4
    reencode = engine.calls[1]
    assert _arg(reencode, "-fs") == str(max_bytes)
    assert _arg(reencode, "-t") == "50.0"
    assert _arg(reencode, "-ss") == "0.0"
    assert "-maxrate" in reencode
    assert engine.artifacts == {}


def test_split_trusts_size_cap_when_configured():
    max_bytes = 1000
    engine = FakeEngine(lambda args: Reply(lines=[progress_line("00:00:50.00")], output=b"x" * (max_bytes + 10)))

    chunks = split_video(engine, _asset(size=3000, duration=100.0), max_bytes,
                         settings=ChunkSettings(reencode_oversize=False))

    assert len(chunks) == 2
    assert chunks[0].size == max_bytes + 10
    assert all("-c:v" not in call for call in engine.calls)


def test_split_engine_failure_keeps_produced_chunks():
    calls = {"n": 0}

    def responder(args):
        calls["n"] += 1
        if calls["n"] == 3:
            return Reply(lines=[progress_line("00:00:10.00")], output=b"partial", returncode=1)
        return Reply(lines=[progress_line("00:01:00.00")], output=b"x")

    engine = FakeEngine(responder)

    with pytest.raises(SplitAborted) as excinfo:
        split_video(engine, _asset(), MAX_200_MIB)

    assert isinstance(excinfo.value, EngineError)
    assert [c.name for c in excinfo.value.chunks] == ["movie_part001.mkv", "movie_part002.mkv"]
    assert engine.listener_count == 0
    assert engine.artifacts == {}


def test_split_emits_done_even_without_chunks():
    engine = FakeEngine()
    events = []

    chunks = split_video(engine, _asset(duration=0.05), MAX_200_MIB, events.append)

    assert chunks == []
    assert engine.calls == []
    assert [(e.percent, e.message) for e in events] == [(100, "Done!")]


def test_split_rejects_non_positive_inputs():
    with pytest.raises(ValueError):
        split_video(FakeEngine(), _asset(duration=0), MAX_200_MIB)
    with pytest.raises(ValueError):
        split_video(FakeEngine(), _asset(), 0)


def test_chunk_name_without_extension_defaults_to_mp4():
    engine = FakeEngine(lambda args: Reply(output=b"x"))

    chunks = split_video(engine, _asset(name="recording", size=100, duration=10.0), 1_000)

    assert [c.name for c in chunks] == ["recording_part001.mp4"]


def test_chunk_output_never_reads_as_option_or_protocol():
    engine = FakeEngine(lambda args: Reply(output=b"x"))

    chunks = split_video(engine, _asset(name="-map:0.mkv", size=100, duration=10.0), 1_000)

    assert engine.calls[0][-1] == "./-map:0_part001.mkv"
    assert chunks[0].name == "-map:0_part001.mkv"
    assert engine.artifacts == {}
