"""Shared fixtures: a scripted stand-in for the FFmpeg engine session."""

import stat
from pathlib import Path
from typing import Callable, List, NamedTuple, Optional, Sequence

import pytest

from mediafit.errors import EngineError, MountConflict
from mediafit.utils.constants import PASSLOG_FILES


class Reply(NamedTuple):
    lines: Sequence[str] = ()
    output: Optional[bytes] = None
    returncode: int = 0


class FakeEngine:
    """Implements the engine contract in memory; each exec() asks `responder` what to print and write."""

    def __init__(self, responder: Optional[Callable[[List[str]], Reply]] = None):
        self.responder = responder or (lambda args: Reply())
        self.calls: List[List[str]] = []
        self.artifacts = {}
        self.mounted: Optional[Path] = None
        self._listeners = []

    loaded = True

    def on_line(self, callback):
        self._listeners.append(callback)

    def off_line(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    @property
    def listener_count(self):
        return len(self._listeners)

    def exec(self, args):
        args = list(args)
        self.calls.append(args)
        reply = self.responder(args)
        for line in reply.lines:
            for callback in list(self._listeners):
                callback(line)
        if "-pass" in args and args[args.index("-pass") + 1] == "1":
            for name in PASSLOG_FILES:
                self.artifacts[name] = b"stats"
        target = args[-1]
        if target.startswith("./"):
            target = target[2:]
        if reply.output is not None and target != "-":
            self.artifacts[target] = reply.output
        if reply.returncode:
            raise EngineError("fake engine failure", reply.returncode, "boom")

    def mount(self, source):
        source = Path(source)
        if self.mounted is not None:
            raise MountConflict(str(self.mounted), str(source))
        self.mounted = source
        return str(source)

    def unmount(self):
        self.mounted = None

    def read_artifact(self, name):
        if name not in self.artifacts:
            raise FileNotFoundError(name)
        return self.artifacts[name]

    def delete_artifact(self, name):
        if name not in self.artifacts:
            raise FileNotFoundError(name)
        del self.artifacts[name]


def is_probe(args) -> bool:
    return args[-4:] == ["null", "-t", "0", "-"]


def input_of(args) -> str:
    return args[args.index("-i") + 1]


def probe_lines(duration="00:10:00.00", resolution="1920x1080", audio_kbps=128):
    lines = ["Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'movie.mp4':"]
    if duration:
        lines.append(f"  Duration: {duration}, start: 0.000000, bitrate: 13333 kb/s")
    if resolution:
        lines.append(f"  Stream #0:0[0x1](und): Video: h264 (High) (avc1 / 0x31637661), "
                     f"yuv420p(progressive), {resolution} [SAR 1:1 DAR 16:9], 13200 kb/s, 30 fps, 30 tbr")
    if audio_kbps:
        lines.append(f"  Stream #0:1[0x2](und): Audio: aac (LC) (mp4a / 0x6134706D), "
                     f"48000 Hz, stereo, fltp, {audio_kbps} kb/s (default)")
    return lines


def progress_line(timestamp: str) -> str:
    return f"frame= 1234 fps=240 q=-1.0 size=   10240KiB time={timestamp} bitrate=2039.1kbits/s speed=8.1x"


@pytest.fixture
def fake_engine():
    return FakeEngine()


# Prints a 4 s 1280x720 media header and two \r-separated progress reports, exits 1 when any
# argument contains "fail", otherwise writes b"data" to its last argument.
FAKE_FFMPEG = r"""#!/bin/sh
for last; do :; done
printf 'Input #0, mov,mp4,m4a,3gp,3g2,mj2, from %s:\n' "$last" >&2
printf '  Duration: 00:00:04.00, start: 0.000000, bitrate: 100 kb/s\n' >&2
printf '  Stream #0:0: Video: h264 (High), yuv420p, 1280x720, 30 fps\n' >&2
printf 'frame=1 time=00:00:01.00 bitrate=N/A\rframe=2 time=00:00:03.50 bitrate=N/A\r' >&2
printf '\n' >&2
case "$*" in
    *fail*) printf 'Conversion failed!\n' >&2; exit 1 ;;
esac
if [ "$last" != "-" ]; then
    printf 'data' > "$last"
fi
"""


@pytest.fixture
def fake_ffmpeg(tmp_path):
    script = tmp_path / "ffmpeg"
    script.write_text(FAKE_FFMPEG)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script
