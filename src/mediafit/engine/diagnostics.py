"""
Extraction of structured facts from FFmpeg's diagnostic output.

FFmpeg reports what it knows about its input and how far it has progressed as
free text on stderr. This module recognizes the four facts the planners rely
on, one line at a time:

    Duration: 00:10:00.00, start: 0.000000, bitrate: 13333 kb/s
    Stream #0:0(und): Video: h264 (High), yuv420p, 1920x1080 [SAR 1:1 DAR 16:9], ...
    Stream #0:1(und): Audio: aac (LC), 48000 Hz, stereo, fltp, 128 kb/s
    frame= 1234 fps=240 q=-1.0 size=  10240KiB time=00:00:41.13 bitrate=2039.1kbits/s

Nothing here performs I/O. Lines come either from a live engine invocation via
`subscribed()` or from any iterable via `parse_lines()`.
"""
import re
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, List, Optional, Tuple

from mediafit.utils.time_util import parse_time_to_seconds

DURATION_REGEX = re.compile(r"Duration:\s*(\d+:\d+:\d+\.\d+)")
RESOLUTION_REGEX = re.compile(r"Stream.*Video.*\s(\d{2,5})x(\d{2,5})")
AUDIO_BITRATE_REGEX = re.compile(r"Stream.*Audio.*?(\d+)\s*kb/s")
ELAPSED_TIME_REGEX = re.compile(r"time=\s*(\d+:\d+:\d+\.\d+)")


class FactKind(Enum):
    DURATION = "duration"
    RESOLUTION = "resolution"
    AUDIO_BITRATE = "audio_bitrate"
    ELAPSED_TIME = "elapsed_time"


ALL_KINDS = frozenset(FactKind)


@dataclass(frozen=True)
class DiagnosticFact:
    kind: FactKind
    value: Any
    raw: str


def extract_facts(line: str, kinds: Iterable[FactKind] = ALL_KINDS) -> List[DiagnosticFact]:
    """Return every fact of the requested kinds found on one diagnostic line."""
    kinds = frozenset(kinds)
    facts = []

    if FactKind.DURATION in kinds:
        m = DURATION_REGEX.search(line)
        if m:
            facts.append(DiagnosticFact(FactKind.DURATION, parse_time_to_seconds(m.group(1)), m.group(0)))

    if FactKind.RESOLUTION in kinds:
        m = RESOLUTION_REGEX.search(line)
        if m:
            facts.append(DiagnosticFact(FactKind.RESOLUTION, (int(m.group(1)), int(m.group(2))),
                                        f"{m.group(1)}x{m.group(2)}"))

    if FactKind.AUDIO_BITRATE in kinds:
        m = AUDIO_BITRATE_REGEX.search(line)
        if m:
            facts.append(DiagnosticFact(FactKind.AUDIO_BITRATE, int(m.group(1)) * 1000,
                                        f"{m.group(1)} kb/s"))

    if FactKind.ELAPSED_TIME in kinds:
        m = ELAPSED_TIME_REGEX.search(line)
        if m:
            facts.append(DiagnosticFact(FactKind.ELAPSED_TIME, parse_time_to_seconds(m.group(1)), m.group(0)))

    return facts


class DiagnosticParser:
    """
    Accumulates facts over one invocation.

    Duration keeps its first occurrence; resolution, audio bitrate, and elapsed
    time keep their latest. The instance is itself a line callback, so it can be
    handed straight to `subscribed()`.
    """

    def __init__(self, kinds: Iterable[FactKind] = ALL_KINDS):
        self.kinds = frozenset(kinds)
        self.duration: Optional[float] = None
        self.resolution: Optional[Tuple[int, int]] = None
        self.audio_bitrate: Optional[int] = None
        self.elapsed: Optional[float] = None

    def feed(self, line: str) -> List[DiagnosticFact]:
        facts = extract_facts(line, self.kinds)
        for fact in facts:
            if fact.kind is FactKind.DURATION:
                if self.duration is None:
                    self.duration = fact.value
            elif fact.kind is FactKind.RESOLUTION:
                self.resolution = fact.value
            elif fact.kind is FactKind.AUDIO_BITRATE:
                self.audio_bitrate = fact.value
            elif fact.kind is FactKind.ELAPSED_TIME:
                self.elapsed = fact.value
        return facts

    __call__ = feed


def parse_lines(lines: Iterable[str], kinds: Iterable[FactKind] = ALL_KINDS) -> DiagnosticParser:
    """Feed every line of `lines` (a list, a file, a text blob split by the caller) to a fresh parser."""
    parser = DiagnosticParser(kinds)
    for line in lines:
        parser.feed(line)
    return parser


@contextmanager
def subscribed(engine, callback) -> Iterator:
    """Keep `callback` subscribed to `engine`'s diagnostic lines for the body of the block."""
    engine.on_line(callback)
    try:
        yield callback
    finally:
        engine.off_line(callback)
