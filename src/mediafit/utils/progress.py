"""Progress events emitted by the planners and orchestrators."""
from dataclasses import dataclass, replace
from typing import Callable, Optional

from mediafit.utils.time_util import round_half_up


@dataclass(frozen=True)
class ProgressEvent:
    percent: float
    message: str


@dataclass(frozen=True)
class ChunkProgress(ProgressEvent):
    current: int = 0
    total: int = 0


ProgressSink = Callable[[ProgressEvent], None]


def scaled_percent(position: float, duration: float, span: int) -> int:
    """Map `position` within `duration` onto [0, span], rounding half up."""
    if duration <= 0:
        return 0
    return min(round_half_up(position / duration * span), span)


def emit(sink: Optional[ProgressSink], percent: float, message: str) -> None:
    if sink is not None:
        sink(ProgressEvent(percent=percent, message=message))


def rebased(sink: Optional[ProgressSink], base: float, span: float,
            offset: float = 0.0, factor: float = 0.01) -> Optional[ProgressSink]:
    """
    Wrap `sink` so events land inside one slice of an overall progress bar.

    An inner event at `p` percent is re-emitted at
    ``base + span * (offset + p * factor)``; the message is kept.
    """
    if sink is None:
        return None

    def _forward(event: ProgressEvent) -> None:
        sink(replace(event, percent=base + span * (offset + event.percent * factor)))

    return _forward
