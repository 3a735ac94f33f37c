"""
Pipeline stage tracking.

Every per-asset workflow walks Idle -> Probing -> Planning -> Executing ->
Finalizing and ends in Done or Failed. Failed is reachable from any
non-terminal stage.
"""
from enum import Enum

from mediafit.utils import logger
from mediafit.utils.logger import LogLevel


class Stage(Enum):
    IDLE = "idle"
    PROBING = "probing"
    PLANNING = "planning"
    EXECUTING = "executing"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


_NEXT = {
    Stage.IDLE: {Stage.PROBING},
    Stage.PROBING: {Stage.PLANNING},
    Stage.PLANNING: {Stage.EXECUTING},
    Stage.EXECUTING: {Stage.FINALIZING},
    Stage.FINALIZING: {Stage.DONE},
    Stage.DONE: set(),
    Stage.FAILED: set(),
}


class StageTracker:
    """Tracks and logs the stage of one asset's pipeline."""

    def __init__(self, name: str):
        self.name = name
        self.stage = Stage.IDLE

    @property
    def finished(self) -> bool:
        return self.stage in (Stage.DONE, Stage.FAILED)

    def advance(self, stage: Stage) -> None:
        allowed = set(_NEXT[self.stage])
        if not self.finished:
            allowed.add(Stage.FAILED)
        if stage not in allowed:
            raise ValueError(f"Illegal stage transition {self.stage.value} -> {stage.value}")
        logger.log("stage.enter", LogLevel.DEBUG, file=self.name, frm=self.stage.value, to=stage.value)
        self.stage = stage
