# Checkpoint and lap state machine

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from ..core.types import Checkpoint


class CrossingEvent(Enum):
    NONE = "none"
    RACE_STARTED = "race_started"       # first finish-line crossing, no lap awarded
    CHECKPOINT = "checkpoint"
    LAP_COMPLETED = "lap_completed"
    RACE_FINISHED = "race_finished"     # lap completed and total laps reached


@dataclass
class LapUpdate:
    """Outcome of one movement segment."""
    event: CrossingEvent = CrossingEvent.NONE
    illegal_finish_crossing: bool = False


class LapTracker:
    """Track progress through an ordered checkpoint sequence.

    Checkpoint 0 is the start/finish line. Only the expected checkpoint is
    tested for a crossing. The first finish-line crossing starts lap 1;
    after that the finish line counts as a completed lap only once every
    other checkpoint has been crossed since the last lap boundary.
    """

    def __init__(self, checkpoints: List[Checkpoint], total_laps: int = 3):
        if len(checkpoints) < 2:
            raise ValueError("Need a finish line and at least one checkpoint")
        self.checkpoints = checkpoints
        self.total_laps = total_laps
        self.reset()

    def reset(self) -> None:
        for cp in self.checkpoints:
            cp.crossed = False
        self.started = False
        self.laps_completed = 0
        self.next_checkpoint = 0
        self.finished = False

    @property
    def current_lap(self) -> int:
        """Lap being driven, 0 before the race starts."""
        if not self.started:
            return 0
        return self.laps_completed + 1

    @property
    def target(self) -> Checkpoint:
        return self.checkpoints[self.next_checkpoint]

    def all_intermediate_crossed(self) -> bool:
        return all(cp.crossed for cp in self.checkpoints[1:])

    def update(self, prev: Tuple[float, float], current: Tuple[float, float]) -> LapUpdate:
        """Advance the state machine for a movement prev -> current.

        Args:
            prev: Position before the step
            current: Position after the step (after collision handling)

        Returns:
            LapUpdate with the event and whether the finish line was
            crossed illegally
        """
        if self.finished:
            return LapUpdate()

        update = LapUpdate()
        index = self.next_checkpoint
        cp = self.checkpoints[index]

        if cp.crosses(prev, current):
            if index == 0:
                update.event = self._cross_finish_line()
            else:
                cp.crossed = True
                self.next_checkpoint = (index + 1) % len(self.checkpoints)
                update.event = CrossingEvent.CHECKPOINT

        finish = self.checkpoints[0]
        accepted = update.event in (
            CrossingEvent.RACE_STARTED,
            CrossingEvent.LAP_COMPLETED,
            CrossingEvent.RACE_FINISHED,
        )
        if not accepted and self.started and finish.crosses(prev, current):
            update.illegal_finish_crossing = True

        return update

    def _cross_finish_line(self) -> CrossingEvent:
        if not self.started:
            self.started = True
            self.next_checkpoint = 1
            return CrossingEvent.RACE_STARTED

        if not self.all_intermediate_crossed():
            # Ignored: flag stays false
            return CrossingEvent.NONE

        self.laps_completed += 1
        for cp in self.checkpoints:
            cp.crossed = False
        self.next_checkpoint = 1

        if self.laps_completed >= self.total_laps:
            self.finished = True
            return CrossingEvent.RACE_FINISHED
        return CrossingEvent.LAP_COMPLETED
