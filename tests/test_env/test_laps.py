# Tests for the checkpoint and lap state machine

import pytest
from racing_dqn.core.types import Checkpoint
from racing_dqn.env.laps import CrossingEvent, LapTracker

# Movements that cross each line of a three-checkpoint lap graph at x = 0, 10, 20
CROSS = {
    0: ((-1.0, 0.0), (1.0, 0.0)),
    1: ((9.0, 0.0), (11.0, 0.0)),
    2: ((19.0, 0.0), (21.0, 0.0)),
}


def make_tracker(total_laps=3):
    checkpoints = [
        Checkpoint(start=(x, -10.0), end=(x, 10.0))
        for x in (0.0, 10.0, 20.0)
    ]
    return LapTracker(checkpoints, total_laps=total_laps)


def drive_lap(tracker):
    events = []
    for index in (1, 2, 0):
        events.append(tracker.update(*CROSS[index]).event)
    return events


class TestLapTracker:
    
    def test_initial_state(self):
        tracker = make_tracker()
        assert not tracker.started
        assert tracker.laps_completed == 0
        assert tracker.next_checkpoint == 0
        assert tracker.current_lap == 0
    
    def test_first_finish_crossing_starts_race(self):
        """Starting the race awards no lap and leaves the finish flag clear."""
        tracker = make_tracker()
        update = tracker.update(*CROSS[0])
        
        assert update.event == CrossingEvent.RACE_STARTED
        assert not update.illegal_finish_crossing
        assert tracker.started
        assert tracker.laps_completed == 0
        assert tracker.next_checkpoint == 1
        assert tracker.current_lap == 1
        assert not tracker.checkpoints[0].crossed
    
    def test_only_expected_checkpoint_counts(self):
        tracker = make_tracker()
        tracker.update(*CROSS[0])
        
        update = tracker.update(*CROSS[2])
        assert update.event == CrossingEvent.NONE
        assert not tracker.checkpoints[2].crossed
        assert tracker.next_checkpoint == 1
    
    def test_checkpoint_crossing(self):
        tracker = make_tracker()
        tracker.update(*CROSS[0])
        
        update = tracker.update(*CROSS[1])
        assert update.event == CrossingEvent.CHECKPOINT
        assert tracker.checkpoints[1].crossed
        assert tracker.next_checkpoint == 2
    
    def test_checkpoints_ignored_before_start(self):
        tracker = make_tracker()
        update = tracker.update(*CROSS[1])
        assert update.event == CrossingEvent.NONE
        assert not tracker.checkpoints[1].crossed
    
    def test_lap_completion(self):
        """After start, crossing 1, 2 and the finish line completes lap 1."""
        tracker = make_tracker()
        tracker.update(*CROSS[0])
        
        events = drive_lap(tracker)
        
        assert events == [CrossingEvent.CHECKPOINT, CrossingEvent.CHECKPOINT, CrossingEvent.LAP_COMPLETED]
        assert tracker.laps_completed == 1
        assert tracker.next_checkpoint == 1
        assert not any(cp.crossed for cp in tracker.checkpoints)
        assert tracker.current_lap == 2
    
    def test_illegal_finish_crossing(self):
        """Crossing the finish line mid-lap is flagged and changes nothing."""
        tracker = make_tracker()
        tracker.update(*CROSS[0])
        tracker.update(*CROSS[1])
        
        update = tracker.update(*CROSS[0])
        
        assert update.event == CrossingEvent.NONE
        assert update.illegal_finish_crossing
        assert tracker.laps_completed == 0
        assert tracker.next_checkpoint == 2
        assert tracker.checkpoints[1].crossed
    
    def test_accepted_crossings_not_illegal(self):
        tracker = make_tracker()
        assert not tracker.update(*CROSS[0]).illegal_finish_crossing
        tracker.update(*CROSS[1])
        tracker.update(*CROSS[2])
        assert not tracker.update(*CROSS[0]).illegal_finish_crossing
    
    def test_race_finishes_exactly_once(self):
        tracker = make_tracker(total_laps=3)
        tracker.update(*CROSS[0])
        
        finishes = 0
        for _ in range(4):
            events = drive_lap(tracker)
            finishes += events.count(CrossingEvent.RACE_FINISHED)
        
        assert finishes == 1
        assert tracker.finished
        assert tracker.laps_completed == 3
    
    def test_finish_line_never_left_crossed(self):
        tracker = make_tracker()
        sequence = [0, 1, 0, 2, 1, 2, 0, 0, 1, 2, 0, 2, 1, 0]
        for index in sequence:
            tracker.update(*CROSS[index])
            assert not tracker.checkpoints[0].crossed
    
    def test_laps_monotone(self):
        tracker = make_tracker(total_laps=10)
        sequence = [0, 1, 2, 0, 0, 1, 1, 2, 0, 2, 1, 0, 1, 2, 0]
        previous = 0
        for index in sequence:
            tracker.update(*CROSS[index])
            assert tracker.laps_completed >= previous
            previous = tracker.laps_completed
        assert tracker.laps_completed == 3
    
    def test_reset(self):
        tracker = make_tracker()
        tracker.update(*CROSS[0])
        tracker.update(*CROSS[1])
        tracker.reset()
        
        assert not tracker.started
        assert tracker.next_checkpoint == 0
        assert not any(cp.crossed for cp in tracker.checkpoints)
    
    def test_requires_two_checkpoints(self):
        with pytest.raises(ValueError):
            LapTracker([Checkpoint((0.0, 0.0), (0.0, 1.0))])
