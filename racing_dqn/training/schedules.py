# Exploration and learning-rate schedules

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpsilonSchedule:
    """Exponential epsilon decay, applied once per episode.
    
    value(n) = max(end, start * decay ** n)
    """
    start: float = 1.0
    end: float = 0.005
    decay: float = 0.995

    def __post_init__(self):
        if not 0.0 <= self.end <= self.start <= 1.0:
            raise ValueError(f"Need 0 <= end <= start <= 1, got start={self.start}, end={self.end}")
        if not 0.0 < self.decay <= 1.0:
            raise ValueError(f"decay must be in (0, 1], got {self.decay}")

    def value(self, num_decays: int) -> float:
        return max(self.end, self.start * self.decay ** num_decays)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EpsilonSchedule":
        eps_config = config.get("training", {}).get("epsilon", {})
        return cls(
            start=eps_config.get("start", 1.0),
            end=eps_config.get("end", 0.005),
            decay=eps_config.get("decay", 0.995),
        )


def epsilon_greedy(q_values: np.ndarray, epsilon: float, rng: np.random.Generator) -> int:
    """Uniform random action with probability epsilon, else argmax."""
    if rng.random() < epsilon:
        return int(rng.integers(len(q_values)))
    return int(np.argmax(q_values))


class LearningRateSchedule:
    """One-way step schedule driven by race finishes.
    
    Stage 1 fires on the first finished race, stage 2 once the finish rate
    over the recent window reaches the threshold. Each stage fires at most
    once and never raises the current rate.
    """

    def __init__(
        self,
        first_finish_lr: float = 3e-4,
        high_finish_rate_lr: float = 1e-4,
        finish_rate_threshold: float = 0.5,
        window: int = 20,
    ):
        self.first_finish_lr = first_finish_lr
        self.high_finish_rate_lr = high_finish_rate_lr
        self.finish_rate_threshold = finish_rate_threshold
        self.window = window

        self.first_drop_done = False
        self.second_drop_done = False

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "LearningRateSchedule":
        lr_config = config.get("training", {}).get("lr_schedule", {})
        return cls(
            first_finish_lr=lr_config.get("first_finish_lr", 3e-4),
            high_finish_rate_lr=lr_config.get("high_finish_rate_lr", 1e-4),
            finish_rate_threshold=lr_config.get("finish_rate_threshold", 0.5),
            window=lr_config.get("window", 20),
        )

    def update(self, finished: bool, recent_finish_rate: Optional[float], current_lr: float) -> Optional[float]:
        """Check the schedule after an episode.
        
        Args:
            finished: Whether the episode that just ended finished the race
            recent_finish_rate: Finish rate over the last `window` episodes,
                None while fewer episodes exist
            current_lr: Learning rate currently in use
            
        Returns:
            New learning rate, or None if unchanged
        """
        new_lr = None

        if finished and not self.first_drop_done:
            self.first_drop_done = True
            if self.first_finish_lr < current_lr:
                new_lr = self.first_finish_lr
                logger.info(f"LR schedule: first finish detected. Lowering LR to {new_lr:.1e}")

        rate = recent_finish_rate
        if not self.second_drop_done and rate is not None and rate >= self.finish_rate_threshold:
            self.second_drop_done = True
            lr = new_lr if new_lr is not None else current_lr
            if self.high_finish_rate_lr < lr:
                new_lr = self.high_finish_rate_lr
                logger.info(
                    f"LR schedule: finish rate (last {self.window}) = {rate:.2f}. "
                    f"Lowering LR to {new_lr:.1e}"
                )

        return new_lr
