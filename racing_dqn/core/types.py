# Core type definitions
# FORBIDDEN: torch, logging, any I/O

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Tuple

import numpy as np

from .errors import InvalidActionError
from .math_utils import segments_intersect


class Surface(IntEnum):
    """Surface class of a track pixel."""
    OUT_OF_BOUNDS = 0
    WALL = 1
    TRACK = 2
    GRASS = 3


class Action(IntEnum):
    """Discrete driving controls."""
    ACCELERATE = 0
    REVERSE = 1
    LEFT = 2
    RIGHT = 3
    ACCELERATE_LEFT = 4
    ACCELERATE_RIGHT = 5
    NOOP = 6


# (acceleration input, steering input) per action
ACTION_CONTROLS = {
    Action.ACCELERATE: (1.0, 0.0),
    Action.REVERSE: (-0.4, 0.0),
    Action.LEFT: (0.0, -1.0),
    Action.RIGHT: (0.0, 1.0),
    Action.ACCELERATE_LEFT: (1.0, -1.0),
    Action.ACCELERATE_RIGHT: (1.0, 1.0),
    Action.NOOP: (0.0, 0.0),
}

NUM_ACTIONS = len(Action)


def action_to_controls(action: int) -> Tuple[float, float]:
    """Map an action id to (acceleration input, steering input).

    Raises:
        InvalidActionError: If the id is not in the action table
    """
    try:
        return ACTION_CONTROLS[Action(int(action))]
    except ValueError:
        raise InvalidActionError(
            f"Action {action} out of range, expected 0..{NUM_ACTIONS - 1}"
        ) from None


@dataclass
class VehicleState:
    """Pose and speed of the car. Heading in radians, image coordinates."""
    x: float
    y: float
    heading: float = 0.0
    speed: float = 0.0

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @property
    def velocity(self) -> Tuple[float, float]:
        return (math.cos(self.heading) * self.speed, math.sin(self.heading) * self.speed)

    def copy(self) -> "VehicleState":
        return VehicleState(self.x, self.y, self.heading, self.speed)


@dataclass
class Checkpoint:
    """Line segment across the track. Index 0 in a sequence is the finish line."""
    start: Tuple[float, float]
    end: Tuple[float, float]
    crossed: bool = False

    @property
    def midpoint(self) -> Tuple[float, float]:
        return (
            (self.start[0] + self.end[0]) * 0.5,
            (self.start[1] + self.end[1]) * 0.5,
        )

    def crosses(self, prev: Tuple[float, float], current: Tuple[float, float]) -> bool:
        """Check if the movement prev -> current intersects this checkpoint."""
        return segments_intersect(prev, current, self.start, self.end)

    def distance_to_midpoint(self, point: Tuple[float, float]) -> float:
        mx, my = self.midpoint
        return math.hypot(mx - point[0], my - point[1])


@dataclass(frozen=True)
class Transition:
    """Single environment transition. Immutable once created."""
    observation: np.ndarray
    action: int
    reward: float
    next_observation: np.ndarray
    done: bool


@dataclass(frozen=True)
class EpisodeStats:
    """Per-episode summary row."""
    episode: int
    reward: float
    length: int
    mean_loss: float
    laps_completed: int
    finished: bool


def _degrees(*values: float) -> Tuple[float, ...]:
    return tuple(math.radians(v) for v in values)


@dataclass(frozen=True)
class ObservationLayout:
    """Observation vector layout.

    Layout: [speed, sin(heading), cos(heading), x, y, short rays..., long rays...]
    Default total dimensions: 5 + 13 + 5 = 23
    """
    short_ray_offsets: Tuple[float, ...] = field(
        default_factory=lambda: _degrees(*range(-90, 91, 15))
    )
    long_ray_offsets: Tuple[float, ...] = field(
        default_factory=lambda: _degrees(*range(-30, 31, 15))
    )
    short_range: float = 200.0
    long_range: float = 900.0
    danger_reference: float = 50.0  # distance at which danger ~= 1.0
    ray_step: float = 2.0
    max_speed: float = 300.0

    POSE_FEATURES = 5

    @property
    def num_short_rays(self) -> int:
        return len(self.short_ray_offsets)

    @property
    def num_long_rays(self) -> int:
        return len(self.long_ray_offsets)

    @property
    def dimension(self) -> int:
        return self.POSE_FEATURES + self.num_short_rays + self.num_long_rays

    @property
    def short_slice(self) -> slice:
        return slice(self.POSE_FEATURES, self.POSE_FEATURES + self.num_short_rays)

    @property
    def long_slice(self) -> slice:
        start = self.POSE_FEATURES + self.num_short_rays
        return slice(start, start + self.num_long_rays)
