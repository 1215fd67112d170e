# Core module - Pure functions, no side effects
# FORBIDDEN: torch, logging, pathlib, any I/O

from .errors import ConfigurationError, InvalidActionError, NonFiniteLossError
from .types import (
    Surface,
    Action,
    ACTION_CONTROLS,
    NUM_ACTIONS,
    action_to_controls,
    VehicleState,
    Checkpoint,
    Transition,
    EpisodeStats,
    ObservationLayout,
)
from .math_utils import segments_intersect, clamp, moving_average
from .physics import VehicleParams, integrate, bounce
