# Environment module - Track, simulator, gym adapter

from typing import Any, Dict, Optional

from .track import Track, Surface, create_oval_track, make_track
from .laps import LapTracker, CrossingEvent
from .racing_env import RacingEnv, RacingEnvConfig, RewardConfig, StepResult
from .gym_wrapper import GymWrapper


def make_env(
    config: Dict[str, Any],
    track: Optional[Track] = None,
    training: bool = True,
) -> RacingEnv:
    """Create a racing environment from config.

    Args:
        config: Configuration dictionary
        track: Prebuilt track (built from config if None)
        training: Enable stuck detector and idle penalty

    Returns:
        RacingEnv instance
    """
    if track is None:
        track = make_track(config)
    env_config = RacingEnvConfig.from_dict(config.get("env", {}), training_extras=training)
    return RacingEnv(track=track, config=env_config)
