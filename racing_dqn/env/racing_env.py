# Racing environment simulator
# Kinematics, lap state machine and reward shaping in one place.
# Evaluation uses the same simulator with training extras disabled.

import logging
import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, NamedTuple, Optional

import numpy as np

from ..core.physics import VehicleParams, bounce, integrate, is_high_friction
from ..core.types import NUM_ACTIONS, ObservationLayout, VehicleState, action_to_controls
from ..telemetry.sensors import SensorEncoder
from .laps import CrossingEvent, LapTracker
from .track import Track

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RewardConfig:
    """Reward shaping weights."""
    progress_weight: float = 0.1
    speed_weight: float = 0.0075
    wall_penalty: float = 10.0
    off_track_penalty: float = 2.0     # per second on grass
    time_penalty: float = 0.005        # per step
    idle_speed: float = 8.0
    idle_grace_steps: int = 30
    idle_penalty: float = 0.02
    checkpoint_bonus: float = 50.0
    lap_bonus: float = 200.0
    finish_bonus: float = 500.0
    illegal_finish_penalty: float = 10.0
    stuck_penalty: float = 50.0


@dataclass(frozen=True)
class RacingEnvConfig:
    """Episode configuration."""
    max_steps: int = 7500
    total_laps: int = 3
    dt: float = 1.0 / 60.0
    # Stuck detector and idle penalty; disabled for evaluation
    training_extras: bool = True
    stuck_check_interval: int = 75
    stuck_distance: float = 30.0
    stuck_strikes: int = 3
    reward: RewardConfig = field(default_factory=RewardConfig)

    @classmethod
    def from_dict(cls, env_config: Dict[str, Any], training_extras: bool = True) -> "RacingEnvConfig":
        """Build from the `env` config section, ignoring unknown keys."""
        names = {f.name for f in fields(cls)} - {"reward", "training_extras"}
        kwargs = {k: v for k, v in env_config.items() if k in names}

        reward_names = {f.name for f in fields(RewardConfig)}
        reward = RewardConfig(
            **{k: v for k, v in env_config.get("reward", {}).items() if k in reward_names}
        )
        return cls(training_extras=training_extras, reward=reward, **kwargs)


class StepResult(NamedTuple):
    """Result of one environment step; unpacks as (obs, reward, done, info)."""
    observation: np.ndarray
    reward: float
    done: bool
    info: Dict[str, Any]


class RacingEnv:
    """Single-car racing environment with a discrete action space.

    Deterministic: the same action sequence from reset() always produces
    the same trajectory.
    """

    def __init__(
        self,
        track: Track,
        config: Optional[RacingEnvConfig] = None,
        vehicle_params: Optional[VehicleParams] = None,
        layout: Optional[ObservationLayout] = None,
    ):
        self.track = track
        self.config = config if config is not None else RacingEnvConfig()
        self.params = vehicle_params if vehicle_params is not None else VehicleParams()
        self.encoder = SensorEncoder(track, layout)
        self.laps = LapTracker(track.new_checkpoints(), self.config.total_laps)

        self.vehicle = track.start_state()
        self.steps = 0
        self.done = True
        self.wall_hits = 0
        self.grass_frames = 0

    @property
    def observation_dim(self) -> int:
        return self.encoder.dimension

    @property
    def num_actions(self) -> int:
        return NUM_ACTIONS

    def observe(self) -> np.ndarray:
        return self.encoder.encode(self.vehicle)

    def reset(self) -> np.ndarray:
        """Start a new episode.

        Returns:
            Initial observation
        """
        self.vehicle = self.track.start_state()
        self.laps.reset()

        self.steps = 0
        self.done = False
        self.wall_hits = 0
        self.grass_frames = 0

        self._idle_counter = 0
        self._stuck_strikes = 0
        self._last_check_position = self.vehicle.position

        return self.observe()

    def step(self, action: int) -> StepResult:
        """Advance one timestep.

        Args:
            action: Discrete action id

        Returns:
            StepResult(observation, reward, done, info)

        Raises:
            RuntimeError: If called on a finished episode
            InvalidActionError: If the action id is out of range
        """
        if self.done:
            raise RuntimeError("Episode is over, call reset() first")

        accel_input, steer_input = action_to_controls(action)
        cfg = self.config
        rc = cfg.reward

        prev = self.vehicle
        surface_friction = self.track.friction_at(prev.x, prev.y)
        off_track = is_high_friction(surface_friction, self.params)
        if off_track:
            self.grass_frames += 1

        moved = integrate(prev, accel_input, steer_input, surface_friction, self.params, cfg.dt)
        hit_wall = self.track.is_blocked(moved.x, moved.y)
        if hit_wall:
            moved = bounce(prev, moved, self.params)
            self.wall_hits += 1
        self.vehicle = moved

        terms: Dict[str, float] = {}

        target = self.laps.target
        progress = target.distance_to_midpoint(prev.position) - target.distance_to_midpoint(moved.position)
        terms["progress"] = progress * rc.progress_weight
        if progress > 0.0:
            terms["speed"] = abs(moved.speed) * cfg.dt * rc.speed_weight

        if hit_wall:
            terms["wall"] = -rc.wall_penalty
        if off_track:
            terms["off_track"] = -rc.off_track_penalty * cfg.dt
        terms["time"] = -rc.time_penalty

        if cfg.training_extras:
            if abs(moved.speed) < rc.idle_speed and progress <= 0.0:
                self._idle_counter += 1
                if self._idle_counter > rc.idle_grace_steps:
                    terms["idle"] = -rc.idle_penalty
            else:
                self._idle_counter = 0

        lap_update = self.laps.update(prev.position, moved.position)
        event = lap_update.event
        if event == CrossingEvent.CHECKPOINT:
            terms["checkpoint"] = rc.checkpoint_bonus
        elif event in (CrossingEvent.LAP_COMPLETED, CrossingEvent.RACE_FINISHED):
            terms["checkpoint"] = rc.checkpoint_bonus
            terms["lap"] = rc.lap_bonus
            if event == CrossingEvent.RACE_FINISHED:
                terms["finish"] = rc.finish_bonus
                logger.debug(f"Race finished in {self.steps + 1} steps")
        if lap_update.illegal_finish_crossing:
            terms["illegal_finish"] = -rc.illegal_finish_penalty

        self.steps += 1

        stuck = cfg.training_extras and self._check_stuck()
        if stuck:
            terms["stuck"] = -rc.stuck_penalty

        finished = self.laps.finished
        truncated = not finished and not stuck and self.steps >= cfg.max_steps
        self.done = finished or stuck or truncated

        reward = float(sum(terms.values()))

        info = {
            "steps": self.steps,
            "laps_completed": self.laps.laps_completed,
            "current_lap": self.laps.current_lap,
            "next_checkpoint": self.laps.next_checkpoint,
            "event": event.value,
            "hit_wall": hit_wall,
            "off_track": off_track,
            "stuck": stuck,
            "truncated": truncated,
            "finished": finished,
            "wall_hits": self.wall_hits,
            "grass_frames": self.grass_frames,
            "speed": moved.speed,
            "reward_terms": terms,
        }

        return StepResult(self.observe(), reward, self.done, info)

    def _check_stuck(self) -> bool:
        """Sample displacement every check interval; too many short moves in a row end the episode."""
        cfg = self.config
        if self.steps % cfg.stuck_check_interval != 0:
            return False

        lx, ly = self._last_check_position
        moved = math.hypot(self.vehicle.x - lx, self.vehicle.y - ly)
        self._last_check_position = self.vehicle.position

        if moved < cfg.stuck_distance:
            self._stuck_strikes += 1
            logger.debug(f"Stuck strike {self._stuck_strikes} at step {self.steps} (moved {moved:.1f})")
        else:
            self._stuck_strikes = 0

        return self._stuck_strikes >= cfg.stuck_strikes
