# Greedy policy evaluation

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
import torch
import torch.nn as nn

from ..core.errors import ConfigurationError
from ..env import RacingEnv, RacingEnvConfig, Track

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreWeights:
    """Per-episode evaluation score weights."""
    finish_bonus: float = 100000.0
    step_penalty: float = 1.0
    wall_hit_penalty: float = 200.0
    grass_penalty: float = 50.0

    def score(self, finished: bool, steps: int, wall_hits: int, grass_frames: int) -> float:
        score = self.finish_bonus if finished else 0.0
        score -= steps * self.step_penalty
        score -= wall_hits * self.wall_hit_penalty
        score -= grass_frames * self.grass_penalty
        return score


@dataclass(frozen=True)
class EvalResult:
    """Aggregate of a batch of greedy evaluation episodes."""
    episodes: int
    finishes: int
    finish_rate: float
    avg_laps: float
    avg_steps_finish: float  # finished episodes only, 0 if none
    avg_steps_all: float
    avg_wall_hits: float
    avg_grass_frames: float
    avg_score: float

    def to_dict(self) -> Dict[str, float]:
        return dataclasses.asdict(self)

    def summary(self) -> str:
        return (
            f"finishes={self.finishes}/{self.episodes} ({self.finish_rate * 100:.1f}%) | "
            f"avg_laps={self.avg_laps:.2f} | "
            f"avg_steps_finish={self.avg_steps_finish:.1f} | "
            f"avg_wall_hits={self.avg_wall_hits:.2f} | "
            f"avg_grass_frames={self.avg_grass_frames:.1f} | "
            f"avg_score={self.avg_score:.1f}"
        )


class Evaluator:
    """Runs greedy episodes on a frozen network.
    
    Uses its own simulator with the stuck detector and idle penalty
    disabled, so training episodes are never affected.
    """

    def __init__(
        self,
        track: Track,
        env_config: Optional[RacingEnvConfig] = None,
        num_episodes: int = 20,
        weights: Optional[ScoreWeights] = None,
        device: torch.device = torch.device("cpu"),
    ):
        if env_config is None:
            env_config = RacingEnvConfig()
        self.env = RacingEnv(track, dataclasses.replace(env_config, training_extras=False))
        self.num_episodes = num_episodes
        self.weights = weights if weights is not None else ScoreWeights()
        self.device = device

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        track: Track,
        device: torch.device = torch.device("cpu"),
    ) -> "Evaluator":
        eval_config = config.get("training", {}).get("eval", {})
        env_config = RacingEnvConfig.from_dict(config.get("env", {}), training_extras=False)
        if "max_steps" in eval_config:
            env_config = dataclasses.replace(env_config, max_steps=eval_config["max_steps"])
        score_config = eval_config.get("score", {})
        unknown = set(score_config) - {f.name for f in dataclasses.fields(ScoreWeights)}
        if unknown:
            raise ConfigurationError(f"Unknown training.eval.score keys: {sorted(unknown)}")
        weights = ScoreWeights(**score_config)
        return cls(
            track=track,
            env_config=env_config,
            num_episodes=eval_config.get("num_episodes", 20),
            weights=weights,
            device=device,
        )

    def evaluate(self, network: nn.Module) -> EvalResult:
        """Evaluate a network greedily.
        
        Args:
            network: Q-network, used read-only
            
        Returns:
            EvalResult
        """
        was_training = network.training
        network.eval()

        finishes = 0
        laps, steps_all, steps_finish = [], [], []
        wall_hits, grass_frames, scores = [], [], []

        try:
            for _ in range(self.num_episodes):
                obs = self.env.reset()
                done = False
                info = {}
                while not done:
                    obs_tensor = torch.as_tensor(obs, device=self.device).unsqueeze(0)
                    with torch.no_grad():
                        action = int(network(obs_tensor).argmax(dim=-1).item())
                    obs, _, done, info = self.env.step(action)

                finished = bool(info["finished"])
                steps = int(info["steps"])
                finishes += int(finished)
                laps.append(info["laps_completed"])
                steps_all.append(steps)
                if finished:
                    steps_finish.append(steps)
                wall_hits.append(info["wall_hits"])
                grass_frames.append(info["grass_frames"])
                scores.append(self.weights.score(finished, steps, info["wall_hits"], info["grass_frames"]))
        finally:
            network.train(was_training)

        n = self.num_episodes
        return EvalResult(
            episodes=n,
            finishes=finishes,
            finish_rate=finishes / n if n > 0 else 0.0,
            avg_laps=float(np.mean(laps)) if laps else 0.0,
            avg_steps_finish=float(np.mean(steps_finish)) if steps_finish else 0.0,
            avg_steps_all=float(np.mean(steps_all)) if steps_all else 0.0,
            avg_wall_hits=float(np.mean(wall_hits)) if wall_hits else 0.0,
            avg_grass_frames=float(np.mean(grass_frames)) if grass_frames else 0.0,
            avg_score=float(np.mean(scores)) if scores else 0.0,
        )
