# Main trainer class

import torch
import numpy as np
from pathlib import Path
from typing import Dict, Optional, Any
import time
import logging

from ..analysis.checkpointing import save_policy
from ..analysis.logger import EpisodeStatsLog, MetricsLogger
from ..core.errors import ConfigurationError
from ..core.types import EpisodeStats, Transition
from ..env import Track, make_env, make_track
from ..telemetry import ObservationValidator
from .buffer import ReplayBuffer
from .cancellation import CancellationToken
from .dqn import DoubleDQN
from .evaluator import EvalResult, Evaluator
from .schedules import EpsilonSchedule, LearningRateSchedule, epsilon_greedy
from .selection import ModelSelector


logger = logging.getLogger(__name__)


class Trainer:
    """Main training orchestrator.
    
    Runs epsilon-greedy episodes, feeds the replay buffer, drives learner
    updates and the learning-rate schedule, and handles milestones:
    model snapshots, statistics windows, greedy evaluation and best-model
    selection.
    """
    
    def __init__(
        self,
        config: Dict[str, Any],
        model_dir: Path = Path("models"),
        track: Optional[Track] = None,
        token: Optional[CancellationToken] = None,
        metrics_logger: Optional[MetricsLogger] = None,
    ):
        """Initialize trainer.
        
        Args:
            config: Configuration dictionary
            model_dir: Directory for models and statistics files
            track: Prebuilt track (built from config if None)
            token: Cancellation token checked at every step
            metrics_logger: Optional sink for milestone evaluation metrics
        
        Raises:
            ConfigurationError: If the observation layout does not fit the
                network or the start observation is malformed
        """
        self.config = config
        self.model_dir = Path(model_dir)
        self.model_dir.mkdir(parents=True, exist_ok=True)
        self.token = token if token is not None else CancellationToken()
        self.metrics_logger = metrics_logger
        
        # Device setup
        device_config = config.get("device", {})
        device_type = device_config.get("type", "cpu")
        if device_type == "cuda":
            cuda_device = device_config.get("cuda_device", 0)
            self.device = torch.device(f"cuda:{cuda_device}")
        else:
            self.device = torch.device("cpu")
        
        num_threads = device_config.get("num_threads")
        if num_threads:
            torch.set_num_threads(num_threads)
        
        logger.info(f"Using device: {self.device} ({torch.get_num_threads()} threads)")
        
        train_config = config.get("training", {})
        self.warmup_episodes = train_config.get("warmup_episodes", 5)
        self.train_every = train_config.get("train_every", 3)
        self.batch_size = train_config.get("batch_size", 32)
        self.milestone_frequency = train_config.get("milestone_frequency", 50)
        self.progress_frequency = train_config.get("progress_frequency", 10)
        
        # Environment
        self.track = track if track is not None else make_track(config)
        self.env = make_env(config, self.track, training=True)
        
        # Observation layout must match the network input
        self.state_dim = config.get("agent", {}).get("state_dim", self.env.observation_dim)
        self.action_dim = self.env.num_actions
        ObservationValidator.check_dimension(self.env.encoder.layout, self.state_dim)
        valid, violations = ObservationValidator.validate(
            self.env.encoder.encode(self.track.start_state()), self.env.encoder.layout
        )
        if not valid:
            raise ConfigurationError(f"Start observation is malformed: {violations}")
        
        # Learner and memory
        seed = config.get("experiment", {}).get("seed")
        self.agent = DoubleDQN.from_config(config, self.state_dim, self.action_dim, self.device)
        self.buffer = ReplayBuffer(
            capacity=train_config.get("buffer_capacity", 50000),
            state_dim=self.state_dim,
            seed=seed,
        )
        self.rng = np.random.default_rng(seed)
        
        params = sum(p.numel() for p in self.agent.policy_net.parameters())
        logger.info(f"Q-network parameters: {params:,}")
        
        # Schedules
        self.epsilon_schedule = EpsilonSchedule.from_config(config)
        self.lr_schedule = LearningRateSchedule.from_config(config)
        
        # Evaluation and selection
        self.evaluator = Evaluator.from_config(config, self.track, self.device)
        self.selector = ModelSelector.from_config(config, self.model_dir)
        
        # Training state
        self.episode = 0
        self.epsilon = self.epsilon_schedule.value(0)
        self.stats = EpisodeStatsLog(max_history=train_config.get("stats_history"))
        self.last_eval: Optional[EvalResult] = None
    
    def resume(self, path: Path, learning_rate: Optional[float] = None) -> None:
        """Load policy weights from a saved model before training.
        
        Args:
            path: Model file path
            learning_rate: Learning rate to continue with (config value if None)
        """
        self.agent.load(path)
        if learning_rate is None:
            learning_rate = self.config.get("training", {}).get("resume_learning_rate")
        if learning_rate is not None:
            self.agent.set_learning_rate(learning_rate)
        logger.info(f"Resumed from {path} with lr {self.agent.get_learning_rate():.1e}")
    
    def train(self, max_episodes: Optional[int] = None) -> Dict[str, Any]:
        """Run training loop until max_episodes or cancellation.
        
        Args:
            max_episodes: Episodes to train (config value if None; unbounded if both None)
            
        Returns:
            Final summary
        """
        if max_episodes is None:
            max_episodes = self.config.get("training", {}).get("max_episodes")
        
        logger.info(
            f"Starting training (max episodes: {max_episodes if max_episodes else 'unbounded'}, "
            f"milestone every {self.milestone_frequency})"
        )
        
        start_time = time.time()
        
        while not self.token.cancelled:
            if max_episodes is not None and self.episode >= max_episodes:
                break
            
            stats = self._run_episode(self.episode + 1)
            if stats is None:
                break
            
            self.episode = stats.episode
            self.stats.append(stats)
            self.epsilon = self.epsilon_schedule.value(self.episode)
            
            new_lr = self.lr_schedule.update(
                stats.finished,
                self.stats.rolling_finish_rate(self.lr_schedule.window),
                self.agent.get_learning_rate(),
            )
            if new_lr is not None:
                self.agent.set_learning_rate(new_lr)
            
            if self.episode % self.progress_frequency == 0:
                self._log_progress(stats, time.time() - start_time)
            
            if self.episode % self.milestone_frequency == 0:
                self._milestone()
        
        cancelled = self.token.cancelled
        if cancelled:
            logger.info("Interrupted, saving final model")
        
        final_path = self.model_dir / "model_final.pt"
        self.agent.save(final_path, metadata={"episode": self.episode})
        
        logger.info(f"Training stopped after {self.episode} episodes in {time.time() - start_time:.1f}s")
        
        return {
            "episodes": self.episode,
            "cancelled": cancelled,
            "epsilon": self.epsilon,
            "learning_rate": self.agent.get_learning_rate(),
            "final_model": final_path,
            "best": self.selector.records(),
        }
    
    def _run_episode(self, episode: int) -> Optional[EpisodeStats]:
        """Play one training episode.
        
        Returns:
            Episode statistics, or None if cancelled before the episode ended
        """
        learn = episode >= self.warmup_episodes
        
        obs = self.env.reset()
        total_reward = 0.0
        steps = 0
        losses = []
        info = {}
        done = False
        
        while not done:
            if self.token.cancelled:
                return None
            
            q_values = self.agent.predict(obs)
            action = epsilon_greedy(q_values, self.epsilon, self.rng)
            
            next_obs, reward, done, info = self.env.step(action)
            self.buffer.add(Transition(obs, action, reward, next_obs, done))
            
            total_reward += reward
            steps += 1
            obs = next_obs
            
            if learn and steps % self.train_every == 0 and self.buffer.can_sample(self.batch_size):
                batch = self.buffer.sample(self.batch_size, device=self.device)
                losses.append(self.agent.train(batch))
        
        return EpisodeStats(
            episode=episode,
            reward=total_reward,
            length=steps,
            mean_loss=float(np.mean(losses)) if losses else 0.0,
            laps_completed=info["laps_completed"],
            finished=bool(info["finished"]),
        )
    
    def _log_progress(self, stats: EpisodeStats, elapsed: float) -> None:
        recent = self.stats.recent_rewards(self.progress_frequency)
        logger.info(
            f"Episode: {stats.episode} | "
            f"Reward: {stats.reward:.2f} | "
            f"Avg({len(recent)}): {np.mean(recent):.2f} | "
            f"Laps: {stats.laps_completed} | "
            f"Eps: {self.epsilon:.3f} | "
            f"Steps: {stats.length} | "
            f"LR: {self.agent.get_learning_rate():.1e} | "
            f"Time: {elapsed:.0f}s"
        )
    
    def _milestone(self) -> EvalResult:
        """Save, export statistics, evaluate and update best models."""
        episode = self.episode
        
        model_path = self.model_dir / f"model_episode_{episode}.pt"
        self.agent.save(model_path, metadata={"episode": episode, "epsilon": self.epsilon})
        
        stats_path = self.model_dir / f"training_stats_{episode}.csv"
        rows = self.stats.write_window(stats_path, episode, self.milestone_frequency)
        
        snapshot = self.agent.snapshot()
        result = self.evaluator.evaluate(snapshot)
        self.last_eval = result
        
        logger.info(f"Milestone {episode}: model {model_path.name}, stats {stats_path.name} ({rows} rows)")
        logger.info(f"Eval (greedy, {result.episodes} eps) | {result.summary()}")
        
        def save_snapshot(path: Path) -> None:
            save_policy(
                path,
                snapshot.state_dict(),
                self.state_dim,
                self.action_dim,
                metadata={"episode": episode, **result.to_dict()},
            )
        
        updated = self.selector.update(result, episode, save_snapshot)
        
        if self.metrics_logger is not None:
            self.metrics_logger.log(episode, {
                **result.to_dict(),
                "epsilon": self.epsilon,
                "learning_rate": self.agent.get_learning_rate(),
                "updated": "|".join(updated),
            })
        
        return result
