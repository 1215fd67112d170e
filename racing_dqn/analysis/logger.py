# Logging utilities

import logging
import json
import csv
from collections import deque
from pathlib import Path
from typing import Deque, Dict, List, Any, Optional
from datetime import datetime

from ..core.types import EpisodeStats


STATS_HEADER = ["episode", "reward", "length", "avg_loss", "laps", "finished"]


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Setup logging configuration.
    
    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path for logging
        
    Returns:
        Configured logger
    """
    logger = logging.getLogger("racing_dqn")
    logger.setLevel(getattr(logging, level.upper()))
    
    # Replace handlers from a previous call
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    
    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper()))
    console_format = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)
    
    # File handler
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        )
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)
    
    return logger


class EpisodeStatsLog:
    """In-memory per-episode statistics with CSV export.
    
    With `max_history` set, only the most recent episodes are retained and
    older rows are dropped from exported windows. Finish flags are kept
    for every episode.
    """
    
    def __init__(self, max_history: Optional[int] = None):
        self._rows: Deque[EpisodeStats] = deque(maxlen=max_history)
        self._finishes: List[bool] = []
    
    def append(self, stats: EpisodeStats) -> None:
        self._rows.append(stats)
        self._finishes.append(stats.finished)
    
    def __len__(self) -> int:
        return len(self._rows)
    
    def recent_rewards(self, n: int) -> List[float]:
        return [s.reward for s in list(self._rows)[-n:]]
    
    def rolling_finish_rate(self, window: int) -> Optional[float]:
        """Finish rate over the last `window` episodes, None until that many exist."""
        if len(self._finishes) < window:
            return None
        recent = self._finishes[-window:]
        return sum(1 for f in recent if f) / window
    
    def window(self, end_episode: int, size: int) -> List[EpisodeStats]:
        """Retained rows with episode in [end_episode - size + 1, end_episode]."""
        start = max(1, end_episode - size + 1)
        return [s for s in self._rows if start <= s.episode <= end_episode]
    
    def write_window(self, path: Path, end_episode: int, size: int) -> int:
        """Write a statistics window as CSV.
        
        Args:
            path: Output CSV path
            end_episode: Last episode of the window
            size: Window length in episodes
            
        Returns:
            Number of rows written
        """
        rows = self.window(end_episode, size)
        write_stats_csv(path, rows)
        return len(rows)


def write_stats_csv(path: Path, rows: List[EpisodeStats]) -> None:
    """Write episode statistics rows with the standard header."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(STATS_HEADER)
        for s in rows:
            writer.writerow([
                s.episode,
                f"{s.reward:.6g}",
                s.length,
                f"{s.mean_loss:.6g}",
                s.laps_completed,
                int(s.finished),
            ])


def read_stats_csv(path: Path) -> List[EpisodeStats]:
    """Read a statistics CSV written by write_stats_csv.
    
    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a required column is missing
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Statistics file not found: {path}")
    
    with open(path, newline="") as f:
        reader = csv.DictReader(f)
        missing = set(STATS_HEADER) - set(reader.fieldnames or [])
        if missing:
            raise ValueError(f"{path} is missing columns: {sorted(missing)}")
        return [
            EpisodeStats(
                episode=int(row["episode"]),
                reward=float(row["reward"]),
                length=int(row["length"]),
                mean_loss=float(row["avg_loss"]),
                laps_completed=int(row["laps"]),
                finished=bool(int(row["finished"])),
            )
            for row in reader
        ]


class MetricsLogger:
    """Structured metrics logging for analysis."""
    
    def __init__(self, log_dir: Path):
        """Initialize metrics logger.
        
        Args:
            log_dir: Directory for log files
        """
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        
        self.csv_path = self.log_dir / "metrics.csv"
        self.json_path = self.log_dir / "metrics.json"
        
        self._metrics_history: List[Dict[str, Any]] = []
        self._csv_initialized = False
        self._fieldnames: List[str] = []
    
    def log(self, episode: int, metrics: Dict[str, float]) -> None:
        """Log metrics for a milestone.
        
        Args:
            episode: Training episode
            metrics: Dict of metric values
        """
        record = {
            "episode": episode,
            "timestamp": datetime.now().isoformat(),
            **metrics,
        }
        self._metrics_history.append(record)
        
        # Initialize CSV with fieldnames from first record
        if not self._csv_initialized:
            self._fieldnames = list(record.keys())
            with open(self.csv_path, "w", newline="") as f:
                writer = csv.DictWriter(f, fieldnames=self._fieldnames)
                writer.writeheader()
            self._csv_initialized = True
        
        # Append to CSV
        with open(self.csv_path, "a", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=self._fieldnames, extrasaction="ignore")
            writer.writerow(record)
    
    def save_summary(self) -> None:
        """Save complete metrics history as JSON."""
        with open(self.json_path, "w") as f:
            json.dump(self._metrics_history, f, indent=2)


class ExperimentLogger:
    """Logger for complete experiment tracking."""
    
    def __init__(
        self,
        experiment_name: str,
        base_dir: Path = Path("experiments"),
        level: str = "INFO",
    ):
        """Initialize experiment logger.
        
        Args:
            experiment_name: Name of experiment
            base_dir: Base directory for experiments
            level: Console logging level
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.experiment_dir = Path(base_dir) / f"{timestamp}_{experiment_name}"
        self.experiment_dir.mkdir(parents=True, exist_ok=True)
        
        self.logs_dir = self.experiment_dir / "logs"
        self.logs_dir.mkdir(exist_ok=True)
        
        self.models_dir = self.experiment_dir / "models"
        self.models_dir.mkdir(exist_ok=True)
        
        # Setup logging
        self.logger = setup_logging(
            level=level,
            log_file=self.logs_dir / "train.log",
        )
        
        # Setup metrics
        self.metrics = MetricsLogger(self.logs_dir)
    
    def save_config(self, config: Dict[str, Any]) -> None:
        """Save experiment configuration.
        
        Args:
            config: Configuration dict
        """
        import yaml
        
        config_path = self.experiment_dir / "config.yaml"
        with open(config_path, "w") as f:
            yaml.dump(config, f, default_flow_style=False)
    
    def save_git_info(self) -> None:
        """Save git commit information."""
        import subprocess
        
        try:
            commit = subprocess.check_output(
                ["git", "rev-parse", "HEAD"],
                stderr=subprocess.DEVNULL,
            ).decode().strip()
            
            dirty = subprocess.call(
                ["git", "diff", "--quiet"],
                stderr=subprocess.DEVNULL,
            ) != 0
            
            git_info = {
                "commit": commit,
                "dirty": dirty,
            }
            
            with open(self.experiment_dir / "git_info.json", "w") as f:
                json.dump(git_info, f, indent=2)
                
        except (subprocess.CalledProcessError, FileNotFoundError):
            self.logger.debug("git not available, skipping git info")
