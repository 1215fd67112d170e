# Analysis module - Logging, statistics, persistence
# IMPURE - Has side effects (file I/O, logging)

from .logger import (
    setup_logging,
    MetricsLogger,
    ExperimentLogger,
    EpisodeStatsLog,
    read_stats_csv,
    write_stats_csv,
)
from .metrics import compute_metrics, summarize_training, check_training_health
from .checkpointing import save_policy, load_policy, get_latest_model
