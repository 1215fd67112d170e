#!/usr/bin/env python3
"""Training entry point for the Double-DQN racing trainer."""

import argparse
import logging
import random
import signal
import sys
from pathlib import Path

import numpy as np
import torch

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from racing_dqn.analysis.logger import ExperimentLogger
from racing_dqn.config import apply_overrides, load_config, validate_config
from racing_dqn.core.errors import ConfigurationError, NonFiniteLossError
from racing_dqn.training import CancellationToken, Trainer, install_sigint_handler


def set_global_seed(seed: int, deterministic: bool = False) -> int:
    """Set all random seeds for reproducibility.
    
    Args:
        seed: Random seed
        deterministic: If True, use deterministic algorithms
        
    Returns:
        The seed used
    """
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
    
    if torch.cuda.is_available():
        torch.cuda.manual_seed(seed)
        torch.cuda.manual_seed_all(seed)
    
    if deterministic:
        torch.use_deterministic_algorithms(True)
        torch.backends.cudnn.deterministic = True
        torch.backends.cudnn.benchmark = False
    
    return seed


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Train a Double-DQN racing agent")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("configs/base.yaml"),
        help="Path to configuration file",
    )
    parser.add_argument(
        "--device",
        type=str,
        choices=["cpu", "cuda"],
        default=None,
        help="Device to use (overrides config)",
    )
    parser.add_argument(
        "--max-episodes",
        type=int,
        default=None,
        help="Stop after this many episodes (default: run until interrupted)",
    )
    parser.add_argument(
        "--milestone-frequency",
        type=int,
        default=None,
        help="Episodes between milestones (overrides config)",
    )
    parser.add_argument(
        "--override",
        action="append",
        default=[],
        help="Config overrides in format key.subkey=value",
    )
    parser.add_argument(
        "--resume",
        type=Path,
        default=None,
        help="Path to a saved model to continue training from",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Base directory for experiment outputs (overrides config)",
    )
    parser.add_argument(
        "--experiment-name",
        type=str,
        default=None,
        help="Experiment name (overrides config)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    
    # Load config
    try:
        config = load_config(args.config)
        if args.override:
            config = apply_overrides(config, args.override)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    
    if args.device:
        config.setdefault("device", {})["type"] = args.device
    
    if args.max_episodes is not None:
        config.setdefault("training", {})["max_episodes"] = args.max_episodes
    
    if args.milestone_frequency is not None:
        config.setdefault("training", {})["milestone_frequency"] = args.milestone_frequency
    
    if args.output_dir is not None:
        config.setdefault("output", {})["dir"] = str(args.output_dir)
    
    if args.experiment_name:
        config.setdefault("experiment", {})["name"] = args.experiment_name
    
    errors = validate_config(config)
    if errors:
        print("Configuration validation failed:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return 1
    
    # Set seed
    seed = config.get("experiment", {}).get("seed", 42)
    deterministic = config.get("experiment", {}).get("deterministic", False)
    set_global_seed(seed, deterministic)
    
    # Setup logging
    experiment_name = config.get("experiment", {}).get("name", "racing_dqn")
    exp_logger = ExperimentLogger(
        experiment_name,
        base_dir=Path(config.get("output", {}).get("dir", "experiments")),
        level=config.get("logging", {}).get("level", "INFO"),
    )
    exp_logger.save_config(config)
    exp_logger.save_git_info()
    
    logger = logging.getLogger("racing_dqn")
    logger.info(f"Starting experiment: {experiment_name}")
    logger.info(f"Output: {exp_logger.experiment_dir}")
    logger.info(f"Seed: {seed}")
    
    token = CancellationToken()
    
    # Create trainer
    try:
        trainer = Trainer(
            config,
            model_dir=exp_logger.models_dir,
            token=token,
            metrics_logger=exp_logger.metrics,
        )
        if args.resume:
            trainer.resume(args.resume)
    except (ConfigurationError, FileNotFoundError, KeyError, ValueError) as e:
        logger.error(f"Setup failed: {e}")
        return 1
    
    previous_handler = install_sigint_handler(token)
    try:
        summary = trainer.train()
    except NonFiniteLossError as e:
        logger.error(f"Training halted: {e}")
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        exp_logger.metrics.save_summary()
    
    for name, record in summary["best"].items():
        if record is not None:
            logger.info(f"Best {name}: {record.value:.3f} at episode {record.episode} ({record.path.name})")
    
    logger.info("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
