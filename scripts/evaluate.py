#!/usr/bin/env python3
"""Evaluate a saved model greedily, without rendering.

Usage:
    # Evaluation report for a model file
    python scripts/evaluate.py --model experiments/.../models/best_time.pt
    
    # Latest milestone in a directory, trajectory of one episode to CSV
    python scripts/evaluate.py --model experiments/.../models --trajectory run.csv
"""

import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import Optional

import torch

sys.path.insert(0, str(Path(__file__).parent.parent))

from racing_dqn.analysis.checkpointing import get_latest_model, load_policy
from racing_dqn.analysis.logger import setup_logging
from racing_dqn.config import apply_overrides, load_config
from racing_dqn.core.errors import ConfigurationError
from racing_dqn.core.types import ObservationLayout
from racing_dqn.env import GymWrapper, make_env, make_track
from racing_dqn.models import QNetwork
from racing_dqn.telemetry import ObservationValidator
from racing_dqn.training import Evaluator

logger = logging.getLogger("racing_dqn")


def load_network(
    path: Path,
    config: dict,
    device: torch.device,
    layout: Optional[ObservationLayout] = None,
) -> QNetwork:
    """Rebuild a Q-network from a saved policy artifact.
    
    Raises:
        ConfigurationError: If the saved input size does not match the observation layout
    """
    artifact = load_policy(path, device)
    if layout is not None:
        ObservationValidator.check_dimension(layout, artifact["state_dim"])
    network_config = config.get("agent", {}).get("network", {})
    network = QNetwork(
        state_dim=artifact["state_dim"],
        action_dim=artifact["action_dim"],
        hidden_dims=network_config.get("hidden_dims", [64, 64]),
        activation=network_config.get("activation", "relu"),
    ).to(device)
    network.load_state_dict(artifact["policy_state_dict"])
    network.eval()
    return network


def record_trajectory(env: GymWrapper, network: QNetwork, device: torch.device, output: Path) -> dict:
    """Run one greedy episode and write the per-step car state to CSV."""
    obs, _ = env.reset()
    rows = []
    terminated = truncated = False
    info = {}
    
    while not (terminated or truncated):
        obs_tensor = torch.as_tensor(obs, device=device).unsqueeze(0)
        with torch.no_grad():
            action = int(network.greedy_action(obs_tensor).item())
        obs, reward, terminated, truncated, info = env.step(action)
        vehicle = env.env.vehicle
        rows.append([
            info["steps"], f"{vehicle.x:.2f}", f"{vehicle.y:.2f}", f"{vehicle.heading:.4f}",
            f"{vehicle.speed:.2f}", action, f"{reward:.4f}", info["laps_completed"],
        ])
    
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["step", "x", "y", "heading", "speed", "action", "reward", "laps"])
        writer.writerows(rows)
    
    return info


def main():
    parser = argparse.ArgumentParser(description="Evaluate a saved racing model")
    parser.add_argument("--config", type=Path, default=Path("configs/base.yaml"))
    parser.add_argument("--model", type=Path, required=True, help="Model file, or directory of milestones")
    parser.add_argument("--episodes", type=int, default=None, help="Evaluation episodes (overrides config)")
    parser.add_argument("--trajectory", type=Path, default=None, help="Write one episode's trajectory to CSV")
    parser.add_argument("--override", action="append", default=[])
    
    args = parser.parse_args()
    
    setup_logging("INFO")
    
    config = apply_overrides(load_config(args.config), args.override)
    if args.episodes is not None:
        config.setdefault("training", {}).setdefault("eval", {})["num_episodes"] = args.episodes
    
    device = torch.device("cpu")
    
    model_path = args.model
    if model_path.is_dir():
        model_path = get_latest_model(model_path)
        if model_path is None:
            logger.error(f"No milestone models in {args.model}")
            sys.exit(1)
    
    try:
        track = make_track(config)
        env = make_env(config, track, training=False)
        network = load_network(model_path, config, device, env.encoder.layout)
        evaluator = Evaluator.from_config(config, track, device)
    except (ConfigurationError, FileNotFoundError, KeyError, ValueError) as e:
        logger.error(f"Setup failed: {e}")
        sys.exit(1)
    
    result = evaluator.evaluate(network)
    logger.info(f"{model_path.name} | {result.summary()}")
    
    if args.trajectory is not None:
        gym_env = GymWrapper(env)
        info = record_trajectory(gym_env, network, device, args.trajectory)
        gym_env.close()
        logger.info(
            f"Trajectory saved to {args.trajectory} "
            f"({info['steps']} steps, {info['laps_completed']} laps, finished={info['finished']})"
        )


if __name__ == "__main__":
    main()
