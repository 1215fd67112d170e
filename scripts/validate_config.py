#!/usr/bin/env python3
"""Check a training configuration before launching a run.

Usage:
    python scripts/validate_config.py configs/base.yaml
    python scripts/validate_config.py configs/base.yaml --override training.batch_size=64 --build-track
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from racing_dqn.config import apply_overrides, load_config, validate_config
from racing_dqn.core.errors import ConfigurationError
from racing_dqn.env import make_env, make_track
from racing_dqn.telemetry import ObservationValidator


def check_track(config: dict) -> list:
    """Build the configured track and check the observation size against the network."""
    try:
        track = make_track(config)
        env = make_env(config, track, training=False)
        state_dim = config.get("agent", {}).get("state_dim", env.observation_dim)
        ObservationValidator.check_dimension(env.encoder.layout, state_dim)
    except (ConfigurationError, FileNotFoundError, KeyError, ValueError) as e:
        return [f"track: {e}"]

    print(
        f"Track '{track.name}': {track.width}x{track.height}, "
        f"{len(track.checkpoint_segments)} checkpoints, observation dim {env.observation_dim}"
    )
    return []


def main():
    parser = argparse.ArgumentParser(description="Validate configuration file")
    parser.add_argument("config", type=Path, help="Path to configuration file")
    parser.add_argument("--override", action="append", default=[], help="key.subkey=value")
    parser.add_argument("--build-track", action="store_true", help="Also load the track and encoder")

    args = parser.parse_args()

    try:
        config = apply_overrides(load_config(args.config), args.override)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    errors = validate_config(config)
    if not errors and args.build_track:
        errors = check_track(config)

    if errors:
        print("Configuration validation failed:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)

    print("Configuration is valid")


if __name__ == "__main__":
    main()
