# Pytest configuration and fixtures

import pytest
import numpy as np
import torch
from pathlib import Path
import tempfile
import yaml

from racing_dqn.core.types import Surface
from racing_dqn.env.track import Track


CORRIDOR_WIDTH = 240
CORRIDOR_HEIGHT = 80
CORRIDOR_START = (20.0, 40.0)
FINISH_X = 40.0
CHECKPOINT_X = 120.0


def make_corridor_track(grass_columns=None) -> Track:
    """Straight walled corridor heading +x.
    
    Border pixels are walls. Finish line at x=40, one checkpoint at x=120,
    start at (20, 40) facing the finish line.
    """
    surfaces = np.full((CORRIDOR_HEIGHT, CORRIDOR_WIDTH), Surface.TRACK, dtype=np.uint8)
    surfaces[0, :] = Surface.WALL
    surfaces[-1, :] = Surface.WALL
    surfaces[:, 0] = Surface.WALL
    surfaces[:, -1] = Surface.WALL
    if grass_columns is not None:
        surfaces[1:-1, grass_columns] = Surface.GRASS
    
    top, bottom = 5.0, CORRIDOR_HEIGHT - 5.0
    segments = [
        ((FINISH_X, top), (FINISH_X, bottom)),
        ((CHECKPOINT_X, top), (CHECKPOINT_X, bottom)),
    ]
    return Track(
        surfaces=surfaces,
        checkpoint_segments=segments,
        start_x=CORRIDOR_START[0],
        start_y=CORRIDOR_START[1],
        start_heading=0.0,
        name="corridor",
    )


@pytest.fixture
def seed():
    """Fixed seed for reproducibility."""
    return 42


@pytest.fixture
def set_seed(seed):
    """Set all random seeds."""
    np.random.seed(seed)
    torch.manual_seed(seed)
    if torch.cuda.is_available():
        torch.cuda.manual_seed(seed)


@pytest.fixture
def device():
    """Get test device (CPU for CI)."""
    return torch.device("cpu")


@pytest.fixture
def state_dim():
    """Standard observation dimension."""
    return 23


@pytest.fixture
def action_dim():
    """Number of discrete actions."""
    return 7


@pytest.fixture
def batch_size():
    """Standard batch size for tests."""
    return 32


@pytest.fixture
def corridor_track():
    """Small straight track for scripted driving."""
    return make_corridor_track()


@pytest.fixture
def random_batch(batch_size, state_dim, action_dim, set_seed):
    """Batch of random transitions as numpy arrays."""
    rng = np.random.default_rng(0)
    return {
        "states": rng.standard_normal((batch_size, state_dim)).astype(np.float32),
        "actions": rng.integers(0, action_dim, size=batch_size),
        "rewards": rng.standard_normal(batch_size).astype(np.float32),
        "next_states": rng.standard_normal((batch_size, state_dim)).astype(np.float32),
        "dones": (rng.random(batch_size) < 0.1).astype(np.float32),
    }


@pytest.fixture
def config():
    """Small test configuration."""
    return {
        "experiment": {
            "name": "test",
            "seed": 42,
            "deterministic": True,
        },
        "device": {
            "type": "cpu",
            "cuda_device": 0,
            "num_threads": 1,
        },
        "logging": {
            "level": "WARNING",
        },
        "track": {
            "source": "oval",
        },
        "env": {
            "max_steps": 60,
            "total_laps": 3,
        },
        "agent": {
            "learning_rate": 0.001,
            "gamma": 0.99,
            "tau": 0.005,
            "max_grad_norm": 1.0,
            "network": {
                "hidden_dims": [32, 32],
                "activation": "relu",
            },
        },
        "training": {
            "max_episodes": 4,
            "warmup_episodes": 1,
            "train_every": 3,
            "batch_size": 8,
            "buffer_capacity": 500,
            "milestone_frequency": 2,
            "progress_frequency": 2,
            "epsilon": {
                "start": 1.0,
                "end": 0.005,
                "decay": 0.995,
            },
            "eval": {
                "num_episodes": 2,
                "max_steps": 40,
            },
        },
    }


@pytest.fixture
def temp_dir():
    """Create temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config_file(config, temp_dir):
    """Create temporary config file."""
    config_path = temp_dir / "config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(config, f)
    return config_path


@pytest.fixture
def corridor_factory():
    """Build corridor tracks with optional grass columns."""
    return make_corridor_track


@pytest.fixture
def sample_batch_states(batch_size, state_dim, set_seed):
    """Generate batch of observations."""
    return torch.randn(batch_size, state_dim)
