# Configuration loading, overrides and validation

from pathlib import Path
from typing import Any, Dict, List

import yaml


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file.
    
    Args:
        config_path: Path to config file
        
    Returns:
        Configuration dictionary
        
    Raises:
        FileNotFoundError: If the file does not exist
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    
    with open(config_path) as f:
        config = yaml.safe_load(f)
    return config or {}


def _parse_value(value: str) -> Any:
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.lower() in ("null", "none"):
        return None
    return value


def apply_overrides(config: dict, overrides: List[str]) -> dict:
    """Apply command-line overrides to config.
    
    Args:
        config: Base configuration
        overrides: List of "key.subkey=value" strings
        
    Returns:
        Modified configuration
    """
    for override in overrides:
        if "=" not in override:
            raise ValueError(f"Invalid override format: {override}. Expected key=value")
        
        key, value = override.split("=", 1)
        keys = key.split(".")
        
        # Navigate to nested key
        d = config
        for k in keys[:-1]:
            if not isinstance(d.get(k), dict):
                d[k] = {}
            d = d[k]
        
        d[keys[-1]] = _parse_value(value)
    
    return config


def _check_positive(errors: List[str], section: Dict[str, Any], prefix: str, key: str) -> None:
    if key in section:
        value = section[key]
        if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
            errors.append(f"{prefix}.{key} must be positive, got {value}")


def validate_config(config: dict) -> list:
    """Validate configuration.
    
    Args:
        config: Configuration dictionary
        
    Returns:
        List of validation errors (empty if valid)
    """
    errors = []
    
    # Required sections
    required_sections = ["experiment", "device", "track", "env", "agent", "training"]
    for section in required_sections:
        if section not in config:
            errors.append(f"Missing required section: {section}")
    
    # Validate experiment
    if "experiment" in config:
        if "seed" not in config["experiment"]:
            errors.append("experiment.seed is required")
    
    # Validate device
    if "device" in config:
        device_type = config["device"].get("type", "")
        if device_type not in ["cpu", "cuda"]:
            errors.append(f"device.type must be 'cpu' or 'cuda', got '{device_type}'")
    
    # Validate track
    if "track" in config:
        source = config["track"].get("source", "oval")
        if source not in ["oval", "image"]:
            errors.append(f"track.source must be 'oval' or 'image', got '{source}'")
        if source == "image":
            for key in ("path", "checkpoints", "start"):
                if key not in config["track"]:
                    errors.append(f"track.{key} is required for image tracks")
            if len(config["track"].get("checkpoints", [])) < 2:
                errors.append("track.checkpoints needs a finish line and at least one checkpoint")
    
    # Validate env
    if "env" in config:
        env = config["env"]
        for key in ("max_steps", "total_laps", "dt", "stuck_check_interval", "stuck_strikes"):
            _check_positive(errors, env, "env", key)
    
    # Validate agent
    if "agent" in config:
        agent = config["agent"]
        _check_positive(errors, agent, "agent", "learning_rate")
        gamma = agent.get("gamma", 0.99)
        if not 0.0 <= gamma <= 1.0:
            errors.append(f"agent.gamma must be in [0, 1], got {gamma}")
        tau = agent.get("tau", 0.005)
        if not 0.0 < tau <= 1.0:
            errors.append(f"agent.tau must be in (0, 1], got {tau}")
    
    # Validate training
    if "training" in config:
        training = config["training"]
        for key in ("batch_size", "buffer_capacity", "train_every", "milestone_frequency"):
            _check_positive(errors, training, "training", key)
        
        if training.get("batch_size", 32) > training.get("buffer_capacity", 50000):
            errors.append("training.batch_size must not exceed training.buffer_capacity")
        
        if training.get("warmup_episodes", 0) < 0:
            errors.append(f"training.warmup_episodes must be >= 0, got {training['warmup_episodes']}")
        
        max_episodes = training.get("max_episodes")
        if max_episodes is not None and max_episodes <= 0:
            errors.append(f"training.max_episodes must be positive or null, got {max_episodes}")
        
        eps = training.get("epsilon", {})
        start, end = eps.get("start", 1.0), eps.get("end", 0.005)
        if not 0.0 <= end <= start <= 1.0:
            errors.append(f"training.epsilon needs 0 <= end <= start <= 1, got start={start}, end={end}")
        decay = eps.get("decay", 0.995)
        if not 0.0 < decay <= 1.0:
            errors.append(f"training.epsilon.decay must be in (0, 1], got {decay}")
        
        if "eval" in training:
            _check_positive(errors, training["eval"], "training.eval", "num_episodes")
    
    return errors
