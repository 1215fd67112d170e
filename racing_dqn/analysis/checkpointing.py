# Model save/load utilities

import torch
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


def save_policy(
    path: Path,
    policy_state: Dict[str, Any],
    state_dim: int,
    action_dim: int,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """Save policy network weights.
    
    Only the policy network is persisted; the target network is rebuilt
    from it on load.
    
    Args:
        path: Model file path
        policy_state: Policy network state dict
        state_dim: Observation dimension the network was built for
        action_dim: Number of discrete actions
        metadata: Optional extra fields (episode, evaluation results)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    
    artifact = {
        "policy_state_dict": policy_state,
        "state_dim": state_dim,
        "action_dim": action_dim,
    }
    
    if metadata is not None:
        artifact["metadata"] = metadata
    
    # Save to temporary file first, then rename (atomic)
    temp_path = path.with_suffix(".tmp")
    torch.save(artifact, temp_path)
    temp_path.replace(path)
    
    logger.info(f"Saved model to {path}")


def load_policy(
    path: Path,
    device: torch.device = torch.device("cpu"),
) -> Dict[str, Any]:
    """Load a saved policy artifact.
    
    Args:
        path: Model file path
        device: Device to load tensors to
        
    Returns:
        Artifact dict with policy_state_dict, state_dim, action_dim
        
    Raises:
        FileNotFoundError: If the file does not exist
        KeyError: If the file is not a policy artifact
    """
    path = Path(path)
    
    if not path.exists():
        raise FileNotFoundError(f"Model not found: {path}")
    
    artifact = torch.load(path, map_location=device)
    
    for key in ("policy_state_dict", "state_dim", "action_dim"):
        if key not in artifact:
            raise KeyError(f"Model file {path} is missing '{key}'")
    
    logger.info(f"Loaded model from {path}")
    
    return artifact


def get_latest_model(model_dir: Path) -> Optional[Path]:
    """Find the milestone model with the highest episode number.
    
    Args:
        model_dir: Directory containing model_episode_<n>.pt files
        
    Returns:
        Path to latest model or None
    """
    model_dir = Path(model_dir)
    
    if not model_dir.exists():
        return None
    
    models = list(model_dir.glob("model_episode_*.pt"))
    
    if not models:
        return None
    
    # Sort by episode number
    def get_episode(p: Path) -> int:
        try:
            return int(p.stem.rsplit("_", 1)[1])
        except (IndexError, ValueError):
            return 0
    
    models.sort(key=get_episode, reverse=True)
    
    return models[0]
