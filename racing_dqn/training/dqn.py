# Double-DQN learner

import copy
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F

from ..analysis.checkpointing import load_policy, save_policy
from ..core.errors import ConfigurationError, NonFiniteLossError
from ..models import QNetwork

logger = logging.getLogger(__name__)

Batch = Dict[str, Union[np.ndarray, torch.Tensor]]


class DoubleDQN:
    """Double-DQN with a soft-tracking target network.
    
    The policy network selects the next action, the target network
    evaluates it. Only the policy network receives gradients; the target
    follows it by Polyak averaging after every update.
    """
    
    def __init__(
        self,
        state_dim: int = 23,
        action_dim: int = 7,
        hidden_dims: List[int] = None,
        activation: str = "relu",
        init: str = "default",
        lr: float = 1e-3,
        gamma: float = 0.99,
        tau: float = 0.005,
        max_grad_norm: float = 1.0,
        device: torch.device = torch.device("cpu"),
    ):
        """Initialize learner.
        
        Args:
            state_dim: Observation dimension
            action_dim: Number of discrete actions
            hidden_dims: Hidden layer widths of the Q-network
            activation: Hidden activation
            init: Weight initialization scheme of the Q-network
            lr: Adam learning rate
            gamma: Discount factor
            tau: Soft update coefficient
            max_grad_norm: Global gradient norm clip
            device: Torch device
        """
        if hidden_dims is None:
            hidden_dims = [64, 64]
        
        self.state_dim = state_dim
        self.action_dim = action_dim
        self.gamma = gamma
        self.tau = tau
        self.max_grad_norm = max_grad_norm
        self.device = device
        
        self.policy_net = QNetwork(
            state_dim=state_dim,
            action_dim=action_dim,
            hidden_dims=hidden_dims,
            activation=activation,
            init=init,
        ).to(device)
        
        self.target_net = copy.deepcopy(self.policy_net)
        self.target_net.eval()
        for p in self.target_net.parameters():
            p.requires_grad_(False)
        
        self.optimizer = torch.optim.Adam(self.policy_net.parameters(), lr=lr)
        
        self.updates = 0
    
    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        state_dim: int,
        action_dim: int,
        device: torch.device = torch.device("cpu"),
    ) -> "DoubleDQN":
        """Build from the `agent` config section."""
        agent_config = config.get("agent", {})
        network_config = agent_config.get("network", {})
        return cls(
            state_dim=state_dim,
            action_dim=action_dim,
            hidden_dims=network_config.get("hidden_dims", [64, 64]),
            activation=network_config.get("activation", "relu"),
            init=network_config.get("init", "default"),
            lr=agent_config.get("learning_rate", 1e-3),
            gamma=agent_config.get("gamma", 0.99),
            tau=agent_config.get("tau", 0.005),
            max_grad_norm=agent_config.get("max_grad_norm", 1.0),
            device=device,
        )
    
    def _to_tensor(self, value, dtype: torch.dtype) -> torch.Tensor:
        return torch.as_tensor(value, dtype=dtype, device=self.device)
    
    def predict(self, observation: np.ndarray) -> np.ndarray:
        """Q-values of the policy network.
        
        Args:
            observation: Single observation (state_dim,) or batch (batch, state_dim)
            
        Returns:
            Q-values with matching leading shape
        """
        obs = self._to_tensor(observation, torch.float32)
        single = obs.dim() == 1
        if single:
            obs = obs.unsqueeze(0)
        
        with torch.no_grad():
            q_values = self.policy_net(obs)
        
        q_values = q_values.cpu().numpy()
        return q_values[0] if single else q_values
    
    def compute_targets(
        self,
        rewards: torch.Tensor,
        next_states: torch.Tensor,
        dones: torch.Tensor,
    ) -> torch.Tensor:
        """Double-DQN bootstrap targets.
        
        y = r + gamma * Q_target(s', argmax_a Q_policy(s', a)) * (1 - done)
        """
        with torch.no_grad():
            next_actions = self.policy_net(next_states).argmax(dim=1, keepdim=True)
            next_q = self.target_net(next_states).gather(1, next_actions).squeeze(1)
            return rewards + self.gamma * next_q * (1.0 - dones)
    
    def train(self, batch: Batch) -> float:
        """One gradient step on a sampled batch.
        
        Args:
            batch: Dict with states, actions, rewards, next_states, dones
            
        Returns:
            Loss value
            
        Raises:
            NonFiniteLossError: If the loss is NaN or infinite
        """
        states = self._to_tensor(batch["states"], torch.float32)
        actions = self._to_tensor(batch["actions"], torch.int64)
        rewards = self._to_tensor(batch["rewards"], torch.float32)
        next_states = self._to_tensor(batch["next_states"], torch.float32)
        dones = self._to_tensor(batch["dones"], torch.float32)
        
        q_values = self.policy_net(states).gather(1, actions.unsqueeze(1)).squeeze(1)
        targets = self.compute_targets(rewards, next_states, dones)
        
        loss = F.mse_loss(q_values, targets)
        loss_value = loss.item()
        if not math.isfinite(loss_value):
            raise NonFiniteLossError(
                f"Non-finite loss {loss_value} at update {self.updates}, "
                f"reward range [{rewards.min().item():.2f}, {rewards.max().item():.2f}]"
            )
        
        # Gradient step
        self.optimizer.zero_grad()
        loss.backward()
        nn.utils.clip_grad_norm_(self.policy_net.parameters(), self.max_grad_norm)
        self.optimizer.step()
        
        self.soft_update_target()
        self.updates += 1
        
        return loss_value
    
    def soft_update_target(self) -> None:
        """target <- tau * policy + (1 - tau) * target"""
        with torch.no_grad():
            for target_param, param in zip(
                self.target_net.parameters(), self.policy_net.parameters()
            ):
                target_param.mul_(1.0 - self.tau).add_(param, alpha=self.tau)
    
    def hard_update_target(self) -> None:
        """Copy policy weights into the target network."""
        self.target_net.load_state_dict(self.policy_net.state_dict())
    
    def set_learning_rate(self, lr: float) -> None:
        """Update learning rate.
        
        Args:
            lr: New learning rate
        """
        for param_group in self.optimizer.param_groups:
            param_group["lr"] = lr
    
    def get_learning_rate(self) -> float:
        return float(self.optimizer.param_groups[0]["lr"])
    
    def snapshot(self) -> QNetwork:
        """Frozen eval-mode copy of the policy network."""
        net = copy.deepcopy(self.policy_net)
        net.eval()
        for p in net.parameters():
            p.requires_grad_(False)
        return net
    
    def save(self, path: Path, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Persist policy network weights."""
        save_policy(
            path=path,
            policy_state=self.policy_net.state_dict(),
            state_dim=self.state_dim,
            action_dim=self.action_dim,
            metadata=metadata,
        )
    
    def load(self, path: Path) -> None:
        """Load policy weights and copy them into the target network.
        
        Raises:
            FileNotFoundError: If the file does not exist
            ConfigurationError: If the saved dimensions do not match
        """
        artifact = load_policy(path, self.device)
        
        if artifact["state_dim"] != self.state_dim or artifact["action_dim"] != self.action_dim:
            raise ConfigurationError(
                f"Model {path} has dims ({artifact['state_dim']}, {artifact['action_dim']}), "
                f"expected ({self.state_dim}, {self.action_dim})"
            )
        
        self.policy_net.load_state_dict(artifact["policy_state_dict"])
        self.hard_update_target()
