# Action-value network
# FORBIDDEN: env.*, training.*, logging, pathlib

import torch
import torch.nn as nn
from typing import List

from .blocks import build_mlp, init_linear_


class QNetwork(nn.Module):
    """State-action value function Q(s, ·) for a discrete action set.

    Maps an observation to one Q-value per action.
    """

    def __init__(
        self,
        state_dim: int = 23,
        action_dim: int = 7,
        hidden_dims: List[int] = None,
        activation: str = "relu",
        init: str = "default",
    ):
        super().__init__()

        if hidden_dims is None:
            hidden_dims = [64, 64]

        self.state_dim = state_dim
        self.action_dim = action_dim
        self.hidden_dims = list(hidden_dims)

        self.layers = init_linear_(
            build_mlp(state_dim, action_dim, self.hidden_dims, activation),
            init,
        )

    def forward(self, state: torch.Tensor) -> torch.Tensor:
        """Compute Q-values.

        Args:
            state: Observation, shape (batch, state_dim)

        Returns:
            q_values: shape (batch, action_dim)
        """
        return self.layers(state)

    def greedy_action(self, state: torch.Tensor) -> torch.Tensor:
        """Index of the highest Q-value per row."""
        return self.forward(state).argmax(dim=-1)
