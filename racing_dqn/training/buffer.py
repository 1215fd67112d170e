# Replay buffer for off-policy algorithms

import numpy as np
import torch
from typing import Dict, Optional

from ..core.types import Transition


class ReplayBuffer:
    """Experience replay buffer for Double-DQN.
    
    Stores transitions (s, a, r, s', done) in preallocated ring arrays.
    When full, the oldest transition is overwritten first.
    """
    
    def __init__(
        self,
        capacity: int,
        state_dim: int,
        seed: Optional[int] = None,
    ):
        """Initialize replay buffer.
        
        Args:
            capacity: Maximum number of transitions to store
            state_dim: Observation dimension
            seed: Seed for the sampling generator
        """
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        
        self.capacity = capacity
        self.state_dim = state_dim
        self.rng = np.random.default_rng(seed)
        
        # Preallocate arrays
        self.states = np.zeros((capacity, state_dim), dtype=np.float32)
        self.actions = np.zeros(capacity, dtype=np.int64)
        self.rewards = np.zeros(capacity, dtype=np.float32)
        self.next_states = np.zeros((capacity, state_dim), dtype=np.float32)
        self.dones = np.zeros(capacity, dtype=np.float32)
        
        self.ptr = 0  # Next write position
        self.size = 0  # Current size
    
    def add(self, transition: Transition) -> None:
        """Add transition to buffer, evicting the oldest when full.
        
        Args:
            transition: Transition to store
        """
        self.states[self.ptr] = transition.observation
        self.actions[self.ptr] = int(transition.action)
        self.rewards[self.ptr] = transition.reward
        self.next_states[self.ptr] = transition.next_observation
        self.dones[self.ptr] = float(transition.done)
        
        self.ptr = (self.ptr + 1) % self.capacity
        self.size = min(self.size + 1, self.capacity)
    
    def get(self, index: int) -> Transition:
        """Logical access, 0 is the oldest stored transition."""
        if not 0 <= index < self.size:
            raise IndexError(f"index {index} out of range for buffer of size {self.size}")
        
        start = self.ptr if self.size == self.capacity else 0
        i = (start + index) % self.capacity
        return Transition(
            observation=self.states[i].copy(),
            action=int(self.actions[i]),
            reward=float(self.rewards[i]),
            next_observation=self.next_states[i].copy(),
            done=bool(self.dones[i]),
        )
    
    def sample(
        self,
        batch_size: int,
        device: Optional[torch.device] = None,
    ) -> Dict[str, np.ndarray]:
        """Sample batch of transitions uniformly with replacement.
        
        Args:
            batch_size: Number of transitions to sample
            device: Target device for tensors (numpy arrays if None)
            
        Returns:
            Dict with states, actions, rewards, next_states, dones
            
        Raises:
            ValueError: If fewer than batch_size transitions are stored
        """
        if not self.can_sample(batch_size):
            raise ValueError(
                f"Cannot sample {batch_size} transitions from buffer of size {self.size}"
            )
        
        indices = self.rng.integers(0, self.size, size=batch_size)
        
        batch = {
            "states": self.states[indices],
            "actions": self.actions[indices],
            "rewards": self.rewards[indices],
            "next_states": self.next_states[indices],
            "dones": self.dones[indices],
        }
        
        if device is not None:
            batch = {
                k: torch.as_tensor(v, device=device)
                for k, v in batch.items()
            }
        
        return batch
    
    def __len__(self) -> int:
        return self.size
    
    def can_sample(self, batch_size: int) -> bool:
        """Check if buffer has enough samples."""
        return batch_size > 0 and self.size >= batch_size
