# Double-DQN racing trainer

__version__ = "0.1.0"
