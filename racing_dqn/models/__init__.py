# Models module - Neural networks
# FORBIDDEN: env.*, training.*, logging, pathlib

from .blocks import build_mlp, get_activation, init_linear_
from .q_network import QNetwork
