# Layer builders shared by the value networks
# FORBIDDEN: env.*, training.*, logging, pathlib

import math
import torch.nn as nn
from typing import Sequence


ACTIVATIONS = {
    "relu": nn.ReLU,
    "elu": nn.ELU,
    "tanh": nn.Tanh,
    "gelu": nn.GELU,
    "silu": nn.SiLU,
}

INIT_SCHEMES = ("default", "orthogonal", "kaiming")


def get_activation(name: str) -> nn.Module:
    """Instantiate an activation by name.
    
    Raises:
        ValueError: If the name is not registered
    """
    try:
        return ACTIVATIONS[name]()
    except KeyError:
        raise ValueError(f"Unknown activation: {name}. Available: {sorted(ACTIVATIONS)}") from None


def build_mlp(
    input_dim: int,
    output_dim: int,
    hidden_dims: Sequence[int],
    activation: str = "relu",
) -> nn.Sequential:
    """Stack Linear layers with an activation after every hidden layer.
    
    Args:
        input_dim: Input features
        output_dim: Output features
        hidden_dims: Width of each hidden layer, may be empty
        activation: Hidden activation name
        
    Returns:
        nn.Sequential
    """
    layers = []
    widths = [input_dim, *hidden_dims]
    for fan_in, fan_out in zip(widths[:-1], widths[1:]):
        layers += [nn.Linear(fan_in, fan_out), get_activation(activation)]
    layers.append(nn.Linear(widths[-1], output_dim))
    return nn.Sequential(*layers)


def init_linear_(module: nn.Module, scheme: str = "default") -> nn.Module:
    """Re-initialize every Linear layer of a module in place.
    
    "default" keeps PyTorch's initialization. The other schemes zero the
    biases.
    
    Raises:
        ValueError: On an unknown scheme
    """
    if scheme not in INIT_SCHEMES:
        raise ValueError(f"Unknown init: {scheme}. Available: {list(INIT_SCHEMES)}")
    if scheme == "default":
        return module
    
    for m in module.modules():
        if not isinstance(m, nn.Linear):
            continue
        if scheme == "orthogonal":
            nn.init.orthogonal_(m.weight, gain=math.sqrt(2.0))
        else:
            nn.init.kaiming_uniform_(m.weight, nonlinearity="relu")
        nn.init.zeros_(m.bias)
    return module
