# Tests for the Q-network

import pytest
import torch
import torch.nn as nn
from racing_dqn.models import QNetwork, build_mlp, get_activation, init_linear_


class TestQNetwork:
    
    @pytest.fixture
    def network(self, state_dim, action_dim):
        return QNetwork(state_dim=state_dim, action_dim=action_dim)
    
    def test_forward_shape(self, network, sample_batch_states, batch_size, action_dim):
        q_values = network(sample_batch_states)
        assert q_values.shape == (batch_size, action_dim)
    
    def test_default_architecture(self, network):
        """Two hidden layers of 64 with ReLU."""
        linears = [m for m in network.modules() if isinstance(m, nn.Linear)]
        assert [m.out_features for m in linears] == [64, 64, 7]
        assert linears[0].in_features == 23
        assert any(isinstance(m, nn.ReLU) for m in network.modules())
    
    def test_greedy_action(self, network, sample_batch_states):
        actions = network.greedy_action(sample_batch_states)
        expected = network(sample_batch_states).argmax(dim=-1)
        assert torch.equal(actions, expected)
    
    def test_gradients_flow(self, network, sample_batch_states):
        loss = network(sample_batch_states).pow(2).mean()
        loss.backward()
        for p in network.parameters():
            assert p.grad is not None


class TestBlocks:
    
    def test_unknown_activation(self):
        with pytest.raises(ValueError):
            get_activation("swish3")
    
    def test_build_mlp_layout(self):
        layers = build_mlp(4, 2, [8, 6], activation="tanh")
        kinds = [type(m) for m in layers]
        assert kinds == [nn.Linear, nn.Tanh, nn.Linear, nn.Tanh, nn.Linear]
    
    def test_build_mlp_without_hidden_layers(self):
        layers = build_mlp(4, 2, [])
        assert len(layers) == 1
        assert layers(torch.randn(3, 4)).shape == (3, 2)
    
    @pytest.mark.parametrize("scheme", ["orthogonal", "kaiming"])
    def test_init_zeroes_bias(self, scheme):
        layers = init_linear_(build_mlp(4, 2, [8]), scheme)
        for m in layers.modules():
            if isinstance(m, nn.Linear):
                assert torch.all(m.bias == 0)
    
    def test_default_init_untouched(self, set_seed):
        layers = build_mlp(4, 2, [8])
        before = [p.clone() for p in layers.parameters()]
        init_linear_(layers, "default")
        assert all(torch.equal(b, a) for b, a in zip(before, layers.parameters()))
    
    def test_unknown_init(self):
        with pytest.raises(ValueError):
            init_linear_(build_mlp(4, 2, [8]), "xavier")
        with pytest.raises(ValueError):
            QNetwork(init="xavier")
