# Integration tests for full training loop

import importlib.util
from pathlib import Path

import pytest
import torch
import numpy as np
from racing_dqn.analysis.checkpointing import get_latest_model
from racing_dqn.analysis.logger import read_stats_csv
from racing_dqn.analysis.metrics import summarize_training
from racing_dqn.env import GymWrapper, RacingEnvConfig, make_env
from racing_dqn.models import QNetwork
from racing_dqn.training import DoubleDQN, Evaluator, ReplayBuffer, Trainer
from racing_dqn.core.errors import ConfigurationError
from racing_dqn.core.types import Transition

SCRIPTS = Path(__file__).parents[2] / "scripts"


def load_script(name):
    spec = importlib.util.spec_from_file_location(name, SCRIPTS / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestFullLoop:
    """Integration tests for complete training pipeline."""
    
    def test_env_network_interaction(self, config, corridor_track, device, set_seed):
        """Gym wrapper and Q-network can drive an episode to the step limit."""
        env = GymWrapper(make_env(config, corridor_track, training=False))
        network = QNetwork().to(device)
        
        obs, _ = env.reset(seed=0)
        steps = 0
        terminated = truncated = False
        while not (terminated or truncated):
            obs_tensor = torch.as_tensor(obs, device=device).unsqueeze(0)
            with torch.no_grad():
                action = int(network(obs_tensor).argmax(dim=-1).item())
            obs, reward, terminated, truncated, info = env.step(action)
            assert env.observation_space.contains(obs)
            steps += 1
        
        assert truncated
        assert steps == config["env"]["max_steps"]
        env.close()
    
    def test_collect_and_learn(self, config, corridor_track, device, set_seed):
        """Transitions from the environment train the learner."""
        env = make_env(config, corridor_track)
        agent = DoubleDQN(hidden_dims=[32, 32], device=device)
        buffer = ReplayBuffer(capacity=1000, state_dim=env.observation_dim, seed=0)
        rng = np.random.default_rng(0)
        
        obs = env.reset()
        done = False
        while not done:
            action = int(rng.integers(env.num_actions))
            next_obs, reward, done, info = env.step(action)
            buffer.add(Transition(obs, action, reward, next_obs, done))
            obs = next_obs
        
        losses = [agent.train(buffer.sample(16)) for _ in range(10)]
        assert all(np.isfinite(losses))
        
        evaluator = Evaluator(corridor_track, RacingEnvConfig(max_steps=50), num_episodes=1)
        result = evaluator.evaluate(agent.snapshot())
        assert result.episodes == 1
    
    def test_training_run_and_analysis(self, config, corridor_track, temp_dir, set_seed):
        """Milestone statistics feed the analysis step."""
        config["training"]["max_episodes"] = 4
        config["training"]["milestone_frequency"] = 4
        trainer = Trainer(config, model_dir=temp_dir, track=corridor_track)
        trainer.train()
        
        assert get_latest_model(temp_dir) == temp_dir / "model_episode_4.pt"
        rows = read_stats_csv(temp_dir / "training_stats_4.csv")
        summary = summarize_training(rows)
        assert summary["overall"]["episodes"] == 4
        assert summary["overall"]["finishes"] == 0
    
    def test_train_script(self, config_file, temp_dir):
        """The training entry point runs end to end and writes its outputs."""
        train = load_script("train")
        output_dir = temp_dir / "experiments"
        
        code = train.main([
            "--config", str(config_file),
            "--max-episodes", "2",
            "--output-dir", str(output_dir),
            "--experiment-name", "smoke",
            "--override", "experiment.deterministic=false",
        ])
        assert code == 0
        
        experiment_dirs = list(output_dir.glob("*_smoke"))
        assert len(experiment_dirs) == 1
        models = experiment_dirs[0] / "models"
        assert (models / "model_final.pt").exists()
        assert (models / "model_episode_2.pt").exists()
        assert (experiment_dirs[0] / "config.yaml").exists()
        assert (experiment_dirs[0] / "logs" / "metrics.json").exists()
    
    def test_train_script_bad_config(self, config, temp_dir):
        import yaml
        
        config["agent"]["gamma"] = 2.0
        path = temp_dir / "bad.yaml"
        with open(path, "w") as f:
            yaml.dump(config, f)
        
        train = load_script("train")
        assert train.main(["--config", str(path), "--output-dir", str(temp_dir)]) == 1
    
    def test_evaluate_load_network(self, config, temp_dir, set_seed):
        evaluate = load_script("evaluate")
        agent = DoubleDQN(hidden_dims=[32, 32])
        path = temp_dir / "model.pt"
        agent.save(path)
        
        network = evaluate.load_network(path, config, torch.device("cpu"))
        obs = np.zeros((3, 23), dtype=np.float32)
        with torch.no_grad():
            q = network(torch.as_tensor(obs)).numpy()
        assert np.allclose(q, agent.predict(obs))
    
    def test_evaluate_rejects_mismatched_model(self, config, config_file, temp_dir, monkeypatch):
        evaluate = load_script("evaluate")
        path = temp_dir / "small.pt"
        DoubleDQN(state_dim=10, hidden_dims=[32, 32]).save(path)
        
        layout = make_env(config, training=False).encoder.layout
        with pytest.raises(ConfigurationError, match="dimension mismatch"):
            evaluate.load_network(path, config, torch.device("cpu"), layout)
        
        monkeypatch.setattr("sys.argv", ["evaluate.py", "--config", str(config_file), "--model", str(path)])
        with pytest.raises(SystemExit) as exc_info:
            evaluate.main()
        assert exc_info.value.code == 1
