# Tests for best-model selection

from pathlib import Path

import pytest
from racing_dqn.training.evaluator import EvalResult
from racing_dqn.training.selection import (
    FinishRateSelector,
    ModelSelector,
    ScoreSelector,
    TimeSelector,
)


def make_result(finishes=0, episodes=20, avg_steps_finish=0.0, avg_score=0.0):
    return EvalResult(
        episodes=episodes,
        finishes=finishes,
        finish_rate=finishes / episodes,
        avg_laps=0.0,
        avg_steps_finish=avg_steps_finish,
        avg_steps_all=0.0,
        avg_wall_hits=0.0,
        avg_grass_frames=0.0,
        avg_score=avg_score,
    )


class TestFinishRateSelector:
    
    def test_first_result_accepted(self):
        selector = FinishRateSelector()
        assert selector.is_improvement(make_result(finishes=0))
    
    def test_needs_two_more_finishes(self):
        selector = FinishRateSelector()
        selector.accept(make_result(finishes=4), 50, Path("best.pt"))
        
        # Same episode count: +1 finish is a strict gain in both rate and count
        assert selector.is_improvement(make_result(finishes=5))
        assert selector.is_improvement(make_result(finishes=6))
        assert not selector.is_improvement(make_result(finishes=4))
        assert not selector.is_improvement(make_result(finishes=3))
    
    def test_rate_and_count_must_both_improve(self):
        selector = FinishRateSelector()
        selector.accept(make_result(finishes=4, episodes=20), 50, Path("best.pt"))
        # Higher rate from fewer episodes, same count
        assert not selector.is_improvement(make_result(finishes=4, episodes=10))
        assert selector.is_improvement(make_result(finishes=5, episodes=20))


class TestTimeSelector:
    
    def test_requires_finish(self):
        selector = TimeSelector()
        assert not selector.is_improvement(make_result(finishes=0))
        assert selector.is_improvement(make_result(finishes=1, avg_steps_finish=3000))
    
    def test_margin(self):
        selector = TimeSelector(margin=50)
        selector.accept(make_result(finishes=2, avg_steps_finish=3000), 100, Path("t.pt"))
        assert selector.record.value == 3000
        assert not selector.is_improvement(make_result(finishes=2, avg_steps_finish=2960))
        assert not selector.is_improvement(make_result(finishes=2, avg_steps_finish=2950))
        assert selector.is_improvement(make_result(finishes=2, avg_steps_finish=2949))


class TestScoreSelector:
    
    def test_large_gain(self):
        selector = ScoreSelector()
        selector.accept(make_result(finishes=2, avg_score=1000.0), 50, Path("s.pt"))
        assert selector.is_improvement(make_result(finishes=0, avg_score=1501.0))
        assert not selector.is_improvement(make_result(finishes=0, avg_score=1500.0))
    
    def test_small_gain_needs_finish_rate(self):
        selector = ScoreSelector()
        selector.accept(make_result(finishes=2, avg_score=1000.0), 50, Path("s.pt"))
        assert not selector.is_improvement(make_result(finishes=2, avg_score=1100.0))
        assert selector.is_improvement(make_result(finishes=3, avg_score=1100.0))
        assert not selector.is_improvement(make_result(finishes=3, avg_score=900.0))


class TestModelSelector:
    
    def test_update_saves_improvements(self, temp_dir):
        selector = ModelSelector(temp_dir)
        saved = []
        
        updated = selector.update(make_result(finishes=0, avg_score=-500.0), 50, saved.append)
        assert updated == ["finish_rate", "score"]
        assert saved == [temp_dir / "best_finish_rate.pt", temp_dir / "best_score.pt"]
        
        records = selector.records()
        assert records["time"] is None
        assert records["score"].episode == 50
        assert records["score"].value == -500.0
    
    def test_no_update_without_gain(self, temp_dir):
        selector = ModelSelector(temp_dir)
        result = make_result(finishes=1, avg_steps_finish=4000, avg_score=90000.0)
        selector.update(result, 50, lambda path: None)
        
        saved = []
        assert selector.update(result, 100, saved.append) == []
        assert saved == []
        assert selector.records()["finish_rate"].episode == 50
    
    def test_selectors_are_independent(self, temp_dir):
        selector = ModelSelector(temp_dir)
        selector.update(make_result(finishes=1, avg_steps_finish=4000, avg_score=90000.0), 50, lambda p: None)
        
        # Faster but no more finishes and a lower score
        updated = selector.update(
            make_result(finishes=1, avg_steps_finish=3000, avg_score=80000.0), 100, lambda p: None
        )
        assert updated == ["time"]
    
    def test_from_config(self, config, temp_dir):
        config["training"]["selection"] = {"time_margin": 10.0}
        selector = ModelSelector.from_config(config, temp_dir)
        time_selector = [s for s in selector.selectors if s.name == "time"][0]
        assert time_selector.margin == 10.0
