# Best-model selection from evaluation results

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .evaluator import EvalResult

logger = logging.getLogger(__name__)


@dataclass
class BestModelRecord:
    """Best value seen by one selector and the evaluation that produced it."""
    value: float
    episode: int
    path: Path
    finishes: int
    finish_rate: float


class Selector:
    """Decides whether an evaluation result beats the stored record."""

    name = "base"
    filename = "best.pt"

    def __init__(self):
        self.record: Optional[BestModelRecord] = None

    def metric(self, result: EvalResult) -> float:
        raise NotImplementedError

    def is_improvement(self, result: EvalResult) -> bool:
        raise NotImplementedError

    def accept(self, result: EvalResult, episode: int, path: Path) -> None:
        self.record = BestModelRecord(
            value=self.metric(result),
            episode=episode,
            path=Path(path),
            finishes=result.finishes,
            finish_rate=result.finish_rate,
        )


class FinishRateSelector(Selector):
    """Most finished races.
    
    Replaces the record when there is none, when finishes improve by at
    least `min_improvement`, or when both rate and count strictly improve.
    """

    name = "finish_rate"
    filename = "best_finish_rate.pt"

    def __init__(self, min_improvement: int = 2):
        super().__init__()
        self.min_improvement = min_improvement

    def metric(self, result: EvalResult) -> float:
        return result.finish_rate

    def is_improvement(self, result: EvalResult) -> bool:
        if self.record is None:
            return True
        best = self.record
        if result.finishes >= best.finishes + self.min_improvement:
            return True
        return result.finish_rate > best.finish_rate and result.finishes > best.finishes


class TimeSelector(Selector):
    """Fewest average steps to finish, among results with at least one finish."""

    name = "time"
    filename = "best_time.pt"

    def __init__(self, margin: float = 50.0):
        super().__init__()
        self.margin = margin

    def metric(self, result: EvalResult) -> float:
        return result.avg_steps_finish

    def is_improvement(self, result: EvalResult) -> bool:
        if result.finishes < 1:
            return False
        if self.record is None:
            return True
        return result.avg_steps_finish + self.margin < self.record.value


class ScoreSelector(Selector):
    """Highest average evaluation score.
    
    A small score gain is only accepted together with a finish-rate gain
    over the rate stored alongside the best score.
    """

    name = "score"
    filename = "best_score.pt"

    def __init__(self, min_improvement: float = 500.0):
        super().__init__()
        self.min_improvement = min_improvement

    def metric(self, result: EvalResult) -> float:
        return result.avg_score

    def is_improvement(self, result: EvalResult) -> bool:
        if self.record is None:
            return True
        best = self.record
        if result.avg_score > best.value + self.min_improvement:
            return True
        return result.avg_score > best.value and result.finish_rate > best.finish_rate


class ModelSelector:
    """Runs the three independent selectors after every evaluation."""

    def __init__(self, model_dir: Path, selectors: Optional[List[Selector]] = None):
        self.model_dir = Path(model_dir)
        if selectors is None:
            selectors = [FinishRateSelector(), TimeSelector(), ScoreSelector()]
        self.selectors = selectors

    @classmethod
    def from_config(cls, config: Dict, model_dir: Path) -> "ModelSelector":
        sel_config = config.get("training", {}).get("selection", {})
        return cls(
            model_dir,
            [
                FinishRateSelector(sel_config.get("finish_rate_min_improvement", 2)),
                TimeSelector(sel_config.get("time_margin", 50.0)),
                ScoreSelector(sel_config.get("score_min_improvement", 500.0)),
            ],
        )

    def update(
        self,
        result: EvalResult,
        episode: int,
        save_fn: Callable[[Path], None],
    ) -> List[str]:
        """Offer a result to every selector.
        
        Args:
            result: Evaluation result
            episode: Episode the evaluated snapshot was taken at
            save_fn: Writes the evaluated model to the given path
            
        Returns:
            Names of selectors whose record was replaced
        """
        updated = []
        for selector in self.selectors:
            if not selector.is_improvement(result):
                continue
            path = self.model_dir / selector.filename
            save_fn(path)
            selector.accept(result, episode, path)
            updated.append(selector.name)
            logger.info(
                f"Updated {selector.filename} ({selector.name}={selector.record.value:.3f}, "
                f"episode {episode})"
            )
        return updated

    def records(self) -> Dict[str, Optional[BestModelRecord]]:
        return {s.name: s.record for s in self.selectors}
