# Training statistics analysis

import numpy as np
from typing import Any, Dict, List, Optional, Sequence

from ..core.math_utils import moving_average
from ..core.types import EpisodeStats


MOVING_AVERAGE_WINDOWS = (10, 50, 100)


def compute_metrics(
    episode_returns: List[float],
    episode_lengths: List[int],
    episode_laps: List[int] = None,
    episode_finishes: List[bool] = None,
) -> Dict[str, float]:
    """Compute summary metrics from episodes.
    
    Args:
        episode_returns: List of episode returns
        episode_lengths: List of episode lengths
        episode_laps: Optional list of completed laps per episode
        episode_finishes: Optional list of race-finished flags
        
    Returns:
        Dict of computed metrics
    """
    metrics = {}
    
    if episode_returns:
        metrics["mean_return"] = float(np.mean(episode_returns))
        # Sample standard deviation, 0 for a single episode
        metrics["std_return"] = float(np.std(episode_returns, ddof=1)) if len(episode_returns) > 1 else 0.0
        metrics["min_return"] = float(np.min(episode_returns))
        metrics["max_return"] = float(np.max(episode_returns))
    
    if episode_lengths:
        metrics["mean_length"] = float(np.mean(episode_lengths))
    
    if episode_laps:
        metrics["mean_laps"] = float(np.mean(episode_laps))
        metrics["max_laps"] = int(np.max(episode_laps))
        metrics["total_laps"] = int(np.sum(episode_laps))
    
    if episode_finishes:
        finishes = int(sum(1 for f in episode_finishes if f))
        metrics["finishes"] = finishes
        metrics["finish_rate"] = finishes / len(episode_finishes)
    
    return metrics


def _improvement_pct(before: float, after: float) -> Optional[float]:
    if before == 0:
        return None
    return (after - before) / abs(before) * 100.0


def summarize_training(rows: Sequence[EpisodeStats]) -> Dict[str, Any]:
    """Analyse a run of episode statistics.
    
    Produces overall statistics, reward moving averages, the top episodes
    by reward, per-quarter averages (40+ episodes) and an early-vs-late
    comparison of the first and last 20% of episodes (at least 10).
    
    Args:
        rows: Episode statistics, oldest first
        
    Returns:
        Nested dict of results
        
    Raises:
        ValueError: If rows is empty
    """
    if not rows:
        raise ValueError("No episodes to summarize")
    
    rewards = np.array([r.reward for r in rows], dtype=np.float64)
    laps = [r.laps_completed for r in rows]
    n = len(rows)
    
    overall = compute_metrics(
        episode_returns=rewards.tolist(),
        episode_lengths=[r.length for r in rows],
        episode_laps=laps,
        episode_finishes=[r.finished for r in rows],
    )
    overall["episodes"] = n
    overall["mean_loss"] = float(np.mean([r.mean_loss for r in rows]))
    
    averages = {}
    for window in MOVING_AVERAGE_WINDOWS:
        ma = moving_average(rewards, window)
        if len(ma) == 0:
            continue
        averages[window] = {
            "first": float(ma[0]),
            "middle": float(ma[len(ma) // 2]),
            "last": float(ma[-1]),
            "improvement": float(ma[-1] - ma[0]),
            "improvement_pct": _improvement_pct(float(ma[0]), float(ma[-1])),
        }
    
    top = sorted(rows, key=lambda r: r.reward, reverse=True)[:10]
    
    quarters = []
    if n >= 40:
        size = n // 4
        for q in range(4):
            start = q * size
            end = n if q == 3 else (q + 1) * size
            quarters.append({
                "first_episode": rows[start].episode,
                "last_episode": rows[end - 1].episode,
                "mean_reward": float(np.mean(rewards[start:end])),
                "mean_laps": float(np.mean(laps[start:end])),
            })
    
    compare = min(n, max(10, int(n * 0.2)))
    early = float(np.mean(rewards[:compare]))
    late = float(np.mean(rewards[-compare:]))
    
    summary = {
        "overall": overall,
        "moving_averages": averages,
        "top_episodes": top,
        "quarters": quarters,
        "learning": {
            "window": compare,
            "early_mean": early,
            "late_mean": late,
            "improvement": late - early,
            "improvement_pct": _improvement_pct(early, late),
        },
    }
    summary["recommendations"] = check_training_health(summary)
    return summary


def check_training_health(summary: Dict[str, Any], total_laps: int = 3) -> List[str]:
    """Turn a training summary into plain-language observations.
    
    Args:
        summary: Output of summarize_training
        total_laps: Laps in a full race
        
    Returns:
        List of observations
    """
    notes = []
    overall = summary["overall"]
    n = overall["episodes"]
    finishes = overall.get("finishes", 0)
    
    if finishes == 0:
        notes.append("Agent has not completed any races yet; train for more episodes (200-500)")
    elif finishes < n * 0.1:
        notes.append("Agent rarely completes races; continue training to improve consistency")
    elif finishes < n * 0.5:
        notes.append("Agent is learning but not yet consistent; train for 100-200 more episodes")
    else:
        notes.append("Agent is performing well; fine-tune with more training or adjust rewards")
    
    if overall.get("max_laps", 0) < total_laps:
        notes.append(f"Agent has not completed a full race ({total_laps} laps)")
    
    pct = summary["learning"]["improvement_pct"]
    if pct is None:
        notes.append("Early mean reward is zero; improvement percentage undefined")
    elif pct > 50:
        notes.append("Strong learning progress")
    elif pct > 0:
        notes.append("Moderate learning progress")
    else:
        notes.append("Limited learning; may need more episodes or hyperparameter tuning")
    
    return notes
