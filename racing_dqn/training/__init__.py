# Training module - Orchestration
# This module may import from all other racing_dqn modules

from .buffer import ReplayBuffer
from .dqn import DoubleDQN
from .schedules import EpsilonSchedule, LearningRateSchedule, epsilon_greedy
from .cancellation import CancellationToken, install_sigint_handler
from .evaluator import Evaluator, EvalResult, ScoreWeights
from .selection import (
    BestModelRecord,
    FinishRateSelector,
    TimeSelector,
    ScoreSelector,
    ModelSelector,
)
from .trainer import Trainer
