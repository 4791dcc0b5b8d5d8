"""Step execution engine: self-healing executor, strategies, post-call transform."""

from tether.execution.executor import SelfHealingExecutor, is_self_healing_enabled
from tether.execution.strategies import DirectStrategy, LoopStrategy, StepRunner, select_strategy
from tether.execution.transform import execute_transform, transform_cache_key

__all__ = [
    "SelfHealingExecutor",
    "is_self_healing_enabled",
    "DirectStrategy",
    "LoopStrategy",
    "StepRunner",
    "select_strategy",
    "execute_transform",
    "transform_cache_key",
]
