from .evaluator import AlertEvaluator, AlertNotifier, SweepResult, adjust_threshold
from .registry import AlertRegistry

__all__ = [
    "AlertEvaluator",
    "AlertNotifier",
    "AlertRegistry",
    "SweepResult",
    "adjust_threshold",
]
