"""Evaluation of learned strategy profiles."""

from mccfr.metrics.evaluator import average_strategy_fn, current_strategy_fn, expected_value

__all__ = ["expected_value", "average_strategy_fn", "current_strategy_fn"]
