"""Regret matching utilities for CFR."""

import numpy as np
import numpy.typing as npt


def regret_matching(regrets: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Convert cumulative regrets to a strategy using Regret Matching.

    - Strategy for action a is proportional to max(0, regret_a)
    - If no action has positive regret, play uniformly at random

    Args:
        regrets: Array of cumulative regrets for each action

    Returns:
        Probability distribution over actions (sums to 1.0)
    """
    positive_regrets = np.maximum(regrets, 0.0)
    regret_sum = positive_regrets.sum()

    if regret_sum <= 0.0:
        num_actions = len(regrets)
        return np.full(num_actions, 1.0 / num_actions, dtype=np.float64)

    return positive_regrets / regret_sum


def normalize(weights: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Normalize non-negative weights to a distribution, uniform if they sum to zero."""
    total = weights.sum()
    if total <= 0.0:
        return np.full(len(weights), 1.0 / len(weights), dtype=np.float64)
    return weights / total


def sample_action(strategy: npt.NDArray[np.float64], rng: np.random.Generator) -> int:
    """Sample an action index according to a strategy.

    Args:
        strategy: Probability distribution over actions
        rng: NumPy random number generator

    Returns:
        Sampled action index
    """
    # Renormalize: accumulated float error can leave the sum slightly off 1.0
    return int(rng.choice(len(strategy), p=normalize(strategy)))
