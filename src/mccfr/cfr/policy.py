"""Per-information-set regret and strategy accumulator."""

import numpy as np
import numpy.typing as npt

from mccfr.cfr.regret_matching import normalize, regret_matching


class Policy:
    """Cumulative regrets and strategy sums for one information set.

    The current strategy is derived from the cumulative regrets by regret
    matching and only changes in next_strategy(), so it stays fixed for the
    whole of an iteration no matter how often the infoset is visited.

    Attributes:
        regret_sum: Cumulative (discounted) regret per action
        strategy_sum: Cumulative (discounted) strategy weight per action
        current_strategy: Strategy for the current iteration
    """

    def __init__(self, num_actions: int):
        if num_actions <= 0:
            raise ValueError(f"num_actions must be positive, got {num_actions}")

        self.regret_sum = np.zeros(num_actions, dtype=np.float64)
        self.strategy_sum = np.zeros(num_actions, dtype=np.float64)
        self.current_strategy = np.full(num_actions, 1.0 / num_actions, dtype=np.float64)

    @property
    def num_actions(self) -> int:
        return len(self.regret_sum)

    def get_strategy(self) -> npt.NDArray[np.float64]:
        """Current strategy (regret matching over the cumulative regrets)."""
        return self.current_strategy

    def get_action_probability(self, i: int) -> float:
        return float(self.current_strategy[i])

    def add_regret(self, scale: float, advantages: npt.ArrayLike) -> None:
        """Accumulate ``scale * advantages`` into the cumulative regrets.

        Args:
            scale: Importance-sampling weight of this observation
            advantages: Per-action value minus the expected value at this infoset
        """
        self.regret_sum += scale * np.asarray(advantages, dtype=np.float64)

    def add_strategy_weight(self, weight: float) -> None:
        """Accumulate the current strategy, weighted by ``weight``, into the strategy sum."""
        self.strategy_sum += weight * self.current_strategy

    def add_counterfactual_regret(
        self, reach_p: float, counterfactual_p: float, advantages: npt.ArrayLike
    ) -> None:
        """Record one full-width observation of this infoset.

        Args:
            reach_p: Acting player's own reach probability (average strategy weight)
            counterfactual_p: Reach probability of everyone but the acting player
            advantages: Instantaneous advantages of each action
        """
        self.add_strategy_weight(reach_p)
        self.add_regret(counterfactual_p, advantages)

    def next_strategy(self, discount_pos: float, discount_neg: float, discount_sum: float) -> None:
        """Discount the accumulators and recompute the current strategy.

        Non-negative regrets are scaled by ``discount_pos``, negative regrets by
        ``discount_neg`` and the strategy sum by ``discount_sum``.
        """
        self.regret_sum *= np.where(self.regret_sum >= 0.0, discount_pos, discount_neg)
        self.strategy_sum *= discount_sum
        self.current_strategy = regret_matching(self.regret_sum)

    def get_average_strategy(self) -> npt.NDArray[np.float64]:
        """Average strategy over all iterations (uniform if never weighted)."""
        return normalize(self.strategy_sum)

    def __repr__(self) -> str:
        return (
            f"Policy(num_actions={self.num_actions}, "
            f"regret_sum={self.regret_sum.tolist()}, "
            f"strategy_sum={self.strategy_sum.tolist()})"
        )
