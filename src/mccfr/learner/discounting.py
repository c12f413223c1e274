"""Discount schedules for the end-of-iteration policy update.

At the end of iteration t every touched policy scales its positive regrets,
negative regrets and strategy sum by three factors supplied by a schedule.
Different factor choices recover the common CFR variants:

- Vanilla CFR: (1, 1, 1), plain accumulation
- CFR+: negative regrets floored to zero after every iteration
- Linear CFR: iteration t weighted by t, i.e. discount everything by t/(t+1)
- Discounted CFR: positive regrets by t^α/(t^α+1), negative by t^β/(t^β+1),
  strategy sum by (t/(t+1))^γ

References:
- Brown & Sandholm (2019): "Solving Imperfect-Information Games via Discounted
  Regret Minimization"
- Tammelin (2014): "Solving Large Imperfect Information Games Using CFR+"
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal, Optional


class DiscountSchedule(ABC):
    """Maps an iteration number to (positive, negative, strategy) discounts."""

    @abstractmethod
    def get_discount_factors(self, iteration: int) -> tuple[float, float, float]:
        """Get discount factors for the end of an iteration.

        Args:
            iteration: Iteration number (1-indexed)

        Returns:
            Tuple of (positive regret, negative regret, strategy sum) factors
        """


@dataclass(frozen=True)
class DiscountParams(DiscountSchedule):
    """Parametric discount schedule covering vanilla, CFR+, Linear and DCFR.

    Attributes:
        use_regret_matching_plus: Floor negative regrets to zero (CFR+)
        linear_weighting: Weight iteration t by t (Linear CFR)
        alpha: Positive regret exponent, or None for no discounting
        beta: Negative regret exponent, or None for no discounting
        gamma: Strategy sum exponent, or None for no discounting
    """

    use_regret_matching_plus: bool = False
    linear_weighting: bool = False
    alpha: Optional[float] = None
    beta: Optional[float] = None
    gamma: Optional[float] = None

    def get_discount_factors(self, iteration: int) -> tuple[float, float, float]:
        if iteration < 1:
            raise ValueError(f"Iteration must be >= 1, got {iteration}")

        t = float(iteration)
        positive = 1.0
        negative = 1.0
        strategy = 1.0

        if self.alpha is not None:
            x = t**self.alpha
            positive = x / (x + 1.0)
        if self.beta is not None:
            x = t**self.beta
            negative = x / (x + 1.0)
        if self.gamma is not None:
            strategy = (t / (t + 1.0)) ** self.gamma

        if self.linear_weighting:
            w = t / (t + 1.0)
            positive *= w
            negative *= w
            strategy *= w

        if self.use_regret_matching_plus:
            negative = 0.0

        return positive, negative, strategy


def create_schedule(
    scheme: Literal["vanilla", "cfr_plus", "linear", "discounted"] = "vanilla",
    **kwargs,
) -> DiscountParams:
    """Factory function to create discount schedules.

    Args:
        scheme: Named CFR variant
        **kwargs: alpha/beta/gamma for the "discounted" scheme

    Returns:
        DiscountParams instance

    Examples:
        >>> schedule = create_schedule("cfr_plus")
        >>> schedule = create_schedule("discounted", alpha=1.5, beta=0.0, gamma=2.0)
    """
    if scheme == "vanilla":
        return DiscountParams()
    elif scheme == "cfr_plus":
        return DiscountParams(use_regret_matching_plus=True)
    elif scheme == "linear":
        return DiscountParams(linear_weighting=True)
    elif scheme == "discounted":
        return DiscountParams(
            alpha=kwargs.get("alpha", 1.5),
            beta=kwargs.get("beta", 0.0),
            gamma=kwargs.get("gamma", 2.0),
        )
    else:
        raise ValueError(f"Unknown discount scheme: {scheme}")
