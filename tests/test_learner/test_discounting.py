"""Unit tests for discount schedules."""

import pytest

from mccfr.learner.discounting import DiscountParams, DiscountSchedule, create_schedule


class TestVanilla:
    """Tests for the default (no discounting) schedule."""

    def test_constant_factors(self):
        schedule = DiscountParams()
        for t in [1, 10, 100, 1000]:
            assert schedule.get_discount_factors(t) == (1.0, 1.0, 1.0)

    def test_invalid_iteration(self):
        schedule = DiscountParams()

        with pytest.raises(ValueError):
            schedule.get_discount_factors(0)

        with pytest.raises(ValueError):
            schedule.get_discount_factors(-5)

    def test_is_a_schedule(self):
        assert isinstance(DiscountParams(), DiscountSchedule)


class TestRegretMatchingPlus:
    def test_negative_regrets_floored(self):
        schedule = DiscountParams(use_regret_matching_plus=True)
        for t in [1, 5, 50]:
            assert schedule.get_discount_factors(t) == (1.0, 0.0, 1.0)


class TestLinear:
    """Iteration t weighted by t, i.e. everything discounted by t/(t+1)."""

    def test_linear_factors(self):
        schedule = DiscountParams(linear_weighting=True)
        pos, neg, strat = schedule.get_discount_factors(1)
        assert pos == neg == strat == pytest.approx(0.5)

        pos, neg, strat = schedule.get_discount_factors(9)
        assert pos == neg == strat == pytest.approx(0.9)

    def test_accumulated_weights_are_linear(self):
        """After T updates, iteration t's contribution is proportional to t."""
        schedule = DiscountParams(linear_weighting=True)
        weights = []
        for t in range(1, 6):
            # Iteration t adds weight 1, then the update discounts everything
            factor = schedule.get_discount_factors(t)[2]
            weights = [w * factor for w in weights + [1.0]]

        for t, w in enumerate(weights, start=1):
            assert w == pytest.approx(t / 6)


class TestDiscounted:
    def test_dcfr_factors(self):
        schedule = DiscountParams(alpha=1.5, beta=0.0, gamma=2.0)
        pos, neg, strat = schedule.get_discount_factors(4)

        assert pos == pytest.approx(8.0 / 9.0)
        assert neg == pytest.approx(0.5)
        assert strat == pytest.approx((4.0 / 5.0) ** 2)

    def test_factors_approach_one(self):
        schedule = DiscountParams(alpha=1.5, beta=0.0, gamma=2.0)
        pos, neg, strat = schedule.get_discount_factors(10000)
        assert pos > 0.999
        assert neg == pytest.approx(0.5)
        assert strat > 0.999

    def test_only_some_exponents(self):
        schedule = DiscountParams(gamma=1.0)
        assert schedule.get_discount_factors(3) == pytest.approx((1.0, 1.0, 0.75))

    def test_regret_matching_plus_overrides_beta(self):
        schedule = DiscountParams(use_regret_matching_plus=True, alpha=1.0, beta=1.0)
        pos, neg, _ = schedule.get_discount_factors(1)
        assert pos == pytest.approx(0.5)
        assert neg == 0.0


class TestFactory:
    def test_create_vanilla(self):
        assert create_schedule("vanilla") == DiscountParams()

    def test_create_cfr_plus(self):
        assert create_schedule("cfr_plus") == DiscountParams(use_regret_matching_plus=True)

    def test_create_linear(self):
        assert create_schedule("linear") == DiscountParams(linear_weighting=True)

    def test_create_discounted_defaults(self):
        assert create_schedule("discounted") == DiscountParams(alpha=1.5, beta=0.0, gamma=2.0)

    def test_create_discounted_custom(self):
        schedule = create_schedule("discounted", alpha=2.0, beta=0.5, gamma=3.0)
        assert schedule.alpha == 2.0
        assert schedule.beta == 0.5
        assert schedule.gamma == 3.0

    def test_unknown_scheme(self):
        with pytest.raises(ValueError, match="Unknown discount scheme"):
            create_schedule("invalid")

    def test_schedules_are_immutable(self):
        schedule = create_schedule("linear")
        with pytest.raises(AttributeError):
            schedule.alpha = 1.0
