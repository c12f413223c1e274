"""Tests for the training driver."""

import logging

import pytest

from mccfr.cfr.chance_sampling import ChanceSamplingCFR
from mccfr.cfr.policy_table import PolicyTable
from mccfr.cfr.robust_sampling import RobustSamplingCFR
from mccfr.config import DiscountConfig, SamplingConfig, SolverConfig, TrainingConfig
from mccfr.games.kuhn import GAME_VALUE
from mccfr.metrics.evaluator import average_strategy_fn, expected_value
from mccfr.solver import Solver, make_engine, make_root_factory


def small_config(**training):
    return SolverConfig(
        sampling=SamplingConfig(scheme="chance"),
        training=TrainingConfig(iterations=20, log_every=5, **training),
    )


def test_make_engine():
    table = PolicyTable()
    chance = make_engine(SolverConfig(sampling=SamplingConfig(scheme="chance")), table)
    assert isinstance(chance, ChanceSamplingCFR)
    robust = make_engine(SolverConfig(sampling=SamplingConfig(scheme="robust", k=1)), table)
    assert isinstance(robust, RobustSamplingCFR)
    assert robust.k == 1

    with pytest.raises(ValueError, match="Unknown sampling scheme"):
        make_engine(SolverConfig(sampling=SamplingConfig(scheme="outcome")), table)


def test_make_root_factory():
    factory = make_root_factory("kuhn", seed=0)
    assert factory().cards is None
    with pytest.raises(ValueError, match="Unknown game"):
        make_root_factory("leduc")


def test_from_config_uses_discount_schedule():
    config = SolverConfig(discount=DiscountConfig(scheme="linear"))
    solver = Solver.from_config(config)
    assert solver.strategy_profile.schedule == DiscountConfig(scheme="linear").build()
    assert solver.iteration == 1


def test_train_advances_iterations(caplog):
    solver = Solver.from_config(small_config())
    with caplog.at_level(logging.INFO, logger="mccfr.solver"):
        values = solver.train()

    assert len(values) == 20
    assert solver.iteration == 21
    assert len(solver.strategy_profile) > 0
    assert "Training completed" in caplog.text
    assert "Iteration 20" in caplog.text


def test_train_override_iterations():
    solver = Solver.from_config(small_config())
    solver.train(iterations=3)
    assert solver.iteration == 4


def test_same_seed_same_result():
    a = Solver.from_config(SolverConfig(seed=3))
    b = Solver.from_config(SolverConfig(seed=3))
    assert a.train(iterations=50) == b.train(iterations=50)


def test_checkpoint_and_resume(tmp_path):
    path = tmp_path / "ckpt" / "table.pkl"
    config = small_config(checkpoint_every=10, checkpoint_path=str(path))
    solver = Solver.from_config(config)
    solver.train()
    assert path.exists()

    resumed = Solver.resume(config, path)
    assert resumed.iteration == 21
    assert len(resumed.strategy_profile) == len(solver.strategy_profile)

    resumed.train(iterations=5)
    assert resumed.iteration == 26


@pytest.mark.slow
@pytest.mark.parametrize("scheme", ["chance", "robust"])
def test_kuhn_converges(scheme):
    config = SolverConfig(
        sampling=SamplingConfig(scheme=scheme, k=2),
        training=TrainingConfig(iterations=30000, log_every=0),
    )
    solver = Solver.from_config(config)
    solver.train()

    value = expected_value(make_root_factory("kuhn")(), average_strategy_fn(solver.strategy_profile))
    assert abs(value - GAME_VALUE) < 0.03
