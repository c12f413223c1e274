"""Tests for PolicyTable: lazy policies, batched updates and persistence."""

import pickle
from dataclasses import dataclass

import numpy as np
import pytest

from mccfr.cfr.policy import Policy
from mccfr.cfr.policy_table import PolicyTable, policy_table_registry
from mccfr.errors import ActionCountMismatchError, CorruptStateError
from mccfr.learner.discounting import DiscountParams, DiscountSchedule, create_schedule


@dataclass(frozen=True)
class HalvingSchedule(DiscountSchedule):
    """Halves everything at every update."""

    def get_discount_factors(self, iteration):
        return 0.5, 0.5, 0.5


def make_node(toy_game, key, num_children, player=0):
    return toy_game.decision(player, key, [toy_game.leaf(0.0) for _ in range(num_children)])


class TestGetPolicy:
    def test_lazily_creates_policy(self, toy_game):
        table = PolicyTable()
        assert len(table) == 0

        policy = table.get_policy(make_node(toy_game, b"a", 3))
        assert isinstance(policy, Policy)
        assert policy.num_actions == 3
        assert b"a" in table
        assert table[b"a"] is policy

    def test_same_key_same_policy(self, toy_game):
        table = PolicyTable()
        first = table.get_policy(make_node(toy_game, b"a", 2))
        second = table.get_policy(make_node(toy_game, b"a", 2, player=1))
        assert first is second
        assert len(table) == 1

    def test_action_count_mismatch(self, toy_game):
        table = PolicyTable()
        table.get_policy(make_node(toy_game, b"a", 2))

        with pytest.raises(ActionCountMismatchError) as excinfo:
            table.get_policy(make_node(toy_game, b"a", 3))

        assert excinfo.value.key == b"a"
        assert excinfo.value.expected == 2
        assert excinfo.value.actual == 3

    def test_get_strategy_alias(self, toy_game):
        table = PolicyTable()
        node = make_node(toy_game, b"a", 2)
        assert table.get_strategy(node) is table.get_policy(node)


class TestUpdate:
    def test_iteration_starts_at_one(self):
        table = PolicyTable()
        assert table.iteration == 1
        table.update()
        assert table.iteration == 2

    def test_update_only_touched_policies(self, toy_game):
        table = PolicyTable()
        touched = table.get_policy(make_node(toy_game, b"a", 2))
        untouched = table.get_policy(make_node(toy_game, b"b", 2))
        table.update()

        # Only a is visited this iteration
        touched = table.get_policy(make_node(toy_game, b"a", 2))
        touched.add_regret(1.0, np.array([1.0, 0.0]))
        untouched.add_regret(1.0, np.array([1.0, 0.0]))
        table.update()

        np.testing.assert_array_equal(touched.get_strategy(), [1.0, 0.0])
        np.testing.assert_array_almost_equal(untouched.get_strategy(), [0.5, 0.5])

    def test_update_applies_schedule(self, toy_game):
        table = PolicyTable(HalvingSchedule())
        policy = table.get_policy(make_node(toy_game, b"a", 2))
        policy.add_regret(1.0, np.array([4.0, -2.0]))
        policy.add_strategy_weight(2.0)
        table.update()

        np.testing.assert_array_almost_equal(policy.regret_sum, [2.0, -1.0])
        np.testing.assert_array_almost_equal(policy.strategy_sum, [0.5, 0.5])

    def test_default_schedule_is_vanilla(self):
        assert PolicyTable().schedule == DiscountParams()

    def test_average_strategies(self, toy_game):
        table = PolicyTable()
        policy = table.get_policy(make_node(toy_game, b"a", 2))
        policy.strategy_sum[:] = [3.0, 1.0]

        averages = table.get_average_strategies()
        np.testing.assert_array_almost_equal(averages[b"a"], [0.75, 0.25])


def trained_table(toy_game):
    table = PolicyTable(create_schedule("discounted"))
    a = table.get_policy(make_node(toy_game, b"a", 2))
    b = table.get_policy(make_node(toy_game, b"b", 3))
    a.add_regret(1.0, np.array([1.0, -1.0]))
    b.add_regret(2.0, np.array([0.5, 0.25, -3.0]))
    a.add_strategy_weight(1.0)
    b.add_strategy_weight(0.5)
    table.update()
    table.get_policy(make_node(toy_game, b"a", 2))
    return table


class TestPersistence:
    def test_round_trip(self, toy_game):
        table = trained_table(toy_game)
        restored = PolicyTable.loads(table.dumps())

        assert restored.iteration == table.iteration == 2
        assert restored.schedule == table.schedule
        assert len(restored) == 2
        for key, policy in table.items():
            np.testing.assert_array_equal(restored[key].regret_sum, policy.regret_sum)
            np.testing.assert_array_equal(restored[key].strategy_sum, policy.strategy_sum)
            np.testing.assert_array_equal(
                restored[key].get_strategy(), policy.get_strategy()
            )

    def test_restored_table_keeps_training(self, toy_game):
        restored = PolicyTable.loads(trained_table(toy_game).dumps())
        policy = restored.get_policy(make_node(toy_game, b"a", 2))
        policy.add_regret(1.0, np.array([0.0, 10.0]))
        restored.update()
        assert restored.iteration == 3
        assert policy.get_strategy()[1] > 0.5

    def test_save_and_load(self, tmp_path, toy_game):
        table = trained_table(toy_game)
        path = tmp_path / "nested" / "table.pkl"
        table.save(path)

        assert path.exists()
        assert not (tmp_path / "nested" / "table.pkl.tmp").exists()

        restored = PolicyTable.load(path)
        assert restored.iteration == table.iteration
        assert set(key for key, _ in restored.items()) == {b"a", b"b"}

    def test_custom_schedule_needs_registration(self, toy_game):
        table = PolicyTable(HalvingSchedule())
        table.get_policy(make_node(toy_game, b"a", 2))
        data = table.dumps()

        with pytest.raises(CorruptStateError, match="not registered"):
            PolicyTable.loads(data)

        restored = PolicyTable.loads(data, policy_table_registry(HalvingSchedule))
        assert isinstance(restored.schedule, HalvingSchedule)

    def test_truncated_stream(self, toy_game):
        data = trained_table(toy_game).dumps()
        with pytest.raises(CorruptStateError):
            PolicyTable.loads(data[: len(data) // 2])

    def test_garbage_stream(self):
        with pytest.raises(CorruptStateError):
            PolicyTable.loads(b"not a policy table")

    def test_wrong_format_header(self):
        data = pickle.dumps({"format": "reservoir_metadata", "version": 1})
        with pytest.raises(CorruptStateError, match="policy_table"):
            PolicyTable.loads(data)

    def test_wrong_version(self):
        data = pickle.dumps({"format": "policy_table", "version": 99})
        with pytest.raises(CorruptStateError, match="version"):
            PolicyTable.loads(data)

    def test_unregistered_type_rejected(self):
        data = pickle.dumps({"format": "policy_table", "version": 1}) + pickle.dumps(
            HalvingSchedule()
        )
        with pytest.raises(CorruptStateError):
            PolicyTable.loads(data)

    def test_wrong_record_type(self):
        registry = policy_table_registry()
        data = (
            pickle.dumps({"format": "policy_table", "version": 1})
            + pickle.dumps(DiscountParams())
            + pickle.dumps("three")
        )
        with pytest.raises(CorruptStateError, match="iteration"):
            PolicyTable.loads(data, registry)
