"""Exact evaluation of strategy profiles by full tree enumeration.

Only practical for small games (e.g. Kuhn Poker); used to check sampled
estimates against the true value of a profile and to track convergence of
the average strategy toward the game value.
"""

from typing import Callable

import numpy as np
import numpy.typing as npt

from mccfr.cfr.policy_table import PolicyTable
from mccfr.games.base import GameTreeNode, NodeType

StrategyFn = Callable[[GameTreeNode], npt.NDArray[np.float64]]


def expected_value(node: GameTreeNode, strategy_fn: StrategyFn, player: int = 0) -> float:
    """Expected utility for ``player`` when both players follow ``strategy_fn``.

    Args:
        node: Root of the (sub)tree to evaluate; closed once evaluated
        strategy_fn: Maps a player node to its action probabilities
        player: Player whose utility is returned

    Returns:
        Exact expected value over chance and both players' strategies
    """
    node_type = node.type()
    if node_type is NodeType.TERMINAL:
        value = node.utility(player)
    elif node_type is NodeType.CHANCE:
        value = 0.0
        for i in range(node.num_children()):
            p = node.get_child_probability(i)
            value += p * expected_value(node.get_child(i), strategy_fn, player)
    elif node_type is NodeType.PLAYER:
        strategy = strategy_fn(node)
        value = 0.0
        for i in range(node.num_children()):
            if strategy[i] > 0.0:
                value += strategy[i] * expected_value(node.get_child(i), strategy_fn, player)
    else:
        raise ValueError(f"Unknown node type: {node_type!r}")

    node.close()
    return float(value)


def _lookup(table: PolicyTable, node: GameTreeNode):
    # Reads without get_policy(): evaluation must not create or touch policies
    key = node.info_set(node.player()).key()
    if key in table:
        return table[key]
    return None


def average_strategy_fn(table: PolicyTable) -> StrategyFn:
    """Strategy function playing the table's average strategy (uniform if unseen)."""

    def strategy(node: GameTreeNode) -> npt.NDArray[np.float64]:
        policy = _lookup(table, node)
        if policy is None:
            n = node.num_children()
            return np.full(n, 1.0 / n)
        return policy.get_average_strategy()

    return strategy


def current_strategy_fn(table: PolicyTable) -> StrategyFn:
    """Strategy function playing the table's current strategy (uniform if unseen)."""

    def strategy(node: GameTreeNode) -> npt.NDArray[np.float64]:
        policy = _lookup(table, node)
        if policy is None:
            n = node.num_children()
            return np.full(n, 1.0 / n)
        return policy.get_strategy()

    return strategy
