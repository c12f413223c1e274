"""Chance-sampled CFR.

Each run samples a single outcome at every chance node and enumerates every
action at player nodes, updating regrets for both players in one traversal.
Because chance is sampled from its true distribution, the sampling
probabilities cancel in the counterfactual values and no reweighting is
needed.

Reference:
- Lanctot et al. (2009): "Monte Carlo Sampling for Regret Minimization in
  Extensive Games"
"""

from typing import Optional

from mccfr.cfr.policy_table import PolicyTable
from mccfr.cfr.pool import FloatSlicePool
from mccfr.games.base import GameTreeNode, NodeType


def get_sign(last_player: int, player: int) -> float:
    """Sign converting a value from ``player``'s perspective to ``last_player``'s."""
    return 1.0 if last_player == player else -1.0


def root_player(node: GameTreeNode) -> int:
    """Perspective of the value returned by run(): the root's actor, or player 0."""
    return node.player() if node.type() is NodeType.PLAYER else 0


class ChanceSamplingCFR:
    """Chance-sampled CFR over a PolicyTable.

    Attributes:
        strategy_profile: Table receiving regret and strategy updates
        slice_pool: Scratch buffers for per-node advantage vectors
    """

    def __init__(self, strategy_profile: PolicyTable, slice_pool: Optional[FloatSlicePool] = None):
        self.strategy_profile = strategy_profile
        self.slice_pool = slice_pool if slice_pool is not None else FloatSlicePool()

    def run(self, node: GameTreeNode) -> float:
        """Run one traversal from ``node``.

        Returns:
            Sampled value of the game for the root's acting player (player 0
            if the root is a chance node)
        """
        return self._run_helper(node, root_player(node), 1.0, 1.0)

    def _run_helper(
        self, node: GameTreeNode, last_player: int, reach_p0: float, reach_p1: float
    ) -> float:
        node_type = node.type()
        if node_type is NodeType.TERMINAL:
            ev = node.utility(last_player)
        elif node_type is NodeType.CHANCE:
            ev = self._handle_chance_node(node, last_player, reach_p0, reach_p1)
        elif node_type is NodeType.PLAYER:
            sgn = get_sign(last_player, node.player())
            ev = sgn * self._handle_player_node(node, reach_p0, reach_p1)
        else:
            raise ValueError(f"Unknown node type: {node_type!r}")

        node.close()
        return ev

    def _handle_chance_node(
        self, node: GameTreeNode, last_player: int, reach_p0: float, reach_p1: float
    ) -> float:
        child, _ = node.sample_child()
        # Sampling probabilities cancel out in the calculation of counterfactual value.
        return self._run_helper(child, last_player, reach_p0, reach_p1)

    def _handle_player_node(self, node: GameTreeNode, reach_p0: float, reach_p1: float) -> float:
        player = node.player()
        policy = self.strategy_profile.get_policy(node)
        n = node.num_children()

        with self.slice_pool.borrow(n) as advantages:
            expected_util = 0.0
            for i in range(n):
                child = node.get_child(i)
                p = policy.get_action_probability(i)
                if player == 0:
                    util = self._run_helper(child, player, p * reach_p0, reach_p1)
                else:
                    util = self._run_helper(child, player, reach_p0, p * reach_p1)

                advantages[i] = util
                expected_util += p * util

            # Action utilities -> instantaneous advantages over the expected utility
            advantages -= expected_util
            if player == 0:
                policy.add_counterfactual_regret(reach_p0, reach_p1, advantages)
            else:
                policy.add_counterfactual_regret(reach_p1, reach_p0, advantages)

        return expected_util
