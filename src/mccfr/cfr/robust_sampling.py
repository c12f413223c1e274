"""Robust sampling MCCFR (external sampling with k-of-n action sampling).

One player is traversed per run, alternating with the iteration number:

- At the traversing player's nodes, min(k, n) distinct actions are sampled
  uniformly without replacement and their regrets updated
- At the other player's nodes, a single action is sampled from the current
  strategy and reused for every visit of that infoset during the run; the
  average strategy is updated there
- At chance nodes, a single outcome is sampled

References:
- Lanctot et al. (2009): "Monte Carlo Sampling for Regret Minimization in
  Extensive Games"
- Li et al. (2018): "Double Neural Counterfactual Regret Minimization"
"""

from typing import Optional

import numpy as np

from mccfr.cfr.chance_sampling import get_sign, root_player
from mccfr.cfr.policy_table import PolicyTable
from mccfr.cfr.pool import FloatSlicePool, ThreadSafeFloatSlicePool
from mccfr.cfr.regret_matching import sample_action
from mccfr.games.base import GameTreeNode, NodeType


class RobustSamplingCFR:
    """Robust sampling MCCFR over a PolicyTable.

    Attributes:
        strategy_profile: Table receiving regret and strategy updates
        k: Maximum number of actions explored at the traversing player's nodes
        slice_pool: Scratch buffers for per-node regret vectors
        rng: Generator for action sampling
    """

    def __init__(
        self,
        strategy_profile: PolicyTable,
        k: int,
        seed: Optional[int] = None,
        slice_pool: Optional[FloatSlicePool] = None,
    ):
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")

        self.strategy_profile = strategy_profile
        self.k = k
        self.slice_pool = slice_pool if slice_pool is not None else ThreadSafeFloatSlicePool()
        self.rng = np.random.default_rng(seed)

    def run(self, node: GameTreeNode) -> float:
        """Run one traversal for the player whose turn it is this iteration.

        Returns:
            Sampled (importance-weighted) value for the root's acting player
            (player 0 if the root is a chance node)
        """
        traversing_player = self.strategy_profile.iteration % 2
        # Actions sampled at the opponent's infosets, valid for this run only
        sampled_actions: dict[bytes, int] = {}
        return self._run_helper(node, root_player(node), 1.0, traversing_player, sampled_actions)

    def _run_helper(
        self,
        node: GameTreeNode,
        last_player: int,
        sample_prob: float,
        traversing_player: int,
        sampled_actions: dict[bytes, int],
    ) -> float:
        node_type = node.type()
        if node_type is NodeType.TERMINAL:
            ev = node.utility(last_player) / sample_prob
        elif node_type is NodeType.CHANCE:
            ev = self._handle_chance_node(
                node, last_player, sample_prob, traversing_player, sampled_actions
            )
        elif node_type is NodeType.PLAYER:
            sgn = get_sign(last_player, node.player())
            if node.player() == traversing_player:
                ev = sgn * self._handle_traversing_player_node(
                    node, sample_prob, traversing_player, sampled_actions
                )
            else:
                ev = sgn * self._handle_sampled_player_node(
                    node, sample_prob, traversing_player, sampled_actions
                )
        else:
            raise ValueError(f"Unknown node type: {node_type!r}")

        node.close()
        return ev

    def _handle_chance_node(
        self,
        node: GameTreeNode,
        last_player: int,
        sample_prob: float,
        traversing_player: int,
        sampled_actions: dict[bytes, int],
    ) -> float:
        child, _ = node.sample_child()
        # Sampling probabilities cancel out in the calculation of counterfactual value.
        return self._run_helper(child, last_player, sample_prob, traversing_player, sampled_actions)

    def _handle_traversing_player_node(
        self,
        node: GameTreeNode,
        sample_prob: float,
        traversing_player: int,
        sampled_actions: dict[bytes, int],
    ) -> float:
        player = node.player()
        n = node.num_children()
        policy = self.strategy_profile.get_policy(node)
        strategy = policy.get_strategy()

        # Sample min(k, n) actions with uniform probability.
        selected = np.arange(n)
        if self.k < n:
            selected = self.rng.permutation(n)[: self.k]

        q = 1.0 / n
        with self.slice_pool.borrow(n) as regrets:
            # Unsampled actions contribute zero regret this iteration.
            regrets.fill(0.0)
            cf_value = 0.0
            for i in selected:
                child = node.get_child(int(i))
                util = self._run_helper(
                    child, player, q * sample_prob, traversing_player, sampled_actions
                )
                regrets[i] = util
                cf_value += strategy[i] * util

            regrets[selected] -= cf_value
            policy.add_regret(1.0 / q, regrets)

        return cf_value

    def _handle_sampled_player_node(
        self,
        node: GameTreeNode,
        sample_prob: float,
        traversing_player: int,
        sampled_actions: dict[bytes, int],
    ) -> float:
        player = node.player()
        key = node.info_set(player).key()
        policy = self.strategy_profile.get_policy(node)

        i = sampled_actions.get(key)
        if i is None:
            # First visit of this infoset during this run.
            i = sample_action(policy.get_strategy(), self.rng)
            sampled_actions[key] = i

        # Stochastically-weighted average strategy update.
        policy.add_strategy_weight(1.0 / sample_prob)

        child = node.get_child(i)
        # Sampling probabilities cancel out in the calculation of counterfactual value.
        return self._run_helper(child, player, sample_prob, traversing_player, sampled_actions)
