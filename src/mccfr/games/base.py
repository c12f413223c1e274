"""Game tree interface consumed by the CFR traversal engines.

Concrete games are adapters: any object satisfying GameTreeNode can be
traversed. Nodes are released explicitly with close() once their value has
been folded into the parent, so adapters that hold expensive state (e.g.
pooled game states or native handles) can recycle it deterministically.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

import numpy as np


class NodeType(Enum):
    """Kind of node in an extensive-form game tree."""

    CHANCE = "chance"
    TERMINAL = "terminal"
    PLAYER = "player"


class InfoSet(Protocol):
    """Observable history from the point of view of one player."""

    def key(self) -> bytes:
        """Identifier used to look up this information set in tabular CFR.

        May be an arbitrary byte string, e.g. an abstraction or a hash of the
        player's view of the history. Two nodes with equal keys are the same
        decision point.
        """
        ...


class GameTreeNode(Protocol):
    """Protocol defining a node of a two-player zero-sum game tree."""

    def type(self) -> NodeType:
        """Return the kind of this node."""
        ...

    def close(self) -> None:
        """Release resources held by this node."""
        ...

    def num_children(self) -> int:
        """Number of direct children of this node."""
        ...

    def get_child(self, i: int) -> GameTreeNode:
        """Get the ith child of this node."""
        ...

    def get_child_probability(self, i: int) -> float:
        """Probability of the ith child. Only valid for chance nodes."""
        ...

    def sample_child(self) -> tuple[GameTreeNode, float]:
        """Sample one child of a chance node according to its distribution.

        Returns:
            Tuple of (child, probability of that child)
        """
        ...

    def player(self) -> int:
        """Acting player (0 or 1). Only valid for player nodes."""
        ...

    def info_set(self, player: int) -> InfoSet:
        """Information set of this node as seen by ``player``."""
        ...

    def utility(self, player: int) -> float:
        """Payoff for ``player``. Only valid for terminal nodes."""
        ...


def sample_chance_node(node: GameTreeNode, rng: np.random.Generator) -> tuple[GameTreeNode, float]:
    """Sample a child of a chance node by inverting its CDF.

    Helper for adapters implementing GameTreeNode.sample_child().

    Args:
        node: Chance node to sample from
        rng: NumPy random number generator

    Returns:
        Tuple of (child, probability of that child)
    """
    x = rng.random()
    cumulative = 0.0
    n = node.num_children()
    for i in range(n):
        p = node.get_child_probability(i)
        cumulative += p
        if x < cumulative:
            return node.get_child(i), p

    # Floating point slack: the CDF may sum to slightly less than 1.0
    return node.get_child(n - 1), node.get_child_probability(n - 1)
