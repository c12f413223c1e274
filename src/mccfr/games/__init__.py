"""Game tree interface and reference games.

Available games:
- Kuhn Poker: 3-card simplified poker (J, Q, K)
"""

from mccfr.games.base import GameTreeNode, InfoSet, NodeType, sample_chance_node
from mccfr.games.kuhn import KuhnPoker, new_kuhn_game

__all__ = [
    "GameTreeNode",
    "InfoSet",
    "NodeType",
    "sample_chance_node",
    "KuhnPoker",
    "new_kuhn_game",
]
