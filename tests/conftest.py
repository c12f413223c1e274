"""Shared fixtures: small hand-built game trees.

ToyGame builds explicit trees whose nodes record every get_child() and
close() call in a shared event log, so tests can check traversal order,
resource release and sampled actions.
"""

from dataclasses import dataclass

import numpy as np
import pytest

from mccfr.games.base import NodeType, sample_chance_node


@dataclass(frozen=True)
class ToyInfoSet:
    raw_key: bytes

    def key(self) -> bytes:
        return self.raw_key


class ToyNode:
    """Node of an explicit tree. Terminal values are player 0's utility."""

    def __init__(
        self,
        game: "ToyGame",
        node_type: NodeType,
        name: str,
        children=(),
        probs=None,
        acting_player=None,
        key=b"",
        value=0.0,
    ):
        self.game = game
        self.node_type = node_type
        self.name = name
        self.children = list(children)
        self.probs = probs
        self.acting_player = acting_player
        self.raw_key = key
        self.value = value
        self.closed = 0

    def type(self):
        return self.node_type

    def close(self):
        self.closed += 1
        self.game.events.append(("close", self.name))

    def num_children(self):
        return len(self.children)

    def get_child(self, i):
        self.game.events.append(("child", self.name, i))
        return self.children[i]

    def get_child_probability(self, i):
        return self.probs[i]

    def sample_child(self):
        return sample_chance_node(self, self.game.rng)

    def player(self):
        return self.acting_player

    def info_set(self, player):
        return ToyInfoSet(self.raw_key)

    def utility(self, player):
        return self.value if player == 0 else -self.value


class ToyGame:
    """Builder for explicit trees sharing one event log and chance generator."""

    def __init__(self, seed=0):
        self.events = []
        self.rng = np.random.default_rng(seed)
        self._count = 0

    def _name(self, name, prefix):
        if name is None:
            self._count += 1
            name = f"{prefix}{self._count}"
        return name

    def leaf(self, value, name=None):
        return ToyNode(self, NodeType.TERMINAL, self._name(name, "leaf"), value=value)

    def decision(self, player, key, children, name=None):
        return ToyNode(
            self,
            NodeType.PLAYER,
            self._name(name, "p"),
            children=children,
            acting_player=player,
            key=key,
        )

    def chance(self, children, probs, name=None):
        return ToyNode(self, NodeType.CHANCE, self._name(name, "c"), children=children, probs=probs)

    def chosen(self, name):
        """Child indices requested from node ``name``, in order."""
        return [event[2] for event in self.events if event[0] == "child" and event[1] == name]


@pytest.fixture
def toy_game():
    return ToyGame(seed=0)


@pytest.fixture
def make_toy_game():
    return ToyGame
