"""Kuhn Poker as a GameTreeNode.

Kuhn Poker is the simplest non-trivial poker game, with 3 cards (J, Q, K),
2 players, and a simple betting structure. It has 12 information sets and
a known analytical Nash equilibrium, which makes it the reference game for
convergence checks.

Rules:
- Each player antes 1 chip
- Each player is dealt one card from {J, Q, K}
- Player 0 acts first, then Player 1, then possibly Player 0 again
- Actions: Check/Fold (0) or Bet/Call (1)
- Bet size is fixed at 1 chip
- Showdown: Higher card wins

Equilibrium (game value for player 0 is -1/18):
- Player 1 is unique: bets K and 1/3 of J after a check, calls a bet with K,
  calls 1/3 with Q, folds J
- Player 0 is a one-parameter family: bets J with alpha in [0, 1/3], always
  checks Q, bets K with 3 * alpha, calls with Q after check-bet with
  alpha + 1/3
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from mccfr.games.base import NodeType, sample_chance_node


# Card constants
JACK = 0
QUEEN = 1
KING = 2
CARD_NAMES = ["J", "Q", "K"]

# Action constants
CHECK = 0
BET = 1
ACTION_NAMES = ["Check", "Bet"]

# Every ordered deal of two distinct cards, equally likely
DEALS = [
    (JACK, QUEEN),
    (JACK, KING),
    (QUEEN, JACK),
    (QUEEN, KING),
    (KING, JACK),
    (KING, QUEEN),
]

_TERMINAL_HISTORIES = frozenset({"cc", "bb", "cbb", "bc", "cbc"})

GAME_VALUE = -1.0 / 18.0


@dataclass(frozen=True)
class KuhnInfoSet:
    """A player's private card plus the public betting history."""

    card: int
    history: str

    def key(self) -> bytes:
        """Format: "<card><history>" e.g. b"J", b"Qc", b"Kcb"."""
        return (CARD_NAMES[self.card] + self.history).encode("ascii")


@dataclass(frozen=True)
class KuhnPoker:
    """Kuhn Poker game tree node (immutable).

    Attributes:
        cards: Tuple of (player_0_card, player_1_card), or None before the deal
        history: Sequence of actions as a string (e.g., "cb" = check then bet)
        rng: Generator used to sample the deal at the chance node
    """

    cards: tuple[int, int] | None = None
    history: str = ""
    rng: np.random.Generator = field(
        default_factory=np.random.default_rng, compare=False, repr=False
    )

    def type(self) -> NodeType:
        if self.cards is None:
            return NodeType.CHANCE
        if self.history in _TERMINAL_HISTORIES:
            return NodeType.TERMINAL
        return NodeType.PLAYER

    def close(self) -> None:
        # Nodes are plain immutable values; nothing to release.
        pass

    def num_children(self) -> int:
        node_type = self.type()
        if node_type is NodeType.CHANCE:
            return len(DEALS)
        if node_type is NodeType.TERMINAL:
            return 0
        return 2

    def get_child(self, i: int) -> KuhnPoker:
        node_type = self.type()
        if node_type is NodeType.CHANCE:
            return KuhnPoker(cards=DEALS[i], history=self.history, rng=self.rng)
        if node_type is NodeType.TERMINAL:
            raise ValueError("Terminal node has no children")
        if i not in (CHECK, BET):
            raise ValueError(f"Invalid action: {i}")
        action_char = "c" if i == CHECK else "b"
        return KuhnPoker(cards=self.cards, history=self.history + action_char, rng=self.rng)

    def get_child_probability(self, i: int) -> float:
        if self.type() is not NodeType.CHANCE:
            raise ValueError("Child probabilities are only defined at the chance node")
        return 1.0 / len(DEALS)

    def sample_child(self) -> tuple[KuhnPoker, float]:
        return sample_chance_node(self, self.rng)

    def player(self) -> int:
        """P0 acts at "" and "cb", P1 acts at "c" and "b"."""
        if self.type() is not NodeType.PLAYER:
            raise ValueError(f"No acting player at {self}")
        return 1 if len(self.history) == 1 else 0

    def info_set(self, player: int) -> KuhnInfoSet:
        assert self.cards is not None
        return KuhnInfoSet(card=self.cards[player], history=self.history)

    def utility(self, player: int) -> float:
        return self.returns()[player]

    def returns(self) -> tuple[float, float]:
        """Get terminal payoffs for (player 0, player 1)."""
        if self.type() is not NodeType.TERMINAL:
            raise ValueError("Cannot get returns for non-terminal state")
        assert self.cards is not None

        h = self.history
        # Fold cases: the player who bet takes the antes
        if h == "bc":
            return (1.0, -1.0)
        if h == "cbc":
            return (-1.0, 1.0)

        # Showdown: 1 chip at stake after checks, 2 after a called bet
        stake = 2.0 if "b" in h else 1.0
        p0_card, p1_card = self.cards
        if p0_card > p1_card:
            return (stake, -stake)
        return (-stake, stake)

    def __str__(self) -> str:
        if self.cards is None:
            return "Kuhn(undealt)"
        history = self.history if self.history else "start"
        return (
            f"Kuhn(P0:{CARD_NAMES[self.cards[0]]}, "
            f"P1:{CARD_NAMES[self.cards[1]]}, history:{history})"
        )


def new_kuhn_game(seed: int | None = None) -> KuhnPoker:
    """Create a new Kuhn Poker game at the initial (chance) node."""
    return KuhnPoker(rng=np.random.default_rng(seed))
