"""Tabular strategy profile: one Policy per information set key.

Persisted layout (one record each, see mccfr.serialization):
    header, discount schedule, iteration, entry count,
    then (infoset key, Policy) pairs
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

import numpy as np
import numpy.typing as npt

from mccfr.cfr.policy import Policy
from mccfr.errors import ActionCountMismatchError, CorruptStateError
from mccfr.games.base import GameTreeNode
from mccfr.learner.discounting import DiscountParams, DiscountSchedule
from mccfr.serialization import SchemaRegistry, atomic_write_bytes, expect_type

logger = logging.getLogger(__name__)

FORMAT = "policy_table"
FORMAT_VERSION = 1


def policy_table_registry(*extra_types: type) -> SchemaRegistry:
    """Registry able to decode a PolicyTable.

    Args:
        *extra_types: Additional types to allow, e.g. a custom DiscountSchedule
    """
    return SchemaRegistry(
        types=[Policy, DiscountParams, *extra_types],
        formats={FORMAT: FORMAT_VERSION},
    )


class PolicyTable:
    """Strategy profile storing accumulated regrets and strategy sums per infoset.

    Policies are created lazily the first time their infoset is visited and
    are owned by the table. Policies touched during an iteration are updated
    once, together, by update().

    Not internally synchronized: concurrent traversals sharing one table must
    serialize calls to get_policy() and update() themselves.

    Attributes:
        schedule: Discount schedule applied at every update()
    """

    def __init__(self, schedule: Optional[DiscountSchedule] = None):
        self.schedule = schedule if schedule is not None else DiscountParams()
        self._iteration = 1
        self._policies: dict[bytes, Policy] = {}
        self._may_need_update: set[Policy] = set()

    @property
    def iteration(self) -> int:
        """Current iteration number (1-indexed)."""
        return self._iteration

    def get_policy(self, node: GameTreeNode) -> Policy:
        """Get (or lazily create) the Policy for the node's acting player infoset.

        Raises:
            ActionCountMismatchError: If the key already maps to a policy with a
                different number of actions than the node has children
        """
        key = node.info_set(node.player()).key()
        num_children = node.num_children()

        policy = self._policies.get(key)
        if policy is None:
            policy = Policy(num_children)
            self._policies[key] = policy
        elif policy.num_actions != num_children:
            raise ActionCountMismatchError(key, policy.num_actions, num_children)

        self._may_need_update.add(policy)
        return policy

    def get_strategy(self, node: GameTreeNode) -> Policy:
        """Alias of get_policy() for callers playing the solved strategy."""
        return self.get_policy(node)

    def update(self) -> None:
        """Move every policy touched since the last update to its next strategy."""
        discount_pos, discount_neg, discount_sum = self.schedule.get_discount_factors(
            self._iteration
        )
        for policy in self._may_need_update:
            policy.next_strategy(discount_pos, discount_neg, discount_sum)

        logger.debug(
            f"Iteration {self._iteration}: updated {len(self._may_need_update)} policies "
            f"(discounts={discount_pos:.4f}/{discount_neg:.4f}/{discount_sum:.4f})"
        )
        self._may_need_update = set()
        self._iteration += 1

    def __len__(self) -> int:
        return len(self._policies)

    def __contains__(self, key: bytes) -> bool:
        return key in self._policies

    def __getitem__(self, key: bytes) -> Policy:
        return self._policies[key]

    def items(self) -> Iterator[tuple[bytes, Policy]]:
        return iter(self._policies.items())

    def get_average_strategies(self) -> dict[bytes, npt.NDArray[np.float64]]:
        """Get average strategies for all information sets."""
        return {key: policy.get_average_strategy() for key, policy in self._policies.items()}

    def close(self) -> None:
        pass

    # Persistence

    def dump(self, stream: BinaryIO) -> None:
        writer = policy_table_registry().writer(stream, FORMAT)
        writer.write(self.schedule)
        writer.write(self._iteration)
        writer.write(len(self._policies))
        for key, policy in self._policies.items():
            writer.write(key)
            writer.write(policy)

    def dumps(self) -> bytes:
        buf = io.BytesIO()
        self.dump(buf)
        return buf.getvalue()

    @classmethod
    def load_from(cls, stream: BinaryIO, registry: Optional[SchemaRegistry] = None) -> PolicyTable:
        """Decode a table written by dump().

        Args:
            stream: Binary stream positioned at the start of the table
            registry: Registry allowing the persisted types; defaults to
                policy_table_registry()

        Raises:
            CorruptStateError: If the stream cannot be decoded
        """
        registry = registry if registry is not None else policy_table_registry()
        reader = registry.reader(stream, FORMAT)

        schedule = reader.read()
        if not isinstance(schedule, DiscountSchedule):
            raise CorruptStateError(f"Expected a DiscountSchedule, got {type(schedule).__name__}")
        iteration = expect_type(reader.read(), int, "iteration")
        count = expect_type(reader.read(), int, "entry count")
        if iteration < 1 or count < 0:
            raise CorruptStateError(f"Invalid table header: iteration={iteration}, count={count}")

        table = cls(schedule)
        table._iteration = iteration
        for _ in range(count):
            key = expect_type(reader.read(), bytes, "infoset key")
            table._policies[key] = expect_type(reader.read(), Policy, "policy")
        return table

    @classmethod
    def loads(cls, data: bytes, registry: Optional[SchemaRegistry] = None) -> PolicyTable:
        return cls.load_from(io.BytesIO(data), registry)

    def save(self, path: str | Path) -> None:
        """Atomically write the table to ``path``."""
        atomic_write_bytes(path, self.dumps())
        logger.info(
            f"Saved policy table to {path} (iteration={self._iteration}, infosets={len(self)})"
        )

    @classmethod
    def load(cls, path: str | Path, registry: Optional[SchemaRegistry] = None) -> PolicyTable:
        with open(path, "rb") as f:
            table = cls.load_from(f, registry)
        logger.info(
            f"Loaded policy table from {path} (iteration={table.iteration}, infosets={len(table)})"
        )
        return table

    def __repr__(self) -> str:
        return (
            f"PolicyTable(iteration={self._iteration}, "
            f"infosets={len(self._policies)}, schedule={self.schedule!r})"
        )
