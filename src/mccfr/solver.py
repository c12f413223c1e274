"""Training driver: repeated traversals followed by a policy update.

Wires a PolicyTable, a traversal engine and a game together from a
SolverConfig, runs iterations, logs progress and checkpoints the table.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Union

import numpy as np

from mccfr.cfr.chance_sampling import ChanceSamplingCFR
from mccfr.cfr.policy_table import PolicyTable
from mccfr.cfr.robust_sampling import RobustSamplingCFR
from mccfr.config import SolverConfig
from mccfr.games.base import GameTreeNode
from mccfr.games.kuhn import KuhnPoker

logger = logging.getLogger(__name__)

Engine = Union[ChanceSamplingCFR, RobustSamplingCFR]
RootFactory = Callable[[], GameTreeNode]


def make_root_factory(name: str, seed: Optional[int] = None) -> RootFactory:
    """Factory producing a fresh root node of the named game for every iteration."""
    if name == "kuhn":
        rng = np.random.default_rng(seed)
        return lambda: KuhnPoker(rng=rng)
    raise ValueError(f"Unknown game: {name}")


def make_engine(config: SolverConfig, strategy_profile: PolicyTable) -> Engine:
    scheme = config.sampling.scheme
    if scheme == "chance":
        return ChanceSamplingCFR(strategy_profile)
    elif scheme == "robust":
        return RobustSamplingCFR(strategy_profile, k=config.sampling.k, seed=config.seed)
    else:
        raise ValueError(f"Unknown sampling scheme: {scheme}")


class Solver:
    """Runs MCCFR iterations against a shared PolicyTable.

    Attributes:
        strategy_profile: Table of per-infoset policies being trained
        engine: Traversal engine feeding the table
        root_factory: Produces the root node traversed at each iteration
    """

    def __init__(
        self,
        strategy_profile: PolicyTable,
        engine: Engine,
        root_factory: RootFactory,
        config: Optional[SolverConfig] = None,
    ):
        self.strategy_profile = strategy_profile
        self.engine = engine
        self.root_factory = root_factory
        self.config = config if config is not None else SolverConfig()

    @classmethod
    def from_config(
        cls,
        config: SolverConfig,
        strategy_profile: Optional[PolicyTable] = None,
        root_factory: Optional[RootFactory] = None,
    ) -> Solver:
        """Build a solver from a config, optionally resuming an existing table."""
        if strategy_profile is None:
            strategy_profile = PolicyTable(config.discount.build())
        if root_factory is None:
            # Offset so chance sampling and action sampling use different streams
            root_factory = make_root_factory(config.game.name, seed=config.seed + 1)

        engine = make_engine(config, strategy_profile)
        logger.info(
            f"Initialized {config.sampling.scheme} sampling solver for {config.game.name} "
            f"(discount={config.discount.scheme}, iteration={strategy_profile.iteration})"
        )
        return cls(strategy_profile, engine, root_factory, config)

    @classmethod
    def resume(
        cls,
        config: SolverConfig,
        checkpoint_path: str | Path,
        root_factory: Optional[RootFactory] = None,
    ) -> Solver:
        """Build a solver around a policy table saved by save_checkpoint()."""
        strategy_profile = PolicyTable.load(checkpoint_path)
        return cls.from_config(config, strategy_profile=strategy_profile, root_factory=root_factory)

    @property
    def iteration(self) -> int:
        return self.strategy_profile.iteration

    def run_iteration(self) -> float:
        """Run one traversal and apply the end-of-iteration update.

        Returns:
            Value returned by the traversal
        """
        value = self.engine.run(self.root_factory())
        self.strategy_profile.update()
        return value

    def train(self, iterations: Optional[int] = None) -> list[float]:
        """Run ``iterations`` iterations (default: config.training.iterations).

        Returns:
            Per-iteration traversal values
        """
        training = self.config.training
        iterations = iterations if iterations is not None else training.iterations

        logger.info(f"Starting training loop for {iterations} iterations")
        values = []
        for i in range(iterations):
            values.append(self.run_iteration())

            if training.log_every and (i + 1) % training.log_every == 0:
                recent = values[-training.log_every :]
                logger.info(
                    f"Iteration {self.iteration - 1}: infosets={len(self.strategy_profile)}, "
                    f"mean value (last {len(recent)})={np.mean(recent):+.4f}"
                )

            if (
                training.checkpoint_every
                and training.checkpoint_path
                and (i + 1) % training.checkpoint_every == 0
            ):
                self.save_checkpoint(training.checkpoint_path)

        logger.info("Training completed")
        return values

    def save_checkpoint(self, path: str | Path) -> None:
        self.strategy_profile.save(path)
