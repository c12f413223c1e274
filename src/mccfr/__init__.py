"""Monte-Carlo Counterfactual Regret Minimization for two-player zero-sum games."""

from mccfr.cfr import ChanceSamplingCFR, Policy, PolicyTable, RobustSamplingCFR
from mccfr.config import SolverConfig
from mccfr.errors import (
    ActionCountMismatchError,
    CorruptStateError,
    MCCFRError,
    StoreOpenError,
)
from mccfr.games import GameTreeNode, NodeType
from mccfr.learner import DiscountParams, create_schedule
from mccfr.memory import PersistentReservoirBuffer, ReservoirBuffer, Sample
from mccfr.solver import Solver

__version__ = "0.1.0"

__all__ = [
    "ChanceSamplingCFR",
    "RobustSamplingCFR",
    "Policy",
    "PolicyTable",
    "SolverConfig",
    "Solver",
    "GameTreeNode",
    "NodeType",
    "DiscountParams",
    "create_schedule",
    "PersistentReservoirBuffer",
    "ReservoirBuffer",
    "Sample",
    "MCCFRError",
    "ActionCountMismatchError",
    "CorruptStateError",
    "StoreOpenError",
]
