"""Training example produced by traversals for a downstream learner."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt


@dataclass
class Sample:
    """One training example.

    Attributes:
        features: Encoded information state (float32 vector)
        advantages: Regret/advantage targets per action (float32 vector)
        weight: Example weight, typically the iteration it was produced in
    """

    features: npt.NDArray[np.float32]
    advantages: npt.NDArray[np.float32]
    weight: float = 1.0

    def __post_init__(self):
        self.features = np.asarray(self.features, dtype=np.float32)
        self.advantages = np.asarray(self.advantages, dtype=np.float32)
        self.weight = float(self.weight)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sample):
            return NotImplemented
        return (
            self.weight == other.weight
            and np.array_equal(self.features, other.features)
            and np.array_equal(self.advantages, other.advantages)
        )
