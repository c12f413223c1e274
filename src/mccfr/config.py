"""Configuration system for reproducible MCCFR runs.

Nested dataclasses with YAML serialization.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Literal, Any, Optional
import yaml

from mccfr.learner.discounting import DiscountParams, create_schedule


@dataclass
class GameConfig:
    """Game selection."""

    name: Literal["kuhn"] = "kuhn"


@dataclass
class SamplingConfig:
    """Traversal engine selection."""

    scheme: Literal["chance", "robust"] = "robust"
    k: int = 2  # Actions explored per traversing-player node (robust only)


@dataclass
class DiscountConfig:
    """Discount schedule applied at the end of every iteration."""

    scheme: Literal["vanilla", "cfr_plus", "linear", "discounted"] = "vanilla"
    # Discounted CFR exponents (ignored by the other schemes)
    alpha: float = 1.5  # Positive regret discount
    beta: float = 0.0  # Negative regret discount
    gamma: float = 2.0  # Strategy sum discount

    def build(self) -> DiscountParams:
        return create_schedule(self.scheme, alpha=self.alpha, beta=self.beta, gamma=self.gamma)


@dataclass
class TrainingConfig:
    """Training loop parameters."""

    iterations: int = 10000
    log_every: int = 1000  # Log progress every N iterations
    checkpoint_every: int = 0  # Save the policy table every N iterations (0 = never)
    checkpoint_path: Optional[str] = None


@dataclass
class SolverConfig:
    """Complete configuration for an MCCFR run.

    Example:
        >>> config = SolverConfig(
        ...     sampling=SamplingConfig(scheme="robust", k=2),
        ...     discount=DiscountConfig(scheme="linear"),
        ... )
        >>> config.to_yaml("experiment.yaml")
        >>> loaded = SolverConfig.from_yaml("experiment.yaml")
    """

    game: GameConfig = field(default_factory=GameConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    discount: DiscountConfig = field(default_factory=DiscountConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)

    # Experiment metadata
    name: str = "default_experiment"
    seed: int = 42

    @classmethod
    def from_yaml(cls, path: str | Path) -> SolverConfig:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            SolverConfig instance.

        Raises:
            FileNotFoundError: If path does not exist.
            yaml.YAMLError: If file is not valid YAML.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SolverConfig:
        """Build a config from a nested dict (as produced by to_dict)."""
        game = GameConfig(**data.get("game", {}))
        sampling = SamplingConfig(**data.get("sampling", {}))
        discount = DiscountConfig(**data.get("discount", {}))
        training = TrainingConfig(**data.get("training", {}))

        metadata = {
            k: v for k, v in data.items() if k not in ["game", "sampling", "discount", "training"]
        }

        return cls(game=game, sampling=sampling, discount=discount, training=training, **metadata)

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to YAML file.

        Args:
            path: Destination path for YAML file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "name": self.name,
            "seed": self.seed,
            "game": asdict(self.game),
            "sampling": asdict(self.sampling),
            "discount": asdict(self.discount),
            "training": asdict(self.training),
        }

    def __repr__(self) -> str:
        return (
            f"SolverConfig(name='{self.name}', "
            f"game={self.game.name}, "
            f"sampling={self.sampling.scheme.upper()}, "
            f"discount={self.discount.scheme}, "
            f"iters={self.training.iterations})"
        )


# Preset configurations for common experiments
def kuhn_chance_sampling_config() -> SolverConfig:
    """Baseline: chance-sampled vanilla CFR on Kuhn Poker."""
    return SolverConfig(
        name="kuhn_chance_vanilla",
        sampling=SamplingConfig(scheme="chance"),
        discount=DiscountConfig(scheme="vanilla"),
        training=TrainingConfig(iterations=20000, log_every=2000),
    )


def kuhn_robust_dcfr_config() -> SolverConfig:
    """Robust sampling with Discounted CFR on Kuhn Poker."""
    return SolverConfig(
        name="kuhn_robust_dcfr",
        sampling=SamplingConfig(scheme="robust", k=2),
        discount=DiscountConfig(scheme="discounted", alpha=1.5, beta=0.0, gamma=2.0),
        training=TrainingConfig(iterations=40000, log_every=5000),
    )
