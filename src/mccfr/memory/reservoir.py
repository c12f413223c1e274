"""In-memory reservoir buffer for Deep CFR training samples.

Same add_sample/get_samples contract as PersistentReservoirBuffer, but slots
are rows of pre-allocated tensors, so batches for the network can be drawn
with torch.randint and tensor indexing instead of Python loops.
"""

import threading
from typing import Optional, Tuple

import torch

from mccfr.memory.sample import Sample


class ReservoirBuffer:
    """Reservoir buffer backed by pre-allocated tensors.

    Attributes:
        capacity: Maximum number of samples to store
        input_size: Dimension of sample features
        output_size: Dimension of sample advantages
        device: Torch device (cpu or cuda)
        features: Tensor storage [capacity, input_size]
        advantages: Tensor storage [capacity, output_size]
        weights: Tensor storage [capacity]
        size: Current number of samples in buffer
        total_seen: Total samples added (for reservoir sampling)
    """

    def __init__(
        self,
        capacity: int,
        input_size: int,
        output_size: int,
        device: str = "cpu",
        seed: Optional[int] = None,
    ):
        """Initialize tensor-based reservoir buffer.

        Args:
            capacity: Maximum number of samples to store
            input_size: Length of Sample.features
            output_size: Length of Sample.advantages
            device: Torch device ("cpu" or "cuda")
            seed: Seed for the slot-replacement generator

        Raises:
            ValueError: If capacity <= 0
        """
        if capacity <= 0:
            raise ValueError(f"Capacity must be positive, got {capacity}")

        self.capacity = capacity
        self.input_size = input_size
        self.output_size = output_size
        self.device = torch.device(device)

        self.features = torch.zeros((capacity, input_size), dtype=torch.float32, device=self.device)
        self.advantages = torch.zeros((capacity, output_size), dtype=torch.float32, device=self.device)
        self.weights = torch.zeros(capacity, dtype=torch.float32, device=self.device)

        self.size = 0
        self.total_seen = 0
        self._lock = threading.Lock()
        self._generator = torch.Generator()
        if seed is not None:
            self._generator.manual_seed(seed)

    def add_sample(self, sample: Sample) -> None:
        """Add a sample to the buffer.

        Uses reservoir sampling when buffer is full:
        - For first k samples: store directly
        - For sample n > k: replace random slot with probability k/n

        Raises:
            ValueError: If the sample's shapes don't match the buffer
        """
        if sample.features.shape != (self.input_size,):
            raise ValueError(
                f"Features shape {sample.features.shape} doesn't match expected shape ({self.input_size},)"
            )
        if sample.advantages.shape != (self.output_size,):
            raise ValueError(
                f"Advantages shape {sample.advantages.shape} doesn't match expected shape ({self.output_size},)"
            )

        with self._lock:
            self.total_seen += 1

            if self.size < self.capacity:
                idx = self.size
                self.size += 1
            else:
                # Each of the total_seen samples ends up kept with probability k/n
                idx = int(torch.randint(0, self.total_seen, (1,), generator=self._generator).item())
                if idx >= self.capacity:
                    return

            self.features[idx] = torch.from_numpy(sample.features).to(self.device)
            self.advantages[idx] = torch.from_numpy(sample.advantages).to(self.device)
            self.weights[idx] = sample.weight

    def get_samples(self) -> list[Sample]:
        """All stored samples, in slot order."""
        features = self.features[: self.size].cpu().numpy()
        advantages = self.advantages[: self.size].cpu().numpy()
        weights = self.weights[: self.size].cpu().numpy()
        return [
            Sample(features=features[i].copy(), advantages=advantages[i].copy(), weight=float(weights[i]))
            for i in range(self.size)
        ]

    def sample_batch(self, batch_size: int) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
        """Sample a batch (with replacement) from the buffer.

        Returns:
            Tuple of (features, advantages, weights) tensors with leading
            dimension batch_size

        Raises:
            ValueError: If the buffer is empty
        """
        if self.size == 0:
            raise ValueError("Cannot sample from empty buffer")

        indices = torch.randint(0, self.size, (batch_size,), generator=self._generator)
        indices = indices.to(self.device)
        return self.features[indices], self.advantages[indices], self.weights[indices]

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return (
            f"ReservoirBuffer(capacity={self.capacity}, "
            f"size={self.size}, "
            f"total_seen={self.total_seen}, "
            f"device={self.device})"
        )

    def clear(self) -> None:
        """Clear all samples from buffer and reset counters."""
        with self._lock:
            self.size = 0
            self.total_seen = 0

    @property
    def is_full(self) -> bool:
        return self.size >= self.capacity

    @property
    def fill_percentage(self) -> float:
        return (self.size / self.capacity) * 100.0
