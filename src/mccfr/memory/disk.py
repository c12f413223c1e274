"""Disk-backed reservoir buffer for Deep CFR training samples.

Keeps a uniform random sample of at most ``capacity`` items from an unbounded
stream, with the samples stored in a durable ordered key-value store so the
buffer can exceed RAM and survive restarts.

Store layout:
- Key: slot index as a minimal-length unsigned varint
- Value: pickled sample (decoded through a SchemaRegistry)

Metadata (store path, store options, capacity, running count) is serialized
separately with dumps_metadata() and restored with from_metadata(), which
reopens the existing store and continues the reservoir process where it left
off. The running count and the slot writes are not committed atomically
together: a crash between them can leave the two slightly out of step.
"""

from __future__ import annotations

import io
import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

import numpy as np

from mccfr.errors import CorruptStateError
from mccfr.memory.sample import Sample
from mccfr.memory.store import KeyValueStore, SQLiteStore, StoreOptions
from mccfr.serialization import (
    SchemaRegistry,
    atomic_write_bytes,
    decode_uvarint,
    encode_uvarint,
    expect_type,
)

logger = logging.getLogger(__name__)

METADATA_FORMAT = "reservoir_metadata"
METADATA_VERSION = 1


def reservoir_registry(*sample_types: type) -> SchemaRegistry:
    """Registry able to decode reservoir metadata and samples.

    Args:
        *sample_types: Sample types stored in the buffer besides Sample
    """
    return SchemaRegistry(
        types=[StoreOptions, Sample, *sample_types],
        formats={METADATA_FORMAT: METADATA_VERSION},
    )


class PersistentReservoirBuffer:
    """Reservoir sampling buffer whose slots live in a KeyValueStore.

    The store defaults to a SQLiteStore opened at ``path`` with ``options``.
    Any other KeyValueStore may be passed in; ``path`` and ``options`` are
    then only recorded in the metadata.

    Attributes:
        path: Directory holding the store
        options: Options the store was opened with
        capacity: Maximum number of samples kept
    """

    def __init__(
        self,
        path: str | Path,
        capacity: int,
        options: Optional[StoreOptions] = None,
        registry: Optional[SchemaRegistry] = None,
        seed: Optional[int] = None,
        store: Optional[KeyValueStore] = None,
    ):
        if capacity <= 0:
            raise ValueError(f"Capacity must be positive, got {capacity}")

        self.path = Path(path)
        self.options = options if options is not None else StoreOptions()
        self.capacity = capacity
        self.registry = registry if registry is not None else reservoir_registry()

        self._lock = threading.Lock()
        self._n = 0
        self._rng = np.random.default_rng(seed)
        self._store = store if store is not None else SQLiteStore(self.path, self.options)

    @property
    def total_seen(self) -> int:
        """Number of samples offered to the buffer so far."""
        return self._n

    def add_sample(self, sample: Any) -> None:
        """Offer a sample to the reservoir.

        The first ``capacity`` samples fill slots in order. After that, sample n
        replaces a uniformly chosen slot with probability capacity / n.
        """
        with self._lock:
            self._n += 1
            if self._n <= self.capacity:
                self._put_sample(self._n - 1, sample)
            else:
                m = int(self._rng.integers(0, self._n))
                if m < self.capacity:
                    self._put_sample(m, sample)

    def _put_sample(self, slot: int, sample: Any) -> None:
        self._store.put(encode_uvarint(slot), self.registry.dumps(sample))

    def get_samples(self) -> list[Any]:
        """All stored samples, in slot order.

        Raises:
            CorruptStateError: If a stored record cannot be decoded
        """
        slots = []
        for key, value in self._store.scan():
            slot, consumed = decode_uvarint(key)
            if consumed != len(key):
                raise CorruptStateError(f"Invalid slot key: {key!r}")
            slots.append((slot, self.registry.loads(value)))

        # Bytewise varint order is not numeric order past slot 127
        slots.sort(key=lambda item: item[0])
        return [sample for _, sample in slots]

    def __len__(self) -> int:
        return min(self._n, self.capacity)

    def close(self) -> None:
        self._store.close()

    def __enter__(self) -> PersistentReservoirBuffer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"PersistentReservoirBuffer(path='{self.path}', "
            f"capacity={self.capacity}, "
            f"total_seen={self._n})"
        )

    # Metadata persistence

    def dumps_metadata(self) -> bytes:
        """Serialize store location, store options, capacity and running count."""
        buf = io.BytesIO()
        with self._lock:
            writer = self.registry.writer(buf, METADATA_FORMAT)
            writer.write(str(self.path))
            writer.write(self.options)
            writer.write(self.capacity)
            writer.write(self._n)
        return buf.getvalue()

    def save_metadata(self, path: str | Path) -> None:
        atomic_write_bytes(path, self.dumps_metadata())
        logger.info(f"Saved reservoir metadata to {path} (total_seen={self._n})")

    @classmethod
    def from_metadata(
        cls,
        data: bytes,
        registry: Optional[SchemaRegistry] = None,
        seed: Optional[int] = None,
    ) -> PersistentReservoirBuffer:
        """Reopen a buffer from serialized metadata.

        The store must already exist: it is reopened with error_if_missing so a
        missing store fails rather than silently starting an empty one.

        Raises:
            CorruptStateError: If the metadata cannot be decoded
            StoreOpenError: If the store cannot be reopened
        """
        registry = registry if registry is not None else reservoir_registry()
        reader = registry.reader(io.BytesIO(data), METADATA_FORMAT)

        path = expect_type(reader.read(), str, "store path")
        options = expect_type(reader.read(), StoreOptions, "store options")
        capacity = expect_type(reader.read(), int, "capacity")
        n = expect_type(reader.read(), int, "total seen")
        if capacity <= 0 or n < 0:
            raise CorruptStateError(f"Invalid reservoir metadata: capacity={capacity!r}, n={n!r}")

        buffer = cls(
            path,
            capacity,
            options=replace(options, error_if_missing=True),
            registry=registry,
            seed=seed,
        )
        buffer._n = n
        logger.info(f"Reopened reservoir at {path} (capacity={capacity}, total_seen={n})")
        return buffer

    @classmethod
    def load_metadata(
        cls,
        path: str | Path,
        registry: Optional[SchemaRegistry] = None,
        seed: Optional[int] = None,
    ) -> PersistentReservoirBuffer:
        with open(path, "rb") as f:
            data = f.read()
        return cls.from_metadata(data, registry=registry, seed=seed)
