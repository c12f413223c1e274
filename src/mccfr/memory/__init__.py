"""Reservoir buffers collecting training samples for Deep CFR."""

from mccfr.memory.disk import PersistentReservoirBuffer, reservoir_registry
from mccfr.memory.reservoir import ReservoirBuffer
from mccfr.memory.sample import Sample
from mccfr.memory.store import KeyValueStore, SQLiteStore, StoreOptions

__all__ = [
    "PersistentReservoirBuffer",
    "reservoir_registry",
    "ReservoirBuffer",
    "Sample",
    "KeyValueStore",
    "SQLiteStore",
    "StoreOptions",
]
