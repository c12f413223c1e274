"""Reusable float32 scratch buffers for traversal temporaries.

A traversal needs one per-action vector at every player node it visits.
Over millions of iterations, reusing those vectors from a free list avoids
allocating a fresh array per node.

Buffers handed out by the pool are views of exactly the requested length over
a pooled array whose capacity is the next power of two. Their contents are
whatever the previous user left behind: callers must overwrite every slot
they read.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Iterator

import numpy as np
import numpy.typing as npt


def _bucket_size(length: int) -> int:
    """Smallest power of two >= length (minimum 1)."""
    return 1 << max(length - 1, 0).bit_length()


class FloatSlicePool:
    """Free-list pool of float32 buffers for single-threaded use."""

    def __init__(self):
        self._free: dict[int, list[npt.NDArray[np.float32]]] = defaultdict(list)

    def alloc(self, length: int) -> npt.NDArray[np.float32]:
        """Get an uninitialized buffer with ``length`` usable slots."""
        if length < 0:
            raise ValueError(f"Length must be non-negative, got {length}")
        base = self._pop(_bucket_size(length))
        return base[:length]

    def free(self, buffer: npt.NDArray[np.float32]) -> None:
        """Return a buffer obtained from :meth:`alloc` to the free list."""
        base = buffer.base if buffer.base is not None else buffer
        self._push(base)

    @contextmanager
    def borrow(self, length: int) -> Iterator[npt.NDArray[np.float32]]:
        """Scoped allocation: the buffer is freed on every exit path."""
        buffer = self.alloc(length)
        try:
            yield buffer
        finally:
            self.free(buffer)

    def num_free(self) -> int:
        """Total number of buffers currently on the free lists."""
        return sum(len(bucket) for bucket in self._free.values())

    def _pop(self, capacity: int) -> npt.NDArray[np.float32]:
        bucket = self._free[capacity]
        if bucket:
            return bucket.pop()
        return np.empty(capacity, dtype=np.float32)

    def _push(self, base: npt.NDArray[np.float32]) -> None:
        self._free[len(base)].append(base)


class ThreadSafeFloatSlicePool(FloatSlicePool):
    """FloatSlicePool whose free lists are guarded by a lock.

    Use when traversals on several threads share one pool.
    """

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()

    def num_free(self) -> int:
        with self._lock:
            return super().num_free()

    def _pop(self, capacity: int) -> npt.NDArray[np.float32]:
        with self._lock:
            bucket = self._free[capacity]
            if bucket:
                return bucket.pop()
        return np.empty(capacity, dtype=np.float32)

    def _push(self, base: npt.NDArray[np.float32]) -> None:
        with self._lock:
            self._free[len(base)].append(base)
