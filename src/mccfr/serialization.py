"""Binary encoding for persisted solver state.

A persisted stream is a header record followed by a sequence of pickled
records, written one after another on the same file object. Decoding goes
through a SchemaRegistry that is constructed by the caller and passed in:

- only classes registered on it (plus the numpy helpers needed to rebuild
  arrays) can be instantiated while decoding
- the header must name a format the registry knows, at the same version

Slot keys for the reservoir store are unsigned LEB128 varints, the same
minimal-length encoding used by protobuf.
"""

from __future__ import annotations

import io
import os
import pickle
from pathlib import Path
from typing import Any, BinaryIO, Iterable, Iterator

from mccfr.errors import CorruptStateError


# Globals numpy emits when pickling arrays, dtypes and scalars.
# Module paths differ between numpy 1.x (numpy.core) and 2.x (numpy._core).
_NUMPY_GLOBALS = frozenset({"_reconstruct", "_frombuffer", "ndarray", "dtype", "scalar"})

_DECODE_ERRORS = (
    pickle.UnpicklingError,
    EOFError,
    AttributeError,
    ImportError,
    IndexError,
    KeyError,
    TypeError,
    ValueError,
)


def encode_uvarint(value: int) -> bytes:
    """Encode a non-negative integer as a minimal-length unsigned varint.

    Args:
        value: Integer to encode (must be >= 0)

    Returns:
        Encoded bytes (1 byte for values < 128)
    """
    if value < 0:
        raise ValueError(f"Cannot encode negative value as uvarint: {value}")

    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def decode_uvarint(data: bytes) -> tuple[int, int]:
    """Decode an unsigned varint from the start of ``data``.

    Returns:
        Tuple of (value, number of bytes consumed)

    Raises:
        CorruptStateError: If the buffer ends before the varint terminates
    """
    value = 0
    shift = 0
    for i, byte in enumerate(data):
        value |= (byte & 0x7F) << shift
        if byte < 0x80:
            return value, i + 1
        shift += 7
    raise CorruptStateError(f"Truncated uvarint: {bytes(data)!r}")


class SchemaRegistry:
    """Allow-list of types and stream formats that may be decoded.

    Example:
        >>> registry = SchemaRegistry(types=[Policy], formats={"policy_table": 1})
        >>> registry.register(MyDiscountSchedule)
    """

    def __init__(self, types: Iterable[type] = (), formats: dict[str, int] | None = None):
        self._types: dict[tuple[str, str], type] = {}
        self._formats: dict[str, int] = dict(formats or {})
        for cls in types:
            self.register(cls)

    def register(self, cls: type) -> type:
        """Allow instances of ``cls`` to be decoded. Usable as a decorator."""
        self._types[(cls.__module__, cls.__qualname__)] = cls
        return cls

    def register_format(self, name: str, version: int) -> None:
        """Declare a stream format and the version this process reads and writes."""
        self._formats[name] = version

    def format_version(self, name: str) -> int:
        try:
            return self._formats[name]
        except KeyError:
            raise CorruptStateError(f"Unknown stream format: {name!r}") from None

    def __contains__(self, cls: type) -> bool:
        return (cls.__module__, cls.__qualname__) in self._types

    def resolve(self, module: str, name: str) -> type | None:
        """Look up a registered class by its pickled module and qualified name."""
        return self._types.get((module, name))

    def is_numpy_global(self, module: str, name: str) -> bool:
        return (module == "numpy" or module.startswith("numpy.")) and name in _NUMPY_GLOBALS

    def dumps(self, obj: Any) -> bytes:
        """Encode a single object."""
        return pickle.dumps(obj, protocol=pickle.HIGHEST_PROTOCOL)

    def loads(self, data: bytes) -> Any:
        """Decode a single object produced by :meth:`dumps`."""
        return _load(io.BytesIO(data), self)

    def writer(self, stream: BinaryIO, fmt: str) -> RecordWriter:
        return RecordWriter(stream, self, fmt)

    def reader(self, stream: BinaryIO, fmt: str) -> RecordReader:
        return RecordReader(stream, self, fmt)


class _RestrictedUnpickler(pickle.Unpickler):
    """Unpickler that only resolves globals allowed by a SchemaRegistry."""

    def __init__(self, stream: BinaryIO, registry: SchemaRegistry):
        super().__init__(stream)
        self._registry = registry

    def find_class(self, module: str, name: str) -> Any:
        cls = self._registry.resolve(module, name)
        if cls is not None:
            return cls
        if self._registry.is_numpy_global(module, name):
            return super().find_class(module, name)
        raise CorruptStateError(f"Type {module}.{name} is not registered for decoding")


def _load(stream: BinaryIO, registry: SchemaRegistry) -> Any:
    try:
        return _RestrictedUnpickler(stream, registry).load()
    except CorruptStateError:
        raise
    except _DECODE_ERRORS as exc:
        raise CorruptStateError(f"Failed to decode record: {exc}") from exc


class RecordWriter:
    """Writes a format header followed by any number of records."""

    def __init__(self, stream: BinaryIO, registry: SchemaRegistry, fmt: str):
        self._stream = stream
        self._registry = registry
        self.write({"format": fmt, "version": registry.format_version(fmt)})

    def write(self, obj: Any) -> None:
        pickle.dump(obj, self._stream, protocol=pickle.HIGHEST_PROTOCOL)


class RecordReader:
    """Reads records written by :class:`RecordWriter`, validating the header."""

    def __init__(self, stream: BinaryIO, registry: SchemaRegistry, fmt: str):
        self._stream = stream
        self._registry = registry

        header = self.read()
        expected = registry.format_version(fmt)
        if not isinstance(header, dict) or header.get("format") != fmt:
            raise CorruptStateError(f"Expected a {fmt!r} stream, got header {header!r}")
        if header.get("version") != expected:
            raise CorruptStateError(
                f"Unsupported {fmt!r} version {header.get('version')!r} (expected {expected})"
            )

    def read(self) -> Any:
        return _load(self._stream, self._registry)

    def read_many(self, count: int) -> Iterator[Any]:
        for _ in range(count):
            yield self.read()


def atomic_write_bytes(path: str | Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temporary file and an atomic rename."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.parent / f"{path.name}.tmp"

    try:
        with open(tmp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path.exists():
            tmp_path.unlink()
        raise


def expect_type(value: Any, expected_type: type, what: str) -> Any:
    """Return ``value`` if it is an ``expected_type``, else raise CorruptStateError.

    bool is an int subclass but never a valid count, capacity or iteration,
    so it is rejected even when ``expected_type`` is int.
    """
    if not isinstance(value, expected_type) or isinstance(value, bool):
        raise CorruptStateError(f"Expected {what} of type {expected_type.__name__}, got {value!r}")
    return value
