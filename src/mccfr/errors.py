"""Exceptions raised by the CFR engine.

None of these are meant to be retried: each one signals a bug in a game model
or persisted state that can no longer be trusted.
"""


class MCCFRError(Exception):
    """Base class for all errors raised by this package."""


class ActionCountMismatchError(MCCFRError, RuntimeError):
    """An information set key resolved to a policy with a different action count.

    This means two distinct decision points share a key in the game model.
    """

    def __init__(self, key: bytes, expected: int, actual: int):
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Policy for infoset {key!r} has num_actions={expected} "
            f"but node has num_children={actual}"
        )


class CorruptStateError(MCCFRError, ValueError):
    """Persisted state could not be decoded."""


class StoreOpenError(MCCFRError, OSError):
    """The backing key-value store could not be opened."""
