from __future__ import annotations

from typing import Iterable, List


class FallingBlocksError(Exception):
    """Base class for all errors raised by the package."""


class ConfigValidationError(FallingBlocksError, ValueError):
    """Raised when a configuration violates one or more constraints.

    All violations are collected, so `errors` lists every problem found and
    not just the first one.
    """

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = list(errors)
        message = "invalid configuration: " + "; ".join(self.errors)
        super().__init__(message)


class EngineInvariantError(FallingBlocksError, RuntimeError):
    """Raised when the engine detects a broken internal invariant."""


class StorageError(FallingBlocksError):
    """Raised when persisted data cannot be read or written."""
