from __future__ import annotations


class FlockPuzzleError(Exception):
    """Base class for errors raised by the simulation core."""


class InvalidInput(FlockPuzzleError, ValueError):
    """An argument was missing or malformed (force vector, point, neighbor list, grid coordinate)."""


class InvariantViolation(FlockPuzzleError, RuntimeError):
    """Internal state broke an invariant that construction is supposed to guarantee."""
