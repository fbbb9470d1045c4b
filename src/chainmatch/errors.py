"""Exception types raised by the matching core."""
from __future__ import annotations


class InvalidInputError(ValueError):
    """Point sequences have mismatched lengths or too few points."""


class DegenerateGeometryError(ValueError):
    """Anchor points coincide, so no rotation or scale can be derived."""


class MatchCancelled(RuntimeError):
    """The caller asked the permutation search to stop early."""


__all__ = ["DegenerateGeometryError", "InvalidInputError", "MatchCancelled"]
