"""Exhaustive point correspondence search.

``match_nodes`` tries every ordering of the target points. For each ordering
it anchors a similarity transform on the first two points and sums how far
each target point lies from where the transform puts its template partner.
The ordering with the smallest sum wins.

Correspondence convention: ``result.correspondence[i]`` is the index into the
caller's target list of the point matched to template point ``i``, and
``result.expectations[i]`` is where template point ``i`` is predicted to lie.
A consumer pairs ``expectations[i]`` with ``target[correspondence[i]]``.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from .errors import DegenerateGeometryError, InvalidInputError, MatchCancelled
from .estimate import SimilarityTransform, estimate_similarity, get_expectations
from .metrics import Timer, increment
from .sequences import IndexedView, index_permutations
from .vector import Vector2

log = logging.getLogger(__name__)

DEFAULT_WARN_POINTS = 8


@dataclass(frozen=True)
class CompareResult:
    error: float
    expectations: Sequence[Vector2]


@dataclass(frozen=True)
class MatchResult:
    error: float
    expectations: Tuple[Vector2, ...]
    correspondence: Tuple[int, ...]
    transform: SimilarityTransform
    permutations_tried: int

    def pairs(self, target: Sequence[Vector2]) -> Tuple[Tuple[Vector2, Vector2], ...]:
        """``(expected, actual)`` per template index."""
        return tuple(
            (expected, target[index])
            for expected, index in zip(self.expectations, self.correspondence)
        )

    def residuals(self, target: Sequence[Vector2]) -> Tuple[float, ...]:
        return tuple(expected.distance_to(actual) for expected, actual in self.pairs(target))


def compare_chains(template: Sequence[Vector2], target: Sequence[Vector2]) -> CompareResult:
    """Score *target*, taken in its given order, against *template*."""
    if len(template) != len(target):
        raise InvalidInputError(
            f"Template and target must have the same length ({len(template)} != {len(target)})"
        )
    if len(target) < 2:
        return CompareResult(0.0, target)

    expectations = get_expectations(template, target[0], target[1])
    error = 0.0
    for actual, expected in zip(target, expectations):
        error += actual.distance_to(expected)
    return CompareResult(error, expectations)


def _validate(template: Sequence[Vector2], target: Sequence[Vector2]) -> int:
    if len(template) != len(target):
        raise InvalidInputError(
            f"Template and target must have the same length ({len(template)} != {len(target)})"
        )
    n = len(template)
    if n < 2:
        raise InvalidInputError(f"At least two points are required, got {n}")
    if template[0].distance_to_squared(template[1]) == 0.0:
        raise DegenerateGeometryError(
            "The first two template points coincide; rotation and scale are undefined"
        )
    return n


def match_nodes(
    template: Sequence[Vector2],
    target: Sequence[Vector2],
    *,
    should_cancel: Optional[Callable[[], bool]] = None,
    warn_points: int = DEFAULT_WARN_POINTS,
) -> MatchResult:
    """Find the target ordering that best fits *template* under a similarity transform.

    Ties keep the first ordering found. *should_cancel* is polled before each
    ordering is scored; once it returns true ``MatchCancelled`` is raised.
    """
    n = _validate(template, target)
    if n > warn_points:
        log.warning("[match] %d points means %s orderings to score", n, f"{math.factorial(n):,}")
    log.debug("[match] searching %d points", n)

    best: Optional[CompareResult] = None
    best_permutation: Sequence[int] = ()
    tried = 0
    with Timer("match.search", logger=log):
        for permutation in index_permutations(n):
            if should_cancel is not None and should_cancel():
                raise MatchCancelled(f"Match cancelled after {tried} orderings")
            tried += 1
            candidate = compare_chains(template, IndexedView(target, permutation))
            if best is None or candidate.error < best.error:
                best = candidate
                best_permutation = permutation
                increment("match.improvements")
                log.debug("[match] #%d %s error=%.6g", tried, permutation, candidate.error)
    increment("match.permutations", tried)

    assert best is not None
    transform = estimate_similarity(
        template, target[best_permutation[0]], target[best_permutation[1]]
    )
    log.debug("[match] best error=%.6g correspondence=%s", best.error, best_permutation)
    return MatchResult(
        error=best.error,
        expectations=tuple(best.expectations),
        correspondence=tuple(best_permutation),
        transform=transform,
        permutations_tried=tried,
    )


__all__ = ["CompareResult", "MatchResult", "compare_chains", "match_nodes"]
