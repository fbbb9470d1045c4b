"""Two-anchor similarity transform estimation."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .errors import DegenerateGeometryError, InvalidInputError
from .sequences import MappedView, map_view
from .vector import Vector2


@dataclass(frozen=True)
class SimilarityTransform:
    """``p -> (p - origin).cross(operator) + anchor``.

    ``operator`` packs rotation and uniform scale into one vector: its angle is
    the rotation, its length the scale.
    """

    origin: Vector2
    operator: Vector2
    anchor: Vector2

    @property
    def rotation_rad(self) -> float:
        return self.operator.angle()

    @property
    def rotation_deg(self) -> float:
        return math.degrees(self.rotation_rad)

    @property
    def scale(self) -> float:
        return self.operator.length()

    def map(self, point: Vector2) -> Vector2:
        return point.sub(self.origin).cross(self.operator).add(self.anchor)

    def A(self) -> np.ndarray:
        ox, oy = self.operator
        return np.array([[ox, -oy], [oy, ox]], dtype=float)

    def translation(self) -> np.ndarray:
        return np.array(self.anchor.as_tuple()) - self.A() @ np.array(self.origin.as_tuple())

    def apply(self, pts: np.ndarray) -> np.ndarray:
        return (np.asarray(pts, dtype=float) @ self.A().T) + self.translation()

    def summary(self) -> str:
        tx, ty = self.translation()
        return (
            f"rot={self.rotation_deg:.3f}° | scale={self.scale:.6f} | "
            f"tx={tx:.3f} ty={ty:.3f}"
        )


def estimate_similarity(
    template: Sequence[Vector2], first: Vector2, second: Vector2
) -> SimilarityTransform:
    """Transform taking ``template[0]`` to *first* and ``template[1]`` to *second*."""
    if len(template) < 2:
        raise InvalidInputError("Template needs at least two points to estimate a transform")

    origin = template[0]
    b_template = template[1].sub(origin)
    b_target = second.sub(first)

    template_len = b_template.length()
    if template_len == 0.0:
        raise DegenerateGeometryError(
            f"First two template points coincide at ({origin.x}, {origin.y})"
        )

    target_len = b_target.length()
    if target_len == 0.0:
        # Zero scale: every template point collapses onto the anchor.
        return SimilarityTransform(origin, Vector2(0.0, 0.0), first)

    # Undo the template edge angle, then apply the target edge angle.
    rot = b_target.cross(b_template.neg_argument()).normalized()
    operator = rot.scale(target_len / template_len)
    return SimilarityTransform(origin, operator, first)


def get_expectations(
    template: Sequence[Vector2], first: Vector2, second: Vector2
) -> MappedView:
    """Where each template point lands under the transform anchored at *first*, *second*."""
    transform = estimate_similarity(template, first, second)
    return map_view(template, transform.map)


__all__ = ["SimilarityTransform", "estimate_similarity", "get_expectations"]
