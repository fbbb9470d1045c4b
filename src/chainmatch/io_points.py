"""Loading and generating point sets."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
import yaml

from .vector import Vector2

log = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml", ".json"}

# Reference mesh, relative to its origin.
DEMO_MESH: Tuple[Tuple[float, float], ...] = (
    (10.0, 10.0),
    (50.0, 25.0),
    (60.0, 60.0),
    (30.0, 80.0),
    (10.0, 40.0),
)


def parse_points(raw: Any, name: str = "points") -> List[Vector2]:
    try:
        arr = np.asarray(raw, dtype=float)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a list of [x, y] pairs") from exc
    if arr.size == 0:
        return []
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"{name} must have shape (N, 2), got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} contains non-finite coordinates")
    return [Vector2(float(x), float(y)) for x, y in arr]


def points_to_array(points: Sequence[Vector2]) -> np.ndarray:
    return np.array([p.as_tuple() for p in points], dtype=float).reshape(-1, 2)


def _read_yaml(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"Point file not found: {path}")
    return yaml.safe_load(path.read_text(encoding="utf-8"))


def load_point_sets(path: Path) -> Tuple[List[Vector2], List[Vector2]]:
    """Read a YAML/JSON mapping holding ``template`` and ``target`` lists."""
    data = _read_yaml(Path(path))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping with 'template' and 'target'")
    missing = [key for key in ("template", "target") if key not in data]
    if missing:
        raise ValueError(f"{path}: missing {', '.join(missing)}")
    return parse_points(data["template"], "template"), parse_points(data["target"], "target")


def load_points_csv(path: Path) -> List[Vector2]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Point file not found: {path}")
    rows: List[Tuple[str, str]] = []
    with open(path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        fields = [name.strip().lower() for name in reader.fieldnames or []]
        if "x" not in fields or "y" not in fields:
            raise ValueError(f"{path}: CSV needs an 'x,y' header")
        reader.fieldnames = fields
        for row in reader:
            rows.append((row["x"], row["y"]))
    return parse_points(rows, path.name)


def load_points(path: Path) -> List[Vector2]:
    """One point list from a CSV file, or from YAML/JSON (plain list or ``points`` key)."""
    path = Path(path)
    if path.suffix.lower() == ".csv":
        return load_points_csv(path)
    data = _read_yaml(path)
    if isinstance(data, dict):
        if "points" not in data:
            raise ValueError(f"{path}: expected a list of points or a 'points' key")
        data = data["points"]
    return parse_points(data, path.name)


def load_pair(
    template_path: Path, target_path: Optional[Path] = None
) -> Tuple[List[Vector2], List[Vector2]]:
    if target_path is None:
        if Path(template_path).suffix.lower() not in _YAML_SUFFIXES:
            raise ValueError("A single point file must be YAML or JSON with 'template' and 'target'")
        template, target = load_point_sets(template_path)
    else:
        template = load_points(template_path)
        target = load_points(target_path)
    log.debug("Loaded %d template and %d target points", len(template), len(target))
    return template, target


def demo_mesh(origin: Vector2 = Vector2(0.0, 0.0)) -> List[Vector2]:
    return [Vector2(x, y).add(origin) for x, y in DEMO_MESH]


def transform_points(
    points: Sequence[Vector2],
    rotation_rad: float = 0.0,
    scale: float = 1.0,
    translation: Vector2 = Vector2(0.0, 0.0),
    *,
    center: Optional[Vector2] = None,
) -> List[Vector2]:
    """Rotate and scale about *center* (default: the centroid), then translate."""
    arr = points_to_array(points)
    if arr.shape[0] == 0:
        return []
    pivot = arr.mean(axis=0) if center is None else np.array(center.as_tuple())
    ca, sa = np.cos(rotation_rad), np.sin(rotation_rad)
    R = np.array([[ca, -sa], [sa, ca]], dtype=float)
    out = (arr - pivot) @ (scale * R).T + pivot + np.array(translation.as_tuple())
    return [Vector2(float(x), float(y)) for x, y in out]


def shuffle_points(
    points: Sequence[Vector2], seed: Optional[int] = None
) -> Tuple[List[Vector2], List[int]]:
    """Return ``shuffled, order`` with ``shuffled[j] == points[order[j]]``."""
    rng = np.random.default_rng(seed)
    order = [int(i) for i in rng.permutation(len(points))]
    return [points[i] for i in order], order


def inverse_permutation(order: Sequence[int]) -> List[int]:
    return [int(i) for i in np.argsort(np.asarray(order, dtype=int), kind="stable")]


__all__ = [
    "DEMO_MESH",
    "demo_mesh",
    "inverse_permutation",
    "load_pair",
    "load_point_sets",
    "load_points",
    "load_points_csv",
    "parse_points",
    "points_to_array",
    "shuffle_points",
    "transform_points",
]
