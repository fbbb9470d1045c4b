from __future__ import annotations

import json
import math
import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from chainmatch.io_points import (
    demo_mesh,
    inverse_permutation,
    load_pair,
    load_point_sets,
    load_points,
    load_points_csv,
    parse_points,
    shuffle_points,
    transform_points,
)
from chainmatch.vector import Vector2


def test_parse_points_accepts_nested_lists() -> None:
    assert parse_points([[1, 2], [3.5, -4]]) == [Vector2(1.0, 2.0), Vector2(3.5, -4.0)]
    assert parse_points([]) == []


@pytest.mark.parametrize(
    "raw",
    [
        [1, 2, 3],
        [[1, 2, 3]],
        [[1, "a"]],
        [[1, float("nan")]],
    ],
)
def test_parse_points_rejects_bad_shapes(raw) -> None:
    with pytest.raises(ValueError):
        parse_points(raw, "template")


def test_load_point_sets_yaml(tmp_path: Path) -> None:
    path = tmp_path / "pair.yaml"
    path.write_text(
        "template: [[0, 0], [5, 0]]\ntarget:\n  - [1, 1]\n  - [1, 6]\n",
        encoding="utf-8",
    )
    template, target = load_point_sets(path)
    assert template == [Vector2(0.0, 0.0), Vector2(5.0, 0.0)]
    assert target == [Vector2(1.0, 1.0), Vector2(1.0, 6.0)]


def test_load_point_sets_json(tmp_path: Path) -> None:
    path = tmp_path / "pair.json"
    path.write_text(json.dumps({"template": [[0, 0], [1, 1]], "target": [[2, 2], [3, 3]]}), encoding="utf-8")
    template, target = load_pair(path)
    assert len(template) == len(target) == 2


def test_load_point_sets_missing_key(tmp_path: Path) -> None:
    path = tmp_path / "pair.yaml"
    path.write_text("template: [[0, 0], [5, 0]]\n", encoding="utf-8")
    with pytest.raises(ValueError, match="target"):
        load_point_sets(path)


def test_load_points_csv(tmp_path: Path) -> None:
    path = tmp_path / "pts.csv"
    path.write_text("X, Y\n1,2\n3.5,4\n", encoding="utf-8")
    assert load_points_csv(path) == [Vector2(1.0, 2.0), Vector2(3.5, 4.0)]


def test_load_points_csv_needs_header(tmp_path: Path) -> None:
    path = tmp_path / "pts.csv"
    path.write_text("a,b\n1,2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_points_csv(path)


def test_load_points_yaml_variants(tmp_path: Path) -> None:
    plain = tmp_path / "plain.yaml"
    plain.write_text("- [1, 2]\n- [3, 4]\n", encoding="utf-8")
    keyed = tmp_path / "keyed.yml"
    keyed.write_text("points: [[1, 2], [3, 4]]\n", encoding="utf-8")
    assert load_points(plain) == load_points(keyed)


def test_load_pair_from_two_files(tmp_path: Path) -> None:
    a = tmp_path / "a.csv"
    b = tmp_path / "b.yaml"
    a.write_text("x,y\n0,0\n1,0\n", encoding="utf-8")
    b.write_text("- [0, 0]\n- [0, 1]\n", encoding="utf-8")
    template, target = load_pair(a, b)
    assert template[1] == Vector2(1.0, 0.0)
    assert target[1] == Vector2(0.0, 1.0)


def test_load_pair_single_csv_rejected(tmp_path: Path) -> None:
    a = tmp_path / "a.csv"
    a.write_text("x,y\n0,0\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_pair(a)


def test_missing_point_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_points(tmp_path / "nope.yaml")


def test_demo_mesh_offset() -> None:
    mesh = demo_mesh(Vector2(200.0, 200.0))
    assert len(mesh) == 5
    assert mesh[0] == Vector2(210.0, 210.0)
    assert mesh[-1] == Vector2(210.0, 240.0)


def test_transform_points_about_origin() -> None:
    points = [Vector2(1.0, 0.0), Vector2(0.0, 2.0)]
    moved = transform_points(points, math.pi / 2, 2.0, Vector2(1.0, 1.0), center=Vector2(0.0, 0.0))
    assert moved[0].x == pytest.approx(1.0)
    assert moved[0].y == pytest.approx(3.0)
    assert moved[1].x == pytest.approx(-3.0)
    assert moved[1].y == pytest.approx(1.0)


def test_transform_points_about_centroid_keeps_centroid() -> None:
    points = demo_mesh()
    moved = transform_points(points, 1.0, 3.0)
    cx = sum(p.x for p in points) / len(points)
    cy = sum(p.y for p in points) / len(points)
    assert sum(p.x for p in moved) / len(moved) == pytest.approx(cx)
    assert sum(p.y for p in moved) / len(moved) == pytest.approx(cy)


def test_shuffle_points_is_reproducible() -> None:
    points = demo_mesh()
    shuffled, order = shuffle_points(points, 3)
    assert sorted(order) == list(range(len(points)))
    assert shuffled == [points[i] for i in order]
    assert shuffle_points(points, 3) == (shuffled, order)


def test_inverse_permutation() -> None:
    assert inverse_permutation([2, 0, 1, 3]) == [1, 2, 0, 3]
    order = [4, 2, 0, 1, 3]
    inverse = inverse_permutation(order)
    assert [order[i] for i in inverse] == list(range(5))
