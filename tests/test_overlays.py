from __future__ import annotations

import csv
import json
import math
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest
from lxml import etree

from chainmatch.io_points import demo_mesh
from chainmatch.match import match_nodes
from chainmatch.overlays import (
    lerp_color,
    match_result_to_dict,
    write_report_csv,
    write_report_json,
    write_svg_overlay,
)
from chainmatch.vector import Vector2

SVG = "{http://www.w3.org/2000/svg}"


def _matched_pair():
    template = demo_mesh(Vector2(200.0, 200.0))
    aligned = [p.rotated(math.pi / 2).add(Vector2(500.0, 0.0)) for p in template]
    target = [aligned[2], aligned[0], aligned[4], aligned[1], aligned[3]]
    return template, target, match_nodes(template, target)


def test_lerp_color_endpoints() -> None:
    assert lerp_color((0, 0, 0), (255, 100, 50), 0.0) == "rgb(0, 0, 0)"
    assert lerp_color((0, 0, 0), (255, 100, 50), 1.0) == "rgb(255, 100, 50)"
    assert lerp_color((0, 0, 0), (100, 100, 100), 0.5) == "rgb(50, 50, 50)"


def test_write_svg_overlay(tmp_path: Path) -> None:
    template, target, result = _matched_pair()
    svg_path = write_svg_overlay(
        str(tmp_path), "pair", template, target, result, {"overlay": {"radius": 6, "margin": 10}}
    )
    assert Path(svg_path).name == "pair_overlay.svg"

    root = etree.parse(svg_path).getroot()
    circles = root.findall(f".//{SVG}circle")
    assert len(circles) == 3 * len(template)
    assert all(c.get("r") == "6.000" for c in circles)
    assert len(root.findall(f".//{SVG}polygon")) == 2

    readout = root.find(f".//{SVG}text[@id='error_readout']")
    assert readout is not None
    assert readout.text.startswith("Error:")

    ids = {g.get("id") for g in root.iter(f"{SVG}g")}
    for index in range(len(template)):
        assert f"template_{index}" in ids
        assert f"target_{index}" in ids
        assert f"expected_{index}" in ids


def test_write_report_csv(tmp_path: Path) -> None:
    template, target, result = _matched_pair()
    csv_path = write_report_csv(str(tmp_path), "pair", template, target, result, precision=3)

    with open(csv_path, newline="", encoding="utf-8") as handle:
        rows = list(csv.DictReader(handle))

    assert len(rows) == len(template)
    assert [int(row["target_index"]) for row in rows] == list(result.correspondence)
    assert rows[0]["template_x"] == "210.000"
    assert float(rows[0]["rotation_deg"]) == pytest.approx(90.0)
    for row in rows:
        assert float(row["residual"]) == pytest.approx(0.0, abs=1e-3)


def test_write_report_json(tmp_path: Path) -> None:
    template, target, result = _matched_pair()
    json_path = write_report_json(str(tmp_path), "pair", template, target, result)

    payload = json.loads(Path(json_path).read_text(encoding="utf-8"))
    assert payload["correspondence"] == [1, 3, 0, 4, 2]
    assert payload["error"] == pytest.approx(0.0, abs=1e-6)
    assert payload["permutations_tried"] == 120
    assert payload["transform"]["scale"] == pytest.approx(1.0)
    assert len(payload["expectations"]) == len(payload["residuals"]) == 5


def test_match_result_to_dict_is_plain_data() -> None:
    template, target, result = _matched_pair()
    payload = match_result_to_dict(template, target, result)
    json.dumps(payload)
    assert payload["template"][0] == [210.0, 210.0]
