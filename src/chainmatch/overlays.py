from __future__ import annotations

import csv
import json
import math
import os
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from lxml import etree

from .match import MatchResult
from .vector import Vector2, lerp

SVG_NS = "http://www.w3.org/2000/svg"
SVG_RED = "#F44336"
SVG_BLUE = "#2979FF"

TEMPLATE_GRADIENT = ((138, 22, 22), (255, 133, 133))
TARGET_GRADIENT = ((28, 46, 117), (156, 176, 255))


def _format_float(value: Optional[float], precision: int = 4) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return ""
    fmt = f"{{:.{precision}f}}"
    return fmt.format(value)


def lerp_color(
    start: Tuple[int, int, int], end: Tuple[int, int, int], coef: float
) -> str:
    r, g, b = (int(math.floor(lerp(a, z, coef))) for a, z in zip(start, end))
    return f"rgb({r}, {g}, {b})"


def _bounds(points: Sequence[Vector2], margin: float) -> Tuple[float, float, float, float]:
    xs = [p.x for p in points if math.isfinite(p.x)]
    ys = [p.y for p in points if math.isfinite(p.y)]
    if not xs or not ys:
        return -margin, -margin, 2 * margin, 2 * margin
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    return (
        min_x - margin,
        min_y - margin,
        (max_x - min_x) + 2 * margin,
        (max_y - min_y) + 2 * margin,
    )


def _tag(name: str) -> str:
    return f"{{{SVG_NS}}}{name}"


def _points_attr(points: Sequence[Vector2]) -> str:
    return " ".join(f"{_format_float(p.x, 3)},{_format_float(p.y, 3)}" for p in points)


def _add_node(
    parent: etree._Element,
    node_id: str,
    center: Vector2,
    radius: float,
    color: str,
    label: str,
    *,
    filled: bool,
) -> None:
    group = etree.SubElement(parent, _tag("g"), id=node_id)
    circle_attrs = {
        "cx": _format_float(center.x, 3),
        "cy": _format_float(center.y, 3),
        "r": _format_float(radius, 3),
    }
    if filled:
        circle_attrs["fill"] = color
    else:
        circle_attrs.update({"fill": "none", "stroke": color, "stroke-width": "1.5"})
    etree.SubElement(group, _tag("circle"), **circle_attrs)
    text_node = etree.SubElement(
        group,
        _tag("text"),
        x=_format_float(center.x, 3),
        y=_format_float(center.y, 3),
        fill="#FFFFFF" if filled else "#000000",
        **{
            "font-size": "12",
            "font-family": "monospace",
            "text-anchor": "middle",
            "dominant-baseline": "middle",
        },
    )
    text_node.text = label


def write_svg_overlay(
    outdir: str,
    basename: str,
    template: Sequence[Vector2],
    target: Sequence[Vector2],
    result: MatchResult,
    cfg: Optional[Mapping[str, Any]] = None,
) -> str:
    """Draw both point sets, the matched order and the expectations as SVG."""
    overlay_cfg = dict((cfg or {}).get("overlay", {}))
    radius = float(overlay_cfg.get("radius", 10.0))
    margin = float(overlay_cfg.get("margin", 40.0))

    os.makedirs(outdir, exist_ok=True)
    out_svg = os.path.join(outdir, f"{basename}_overlay.svg")

    all_points: List[Vector2] = [*template, *target, *result.expectations]
    x, y, width, height = _bounds(all_points, margin)
    root = etree.Element(
        _tag("svg"),
        nsmap={None: SVG_NS},
        width=_format_float(width, 1),
        height=_format_float(height, 1),
        viewBox=" ".join(_format_float(v, 3) for v in (x, y, width, height)),
    )

    count = max(len(template), 1)
    connectors = etree.SubElement(root, _tag("g"), id="CONNECTORS", fill="none")
    etree.SubElement(
        connectors,
        _tag("polygon"),
        id="template_chain",
        points=_points_attr(template),
        stroke=SVG_RED,
        **{"stroke-width": "1.5"},
    )
    etree.SubElement(
        connectors,
        _tag("polygon"),
        id="target_chain",
        points=_points_attr([target[i] for i in result.correspondence]),
        stroke=SVG_BLUE,
        **{"stroke-width": "1.5"},
    )

    nodes = etree.SubElement(root, _tag("g"), id="NODES")
    for index, point in enumerate(template):
        color = lerp_color(*TEMPLATE_GRADIENT, index / count)
        _add_node(nodes, f"template_{index}", point, radius, color, str(index), filled=True)

    for index, (expected, target_index) in enumerate(
        zip(result.expectations, result.correspondence)
    ):
        color = lerp_color(*TARGET_GRADIENT, index / count)
        _add_node(
            nodes, f"target_{target_index}", target[target_index], radius, color, str(index), filled=True
        )
        _add_node(nodes, f"expected_{index}", expected, radius, color, str(index), filled=False)

    hud = etree.SubElement(
        root,
        _tag("text"),
        id="error_readout",
        x=_format_float(x + 4.0, 3),
        y=_format_float(y + 4.0, 3),
        fill="#000000",
        **{"font-size": "16", "font-family": "monospace", "dominant-baseline": "hanging"},
    )
    hud.text = f"Error: {_format_float(result.error, 6)}"

    etree.ElementTree(root).write(out_svg, encoding="utf-8", xml_declaration=True, pretty_print=True)
    return out_svg


def _report_rows(
    template: Sequence[Vector2],
    target: Sequence[Vector2],
    result: MatchResult,
) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for index, (expected, target_index) in enumerate(
        zip(result.expectations, result.correspondence)
    ):
        actual = target[target_index]
        rows.append(
            {
                "template_index": index,
                "target_index": target_index,
                "template": template[index],
                "expected": expected,
                "actual": actual,
                "residual": expected.distance_to(actual),
            }
        )
    return rows


def write_report_csv(
    outdir: str,
    basename: str,
    template: Sequence[Vector2],
    target: Sequence[Vector2],
    result: MatchResult,
    precision: int = 4,
) -> str:
    os.makedirs(outdir, exist_ok=True)
    csv_path = os.path.join(outdir, f"{basename}_match.csv")

    fieldnames = [
        "template_index",
        "target_index",
        "template_x",
        "template_y",
        "expected_x",
        "expected_y",
        "actual_x",
        "actual_y",
        "residual",
        "error",
        "rotation_deg",
        "scale",
    ]

    with open(csv_path, "w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=fieldnames)
        writer.writeheader()
        for row in _report_rows(template, target, result):
            writer.writerow(
                {
                    "template_index": row["template_index"],
                    "target_index": row["target_index"],
                    "template_x": _format_float(row["template"].x, precision),
                    "template_y": _format_float(row["template"].y, precision),
                    "expected_x": _format_float(row["expected"].x, precision),
                    "expected_y": _format_float(row["expected"].y, precision),
                    "actual_x": _format_float(row["actual"].x, precision),
                    "actual_y": _format_float(row["actual"].y, precision),
                    "residual": _format_float(row["residual"], precision),
                    "error": _format_float(result.error, precision),
                    "rotation_deg": _format_float(result.transform.rotation_deg, precision),
                    "scale": _format_float(result.transform.scale, precision),
                }
            )
    return csv_path


def match_result_to_dict(
    template: Sequence[Vector2],
    target: Sequence[Vector2],
    result: MatchResult,
) -> Dict[str, Any]:
    tx, ty = (float(v) for v in result.transform.translation())
    return {
        "error": result.error,
        "correspondence": list(result.correspondence),
        "expectations": [list(p.as_tuple()) for p in result.expectations],
        "template": [list(p.as_tuple()) for p in template],
        "target": [list(p.as_tuple()) for p in target],
        "residuals": [row["residual"] for row in _report_rows(template, target, result)],
        "transform": {
            "rotation_deg": result.transform.rotation_deg,
            "scale": result.transform.scale,
            "tx": tx,
            "ty": ty,
        },
        "permutations_tried": result.permutations_tried,
    }


def write_report_json(
    outdir: str,
    basename: str,
    template: Sequence[Vector2],
    target: Sequence[Vector2],
    result: MatchResult,
) -> str:
    os.makedirs(outdir, exist_ok=True)
    json_path = os.path.join(outdir, f"{basename}_match.json")
    payload = match_result_to_dict(template, target, result)
    with open(json_path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
    return json_path


__all__ = [
    "lerp_color",
    "match_result_to_dict",
    "write_report_csv",
    "write_report_json",
    "write_svg_overlay",
]
