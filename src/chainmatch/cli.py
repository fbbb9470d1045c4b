from __future__ import annotations

import logging
import math
import traceback
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from .config import DEFAULT_CONFIG_PATH, load_config_with_defaults, set_nested
from .errors import InvalidInputError
from .io_points import demo_mesh, inverse_permutation, load_pair, shuffle_points, transform_points
from .match import MatchResult, match_nodes
from .metrics import MetricsTracker, Timer, use_tracker
from .overlays import write_report_csv, write_report_json, write_svg_overlay
from .vector import Vector2


log = logging.getLogger(__name__)


class Logger:
    def __init__(self, verbose: bool) -> None:
        self.verbose = verbose
        theme = Theme({
            "info": "cyan",
            "step": "bold cyan",
            "warning": "bold yellow",
            "error": "bold red",
        })
        self.console = Console(theme=theme, highlight=False, record=False)
        self.err_console = Console(theme=theme, highlight=False, record=False, stderr=True)

    def _print(self, message: str, style: str | None = None, *, err: bool = False) -> None:
        target = self.err_console if err else self.console
        if style:
            target.print(f"[{style}]{message}[/{style}]")
        else:
            target.print(message)

    def info(self, message: str) -> None:
        self._print(message, style="info")

    def step(self, message: str) -> None:
        self.console.print(f"[step]▶ {message}")

    def warn(self, message: str) -> None:
        self._print(message, style="warning")

    def error(self, message: str) -> None:
        self._print(message, style="error", err=True)

    def debug(self, message: str) -> None:
        if self.verbose:
            self.console.print(f"[dim]{message}[/dim]")


class _LoggingBridge(logging.Handler):
    def __init__(self, cli_logger: Logger, level: int) -> None:
        super().__init__(level)
        self._cli_logger = cli_logger

    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        msg = self.format(record)
        if record.levelno >= logging.ERROR:
            self._cli_logger.error(msg)
        elif record.levelno >= logging.WARNING:
            self._cli_logger.warn(msg)
        elif record.levelno >= logging.INFO:
            self._cli_logger.info(msg)
        else:
            self._cli_logger.debug(msg)


def _install_bridge(logger: Logger, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    package_logger = logging.getLogger("chainmatch")
    package_logger.setLevel(log_level)
    package_logger.propagate = False
    for handler in list(package_logger.handlers):
        if isinstance(handler, _LoggingBridge):
            package_logger.removeHandler(handler)
    bridge = _LoggingBridge(logger, log_level)
    bridge.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(bridge)


def _load_config(config: Optional[Path], opts: Sequence[str]) -> Dict[str, Any]:
    try:
        return load_config_with_defaults(config, opts)
    except yaml.YAMLError as exc:
        raise ValueError(f"Could not read configuration: {exc}") from exc


def _format_float(value: Optional[float], digits: int) -> str:
    if value is None or math.isnan(value) or math.isinf(value):
        return "-"
    return f"{value:.{digits}f}"


def _format_point(point: Vector2, digits: int) -> str:
    return f"({_format_float(point.x, digits)}, {_format_float(point.y, digits)})"


def _build_summary_table(
    template: Sequence[Vector2],
    target: Sequence[Vector2],
    result: MatchResult,
    digits: int,
) -> Tuple[Sequence[str], List[List[str]]]:
    headers = ["Template", "Target", "Template point", "Expected", "Actual", "Residual"]
    rows: List[List[str]] = []
    for index, (expected, actual) in enumerate(result.pairs(target)):
        rows.append(
            [
                str(index),
                str(result.correspondence[index]),
                _format_point(template[index], digits),
                _format_point(expected, digits),
                _format_point(actual, digits),
                _format_float(expected.distance_to(actual), digits),
            ]
        )
    return headers, rows


def _summarize(
    logger: Logger,
    template: Sequence[Vector2],
    target: Sequence[Vector2],
    result: MatchResult,
    outputs: Mapping[str, str],
    digits: int,
) -> None:
    headers, rows = _build_summary_table(template, target, result, digits)
    summary_lines = [
        f"Error: {_format_float(result.error, digits + 2)}",
        f"Correspondence: {list(result.correspondence)}",
        result.transform.summary(),
        f"Orderings scored: {result.permutations_tried}",
    ]
    logger.console.rule("Match Summary")
    logger.console.print(Panel("\n".join(summary_lines), expand=False))
    table = Table(show_header=True, header_style="bold")
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*row)
    logger.console.print(table)
    if outputs:
        logger.console.print("Outputs:")
        for label, path in outputs.items():
            logger.console.print(f"  • {label}: {path}")


def _log_timing_summary(tracker: MetricsTracker) -> None:
    log.info("[timing] Total=%.3fs | Search=%.3fs", tracker.get_time("total.run"), tracker.get_time("match.search"))
    log.debug("[timing] %s", tracker.summary())


def _handle_known_exception(logger: Logger, exc: Exception, *, prefix: str | None = None) -> None:
    message = str(exc) if str(exc) else exc.__class__.__name__
    if prefix:
        message = f"{prefix}: {message}"
    logger.error(message)


def _run_match(
    logger: Logger,
    template: Sequence[Vector2],
    target: Sequence[Vector2],
    cfg: Mapping[str, Any],
    outdir: Path,
    basename: str,
) -> MatchResult:
    match_cfg = cfg.get("match", {})
    report_cfg = cfg.get("report", {})
    max_points = int(match_cfg.get("max_points", 10))
    if len(template) > max_points or len(target) > max_points:
        raise InvalidInputError(
            f"Point sets larger than match.max_points={max_points} are refused "
            f"(got {len(template)} and {len(target)})"
        )

    logger.step(f"Matching {len(template)} template points against {len(target)} target points")
    result = match_nodes(
        template,
        target,
        warn_points=int(match_cfg.get("warn_points", 8)),
    )

    precision = int(report_cfg.get("precision", 4))
    outputs: Dict[str, str] = {}
    with Timer("io.reports"):
        if report_cfg.get("svg", True):
            outputs["SVG"] = write_svg_overlay(str(outdir), basename, template, target, result, cfg)
        if report_cfg.get("csv", True):
            outputs["CSV"] = write_report_csv(str(outdir), basename, template, target, result, precision)
        if report_cfg.get("json", True):
            outputs["JSON"] = write_report_json(str(outdir), basename, template, target, result)

    _summarize(logger, template, target, result, outputs, precision)
    return result


app = typer.Typer(help="Match point sets under rotation, uniform scale and translation")


@app.command("match")
def match(
    template: Path = typer.Argument(
        ...,
        exists=True,
        readable=True,
        resolve_path=True,
        help="Template points (CSV/YAML), or one YAML/JSON file holding 'template' and 'target'",
    ),
    target: Optional[Path] = typer.Argument(
        None,
        exists=True,
        readable=True,
        resolve_path=True,
        help="Target points (CSV/YAML); omit when TEMPLATE holds both sets",
    ),
    config: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        resolve_path=True,
        show_default=True,
        help="Path to the YAML configuration",
    ),
    outdir: Path = typer.Option(Path("out"), "--outdir", resolve_path=True, help="Output directory"),
    svg: Optional[bool] = typer.Option(None, "--svg/--no-svg", help="Write the SVG overlay"),
    csv_report: Optional[bool] = typer.Option(None, "--csv/--no-csv", help="Write the CSV report"),
    json_report: Optional[bool] = typer.Option(None, "--json/--no-json", help="Write the JSON report"),
    opts: List[str] = typer.Option(
        [],
        "--opts",
        help="Override configuration values, e.g. --opts report.precision=6",
        show_default=False,
        metavar="PATH=VALUE",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    logger = Logger(verbose=verbose)
    _install_bridge(logger, verbose)
    tracker = MetricsTracker()

    try:
        with use_tracker(tracker):
            with Timer("total.run"):
                logger.step("Loading configuration")
                cfg = _load_config(config, opts)
                for key, value in (("svg", svg), ("csv", csv_report), ("json", json_report)):
                    if value is not None:
                        set_nested(cfg, ("report", key), value)

                logger.step("Loading point sets")
                template_points, target_points = load_pair(template, target)
                _run_match(logger, template_points, target_points, cfg, outdir, template.stem)
        _log_timing_summary(tracker)
    except (FileNotFoundError, ValueError, RuntimeError) as exc:
        _handle_known_exception(logger, exc, prefix="Error")
        raise typer.Exit(code=2) from exc
    except Exception as exc:  # pragma: no cover - fallback path
        _handle_known_exception(logger, exc, prefix="Unexpected error")
        if verbose:
            traceback.print_exc()
        raise typer.Exit(code=1) from exc


@app.command("demo")
def demo(
    rotation_deg: Optional[float] = typer.Option(
        None, "--rotation-deg", help="Rotate the target mesh by this many degrees"
    ),
    scale: Optional[float] = typer.Option(None, "--scale", min=0.0001, help="Scale the target mesh"),
    shuffle: Optional[bool] = typer.Option(
        None, "--shuffle/--no-shuffle", help="Scramble the order of the target points"
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the shuffle"),
    config: Path = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        resolve_path=True,
        show_default=True,
        help="Path to the YAML configuration",
    ),
    outdir: Path = typer.Option(Path("out"), "--outdir", resolve_path=True, help="Output directory"),
    opts: List[str] = typer.Option(
        [],
        "--opts",
        help="Override configuration values, e.g. --opts demo.rotation_deg=30",
        show_default=False,
        metavar="PATH=VALUE",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Match the built-in five-point mesh against a transformed copy of itself."""
    logger = Logger(verbose=verbose)
    _install_bridge(logger, verbose)
    tracker = MetricsTracker()

    try:
        with use_tracker(tracker):
            with Timer("total.run"):
                cfg = _load_config(config, opts)
                demo_cfg = cfg.setdefault("demo", {})
                for key, value in (
                    ("rotation_deg", rotation_deg),
                    ("scale", scale),
                    ("shuffle", shuffle),
                    ("seed", seed),
                ):
                    if value is not None:
                        demo_cfg[key] = value

                origin_template = Vector2.from_iterable(demo_cfg.get("origin_template", (200.0, 200.0)))
                origin_target = Vector2.from_iterable(demo_cfg.get("origin_target", (500.0, 200.0)))
                template_points = demo_mesh(origin_template)
                target_points = transform_points(
                    demo_mesh(origin_target),
                    math.radians(float(demo_cfg.get("rotation_deg", 0.0))),
                    float(demo_cfg.get("scale", 1.0)),
                )
                expected: List[int] = list(range(len(target_points)))
                if demo_cfg.get("shuffle", True):
                    target_points, order = shuffle_points(target_points, demo_cfg.get("seed"))
                    expected = inverse_permutation(order)
                logger.debug(f"Scrambled order maps template to target as {expected}")

                result = _run_match(logger, template_points, target_points, cfg, outdir, "demo")
                if list(result.correspondence) != expected:
                    logger.warn(
                        f"Recovered correspondence {list(result.correspondence)} differs from {expected}"
                    )
        _log_timing_summary(tracker)
    except (FileNotFoundError, ValueError, RuntimeError) as exc:
        _handle_known_exception(logger, exc, prefix="Error")
        raise typer.Exit(code=2) from exc
    except Exception as exc:  # pragma: no cover - fallback path
        _handle_known_exception(logger, exc, prefix="Unexpected error")
        if verbose:
            traceback.print_exc()
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()
