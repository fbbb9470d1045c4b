from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, MutableMapping, Optional, Sequence, Tuple

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "configs" / "default.yaml"

HARDCODED_DEFAULTS: Dict[str, Any] = {
    "match": {
        "warn_points": 8,
        "max_points": 10,
    },
    "report": {
        "svg": True,
        "csv": True,
        "json": True,
        "precision": 4,
    },
    "overlay": {
        "radius": 10.0,
        "margin": 40.0,
    },
    "demo": {
        "origin_template": [200.0, 200.0],
        "origin_target": [500.0, 200.0],
        "rotation_deg": 0.0,
        "scale": 1.0,
        "shuffle": True,
        "seed": 0,
    },
}


def load_config(path: str) -> Any:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    return yaml.safe_load(p.read_text(encoding="utf-8"))


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key in base:
        value = base[key]
        if isinstance(value, Mapping):
            result[key] = copy.deepcopy(value)
        elif isinstance(value, list):
            result[key] = list(value)
        else:
            result[key] = value
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)  # type: ignore[arg-type]
        else:
            result[key] = value
    return result


def set_nested(config: MutableMapping[str, Any], path: Sequence[str], value: Any) -> None:
    if not path:
        return
    cursor: MutableMapping[str, Any] = config
    for key in path[:-1]:
        next_value = cursor.get(key)
        if not isinstance(next_value, MutableMapping):
            next_value = {}
            cursor[key] = next_value
        cursor = next_value
    cursor[path[-1]] = value


def parse_cli_override(entry: str) -> Tuple[Tuple[str, ...], Any]:
    """Split ``"match.warn_points=6"`` into a key path and a YAML-parsed value."""
    if "=" not in entry:
        raise ValueError("--opts expects 'path=value'")
    raw_path, raw_value = entry.split("=", 1)
    path = tuple(part.strip() for part in raw_path.split(".") if part.strip())
    if not path:
        raise ValueError("--opts needs a key path, e.g. report.precision=6")
    try:
        value = yaml.safe_load(raw_value)
    except yaml.YAMLError as exc:
        raise ValueError(f"--opts {raw_path}: could not parse value ({exc})") from exc
    return path, value


def load_config_with_defaults(
    path: Optional[Path] = None, overrides: Iterable[str] = ()
) -> Dict[str, Any]:
    raw_cfg: Dict[str, Any] = {}
    if path is not None:
        loaded = load_config(str(path))
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, MutableMapping):
            raise ValueError("Config root must be a mapping")
        raw_cfg = dict(loaded)
    config = deep_merge(HARDCODED_DEFAULTS, raw_cfg)
    for entry in overrides:
        key_path, value = parse_cli_override(entry)
        set_nested(config, key_path, value)
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "HARDCODED_DEFAULTS",
    "deep_merge",
    "load_config",
    "load_config_with_defaults",
    "parse_cli_override",
    "set_nested",
]
