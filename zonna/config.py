"""
Zonna configuration loader

This module centralizes every tunable threshold of the territory engine.
Each one has a single name and a single default, defined in
``zonna.constants``.

Precedence (highest to lowest) for any given value:
1) Explicit CLI argument (handled by each script)
2) Environment variables (ZONNA_<SECTION>_<KEY>)
3) User config: ~/.config/zonna/config.toml
4) Repo config: <repo_root>/config/config.toml
5) Hard defaults (zonna.constants)

Example config.toml:

    [filter]
    max_accuracy_m = 20
    min_movement_m = 3

    [closure]
    radius_m = 25
    min_loop_length_m = 100

    [conflicts]
    min_area_m2 = 10

Unknown sections and keys are ignored. A value that cannot be read as a
positive number raises ConfigError naming its source.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from . import constants
from .errors import ConfigError


# ---------------------------------------------------------------------------
# TOML loading helpers
# ---------------------------------------------------------------------------
def _load_toml(path: Optional[Path]) -> dict[str, Any]:
    """
    Parse a TOML file at `path`.

    Behavior:
    - If the path is None or the file does not exist, return {}.
    - If the file exists but is invalid TOML, raise ConfigError.
    """
    if path is None or not path.is_file():
        return {}

    try:
        return tomllib.loads(path.read_text(encoding="utf-8")) or {}
    except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to parse TOML config: {path} ({e})") from e


def _deep_get(d: dict[str, Any], dotted_key: str) -> Any:
    """
    Fetch nested dictionary values using dot-separated keys.

    Returns None if any part of the path is missing.
    """
    cur: Any = d
    for part in dotted_key.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return None
        cur = cur[part]
    return cur


def _as_positive_float(v: Any, origin: str) -> float:
    """
    Coerce a config value into a positive float.

    Booleans are rejected even though Python treats them as ints.
    """
    if isinstance(v, bool):
        raise ConfigError(f"Expected a number, got boolean ({origin})")
    try:
        value = float(v)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Expected a number, got {v!r} ({origin})") from e
    if not value > 0:
        raise ConfigError(f"Expected a positive number, got {v!r} ({origin})")
    return value


def _env_var(dotted_key: str) -> str:
    """`closure.radius_m` -> `ZONNA_CLOSURE_RADIUS_M`."""
    return "ZONNA_" + dotted_key.replace(".", "_").upper()


# ---------------------------------------------------------------------------
# Typed config dataclasses
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class FilterConfig:
    """Accuracy and movement gates applied to every raw fix."""

    max_accuracy_m: float = constants.MAX_ACCURACY_M
    min_movement_m: float = constants.MIN_MOVEMENT_M


@dataclass(frozen=True)
class ClosureConfig:
    """Loop closure thresholds (``dominio`` mode)."""

    radius_m: float = constants.CLOSURE_RADIUS_M
    min_loop_length_m: float = constants.MIN_LOOP_LENGTH_M


@dataclass(frozen=True)
class SmoothingConfig:
    window: int = constants.SMOOTH_WINDOW
    tolerance_m: float = constants.SIMPLIFY_TOLERANCE_M


@dataclass(frozen=True)
class AreaConfig:
    """Corridor half-width for the ``livre`` area strategy."""

    corridor_radius_m: float = constants.CORRIDOR_RADIUS_M


@dataclass(frozen=True)
class ConflictConfig:
    min_area_m2: float = constants.MIN_CONFLICT_AREA_M2


@dataclass(frozen=True)
class SessionConfig:
    """
    Session rules.

    ``livre_finalize_distance_m`` is the distance that unlocks finalize in
    open-ended capture.
    """

    livre_finalize_distance_m: float = constants.LIVRE_FINALIZE_DISTANCE_M
    tick_interval_s: float = constants.TICK_INTERVAL_S


@dataclass(frozen=True)
class ZonnaConfig:
    """
    Fully merged configuration.

    Attributes:
    - one typed block per component
    - source: provenance map showing where each value came from
    """

    filter: FilterConfig = field(default_factory=FilterConfig)
    closure: ClosureConfig = field(default_factory=ClosureConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    area: AreaConfig = field(default_factory=AreaConfig)
    conflicts: ConflictConfig = field(default_factory=ConflictConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    source: Dict[str, str] = field(default_factory=dict)


# dotted key -> (section attribute, field name, caster)
_KEYS: Dict[str, Tuple[str, str, type]] = {
    "filter.max_accuracy_m": ("filter", "max_accuracy_m", float),
    "filter.min_movement_m": ("filter", "min_movement_m", float),
    "closure.radius_m": ("closure", "radius_m", float),
    "closure.min_loop_length_m": ("closure", "min_loop_length_m", float),
    "smoothing.window": ("smoothing", "window", int),
    "smoothing.tolerance_m": ("smoothing", "tolerance_m", float),
    "area.corridor_radius_m": ("area", "corridor_radius_m", float),
    "conflicts.min_area_m2": ("conflicts", "min_area_m2", float),
    "session.livre_finalize_distance_m": ("session", "livre_finalize_distance_m", float),
    "session.tick_interval_s": ("session", "tick_interval_s", float),
}


# ---------------------------------------------------------------------------
# Main config loader
# ---------------------------------------------------------------------------
def load_config(
    repo_config_path: Optional[Path] = None,
    user_config_path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
) -> ZonnaConfig:
    """
    Load, merge, and type all Zonna configuration.

    This function is the single authoritative entry point for
    configuration access.

    Args:
        repo_config_path: Repo TOML. Defaults to <repo>/config/config.toml.
        user_config_path: User TOML. Defaults to ~/.config/zonna/config.toml.
        environ: Environment mapping. Defaults to os.environ.

    Raises:
        ConfigError: Invalid TOML or a non-positive / non-numeric value.
    """
    if repo_config_path is None:
        repo_config_path = constants.REPO_CONFIG_FILE
    if user_config_path is None:
        user_config_path = constants.USER_CONFIG_FILE
    if environ is None:
        environ = dict(os.environ)

    layers = (
        ("repo", repo_config_path, _load_toml(repo_config_path)),
        ("user", user_config_path, _load_toml(user_config_path)),
    )

    values: Dict[str, Any] = {}
    src: Dict[str, str] = {key: "default" for key in _KEYS}

    for label, path, cfg in layers:
        for key in _KEYS:
            v = _deep_get(cfg, key)
            if v is None:
                continue
            values[key] = (v, f"{label}:{path}")

    for key in _KEYS:
        env = _env_var(key)
        if environ.get(env):
            values[key] = (environ[env], f"env:{env}")

    sections: Dict[str, Dict[str, Any]] = {}
    for key, (raw, origin) in values.items():
        section, name, caster = _KEYS[key]
        number = _as_positive_float(raw, f"{key} from {origin}")
        if caster is int:
            if number != int(number):
                raise ConfigError(f"Expected an integer, got {raw!r} ({key} from {origin})")
            number = int(number)
        sections.setdefault(section, {})[name] = number
        src[key] = origin

    return ZonnaConfig(
        filter=FilterConfig(**sections.get("filter", {})),
        closure=ClosureConfig(**sections.get("closure", {})),
        smoothing=SmoothingConfig(**sections.get("smoothing", {})),
        area=AreaConfig(**sections.get("area", {})),
        conflicts=ConflictConfig(**sections.get("conflicts", {})),
        session=SessionConfig(**sections.get("session", {})),
        source=src,
    )
