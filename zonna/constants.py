"""
Constants for the Zonna Territory Engine

This module defines the canonical default thresholds used throughout the
territory engine. Every value here can be overridden through
``zonna.config.load_config``; call sites must read the loaded configuration
rather than these names directly where a config is available.
"""

from pathlib import Path

# Repo root is one level up from zonna/
REPO_ROOT = Path(__file__).parent.parent
REPO_CONFIG_FILE = REPO_ROOT / "config" / "config.toml"
USER_CONFIG_FILE = Path.home() / ".config" / "zonna" / "config.toml"

EARTH_RADIUS_M = 6371000.0
METERS_PER_DEGREE = 111000.0  # equatorial approximation, see smoothing.simplify_path

# Path filter
MAX_ACCURACY_M = 20.0
MIN_MOVEMENT_M = 3.0

# Closure detection
CLOSURE_RADIUS_M = 20.0
MIN_LOOP_LENGTH_M = 100.0

# Smoothing
SMOOTH_WINDOW = 3
SIMPLIFY_TOLERANCE_M = 5.0

# Area
CORRIDOR_RADIUS_M = 10.0

# Conflicts
MIN_CONFLICT_AREA_M2 = 10.0

# Session
LIVRE_FINALIZE_DISTANCE_M = 500.0
TICK_INTERVAL_S = 1.0
