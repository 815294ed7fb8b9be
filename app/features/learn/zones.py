from __future__ import annotations

"""
Zone difficulty ladder and pass thresholds.

Each zone raises the score needed to pass a practice set:
	- Beginner (1): 65%
	- Elementary (2): 70%
	- Intermediate (3): 75%
	- Advanced (4): 80%
	- Expert (5): 80%

Zones outside the table fall back to the practice set's own threshold, and
then to DEFAULT_PASS_THRESHOLD.
"""

from typing import Any, Optional

DEFAULT_PASS_THRESHOLD = 80.0

ZONE_PASS_THRESHOLDS: dict[int, float] = {
    1: 65.0,
    2: 70.0,
    3: 75.0,
    4: 80.0,
    5: 80.0,
}

ZONE_NAMES: dict[int, str] = {
    1: "Beginner",
    2: "Elementary",
    3: "Intermediate",
    4: "Advanced",
    5: "Expert",
}


def zone_name(level: int) -> str:
    return ZONE_NAMES.get(level, f"Zone {level}")


def normalise_zone_level(value: Any, default: int = 1) -> int:
    try:
        level = int(value)
    except (TypeError, ValueError):
        return default
    return level if level >= 1 else default


def normalise_threshold(value: Any) -> Optional[float]:
    """Return a percent threshold; legacy rows store fractions such as 0.8."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number <= 0:
        return None
    if number <= 1:
        number *= 100.0
    return round(min(number, 100.0), 2)


def resolve_pass_threshold(zone_level: Optional[int], fallback: Any = None) -> float:
    if zone_level is not None and zone_level in ZONE_PASS_THRESHOLDS:
        return ZONE_PASS_THRESHOLDS[zone_level]
    return normalise_threshold(fallback) or DEFAULT_PASS_THRESHOLD


def is_passing(score_percent: float, threshold: float) -> bool:
    return float(score_percent) >= float(threshold)
