# arena_server/utils/helpers.py
"""Utility functions and helpers."""

import math


def calculate_distance(x1: float, y1: float, x2: float, y2: float) -> float:
    """Calculate distance between two points."""
    return math.hypot(x2 - x1, y2 - y1)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def clamp_to_world(
    x: float, y: float, radius: float, width: float, height: float
) -> tuple:
    """Clamp position to world boundaries."""
    return (
        clamp(x, radius, width - radius),
        clamp(y, radius, height - radius),
    )


def push_out(
    x: float, y: float, cx: float, cy: float, distance: float
) -> tuple:
    """Move (x, y) along the ray from (cx, cy) to ``distance`` from it.

    A point sitting exactly on the centre has no direction and is returned
    unchanged.
    """
    dx = x - cx
    dy = y - cy
    dist = math.hypot(dx, dy)
    if dist == 0:
        return x, y
    return cx + dx / dist * distance, cy + dy / dist * distance


def epoch_millis(seconds: float) -> int:
    return int(seconds * 1000)
