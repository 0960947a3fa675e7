"""Value types shared by the fitting engine and the point table."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from ..constants import DEFAULT_MAX_VALUE


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class OperatingPoint:
    flow: float
    head: float
    efficiency: Optional[float] = None


@dataclass(frozen=True)
class MaxValues:
    """Axis maxima; points entered on a 0-100 grid are percentages of these."""
    flow: float = DEFAULT_MAX_VALUE
    head: float = DEFAULT_MAX_VALUE
    efficiency: float = DEFAULT_MAX_VALUE


def percent_to_actual(point: Point, max_x: float, max_y: float) -> Point:
    return Point(point.x * max_x / 100, point.y * max_y / 100)


def actual_to_percent(point: Point, max_x: float, max_y: float) -> Point:
    if max_x == 0 or max_y == 0:
        raise ValueError("Axis maxima must be non-zero")
    return Point(point.x * 100 / max_x, point.y * 100 / max_y)


__all__ = [
    "Point",
    "OperatingPoint",
    "MaxValues",
    "percent_to_actual",
    "actual_to_percent",
]
