"""Pump affinity laws.

At speed ratio ``r = n'/n`` flow scales with ``r`` and head with ``r**2``.
Used to draw reduced-speed curves from an already fitted 100% trendline.
"""
from __future__ import annotations
from typing import Dict, Iterable
import pandas as pd

from ..constants import SPEED_RATIOS
from ..core.points import OperatingPoint


def _check_ratio(speed_ratio: float):
    if not speed_ratio > 0:
        raise ValueError(f"Speed ratio must be positive, got {speed_ratio}")


def scale_point(point: OperatingPoint, speed_ratio: float) -> OperatingPoint:
    _check_ratio(speed_ratio)
    return OperatingPoint(
        flow=point.flow * speed_ratio,
        head=point.head * speed_ratio ** 2,
    )


def scale_curve(
    df: pd.DataFrame,
    speed_ratio: float,
    flow_col: str = "flow",
    head_col: str = "head",
) -> pd.DataFrame:
    """Apply the affinity laws to every row of a flow/head frame."""
    _check_ratio(speed_ratio)
    out = df[[flow_col, head_col]].copy()
    out[flow_col] = out[flow_col] * speed_ratio
    out[head_col] = out[head_col] * speed_ratio ** 2
    return out


def speed_curves(
    df: pd.DataFrame,
    ratios: Iterable[float] = SPEED_RATIOS,
    flow_col: str = "flow",
    head_col: str = "head",
) -> Dict[float, pd.DataFrame]:
    return {
        r: scale_curve(df, r, flow_col=flow_col, head_col=head_col)
        for r in ratios
    }


__all__ = ["scale_point", "scale_curve", "speed_curves"]
