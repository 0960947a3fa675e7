"""Pure point-table operations + registry.

Each operation is a function(df, **kwargs) -> df returning a new frame with
columns ``flow``, ``head``, ``efficiency`` (NaN where absent), sorted by flow
and with a fresh 0..n-1 index.
"""
from __future__ import annotations
from typing import Callable, Dict, Optional
import numpy as np
import pandas as pd

COLUMNS = ["flow", "head", "efficiency"]

Registry: Dict[str, Callable] = {}


def register(name: str):
    def deco(fn: Callable):
        Registry[name] = fn
        return fn
    return deco


def empty_frame() -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=float) for c in COLUMNS})


def _num(value) -> float:
    return np.nan if value is None else float(value)


def _check_index(df: pd.DataFrame, index: int):
    if not 0 <= index < len(df):
        raise IndexError(f"Point index {index} out of range (0..{len(df) - 1})")


@register("sort")
def op_sort(df: pd.DataFrame, ascending: bool = True):
    return df.sort_values("flow", ascending=ascending, kind="stable").reset_index(drop=True)


def _flow(value) -> float:
    flow = float("nan") if value is None else float(value)
    if not np.isfinite(flow):
        raise ValueError(f"Flow must be a finite number, got {value!r}")
    return flow


@register("add_point")
def op_add_point(
    df: pd.DataFrame,
    flow: float,
    head: Optional[float] = None,
    efficiency: Optional[float] = None,
):
    out = df.copy()
    out.loc[len(out)] = [_flow(flow), _num(head), _num(efficiency)]
    return op_sort(out)


@register("update_point")
def op_update_point(df: pd.DataFrame, index: int, field: str, value):
    if field not in COLUMNS:
        raise KeyError(f"Unknown point field: {field}")
    _check_index(df, index)
    out = df.copy()
    out.loc[index, field] = _flow(value) if field == "flow" else _num(value)
    # Editing the flow may move the row
    return op_sort(out) if field == "flow" else out


@register("delete_point")
def op_delete_point(df: pd.DataFrame, index: int):
    _check_index(df, index)
    return df.drop(index).reset_index(drop=True)


@register("clear")
def op_clear(df: pd.DataFrame):
    return empty_frame()
