"""Operating-point table.

The CurveDataModel wraps a pandas DataFrame of ``flow``/``head``/``efficiency``
rows adding:
 - Column metadata (units, label, comments)
 - Operation log of every edit
 - Head and efficiency fits over the current rows

Fits are never cached; call ``fit_head``/``fit_efficiency`` again after an
edit.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple
import pandas as pd

from . import operations as ops
from .points import OperatingPoint, Point
from ..analysis.fits import FitResult, fit_poly
from ..constants import (
    COLUMN_UNITS,
    DISPLAY_FORMAT,
    EFFICIENCY_UNIT,
    HEAD_UNIT,
    TRENDLINE_EXTENSION,
)

logger = logging.getLogger(__name__)

OperationRecord = Dict[str, Any]


@dataclass
class ColumnMeta:
    name: str
    label: Optional[str] = None
    unit: Optional[str] = None
    comment: Optional[str] = None


def _default_meta() -> Dict[str, ColumnMeta]:
    return {
        c: ColumnMeta(name=c, label=c.capitalize(), unit=COLUMN_UNITS.get(c))
        for c in ops.COLUMNS
    }


@dataclass
class CurveDataModel:
    df: pd.DataFrame = field(default_factory=ops.empty_frame)
    columns_meta: Dict[str, ColumnMeta] = field(default_factory=_default_meta)
    operations: List[OperationRecord] = field(default_factory=list)

    @classmethod
    def from_points(cls, points: Iterable) -> "CurveDataModel":
        """Build a table from ``OperatingPoint``s or dicts with the same keys."""
        dm = cls()
        for p in points:
            if isinstance(p, dict):
                p = OperatingPoint(
                    flow=p["flow"],
                    head=p.get("head"),
                    efficiency=p.get("efficiency"),
                )
            dm.add_point(p.flow, p.head, p.efficiency)
        return dm

    def __len__(self) -> int:
        return len(self.df)

    def log(self, op: str, **params):
        rec: OperationRecord = {
            "op": op,
            "params": params,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "rows": int(len(self.df)),
        }
        self.operations.append(rec)

    # --- Column metadata ---
    def set_column_meta(self, col: str, **meta):
        if col not in self.columns_meta:
            self.columns_meta[col] = ColumnMeta(name=col)
        cm = self.columns_meta[col]
        for k, v in meta.items():
            setattr(cm, k, v)
        self.log("set_column_meta", column=col, meta=meta)

    # --- Edits ---
    def apply_operation(self, name: str, **kwargs):
        if name not in ops.Registry:
            raise KeyError(f"Unknown operation: {name}")
        before_rows = len(self.df)
        self.df = ops.Registry[name](self.df, **kwargs)
        self.log(name, before_rows=before_rows, after_rows=len(self.df), **kwargs)
        logger.debug("%s %s -> %d rows", name, kwargs, len(self.df))
        return self

    def add_point(self, flow, head=None, efficiency=None):
        return self.apply_operation(
            "add_point", flow=flow, head=head, efficiency=efficiency
        )

    def update_point(self, index: int, field: str, value):
        return self.apply_operation(
            "update_point", index=index, field=field, value=value
        )

    def delete_point(self, index: int):
        return self.apply_operation("delete_point", index=index)

    def clear(self):
        return self.apply_operation("clear")

    # --- Views ---
    def column_points(self, col: str) -> List[Point]:
        sub = self.df[self.df[col].notna()]
        return [Point(float(x), float(y)) for x, y in zip(sub["flow"], sub[col])]

    def head_points(self) -> List[Point]:
        return self.column_points("head")

    def efficiency_points(self) -> List[Point]:
        return self.column_points("efficiency")

    def points(self) -> List[OperatingPoint]:
        out = []
        for row in self.df.itertuples(index=False):
            if pd.isna(row.head):
                continue
            eff = None if pd.isna(row.efficiency) else float(row.efficiency)
            out.append(OperatingPoint(float(row.flow), float(row.head), eff))
        return out

    def trendline_range(self, extension: float = TRENDLINE_EXTENSION) -> Tuple[float, float]:
        if self.df.empty:
            return 0.0, 0.0
        return float(self.df["flow"].min()), float(self.df["flow"].max()) * extension

    # --- Fits ---
    def _fit(self, col: str, degree: int, unit: str, format_kwargs) -> FitResult:
        kwargs = {**DISPLAY_FORMAT, "unit": unit, **format_kwargs}
        return fit_poly(self.df["flow"], self.df[col], deg=degree, **kwargs)

    def fit_head(self, degree: int, **format_kwargs) -> FitResult:
        return self._fit("head", degree, HEAD_UNIT, format_kwargs)

    def fit_efficiency(self, degree: int, **format_kwargs) -> FitResult:
        return self._fit("efficiency", degree, EFFICIENCY_UNIT, format_kwargs)

    # --- Serialization helpers ---
    def to_dict(self) -> Dict[str, Any]:
        data = self.df.astype(object).where(self.df.notna(), None)
        return {
            "data": data.to_dict(orient="list"),
            "columns_meta": {k: vars(v) for k, v in self.columns_meta.items()},
            "operations": self.operations,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CurveDataModel":
        df = pd.DataFrame(d["data"], columns=ops.COLUMNS).astype(float)
        dm = cls(ops.op_sort(df))
        dm.columns_meta.update({
            k: ColumnMeta(**v) for k, v in d.get("columns_meta", {}).items()
        })
        dm.operations = list(d.get("operations", []))
        return dm
