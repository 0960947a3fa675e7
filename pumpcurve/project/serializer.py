"""Case save/load (.json) format.

Case document structure (version 1):
{
    "version": 1,
    "caseInfo": {"caseName", "projectName", "stage", "date", "pumpName"},
    "maxValues": {"head": float, "flow": float, "efficiency": float},
    "equations": {
        "head": {"degree": int, "equation": str, "coefficients": [float]},
        "efficiency": {...}
    },
    "points": {
        "headPoints": [{"no": 1, "flow": "100.0", "head": "48.0"}],
        "efficiencyPoints": [{"no": 1, "flow": "100.0", "efficiency": "60.0"}]
    }
}
Point values are written as one-decimal strings. Files written before
``coefficients`` was added load fine; fits are re-derived from the points.

A second, flatter "case record" ({caseName, operatingPoints, maxValues,
equations}) is written one file per case into a directory.
"""
from __future__ import annotations
from dataclasses import asdict, dataclass, field
import datetime
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..analysis.fits import FitError, FitResult
from ..constants import DEFAULT_DEGREE, EXPORT_FORMAT
from ..core.data_model import CurveDataModel
from ..core.points import MaxValues

logger = logging.getLogger(__name__)

CASE_VERSION = 1
_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*]')


class CaseFormatError(ValueError):
    """Raised when a case file cannot be interpreted."""


@dataclass
class CaseInfo:
    caseName: str = ""
    projectName: str = ""
    stage: str = ""
    date: str = field(default_factory=lambda: datetime.date.today().isoformat())
    pumpName: str = ""


@dataclass
class LoadedCase:
    dm: CurveDataModel
    case_info: CaseInfo
    max_values: MaxValues
    head_degree: int
    efficiency_degree: int
    equations: Dict[str, Any] = field(default_factory=dict)

    def refit(self) -> Tuple[Optional[FitResult], Optional[FitResult]]:
        """Re-derive (head, efficiency) fits from the restored points.

        A side that cannot be fitted comes back as ``None``.
        """
        return (
            _try_fit(self.dm.fit_head, self.head_degree),
            _try_fit(self.dm.fit_efficiency, self.efficiency_degree),
        )


def _try_fit(fit, degree: int, **fmt) -> Optional[FitResult]:
    try:
        return fit(degree, **fmt)
    except FitError as exc:
        logger.info("No fit for degree %d: %s", degree, exc)
        return None


def _equation_entry(fit, degree: int, fmt: Dict[str, Any]) -> Dict[str, Any]:
    res = _try_fit(fit, degree, **fmt)
    return {
        "degree": degree,
        "equation": res.equation if res else "",
        "coefficients": res.coefficients if res else [],
    }


def _point_rows(dm: CurveDataModel, col: str) -> List[Dict[str, Any]]:
    return [
        {"no": i, "flow": f"{p.x:.1f}", col: f"{p.y:.1f}"}
        for i, p in enumerate(dm.column_points(col), start=1)
    ]


def sanitize_case_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name)


def export_case(
    dm: CurveDataModel,
    head_degree: int,
    efficiency_degree: int,
    case_info: CaseInfo | None = None,
    max_values: MaxValues | None = None,
    fmt: Dict[str, Any] | None = None,
) -> Dict[str, Any]:
    fmt = EXPORT_FORMAT if fmt is None else fmt
    return {
        "version": CASE_VERSION,
        "caseInfo": asdict(case_info or CaseInfo()),
        "maxValues": asdict(max_values or MaxValues()),
        "equations": {
            "head": _equation_entry(dm.fit_head, head_degree, fmt),
            "efficiency": _equation_entry(dm.fit_efficiency, efficiency_degree, fmt),
        },
        "points": {
            "headPoints": _point_rows(dm, "head"),
            "efficiencyPoints": _point_rows(dm, "efficiency"),
        },
    }


def save_case(
    path: str | Path,
    dm: CurveDataModel,
    head_degree: int = DEFAULT_DEGREE,
    efficiency_degree: int = DEFAULT_DEGREE,
    case_info: CaseInfo | None = None,
    max_values: MaxValues | None = None,
) -> Path:
    path = Path(path)
    if path.suffix != ".json":
        path = path.with_suffix(".json")
    doc = export_case(dm, head_degree, efficiency_degree, case_info, max_values)
    path.write_text(json.dumps(doc, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved case to %s", path)
    return path


def _stored_degree(eqs: Dict[str, Any], side: str) -> int:
    entry = eqs.get(side) or {}
    if not isinstance(entry, dict):
        raise TypeError(f"equations.{side} must be an object")
    degree = int(entry.get("degree") or DEFAULT_DEGREE)
    if degree < 0:
        raise ValueError(f"equations.{side}.degree must be >= 0, got {degree}")
    return degree


def _merge_rows(head, eff) -> List[Dict[str, Any]]:
    """One row per operating point; efficiency joins the head row at its flow."""
    rows = [{"flow": flow, "head": h, "efficiency": None} for flow, h in head]
    for flow, e in eff:
        row = next(
            (r for r in rows if r["flow"] == flow and r["efficiency"] is None),
            None,
        )
        if row is None:
            rows.append({"flow": flow, "head": None, "efficiency": e})
        else:
            row["efficiency"] = e
    return rows


def case_from_dict(doc: Dict[str, Any]) -> LoadedCase:
    try:
        eqs = doc.get("equations") or {}
        points = doc["points"]
        head = [
            (float(r["flow"]), float(r["head"]))
            for r in points.get("headPoints", [])
        ]
        eff = [
            (float(r["flow"]), float(r["efficiency"]))
            for r in points.get("efficiencyPoints", [])
        ]
        info = CaseInfo(**doc.get("caseInfo", {}))
        max_values = MaxValues(**doc.get("maxValues", {}))
        head_degree = _stored_degree(eqs, "head")
        efficiency_degree = _stored_degree(eqs, "efficiency")
        dm = CurveDataModel.from_points(_merge_rows(head, eff))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise CaseFormatError(f"Invalid case document: {exc}") from exc

    return LoadedCase(
        dm=dm,
        case_info=info,
        max_values=max_values,
        head_degree=head_degree,
        efficiency_degree=efficiency_degree,
        equations=eqs,
    )


def load_case(path: str | Path) -> LoadedCase:
    path = Path(path)
    try:
        doc = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CaseFormatError(f"{path.name} is not valid JSON: {exc}") from exc
    if not isinstance(doc, dict):
        raise CaseFormatError(f"{path.name} does not hold a case object")
    case = case_from_dict(doc)
    logger.info("Loaded case '%s' (%d points) from %s",
                case.case_info.caseName, len(case.dm), path)
    return case


def case_record(
    dm: CurveDataModel,
    case_name: str,
    head_degree: int = DEFAULT_DEGREE,
    efficiency_degree: int = DEFAULT_DEGREE,
    max_values: MaxValues | None = None,
) -> Dict[str, Any]:
    """Flat per-case record: operating points plus their equations."""
    mv = max_values or MaxValues()
    operating_points = []
    for p in dm.points():
        rec = {"flow": p.flow, "head": p.head}
        if p.efficiency is not None:
            rec["efficiency"] = p.efficiency
        operating_points.append(rec)
    return {
        "caseName": case_name,
        "operatingPoints": operating_points,
        "maxValues": {"head": mv.head, "efficiency": mv.efficiency},
        "equations": {
            "head": _equation_entry(dm.fit_head, head_degree, EXPORT_FORMAT),
            "efficiency": _equation_entry(
                dm.fit_efficiency, efficiency_degree, EXPORT_FORMAT
            ),
        },
    }


def save_case_record(directory: str | Path, record: Dict[str, Any]) -> Path:
    """Write ``record`` to ``<directory>/<sanitized caseName>.json``."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{sanitize_case_name(record['caseName'])}.json"
    path.write_text(json.dumps(record, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved case record '%s' to %s", record["caseName"], path)
    return path


def list_cases(directory: str | Path) -> List[Path]:
    """Return list of .json case paths in directory (non-recursive)."""
    p = Path(directory)
    if not p.exists():
        return []
    return sorted(p.glob("*.json"))


__all__ = [
    "CASE_VERSION",
    "CaseFormatError",
    "CaseInfo",
    "LoadedCase",
    "sanitize_case_name",
    "export_case",
    "save_case",
    "case_from_dict",
    "load_case",
    "case_record",
    "save_case_record",
    "list_cases",
]
