from __future__ import annotations
import io
import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional
import numpy as np
import pandas as pd

from .core.data_model import CurveDataModel
from .core.operations import COLUMNS, op_sort
from .project.serializer import case_from_dict

logger = logging.getLogger(__name__)

_ALIASES = {
    "q": "flow",
    "h": "head",
    "eff": "efficiency",
    "eta": "efficiency",
}


def to_numeric_safe(series: pd.Series):
    return pd.to_numeric(series, errors="coerce")


def _normalize_column(name) -> str:
    # "Flow (m³/h)" -> "flow", "Head [m]" -> "head"
    base = re.split(r"[\(\[]", str(name), maxsplit=1)[0].strip().lower()
    return _ALIASES.get(base, base)


def normalize_points_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Coerce a loose table into flow/head/efficiency columns sorted by flow."""
    df = df.rename(columns=_normalize_column)
    df = df.loc[:, ~df.columns.duplicated()]
    out = pd.DataFrame(
        {c: to_numeric_safe(df[c]) if c in df.columns else np.nan for c in COLUMNS},
        index=df.index,
    ).astype(float)
    out = out[out["flow"].notna()]
    return op_sort(out)


def _parse_table_text(content: str) -> pd.DataFrame:
    """Parse tab/space separated tables, optionally split into titled blocks.

    A header row starting with ``No`` names the columns of the rows below
    it; without one, columns are taken as flow, head, efficiency.
    """
    header: List[str] = list(COLUMNS)
    numbered = False
    records: List[Dict[str, str]] = []
    for ln in content.splitlines():
        ln = ln.strip()
        if not ln or ln.endswith(":"):
            continue
        if "\t" in ln or "," in ln:
            fields = [f.strip() for f in re.split(r"[\t,]", ln)]
        else:
            fields = ln.split()
        if fields[0].lower() == "no":
            header = [_normalize_column(f) for f in fields[1:]]
            numbered = True
            continue
        if not re.match(r"^[-+]?\d", ln):
            continue
        records.append(dict(zip(header, fields[1:] if numbered else fields)))
    return pd.DataFrame.from_records(records)


def _read_text(uploaded_file) -> str:
    if isinstance(uploaded_file, (str, Path)):
        raw = Path(uploaded_file).read_bytes()
    else:
        if hasattr(uploaded_file, "seek"):
            uploaded_file.seek(0)
        raw = (
            uploaded_file.getvalue()
            if hasattr(uploaded_file, "getvalue")
            else uploaded_file.read()
        )
    return raw.decode("utf-8", errors="ignore") if isinstance(raw, bytes) else str(raw)


def df_from_upload(uploaded_file) -> Optional[pd.DataFrame]:
    """Read operating points from a path or an uploaded file-like object.

    Supports ``.csv``, ``.json`` (case export or a list of point records) and
    ``.txt``/``.tsv`` tables. Returns None when the file cannot be read.
    """
    if uploaded_file is None:
        return None
    if isinstance(uploaded_file, (str, Path)):
        name = str(uploaded_file).lower()
    else:
        name = uploaded_file.name.lower()
    try:
        text = _read_text(uploaded_file)
    except OSError as exc:
        logger.warning("Could not open %s: %s", name, exc)
        return None
    try:
        if name.endswith(".csv"):
            df = pd.read_csv(io.StringIO(text))
        elif name.endswith(".json"):
            doc = json.loads(text)
            if isinstance(doc, dict) and "points" in doc:
                return case_from_dict(doc).dm.df
            if isinstance(doc, dict) and "operatingPoints" in doc:
                doc = doc["operatingPoints"]
            df = pd.DataFrame(doc)
        elif name.endswith((".txt", ".tsv")):
            df = _parse_table_text(text)
        else:
            logger.warning("Unsupported points file: %s", name)
            return None
    except ValueError as exc:
        logger.warning("Could not read points from %s: %s", name, exc)
        return None
    if "flow" not in {_normalize_column(c) for c in df.columns}:
        logger.warning("No flow column in %s", name)
        return None
    return normalize_points_frame(df)


def points_table_text(dm: CurveDataModel) -> str:
    """Tab separated head and efficiency tables, one decimal per value."""
    lines = ["Head Points:", "No\tFlow\tHead"]
    for i, p in enumerate(dm.head_points(), start=1):
        lines.append(f"{i}\t{p.x:.1f}\t{p.y:.1f}")
    lines += ["", "Efficiency Points:", "No\tFlow\tEfficiency"]
    for i, p in enumerate(dm.efficiency_points(), start=1):
        lines.append(f"{i}\t{p.x:.1f}\t{p.y:.1f}")
    return "\n".join(lines) + "\n"
