"""Polynomial fitting engine for pump performance curves.

Fits ``y = c0 + c1*x + ... + cd*x^d`` through operating points by least
squares. The normal equations ``AᵗA·c = Aᵗb`` are solved with Gaussian
elimination and partial pivoting, so the solve stays stable when flow values
span a wide range (0 to 300+ m³/h is typical).

Coefficients are always plain ``list[float]`` ordered ascending by power:
``coefficients[i]`` multiplies ``x**i``.
"""
from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import numpy as np
import numpy.polynomial.polynomial as P
import pandas as pd

from ..constants import DISPLAY_FORMAT, PIVOT_TOLERANCE, TRENDLINE_STEPS

logger = logging.getLogger(__name__)


class FitError(ValueError):
    """Base class for curve fitting failures."""


class InsufficientDataError(FitError):
    """Raised when fewer than ``degree + 1`` points are supplied."""


class SingularMatrixError(FitError):
    """Raised when the normal equations have no unique solution.

    This is the degenerate case of fewer than ``degree + 1`` distinct x
    values (e.g. every point at the same flow). Partial pivoting cannot
    recover from it; without this check the solve divides by a zero pivot
    and returns NaN/Infinity coefficients.
    """


@dataclass
class FitResult:
    model: str
    params: Dict[str, float]
    y_fit: pd.Series
    r2: float
    stderr: float
    coefficients: List[float] = field(default_factory=list)
    equation: Optional[str] = None

    @property
    def degree(self) -> int:
        return len(self.coefficients) - 1

    def __call__(self, x):
        return evaluate(self.coefficients, x)


def _r2(y, yhat):
    ss_res = np.sum((y - yhat) ** 2)
    ss_tot = np.sum((y - np.mean(y)) ** 2)
    return float(1 - ss_res / ss_tot) if ss_tot != 0 else 0.0


def _stderr(y, yhat, p):
    dof = max(len(y) - p, 1)
    return float(np.sqrt(np.sum((y - yhat) ** 2) / dof))


def _as_xy(points: Iterable) -> Tuple[np.ndarray, np.ndarray]:
    """Split points (``Point``-like objects or ``(x, y)`` pairs) into arrays."""
    xs: List[float] = []
    ys: List[float] = []
    for p in points:
        if hasattr(p, "x") and hasattr(p, "y"):
            xs.append(p.x)
            ys.append(p.y)
        else:
            x, y = p
            xs.append(x)
            ys.append(y)
    return np.asarray(xs, dtype=float), np.asarray(ys, dtype=float)


def normal_equations(x: np.ndarray, y: np.ndarray, degree: int):
    """Return ``(AᵗA, Aᵗb)`` for the design matrix ``A[i][j] = x[i]**j``."""
    A = np.vander(x, degree + 1, increasing=True)
    return A.T @ A, A.T @ y


def solve_gaussian(
    matrix: np.ndarray,
    rhs: np.ndarray,
    tol: float = PIVOT_TOLERANCE,
) -> np.ndarray:
    """Solve ``matrix · c = rhs`` by Gaussian elimination with partial pivoting.

    At every step ``i`` the row ``k >= i`` with the largest ``|matrix[k, i]|``
    is swapped into place before eliminating below it. A pivot smaller than
    ``tol * max|matrix|`` raises ``SingularMatrixError``.

    Inputs are copied; the caller's arrays are left untouched.
    """
    M = np.array(matrix, dtype=float)
    v = np.array(rhs, dtype=float)
    n = len(v)
    limit = tol * float(np.max(np.abs(M))) if M.size else 0.0

    for i in range(n):
        k = i + int(np.argmax(np.abs(M[i:, i])))
        if not abs(M[k, i]) > limit:
            raise SingularMatrixError(
                f"Pivot {M[k, i]:.3g} in column {i} is below tolerance "
                f"({limit:.3g}); need at least {n} distinct x values"
            )
        if k != i:
            M[[i, k]] = M[[k, i]]
            v[[i, k]] = v[[k, i]]
        factors = M[i + 1:, i] / M[i, i]
        M[i + 1:, i:] -= np.outer(factors, M[i, i:])
        v[i + 1:] -= factors * v[i]

    # Back substitution
    c = np.zeros(n)
    for i in range(n - 1, -1, -1):
        c[i] = (v[i] - M[i, i + 1:] @ c[i + 1:]) / M[i, i]
    return c


def _from_centered(c: np.ndarray, mid: float, half: float) -> np.ndarray:
    """Expand ``sum(c_i * ((x - mid) / half)**i)`` into ascending powers of x."""
    line = np.array([-mid / half, 1.0 / half])
    out = np.array([c[-1]])
    for ci in c[-2::-1]:
        out = P.polyadd(P.polymul(out, line), [ci])
    # polymul trims trailing zeros
    return np.pad(out, (0, len(c) - len(out)))


def polyfit(points: Iterable, degree: int) -> List[float]:
    """Least-squares polynomial coefficients through ``points``.

    ``points`` holds ``Point``-like objects (``.x``/``.y``) or ``(x, y)``
    pairs. Raises ``InsufficientDataError`` when there are fewer than
    ``degree + 1`` points and ``SingularMatrixError`` when there are fewer
    than ``degree + 1`` distinct x values.

    x is mapped onto ``[-1, 1]`` (``t = (x - mid) / half``) before the design
    matrix is built and the coefficients are expanded back into powers of x
    afterwards. The minimiser is the same, but the normal matrix stays well
    conditioned, so the pivot tolerance only trips on truly degenerate data
    even when the flows sit far from zero (e.g. 1000..1008).
    """
    if degree < 0:
        raise ValueError(f"Degree must be non-negative, got {degree}")
    x, y = _as_xy(points)
    n = len(x)
    if n < degree + 1:
        raise InsufficientDataError(
            f"Degree {degree} fit needs at least {degree + 1} points, got {n}"
        )
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise FitError("Points must be finite numbers")

    lo, hi = float(np.min(x)), float(np.max(x))
    mid = (hi + lo) / 2.0
    half = (hi - lo) / 2.0 or 1.0
    ata, atb = normal_equations((x - mid) / half, y, degree)
    try:
        c = solve_gaussian(ata, atb)
    except SingularMatrixError as exc:
        logger.warning("poly_%d fit over %d points failed: %s", degree, n, exc)
        raise
    c = _from_centered(c, mid, half)
    coefficients = [float(v) for v in c]
    logger.debug("poly_%d fit over %d points: %s", degree, n, coefficients)
    return coefficients


def evaluate(coefficients: Sequence[float], x):
    """Evaluate ``sum(c_i * x**i)`` at a scalar, array or Series."""
    if isinstance(x, pd.Series):
        values = evaluate(coefficients, x.to_numpy(dtype=float))
        return pd.Series(values, index=x.index, name=x.name)
    xs = np.asarray(x, dtype=float)
    total = np.zeros_like(xs)
    for power, coef in enumerate(coefficients):
        total = total + coef * xs ** power
    if total.ndim == 0:
        return float(total)
    return total


def format_equation(
    coefficients: Sequence[float],
    unit: str = "",
    symbol: str = "x",
    precision: int = 4,
    drop_near_zero: bool = False,
    threshold: float = 1e-4,
) -> str:
    """Render coefficients as e.g. ``"50.0000 -0.0012x -0.0001x^2  [m]"``.

    Terms run from the constant upwards. Every term after the first carries
    an explicit sign. With ``drop_near_zero`` terms with ``|c| < threshold``
    are left out; if nothing survives the result is ``""``.
    """
    terms = []
    for power, coef in enumerate(coefficients):
        if drop_near_zero and abs(coef) < threshold:
            continue
        value = f"{coef:.{precision}f}"
        if power == 0:
            terms.append(value)
        elif power == 1:
            terms.append(f"{value}{symbol}")
        else:
            terms.append(f"{value}{symbol}^{power}")
    if not terms:
        return ""
    eq = " ".join(
        term if i == 0 or term.startswith("-") else f"+{term}"
        for i, term in enumerate(terms)
    )
    return f"{eq}  {unit}" if unit else eq


def trendline(
    coefficients: Sequence[float],
    start: float,
    stop: float,
    steps: int = TRENDLINE_STEPS,
) -> pd.DataFrame:
    """Dense ``(x, y)`` samples of the fitted curve, ``steps + 1`` rows."""
    if steps < 1:
        raise ValueError(f"steps must be >= 1, got {steps}")
    x = np.linspace(start, stop, steps + 1)
    return pd.DataFrame({"x": x, "y": evaluate(coefficients, x)})


def fit_poly(x, y, deg: int = 2, **format_kwargs) -> FitResult:
    """Fit a degree ``deg`` polynomial to paired Series, NaN pairs skipped.

    ``format_kwargs`` go to ``format_equation`` on top of ``DISPLAY_FORMAT``.
    """
    x = pd.Series(x, dtype=float)
    y = pd.Series(y, dtype=float)
    mask = x.notna() & y.notna()
    xm, ym = x[mask].to_numpy(), y[mask].to_numpy()
    coefficients = polyfit(zip(xm, ym), deg)
    yhat = evaluate(coefficients, x.to_numpy())
    fitted = evaluate(coefficients, xm)
    params = {f"c{i}": c for i, c in enumerate(coefficients)}
    eq = format_equation(coefficients, **{**DISPLAY_FORMAT, **format_kwargs})
    return FitResult(
        f"poly_{deg}",
        params,
        pd.Series(yhat, index=y.index),
        _r2(ym, fitted),
        _stderr(ym, fitted, deg + 1),
        coefficients=coefficients,
        equation=eq,
    )


__all__ = [
    "FitError",
    "InsufficientDataError",
    "SingularMatrixError",
    "FitResult",
    "normal_equations",
    "solve_gaussian",
    "polyfit",
    "evaluate",
    "format_equation",
    "trendline",
    "fit_poly",
]
