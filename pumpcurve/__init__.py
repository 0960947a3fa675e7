"""pumpcurve package root.

Exposes high-level API surface for convenience.
"""
from .analysis.fits import (  # noqa: F401
    FitError,
    InsufficientDataError,
    SingularMatrixError,
    FitResult,
    polyfit,
    evaluate,
    format_equation,
    trendline,
    fit_poly,
)
from .analysis.affinity import scale_point, scale_curve, speed_curves  # noqa: F401
from .core import CurveDataModel, Point, OperatingPoint, MaxValues  # noqa: F401
from .project import save_case, load_case  # noqa: F401
from .logging_config import setup_logging  # noqa: F401
