from .fits import (  # noqa: F401
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
from .affinity import scale_point, scale_curve, speed_curves  # noqa: F401
