from .points import (  # noqa: F401
    Point,
    OperatingPoint,
    MaxValues,
    percent_to_actual,
    actual_to_percent,
)
from .data_model import CurveDataModel, ColumnMeta  # noqa: F401
