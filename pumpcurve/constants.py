"""Central constants & presets."""

DEGREES = (1, 2, 3, 4)
DEFAULT_DEGREE = 2

HEAD_UNIT = "[m]"
EFFICIENCY_UNIT = "[%]"

COLUMN_UNITS = {
    "flow": "m³/h",
    "head": "m",
    "efficiency": "%",
}

# Equation display presets, passed as keyword arguments to format_equation
DISPLAY_FORMAT = {
    "symbol": "x",
    "precision": 4,
    "drop_near_zero": True,
    "threshold": 1e-4,
}
EXPORT_FORMAT = {
    "symbol": "Q",
    "precision": 12,
    "drop_near_zero": True,
    "threshold": 1e-12,
}

# Reduced pump speeds drawn under the 100% curve
SPEED_RATIOS = (0.8, 0.6, 0.4)

TRENDLINE_STEPS = 100
# Trendline runs from min flow to 110% of max flow
TRENDLINE_EXTENSION = 1.1

DEFAULT_MAX_VALUE = 100.0

# Relative to the largest entry of the (scaled) normal matrix
PIVOT_TOLERANCE = 1e-12

__all__ = [
    "DEGREES",
    "DEFAULT_DEGREE",
    "HEAD_UNIT",
    "EFFICIENCY_UNIT",
    "COLUMN_UNITS",
    "DISPLAY_FORMAT",
    "EXPORT_FORMAT",
    "SPEED_RATIOS",
    "TRENDLINE_STEPS",
    "TRENDLINE_EXTENSION",
    "DEFAULT_MAX_VALUE",
    "PIVOT_TOLERANCE",
]
