import sys
from pathlib import Path

import pytest

# Make the package importable without installing it
PROJECT_DIR = Path(__file__).resolve().parents[1]
if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from pumpcurve.core.data_model import CurveDataModel  # noqa: E402


@pytest.fixture
def sample_dm():
    """Four operating points of a typical centrifugal pump."""
    return CurveDataModel.from_points([
        {"flow": 0, "head": 50, "efficiency": 0},
        {"flow": 100, "head": 48, "efficiency": 60},
        {"flow": 200, "head": 42, "efficiency": 85},
        {"flow": 300, "head": 32, "efficiency": 65},
    ])
