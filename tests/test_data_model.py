import math

import pytest

from pumpcurve.analysis.fits import InsufficientDataError
from pumpcurve.core.data_model import CurveDataModel
from pumpcurve.core.points import Point, actual_to_percent, percent_to_actual


def test_add_point_keeps_flow_order_and_logs():
    dm = CurveDataModel()
    dm.add_point(200, 42)
    dm.add_point(0, 50, 0)
    dm.add_point(100, 48, 60)
    assert list(dm.df["flow"]) == [0, 100, 200]
    assert [r["op"] for r in dm.operations] == ["add_point"] * 3
    assert dm.operations[-1]["params"]["flow"] == 100


def test_update_and_delete(sample_dm):
    sample_dm.update_point(1, "head", 47.5)
    assert sample_dm.df.loc[1, "head"] == 47.5
    sample_dm.update_point(0, "flow", 250)
    assert list(sample_dm.df["flow"]) == [100, 200, 250, 300]
    sample_dm.delete_point(3)
    assert len(sample_dm) == 3
    assert any(r["op"] == "delete_point" for r in sample_dm.operations)


def test_bad_edits_raise(sample_dm):
    with pytest.raises(IndexError):
        sample_dm.delete_point(10)
    with pytest.raises(KeyError):
        sample_dm.update_point(0, "speed", 1)
    with pytest.raises(KeyError):
        sample_dm.apply_operation("no_such_op")


@pytest.mark.parametrize("flow", [float("inf"), float("nan"), None])
def test_non_finite_flow_rejected(sample_dm, flow):
    with pytest.raises(ValueError):
        sample_dm.update_point(1, "flow", flow)
    with pytest.raises(ValueError):
        sample_dm.add_point(flow, 10.0)
    assert list(sample_dm.df["flow"]) == [0, 100, 200, 300]


def test_missing_values_split_head_and_efficiency():
    dm = CurveDataModel()
    dm.add_point(0, head=50)
    dm.add_point(100, efficiency=60)
    dm.add_point(200, 42, 85)
    assert dm.head_points() == [Point(0, 50), Point(200, 42)]
    assert dm.efficiency_points() == [Point(100, 60), Point(200, 85)]
    assert len(dm.points()) == 2


def test_fits_recomputed_after_edit(sample_dm):
    before = sample_dm.fit_head(3)
    sample_dm.update_point(3, "head", 30)
    after = sample_dm.fit_head(3)
    assert before.coefficients != after.coefficients
    assert after.equation.endswith("  [m]")
    eff = sample_dm.fit_efficiency(2)
    assert eff.equation.endswith("  [%]")


def test_fit_head_insufficient():
    dm = CurveDataModel.from_points([{"flow": 0, "head": 50}])
    with pytest.raises(InsufficientDataError):
        dm.fit_head(2)


def test_trendline_range(sample_dm):
    lo, hi = sample_dm.trendline_range()
    assert lo == 0
    assert hi == pytest.approx(330)
    assert CurveDataModel().trendline_range() == (0.0, 0.0)


def test_serialization_roundtrip(sample_dm):
    sample_dm.delete_point(0)
    sample_dm.add_point(50, head=49)
    sample_dm.set_column_meta("flow", unit="L/s")
    d = sample_dm.to_dict()
    assert d["data"]["efficiency"][0] is None
    dm2 = CurveDataModel.from_dict(d)
    assert dm2.columns_meta["flow"].unit == "L/s"
    assert math.isnan(dm2.df.loc[0, "efficiency"])
    assert list(dm2.df["flow"]) == list(sample_dm.df["flow"])
    assert dm2.operations == sample_dm.operations


def test_clear(sample_dm):
    sample_dm.clear()
    assert len(sample_dm) == 0
    assert list(sample_dm.df.columns) == ["flow", "head", "efficiency"]


def test_percent_conversion():
    p = percent_to_actual(Point(50, 25), max_x=300, max_y=60)
    assert p == Point(150, 15)
    assert actual_to_percent(p, 300, 60) == Point(50, 25)
    with pytest.raises(ValueError):
        actual_to_percent(p, 0, 60)
