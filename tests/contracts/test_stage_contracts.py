"""Tests for pipeline contracts.

These tests verify that contracts are enforced at stage boundaries.
They test contract violations directly, without defensive logic downstream.
"""

import numpy as np
import pandas as pd
import pytest

from aura.contracts import (
    ContractViolation,
    ExternalSourceError,
    assert_harmonized,
    assert_risk_output,
    assert_sampled,
    assert_trend_raster,
    require,
)
from aura.analysis.risk_scoring import Quadrant
from aura.raster.point_sampler import SampleResult
from tests.helpers.fake_rasters import make_local_raster

pytestmark = pytest.mark.unit


def _trend(values=None, name="Rain_Trend"):
    da = make_local_raster(np.ones((3, 3)) if values is None else values, name=name)
    da.attrs["sign_convention"] = "positive_increasing"
    return da


class TestRequire:

    def test_require_passes(self):
        require(True, "never raised")

    def test_require_raises_contract_violation(self):
        with pytest.raises(ContractViolation, match="broken"):
            require(False, "broken")

    def test_error_taxonomy_is_runtime_error(self):
        assert issubclass(ContractViolation, RuntimeError)
        assert issubclass(ExternalSourceError, RuntimeError)
        assert not issubclass(ExternalSourceError, ContractViolation)


class TestTrendContract:

    def test_valid_trend_passes(self):
        assert_trend_raster(_trend())

    def test_nan_cells_are_allowed(self):
        values = np.ones((3, 3))
        values[1, 1] = np.nan
        assert_trend_raster(_trend(values))

    def test_missing_sign_convention_fails(self):
        da = make_local_raster(np.ones((3, 3)), name="Rain_Trend")
        with pytest.raises(ContractViolation, match="sign_convention"):
            assert_trend_raster(da)

    def test_infinite_slope_fails(self):
        values = np.ones((3, 3))
        values[0, 0] = np.inf
        with pytest.raises(ContractViolation, match="infinite"):
            assert_trend_raster(_trend(values))

    def test_time_dimension_fails(self):
        da = _trend().expand_dims(time=[2000.0])
        with pytest.raises(ContractViolation, match="dims"):
            assert_trend_raster(da)


class TestHarmonizedContract:

    def test_same_grid_passes(self):
        rasters = {"a": make_local_raster(np.ones((4, 4))), "b": make_local_raster(np.zeros((4, 4)))}
        assert_harmonized(rasters, (4, 4))

    def test_wrong_shape_fails(self):
        rasters = {"a": make_local_raster(np.ones((4, 4))), "b": make_local_raster(np.ones((3, 4)))}
        with pytest.raises(ContractViolation, match="shape"):
            assert_harmonized(rasters, (4, 4))

    def test_different_crs_fails(self):
        rasters = {
            "a": make_local_raster(np.ones((4, 4))),
            "b": make_local_raster(np.ones((4, 4)), crs="EPSG:32648"),
        }
        with pytest.raises(ContractViolation):
            assert_harmonized(rasters, (4, 4))

    def test_shifted_coordinates_fail(self):
        rasters = {
            "a": make_local_raster(np.ones((4, 4))),
            "b": make_local_raster(np.ones((4, 4)), x0=501000.0),
        }
        with pytest.raises(ContractViolation):
            assert_harmonized(rasters, (4, 4))

    def test_empty_fails(self):
        with pytest.raises(ContractViolation, match="no rasters"):
            assert_harmonized({}, (4, 4))


class TestSampledContract:

    def _result(self, valid):
        return SampleResult(samples=valid, valid=valid, raw_count=len(valid) + 2, valid_count=len(valid))

    def test_complete_points_pass(self):
        valid = pd.DataFrame({"point_id": [0, 2, 5], "Pop": [1.0, 2.0, 3.0]})
        assert_sampled(self._result(valid), ["Pop"])

    def test_nan_attribute_fails(self):
        valid = pd.DataFrame({"point_id": [0, 1], "Pop": [1.0, np.nan]})
        with pytest.raises(ContractViolation, match="non-finite"):
            assert_sampled(self._result(valid), ["Pop"])

    def test_missing_column_fails(self):
        valid = pd.DataFrame({"point_id": [0, 1]})
        with pytest.raises(ContractViolation, match="missing required column"):
            assert_sampled(self._result(valid), ["Pop"])

    def test_unordered_points_fail(self):
        valid = pd.DataFrame({"point_id": [3, 1], "Pop": [1.0, 2.0]})
        with pytest.raises(ContractViolation, match="point_id order"):
            assert_sampled(self._result(valid), ["Pop"])

    def test_more_valid_than_raw_fails(self):
        valid = pd.DataFrame({"point_id": [0, 1], "Pop": [1.0, 2.0]})
        result = SampleResult(samples=valid, valid=valid, raw_count=1, valid_count=2)
        with pytest.raises(ContractViolation, match="exceed"):
            assert_sampled(result, ["Pop"])


class TestRiskContract:

    LABELS = {q.value for q in Quadrant}

    def _frame(self, **overrides):
        data = {
            "hazard": [0.1, 0.0],
            "vulnerability": [0.01, 0.02],
            "Risk_Score": [1000.0, 0.0],
            "Quadrant": ["High_Risk_Aligned", "Veg_Loss_Only"],
        }
        data.update(overrides)
        return pd.DataFrame(data)

    def test_valid_output_passes(self):
        assert_risk_output(self._frame(), "Risk_Score", "Quadrant", self.LABELS)

    def test_empty_output_passes(self):
        df = self._frame().iloc[0:0]
        assert_risk_output(df, "Risk_Score", "Quadrant", self.LABELS)

    def test_negative_score_fails(self):
        with pytest.raises(ContractViolation, match="non-negative"):
            assert_risk_output(self._frame(Risk_Score=[-1.0, 0.0]), "Risk_Score", "Quadrant", self.LABELS)

    def test_unknown_label_fails(self):
        frame = self._frame(Quadrant=["High_Risk_Aligned", "SOMETHING_ELSE"])
        with pytest.raises(ContractViolation, match="unexpected quadrant"):
            assert_risk_output(frame, "Risk_Score", "Quadrant", self.LABELS)

    def test_ungated_score_fails(self):
        with pytest.raises(ContractViolation, match="non-zero risk"):
            assert_risk_output(self._frame(Risk_Score=[1000.0, 5.0]), "Risk_Score", "Quadrant", self.LABELS)

    def test_missing_column_fails(self):
        frame = self._frame().drop(columns=["hazard"])
        with pytest.raises(ContractViolation, match="hazard"):
            assert_risk_output(frame, "Risk_Score", "Quadrant", self.LABELS)
