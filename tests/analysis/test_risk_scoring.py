"""Per-point hazard, vulnerability, risk score and quadrant."""

import numpy as np
import pandas as pd
import pytest

from aura.analysis.risk_scoring import Quadrant, classify_quadrant, score_points

pytestmark = pytest.mark.unit


def _points(rain, ndvi, pop, built=None):
    n = len(rain)
    return pd.DataFrame({
        "point_id": np.arange(n),
        "Rain_Trend": rain,
        "NDVI_Trend": ndvi,
        "Pop": pop,
        "BuiltUp_Change": built if built is not None else np.zeros(n),
    })


class TestQuadrant:

    @pytest.mark.parametrize("rain, ndvi, expected", [
        (0.1, -0.01, Quadrant.HIGH_RISK_ALIGNED),
        (0.1, 0.01, Quadrant.RAIN_INCREASE_ONLY),
        (-0.1, -0.01, Quadrant.VEG_LOSS_ONLY),
        (-0.1, 0.01, Quadrant.LOW_CHANGE),
    ])
    def test_each_quadrant(self, rain, ndvi, expected):
        assert classify_quadrant(rain, ndvi) is expected

    def test_labels_are_the_written_strings(self):
        assert [q.value for q in Quadrant] == [
            "High_Risk_Aligned", "Rain_Increase_Only", "Veg_Loss_Only", "Low_Change"
        ]

    def test_zero_trends_are_low_change(self):
        # zero rain is not an increase, zero NDVI is not a loss
        assert classify_quadrant(0.0, 0.0) is Quadrant.LOW_CHANGE
        assert classify_quadrant(0.0, -0.01) is Quadrant.VEG_LOSS_ONLY
        assert classify_quadrant(0.1, 0.0) is Quadrant.RAIN_INCREASE_ONLY

    def test_quadrants_partition_random_points(self):
        rng = np.random.default_rng(0)
        rain = rng.normal(size=500)
        ndvi = rng.normal(size=500)
        labels = [classify_quadrant(r, n) for r, n in zip(rain, ndvi)]

        counts = {q: labels.count(q) for q in Quadrant}
        assert sum(counts.values()) == 500
        assert all(isinstance(label, Quadrant) for label in labels)


class TestScorePoints:

    def test_risk_formula(self, internal_config):
        records = score_points(_points([0.1], [-0.01], [100.0]), internal_config)

        assert records["hazard"].iloc[0] == pytest.approx(0.1)
        assert records["vulnerability"].iloc[0] == pytest.approx(0.01)
        assert records["Risk_Score"].iloc[0] == pytest.approx(0.1 * 0.01 * 100.0 * 1e7)
        assert records["Quadrant"].iloc[0] == "High_Risk_Aligned"

    def test_risk_is_gated_outside_aligned_quadrant(self, internal_config):
        records = score_points(
            _points([0.1, -0.1, -0.1, 0.0], [0.01, -0.01, 0.01, -0.02], [10.0, 10.0, 10.0, 10.0]),
            internal_config,
        )

        np.testing.assert_array_equal(records["Risk_Score"].to_numpy(), 0.0)
        assert (records["hazard"] >= 0).all()
        assert (records["vulnerability"] >= 0).all()

    def test_zero_population_scores_zero(self, internal_config):
        records = score_points(_points([0.5], [-0.5], [0.0]), internal_config)

        assert records["Risk_Score"].iloc[0] == 0.0
        assert records["Quadrant"].iloc[0] == "High_Risk_Aligned"

    def test_scale_constant_from_config(self, make_config):
        config = make_config(risk={"scale_constant": 1.0})
        records = score_points(_points([2.0], [-3.0], [4.0]), config)

        assert records["Risk_Score"].iloc[0] == pytest.approx(24.0)

    def test_input_frame_is_not_modified(self, internal_config):
        points = _points([0.1], [-0.01], [100.0])
        score_points(points, internal_config)

        assert "Risk_Score" not in points.columns

    def test_empty_input(self, internal_config):
        records = score_points(_points([], [], []), internal_config)

        assert records.empty
        assert "Risk_Score" in records.columns
