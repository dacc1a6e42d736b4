"""Seeded point sampling and the raster join."""

import numpy as np
import pandas as pd
import pytest

from aura.raster.point_sampler import PointSampler
from aura.raster.raster_utils import Region, TargetGrid

pytestmark = pytest.mark.unit


def _sampler(config, resolution=2000.0):
    region = Region.from_config(config)
    grid = TargetGrid.from_region(region, resolution)
    return PointSampler(config, region, grid), region, grid


class TestSample:

    def test_points_lie_inside_region(self, make_config):
        sampler, region, grid = _sampler(make_config(sample_size=300))

        points = sampler.sample()

        assert len(points) == 300
        assert list(points["point_id"]) == list(range(300))
        assert np.all(np.hypot(points["x"], points["y"]) <= region.buffer_m + 1e-6)

    def test_lonlat_match_local_coordinates(self, make_config):
        sampler, region, grid = _sampler(make_config(sample_size=20))

        points = sampler.sample()
        x, y = region.to_local(points["lon"], points["lat"], "EPSG:4326")

        np.testing.assert_allclose(x, points["x"], atol=1e-3)
        np.testing.assert_allclose(y, points["y"], atol=1e-3)

    def test_same_seed_same_points(self, make_config):
        a = _sampler(make_config(seed=42, sample_size=50))[0].sample()
        b = _sampler(make_config(seed=42, sample_size=50))[0].sample()

        pd.testing.assert_frame_equal(a, b)

    def test_different_seed_different_points(self, make_config):
        a = _sampler(make_config(seed=1, sample_size=50))[0].sample()
        b = _sampler(make_config(seed=2, sample_size=50))[0].sample()

        assert not np.allclose(a["x"], b["x"])

    def test_projected_grid_crs(self, make_config):
        config = make_config(sample_size=10, grid={"crs": "EPSG:32647"})
        region = Region.from_config(config)
        grid = TargetGrid.from_region(region, 2000.0, config.grid.crs)

        points = PointSampler(config, region, grid).sample()

        # UTM 47N eastings around Kuala Lumpur
        assert points["x"].between(700000, 850000).all()


class TestJoin:

    def test_cell_values_are_attached(self, make_config):
        sampler, region, grid = _sampler(make_config(sample_size=100))
        xx, yy = np.meshgrid(grid.x_coords, grid.y_coords)
        rasters = {"X": grid.to_dataarray(xx), "Y": grid.to_dataarray(yy)}

        result = sampler.join(sampler.sample(), rasters)

        assert result.raw_count == result.valid_count == 100
        # each point picks its own cell centre
        assert np.all(np.abs(result.valid["X"] - result.valid["x"]) <= grid.resolution / 2 + 1e-6)
        assert np.all(np.abs(result.valid["Y"] - result.valid["y"]) <= grid.resolution / 2 + 1e-6)

    def test_points_on_nodata_are_dropped(self, make_config):
        sampler, region, grid = _sampler(make_config(sample_size=200))
        xx, _ = np.meshgrid(grid.x_coords, grid.y_coords)
        west_missing = np.where(xx < 0, np.nan, 1.0)
        rasters = {"Pop": grid.to_dataarray(west_missing), "Rain_Trend": grid.to_dataarray(np.ones(grid.shape))}

        result = sampler.join(sampler.sample(), rasters)

        assert result.raw_count == 200
        assert 0 < result.valid_count < 200
        assert result.coverage_loss == 200 - result.valid_count
        assert (result.valid["x"] >= 0).all()
        assert result.valid["point_id"].is_monotonic_increasing
        assert len(result.samples) == 200
        assert result.samples["Pop"].isna().sum() == result.coverage_loss

    def test_all_nodata_gives_empty_valid(self, make_config):
        sampler, region, grid = _sampler(make_config(sample_size=30))
        rasters = {"Pop": grid.to_dataarray(np.full(grid.shape, np.nan))}

        result = sampler.join(sampler.sample(), rasters)

        assert result.valid_count == 0
        assert result.valid.empty

    def test_radius_extraction_averages_neighbourhood(self, make_config):
        config = make_config(sample_size=50, sampling={"extraction_radius_m": 5000})
        sampler, region, grid = _sampler(config)
        rasters = {"Pop": grid.to_dataarray(np.full(grid.shape, 4.0))}

        result = sampler.join(sampler.sample(), rasters)

        np.testing.assert_allclose(result.valid["Pop"], 4.0)
