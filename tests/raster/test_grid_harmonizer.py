"""Reprojection onto the target grid and NaN-aware smoothing."""

import numpy as np
import pytest

from aura.raster.grid_harmonizer import GridHarmonizer
from aura.raster.raster_utils import Region, TargetGrid
from tests.helpers.fake_rasters import lonlat_axes, make_static_dataset

pytestmark = pytest.mark.unit


@pytest.fixture
def region(internal_config):
    return Region.from_config(internal_config)


@pytest.fixture
def grid(region):
    return TargetGrid.from_region(region, 2000.0)


def test_grid_covers_region(region, grid):
    assert grid.shape == (20, 20)
    assert grid.crs == region.local_crs
    assert grid.x_coords[0] == pytest.approx(-19000.0)
    assert grid.y_coords[0] == pytest.approx(19000.0)
    assert np.all(np.diff(grid.y_coords) < 0)


def test_reproject_is_idempotent_on_target_grid(internal_config, grid):
    values = np.arange(400, dtype=float).reshape(20, 20)
    raster = grid.to_dataarray(values, name="Pop")
    harmonizer = GridHarmonizer(internal_config, grid)

    out = harmonizer.reproject(raster)

    np.testing.assert_array_equal(out.values, values)
    assert out is not raster
    out.values[0, 0] = -1.0
    assert raster.values[0, 0] == 0.0


def test_reproject_constant_field_stays_constant(internal_config, region, grid):
    lon, lat = lonlat_axes(region.longitude, region.latitude)
    da = make_static_dataset(lon, lat, "Pop", 7.5)["Pop"]
    da = da.rename({"latitude": "y", "longitude": "x"}).assign_attrs(crs="EPSG:4326", resolution=0.05)

    out = GridHarmonizer(internal_config, grid).reproject(da)

    assert out.shape == grid.shape
    finite = np.isfinite(out.values)
    assert finite.all()
    np.testing.assert_allclose(out.values[finite], 7.5)


def test_reproject_outside_coverage_is_nan(internal_config, region, grid):
    lon, lat = lonlat_axes(region.longitude + 5.0, region.latitude)
    da = make_static_dataset(lon, lat, "Pop", 1.0)["Pop"]
    da = da.rename({"latitude": "y", "longitude": "x"}).assign_attrs(crs="EPSG:4326", resolution=0.05)

    out = GridHarmonizer(internal_config, grid).reproject(da)

    assert np.isnan(out.values).all()


def test_smoothing_keeps_nan_cells(internal_config, grid):
    values = np.ones((20, 20))
    values[5, 5] = np.nan
    values[10, 10] = 10.0
    raster = grid.to_dataarray(values, name="Rain_Trend")

    out = GridHarmonizer(internal_config, grid).smooth(raster)

    assert np.isnan(out.values[5, 5])
    assert np.isfinite(out.values[5, 6])
    # 3x3 mean around the spike: (8 * 1 + 10) / 9
    assert out.values[10, 10] == pytest.approx(2.0)
    # neighbours of the NaN cell average over the 8 valid cells only
    assert out.values[4, 4] == pytest.approx(1.0)


def test_smoothing_edges_use_in_bounds_cells(internal_config, grid):
    values = np.zeros((20, 20))
    values[0, 0] = 4.0
    out = GridHarmonizer(internal_config, grid).smooth(grid.to_dataarray(values))

    assert out.values[0, 0] == pytest.approx(1.0)


def test_harmonize_disabled_smoothing_is_pure_reprojection(make_config, grid):
    config = make_config(grid={"smoothing": False})
    values = np.random.default_rng(0).normal(size=grid.shape)
    rasters = {"Pop": grid.to_dataarray(values)}

    out = GridHarmonizer(config, grid).harmonize(rasters)

    assert list(out) == ["Pop"]
    assert out["Pop"].name == "Pop"
    np.testing.assert_array_equal(out["Pop"].values, values)
