"""File-backed and in-memory data sources."""

import numpy as np
import pytest
import rasterio
from rasterio.transform import from_origin

from aura.contracts import ExternalSourceError
from aura.raster.loader import TimeSeriesLoader
from aura.raster.raster_utils import Region
from aura.raster.sources import InMemorySource, NetCDFSource, dataset_slug
from tests.helpers.fake_rasters import lonlat_axes, make_rain_dataset, make_static_dataset

pytestmark = pytest.mark.unit


@pytest.fixture
def config(make_config):
    return make_config(start_year=2000, end_year=2004)


def _write_geotiff(path, values, lon, lat, step=0.05, nodata=-9999.0, description=None):
    profile = dict(
        driver="GTiff", height=values.shape[0], width=values.shape[1], count=1,
        dtype="float32", crs="EPSG:4326", nodata=nodata,
        transform=from_origin(lon[0] - step / 2, lat[0] + step / 2, step, step),
    )
    with rasterio.open(path, "w", **profile) as dst:
        dst.write(values.astype("float32"), 1)
        if description:
            dst.set_band_description(1, description)


def test_dataset_slug():
    assert dataset_slug("UCSB-CHG/CHIRPS/DAILY") == "UCSB-CHG_CHIRPS_DAILY"
    assert dataset_slug("/JRC/GHSL/P2023A/GHS_POP/2020/") == "JRC_GHSL_P2023A_GHS_POP_2020"


def test_netcdf_series_round_trip(config, temp_dir):
    lon, lat = lonlat_axes(config.region.longitude, config.region.latitude)
    ds = make_rain_dataset(lon, lat, list(range(2000, 2005)))
    ds.to_netcdf(temp_dir / f"{dataset_slug(config.rainfall.dataset_id)}.nc")

    source = NetCDFSource(timeseries_dir=temp_dir)
    rain = TimeSeriesLoader(config, source).load_rainfall()

    assert rain.sizes["time"] == 5
    assert not source._handles


def test_geotiff_static_band(config, temp_dir):
    lon, lat = lonlat_axes(config.region.longitude, config.region.latitude)
    values = np.full((lat.size, lon.size), 25.0)
    values[5, 6] = -9999.0
    path = temp_dir / f"{dataset_slug(config.population.dataset_id)}.tif"
    _write_geotiff(path, values, lon, lat, description=config.population.band)

    source = NetCDFSource(static_dir=temp_dir)
    pop = TimeSeriesLoader(config, source).load_population()

    assert pop.dims == ("y", "x")
    assert pop.attrs["crs"] == "EPSG:4326"
    assert np.all(np.diff(pop["y"].values) < 0)
    assert int(np.isnan(pop.values).sum()) == 1
    assert np.nanmax(pop.values) == pytest.approx(25.0)
    assert not source._handles


def test_geotiff_outside_region(make_config, temp_dir):
    config = make_config(CITY="colombo")
    kl = make_config()
    lon, lat = lonlat_axes(kl.region.longitude, kl.region.latitude)
    path = temp_dir / f"{dataset_slug(config.population.dataset_id)}.tif"
    _write_geotiff(path, np.ones((lat.size, lon.size)), lon, lat)

    with pytest.raises(ExternalSourceError, match="outside the coverage"):
        TimeSeriesLoader(config, NetCDFSource(static_dir=temp_dir)).load_population()


def test_missing_file_is_external_error(config, temp_dir):
    with pytest.raises(ExternalSourceError, match="not found"):
        TimeSeriesLoader(config, NetCDFSource(timeseries_dir=temp_dir)).load_rainfall()


def test_unconfigured_directory_is_external_error(config):
    with pytest.raises(ExternalSourceError, match="No directory configured"):
        TimeSeriesLoader(config, NetCDFSource()).load_population()


def test_in_memory_missing_band(config):
    lon, lat = lonlat_axes(config.region.longitude, config.region.latitude)
    static = {config.population.dataset_id: make_static_dataset(lon, lat, "other_band", 1.0)}

    with pytest.raises(ExternalSourceError, match="no band"):
        TimeSeriesLoader(config, InMemorySource(static=static)).load_population()


def test_clip_keeps_region_with_padding(config):
    lon, lat = lonlat_axes(config.region.longitude, config.region.latitude)
    static = {config.population.dataset_id: make_static_dataset(lon, lat, config.population.band, 1.0)}
    region = Region.from_config(config)

    with InMemorySource(static=static) as source:
        da = source.query_static(config.population.dataset_id, config.population.band, region)

    min_x, min_y, max_x, max_y = region.bounds()
    assert da["x"].min() <= min_x and da["x"].max() >= max_x
    assert da["y"].min() <= min_y and da["y"].max() >= max_y
    assert da.sizes["x"] < lon.size
