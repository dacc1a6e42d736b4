import numpy as np
import pandas as pd
import xarray as xr

from aura.raster.raster_utils import make_raster
from aura.raster.sources import InMemorySource


def lonlat_axes(lon0, lat0, half_width_deg=0.3, step_deg=0.05):
    """Cell-centre longitudes (ascending) and latitudes (descending)."""
    n = int(round(2 * half_width_deg / step_deg))
    lon = lon0 - half_width_deg + step_deg * (np.arange(n) + 0.5)
    lat = lat0 + half_width_deg - step_deg * (np.arange(n) + 0.5)
    return lon, lat


def make_rain_dataset(lon, lat, years, slope_east=0.5, slope_west=-0.5, days_per_year=3):
    """Daily precipitation whose annual level grows east of the centre and shrinks west of it.

    Every day of a year carries the same value, so any percentile composite
    equals the yearly level and the fitted slope is exactly the configured one.
    """
    centre = lon.mean()
    slope_x = np.where(lon > centre, slope_east, slope_west)
    times, frames = [], []
    for year in years:
        level = 20.0 + slope_x * (year - years[0])
        for day in range(days_per_year):
            times.append(pd.Timestamp(year=year, month=6, day=1 + day))
            frames.append(np.broadcast_to(level, (lat.size, lon.size)))
    return xr.Dataset(
        {"precipitation": (("time", "latitude", "longitude"), np.stack(frames))},
        coords={"time": pd.DatetimeIndex(times), "latitude": lat, "longitude": lon},
    )


def make_ndvi_dataset(lon, lat, years, slope_north=-200.0, slope_south=100.0, qa_bad_every=0):
    """Scaled-integer NDVI, two observations a year, falling north of the centre.

    ``qa_bad_every`` marks every n-th observation with SummaryQA=2 and a
    wild value that must be masked out.
    """
    centre = lat.mean()
    slope_y = np.where(lat > centre, slope_north, slope_south)[:, None]
    times, values, qa = [], [], []
    i = 0
    for year in years:
        for month in (3, 9):
            ts = pd.Timestamp(year=year, month=month, day=1)
            t = year + (ts.dayofyear - 1) / (366.0 if ts.is_leap_year else 365.0)
            frame = 6000.0 + slope_y * (t - years[0]) + np.zeros((lat.size, lon.size))
            flag = np.zeros((lat.size, lon.size), dtype=int)
            if qa_bad_every and i % qa_bad_every == 0:
                frame = np.full_like(frame, -3000.0)
                flag[:] = 2
            times.append(ts)
            values.append(frame)
            qa.append(flag)
            i += 1
    return xr.Dataset(
        {
            "NDVI": (("time", "latitude", "longitude"), np.stack(values)),
            "SummaryQA": (("time", "latitude", "longitude"), np.stack(qa)),
        },
        coords={"time": pd.DatetimeIndex(times), "latitude": lat, "longitude": lon},
    )


def make_static_dataset(lon, lat, band, values):
    """Single-band static raster on the lon/lat grid."""
    data = np.broadcast_to(np.asarray(values, dtype=float), (lat.size, lon.size)).copy()
    return xr.Dataset(
        {band: (("latitude", "longitude"), data)},
        coords={"latitude": lat, "longitude": lon},
        attrs={"crs": "EPSG:4326"},
    )


def make_source(config, population=100.0, qa_bad_every=0):
    """InMemorySource covering the configured region and period."""
    region = config.region
    lon, lat = lonlat_axes(region.longitude, region.latitude)
    years = list(range(config.period.start_year, config.period.end_year + 1))

    built = config.built_up
    series = {
        config.rainfall.dataset_id: make_rain_dataset(lon, lat, years),
        config.vegetation.dataset_id: make_ndvi_dataset(lon, lat, years, qa_bad_every=qa_bad_every),
    }
    static = {
        config.population.dataset_id: make_static_dataset(lon, lat, config.population.band, population),
        built.start_dataset_id: make_static_dataset(lon, lat, built.band, 1000.0),
        built.end_dataset_id: make_static_dataset(lon, lat, built.band, 3000.0),
    }
    return InMemorySource(series=series, static=static)


def make_local_raster(values, resolution=1000.0, crs="EPSG:32647", x0=500000.0, y0=400000.0, name=None):
    """Raster in a projected CRS with its top-left cell centre at (x0, y0)."""
    values = np.asarray(values, dtype=float)
    ny, nx = values.shape
    x = x0 + resolution * np.arange(nx)
    y = y0 - resolution * np.arange(ny)
    return make_raster(values, x, y, crs, resolution, name=name)
