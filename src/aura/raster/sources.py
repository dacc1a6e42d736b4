"""Read-only raster data sources.

A source answers two queries for a region:

- ``query_series(dataset_id, variables, start, end, region)`` returns an
  ``xr.Dataset`` with dims ``(time, y, x)`` holding the requested variables
  between ``start`` and ``end`` (inclusive dates).
- ``query_static(dataset_id, band, region)`` returns a single 2D Raster.

Results are clipped to the region's bounding box in the data's own CRS,
padded by one native cell, and use the standard ``y``/``x``/``time``
coordinate names with y decreasing (north-up). Sources are context managers;
handles opened during a query are released on exit.

Two implementations:

- ``NetCDFSource`` reads exported files laid out by dataset slug
  (``UCSB-CHG/CHIRPS/DAILY`` -> ``UCSB-CHG_CHIRPS_DAILY.nc``).
- ``InMemorySource`` serves datasets the caller already holds.

Any failure to satisfy a query raises ``ExternalSourceError``.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

import numpy as np
import rasterio
import xarray as xr
from rasterio.errors import RasterioIOError, WindowError
from rasterio.windows import Window, from_bounds

from aura.contracts import ExternalSourceError
from aura.raster.raster_utils import GEOGRAPHIC_CRS, Region, raster_resolution

__all__ = ['NetCDFSource', 'InMemorySource', 'dataset_slug']

logger = logging.getLogger(__name__)


def dataset_slug(dataset_id: str) -> str:
    """File-name form of a dataset id."""
    return dataset_id.strip("/").replace("/", "_")


class _RasterSource:
    """Shared standardization and clipping."""

    def __init__(self, coord_names: Optional[dict] = None):
        coord_names = coord_names or {}
        self.time_name = coord_names.get("time", "time")
        self.y_name = coord_names.get("y", "latitude")
        self.x_name = coord_names.get("x", "longitude")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self) -> None:
        pass

    def _standardize(self, obj, dataset_id: str):
        rename = {}
        for src, dst in ((self.time_name, "time"), (self.y_name, "y"), (self.x_name, "x")):
            if src != dst and src in obj.dims:
                rename[src] = dst
        if rename:
            obj = obj.rename(rename)
        for dim in ("y", "x"):
            if dim not in obj.dims:
                raise ExternalSourceError(
                    f"Dataset '{dataset_id}' has no '{dim}' dimension (found {tuple(obj.dims)})"
                )
        obj = obj.sortby("x").sortby("y", ascending=False)
        if "crs" not in obj.attrs:
            obj = obj.assign_attrs(crs=GEOGRAPHIC_CRS)
        return obj

    def _clip(self, obj, region: Region, dataset_id: str):
        crs = obj.attrs["crs"]
        min_x, min_y, max_x, max_y = region.bounds(crs)
        if obj.sizes["x"] > 1 and obj.sizes["y"] > 1:
            res_x, res_y = raster_resolution(obj)
        else:
            res_x = res_y = 0.0
        clipped = obj.sel(
            x=slice(min_x - res_x, max_x + res_x),
            y=slice(max_y + res_y, min_y - res_y),
        )
        if clipped.sizes["x"] == 0 or clipped.sizes["y"] == 0:
            raise ExternalSourceError(
                f"Region '{region.name}' lies outside the coverage of dataset '{dataset_id}'"
            )
        return clipped.assign_attrs(crs=crs, resolution=obj.attrs.get("resolution", (res_x, res_y)))

    def _select_series(self, ds: xr.Dataset, dataset_id: str, variables: Iterable[str], start, end, region: Region) -> xr.Dataset:
        variables = list(variables)
        missing = [v for v in variables if v not in ds.data_vars]
        if missing:
            raise ExternalSourceError(f"Dataset '{dataset_id}' is missing variables {missing}")
        ds = self._standardize(ds[variables].assign_attrs(ds.attrs), dataset_id)
        if "time" not in ds.dims:
            raise ExternalSourceError(f"Dataset '{dataset_id}' has no time dimension")
        ds = ds.sortby("time").sel(time=slice(str(start), str(end)))
        if ds.sizes["time"] == 0:
            raise ExternalSourceError(f"Dataset '{dataset_id}' has no observations between {start} and {end}")
        ds = self._clip(ds, region, dataset_id)
        logger.debug("Queried %s: %d time steps, %dx%d cells",
                     dataset_id, ds.sizes["time"], ds.sizes["y"], ds.sizes["x"])
        return ds

    def _select_static(self, da: xr.DataArray, dataset_id: str, region: Region) -> xr.DataArray:
        if "time" in da.dims:
            if da.sizes["time"] != 1:
                raise ExternalSourceError(
                    f"Static dataset '{dataset_id}' has {da.sizes['time']} time steps, expected 1"
                )
            da = da.isel(time=0, drop=True)
        da = self._standardize(da, dataset_id)
        return self._clip(da, region, dataset_id)


class InMemorySource(_RasterSource):
    """Serve pre-built datasets keyed by dataset id.

    Parameters
    ----------
    series : dict[str, xr.Dataset], optional
        Time-series datasets.
    static : dict[str, xr.Dataset | xr.DataArray], optional
        Static rasters; a Dataset is indexed by band name.
    coord_names : dict, optional
        Names of the time/y/x coordinates in the supplied data.
    """

    def __init__(self, series: Optional[dict] = None, static: Optional[dict] = None, coord_names: Optional[dict] = None):
        super().__init__(coord_names)
        self.series = dict(series or {})
        self.static = dict(static or {})

    def query_series(self, dataset_id, variables, start, end, region: Region) -> xr.Dataset:
        if dataset_id not in self.series:
            raise ExternalSourceError(f"Dataset '{dataset_id}' not available")
        return self._select_series(self.series[dataset_id], dataset_id, variables, start, end, region)

    def query_static(self, dataset_id, band, region: Region) -> xr.DataArray:
        if dataset_id not in self.static:
            raise ExternalSourceError(f"Dataset '{dataset_id}' not available")
        obj = self.static[dataset_id]
        if isinstance(obj, xr.Dataset):
            if band not in obj.data_vars:
                raise ExternalSourceError(f"Dataset '{dataset_id}' has no band '{band}'")
            crs = obj.attrs.get("crs")
            obj = obj[band]
            if crs is not None and "crs" not in obj.attrs:
                obj = obj.assign_attrs(crs=crs)
        return self._select_static(obj.rename(band), dataset_id, region)


class NetCDFSource(_RasterSource):
    """Read exported rasters from local directories.

    Time series are ``<timeseries_dir>/<slug>.nc``; static rasters are
    ``<static_dir>/<slug>.tif`` (GeoTIFF, read through rasterio with a window
    around the region) or ``<static_dir>/<slug>.nc``.

    Parameters
    ----------
    timeseries_dir : str or Path, optional
        Directory holding time-series NetCDF files.
    static_dir : str or Path, optional
        Directory holding static GeoTIFF / NetCDF files.
    coord_names : dict, optional
        Names of the time/y/x coordinates in the NetCDF files.
    """

    def __init__(self, timeseries_dir=None, static_dir=None, coord_names: Optional[dict] = None):
        super().__init__(coord_names)
        self.timeseries_dir = Path(timeseries_dir) if timeseries_dir else None
        self.static_dir = Path(static_dir) if static_dir else None
        self._handles = []

    def close(self) -> None:
        while self._handles:
            self._handles.pop().close()

    def _path(self, directory: Optional[Path], dataset_id: str, suffixes) -> Path:
        if directory is None:
            raise ExternalSourceError(f"No directory configured for dataset '{dataset_id}'")
        for suffix in suffixes:
            path = directory / f"{dataset_slug(dataset_id)}{suffix}"
            if path.exists():
                return path
        raise ExternalSourceError(
            f"Dataset '{dataset_id}' not found in {directory} "
            f"(looked for {dataset_slug(dataset_id)}{{{','.join(suffixes)}}})"
        )

    def _open_dataset(self, path: Path) -> xr.Dataset:
        try:
            ds = xr.open_dataset(path)
        except (OSError, ValueError) as e:
            raise ExternalSourceError(f"Cannot open {path}: {e}") from e
        self._handles.append(ds)
        return ds

    def query_series(self, dataset_id, variables, start, end, region: Region) -> xr.Dataset:
        path = self._path(self.timeseries_dir, dataset_id, (".nc",))
        ds = self._open_dataset(path)
        return self._select_series(ds, dataset_id, variables, start, end, region).load()

    def query_static(self, dataset_id, band, region: Region) -> xr.DataArray:
        path = self._path(self.static_dir, dataset_id, (".tif", ".tiff", ".nc"))
        if path.suffix == ".nc":
            ds = self._open_dataset(path)
            if band not in ds.data_vars:
                raise ExternalSourceError(f"Dataset '{dataset_id}' has no band '{band}'")
            da = ds[band]
            if "crs" in ds.attrs and "crs" not in da.attrs:
                da = da.assign_attrs(crs=ds.attrs["crs"])
            return self._select_static(da.rename(band), dataset_id, region).load()
        return self._read_geotiff(path, dataset_id, band, region)

    def _read_geotiff(self, path: Path, dataset_id: str, band: str, region: Region) -> xr.DataArray:
        try:
            src = rasterio.open(path)
        except RasterioIOError as e:
            raise ExternalSourceError(f"Cannot open {path}: {e}") from e
        self._handles.append(src)

        if band in src.descriptions:
            index = src.descriptions.index(band) + 1
        elif src.count == 1:
            index = 1
        else:
            raise ExternalSourceError(
                f"Dataset '{dataset_id}' has no band '{band}' (bands: {src.descriptions})"
            )

        crs = src.crs.to_string()
        min_x, min_y, max_x, max_y = region.bounds(crs)
        res_x, res_y = src.res
        window = from_bounds(min_x - res_x, min_y - res_y, max_x + res_x, max_y + res_y, transform=src.transform)
        window = window.round_offsets().round_lengths()
        try:
            window = window.intersection(Window(0, 0, src.width, src.height))
        except WindowError as e:
            raise ExternalSourceError(
                f"Region '{region.name}' lies outside the coverage of dataset '{dataset_id}'"
            ) from e

        values = src.read(index, window=window).astype(float)
        if src.nodata is not None and not np.isnan(src.nodata):
            values[values == src.nodata] = np.nan

        transform = src.window_transform(window)
        x = transform.c + transform.a * (np.arange(values.shape[1]) + 0.5)
        y = transform.f + transform.e * (np.arange(values.shape[0]) + 0.5)
        da = xr.DataArray(
            values, dims=("y", "x"), coords={"y": y, "x": x}, name=band,
            attrs={"crs": crs, "resolution": (res_x, res_y)},
        )
        if da.size == 0:
            raise ExternalSourceError(
                f"Region '{region.name}' lies outside the coverage of dataset '{dataset_id}'"
            )
        logger.debug("Read %s band %d from %s: %dx%d cells", band, index, path.name, *values.shape)
        return da.sortby("y", ascending=False)
