"""Geometry and time helpers shared by the raster stages.

Centralized helper functions for:
- The analysis region (point + buffer) and its local azimuthal-equidistant frame
- The common target grid every raster is harmonized onto
- Affine transforms derived from cell-centre coordinates
- Fractional-year time coordinates

Rasters are plain ``xarray.DataArray`` objects with dims ``("y", "x")``,
cell-centre coordinates, ``attrs["crs"]`` and ``attrs["resolution"]``.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd
import xarray as xr
from pyproj import CRS, Transformer
from rasterio.transform import from_origin

__all__ = [
    'Region',
    'TargetGrid',
    'make_raster',
    'raster_transform',
    'raster_resolution',
    'same_crs',
    'fractional_year',
]

logger = logging.getLogger(__name__)

GEOGRAPHIC_CRS = "EPSG:4326"


# ============================================================================
# REGION
# ============================================================================

@dataclass(frozen=True)
class Region:
    """Area of interest: the disc of ``buffer_m`` meters around a point."""

    name: str
    longitude: float
    latitude: float
    buffer_m: float

    @classmethod
    def from_config(cls, config) -> "Region":
        return cls(
            name=config.region.name,
            longitude=config.region.longitude,
            latitude=config.region.latitude,
            buffer_m=config.region.buffer_m,
        )

    @property
    def local_crs(self) -> str:
        """Azimuthal equidistant CRS (meters) centred on the region point."""
        return (
            f"+proj=aeqd +lat_0={self.latitude} +lon_0={self.longitude} "
            "+x_0=0 +y_0=0 +datum=WGS84 +units=m +no_defs"
        )

    @property
    def area_km2(self) -> float:
        return math.pi * (self.buffer_m / 1000.0) ** 2

    def boundary(self, crs: str, n_vertices: int = 360) -> Tuple[np.ndarray, np.ndarray]:
        """Densified disc boundary expressed in ``crs``."""
        theta = np.linspace(0.0, 2.0 * np.pi, n_vertices, endpoint=False)
        xs = self.buffer_m * np.cos(theta)
        ys = self.buffer_m * np.sin(theta)
        transformer = Transformer.from_crs(self.local_crs, crs, always_xy=True)
        return transformer.transform(xs, ys)

    def bounds(self, crs: str = GEOGRAPHIC_CRS) -> Tuple[float, float, float, float]:
        """(min_x, min_y, max_x, max_y) of the disc in ``crs``."""
        bx, by = self.boundary(crs)
        return float(np.min(bx)), float(np.min(by)), float(np.max(bx)), float(np.max(by))

    def to_local(self, x, y, crs: str):
        """Transform coordinates from ``crs`` into the region's local frame."""
        transformer = Transformer.from_crs(crs, self.local_crs, always_xy=True)
        return transformer.transform(np.asarray(x, dtype=float), np.asarray(y, dtype=float))

    def from_local(self, x, y, crs: str):
        """Transform local-frame coordinates into ``crs``."""
        transformer = Transformer.from_crs(self.local_crs, crs, always_xy=True)
        return transformer.transform(np.asarray(x, dtype=float), np.asarray(y, dtype=float))


# ============================================================================
# TARGET GRID
# ============================================================================

@dataclass(frozen=True)
class TargetGrid:
    """North-up regular grid: CRS, square cell size, top-left corner and shape."""

    crs: str
    resolution: float
    west: float
    north: float
    width: int
    height: int

    @classmethod
    def from_region(cls, region: Region, resolution: float, crs: str = "local") -> "TargetGrid":
        """Square grid bounding the region disc.

        Parameters
        ----------
        region : Region
            Analysis region.
        resolution : float
            Cell size in meters.
        crs : str, default "local"
            "local" for the region's azimuthal equidistant frame, or any
            projected CRS in meters.

        Returns
        -------
        TargetGrid
            Grid whose extent covers the disc, centred on the region point.
        """
        if crs == "local":
            crs = region.local_crs
            cx, cy = 0.0, 0.0
        else:
            transformer = Transformer.from_crs(GEOGRAPHIC_CRS, crs, always_xy=True)
            cx, cy = transformer.transform(region.longitude, region.latitude)

        n = max(1, int(math.ceil(2.0 * region.buffer_m / resolution)))
        half = n * resolution / 2.0
        grid = cls(crs=crs, resolution=float(resolution), west=cx - half, north=cy + half, width=n, height=n)
        logger.debug("Target grid %dx%d at %.1f m in %s", n, n, resolution, crs)
        return grid

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    @property
    def transform(self):
        return from_origin(self.west, self.north, self.resolution, self.resolution)

    @property
    def x_coords(self) -> np.ndarray:
        return self.west + self.resolution * (np.arange(self.width) + 0.5)

    @property
    def y_coords(self) -> np.ndarray:
        return self.north - self.resolution * (np.arange(self.height) + 0.5)

    def to_dataarray(self, values: np.ndarray, name: Optional[str] = None, attrs: Optional[dict] = None) -> xr.DataArray:
        """Wrap a (height, width) array as a Raster on this grid."""
        return make_raster(values, self.x_coords, self.y_coords, self.crs, self.resolution, name=name, attrs=attrs)

    def matches(self, raster: xr.DataArray) -> bool:
        """True when ``raster`` already sits exactly on this grid."""
        if raster.dims != ("y", "x") or raster.shape != self.shape:
            return False
        if not same_crs(raster.attrs.get("crs"), self.crs):
            return False
        tol = 1e-6 * self.resolution
        return bool(
            np.allclose(raster["x"].values, self.x_coords, rtol=0, atol=tol)
            and np.allclose(raster["y"].values, self.y_coords, rtol=0, atol=tol)
        )


# ============================================================================
# RASTER HELPERS
# ============================================================================

def make_raster(values, x, y, crs: str, resolution, name: Optional[str] = None, attrs: Optional[dict] = None) -> xr.DataArray:
    """Build a Raster DataArray with the standard coordinates and attributes."""
    merged = dict(attrs or {})
    merged["crs"] = crs
    merged["resolution"] = resolution
    return xr.DataArray(
        np.asarray(values, dtype=float),
        dims=("y", "x"),
        coords={"y": np.asarray(y, dtype=float), "x": np.asarray(x, dtype=float)},
        name=name,
        attrs=merged,
    )


def raster_resolution(raster) -> Tuple[float, float]:
    """(x, y) cell size from coordinates, falling back to ``attrs['resolution']``."""
    x = raster["x"].values
    y = raster["y"].values
    fallback = raster.attrs.get("resolution")
    if isinstance(fallback, (tuple, list, np.ndarray)):
        fx, fy = float(fallback[0]), float(fallback[1])
    elif fallback is not None:
        fx = fy = float(fallback)
    else:
        fx = fy = None
    res_x = abs(float(x[1] - x[0])) if x.size > 1 else fx
    res_y = abs(float(y[1] - y[0])) if y.size > 1 else fy
    if res_x is None or res_y is None:
        raise ValueError(f"Cannot determine resolution of single-cell raster '{raster.name}'")
    return res_x, res_y


def raster_transform(raster):
    """North-up affine transform of a raster whose y coordinate decreases."""
    res_x, res_y = raster_resolution(raster)
    x0 = float(raster["x"].values[0])
    y0 = float(raster["y"].values[0])
    return from_origin(x0 - res_x / 2.0, y0 + res_y / 2.0, res_x, res_y)


def same_crs(a, b) -> bool:
    if a is None or b is None:
        return False
    if a == b:
        return True
    return CRS.from_user_input(a) == CRS.from_user_input(b)


def fractional_year(times) -> np.ndarray:
    """Year plus the fraction of the year elapsed at each timestamp.

    ``(day_of_year - 1 + seconds_of_day / 86400) / days_in_year``, so
    2001-01-01T00:00 maps to 2001.0 and 2001-07-02T12:00 to 2001.5.
    """
    idx = pd.DatetimeIndex(times)
    seconds = idx.hour * 3600 + idx.minute * 60 + idx.second
    days_in_year = np.where(idx.is_leap_year, 366.0, 365.0)
    frac = (idx.dayofyear.to_numpy() - 1 + seconds.to_numpy() / 86400.0) / days_in_year
    return idx.year.to_numpy().astype(float) + frac
