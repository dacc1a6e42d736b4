"""Bring every raster onto one target grid.

Rasters arrive at their native resolution and CRS (5.5 km rainfall, 250 m
vegetation index, 100 m population, ...). The harmonizer reprojects each of
them to the common TargetGrid with areal-mean resampling and then optionally
applies a NaN-aware square local mean. Output rasters share identical grid
geometry, so point extraction downstream is unambiguous.
"""

import logging
from typing import Dict

import numpy as np
import xarray as xr
from rasterio.crs import CRS
from rasterio.warp import Resampling, reproject
from scipy.ndimage import uniform_filter

from aura.raster.raster_utils import TargetGrid, raster_transform

__all__ = ['GridHarmonizer']

logger = logging.getLogger(__name__)


class GridHarmonizer:
    """Reproject and smooth rasters onto a TargetGrid.

    Parameters
    ----------
    config : InternalConfig
        Uses ``grid.smoothing`` and ``grid.smoothing_size``.
    grid : TargetGrid
        Common output grid.

    Notes
    -----
    - Resampling is always ``Resampling.average`` (areal mean); nearest
      neighbour would alias when coarsening.
    - NaN is the no-data value on both sides of the warp.
    - Smoothing runs after reprojection, in target-grid cells.
    - Input rasters are never modified.
    """

    def __init__(self, config, grid: TargetGrid):
        self.grid = grid
        self.smoothing = config.grid.smoothing
        self.smoothing_size = config.grid.smoothing_size

    def reproject(self, raster: xr.DataArray) -> xr.DataArray:
        """Areal-mean reprojection of ``raster`` onto the target grid.

        A raster already on the target grid (same CRS, shape and
        coordinates) is returned as an equal-valued copy.
        """
        if self.grid.matches(raster):
            logger.debug("%s already on target grid; copying", raster.name)
            out = self.grid.to_dataarray(raster.values.copy(), name=raster.name, attrs=raster.attrs)
            return out

        source = np.asarray(raster.values, dtype=np.float64)
        destination = np.full(self.grid.shape, np.nan, dtype=np.float64)
        reproject(
            source=source,
            destination=destination,
            src_transform=raster_transform(raster),
            src_crs=CRS.from_user_input(raster.attrs["crs"]),
            src_nodata=np.nan,
            dst_transform=self.grid.transform,
            dst_crs=CRS.from_user_input(self.grid.crs),
            dst_nodata=np.nan,
            resampling=Resampling.average,
        )
        out = self.grid.to_dataarray(destination, name=raster.name, attrs=raster.attrs)
        logger.debug("Reprojected %s: %s -> %s cells, %d valid",
                     raster.name, raster.shape, self.grid.shape, int(np.isfinite(destination).sum()))
        return out

    def smooth(self, raster: xr.DataArray) -> xr.DataArray:
        """NaN-aware square local mean of ``smoothing_size`` cells.

        Each valid cell becomes the mean of the valid, in-bounds cells of its
        neighbourhood. No-data cells stay no-data.
        """
        values = np.asarray(raster.values, dtype=np.float64)
        valid = np.isfinite(values)
        size = self.smoothing_size

        sums = uniform_filter(np.where(valid, values, 0.0), size=size, mode="constant", cval=0.0)
        counts = uniform_filter(valid.astype(np.float64), size=size, mode="constant", cval=0.0)
        with np.errstate(invalid="ignore", divide="ignore"):
            smoothed = np.where(valid & (counts > 0), sums / counts, np.nan)

        out = raster.copy(data=smoothed)
        out.attrs = dict(raster.attrs)
        out.attrs["smoothing"] = f"{size}x{size} mean"
        return out

    def harmonize(self, rasters: Dict[str, xr.DataArray]) -> Dict[str, xr.DataArray]:
        """Reproject (then smooth, if enabled) every raster.

        Parameters
        ----------
        rasters : dict[str, xr.DataArray]
            Rasters keyed by attribute name, in any CRS/resolution.

        Returns
        -------
        dict[str, xr.DataArray]
            Same keys and order, all on the target grid.
        """
        out = {}
        for name, raster in rasters.items():
            harmonized = self.reproject(raster.rename(name))
            if self.smoothing:
                harmonized = self.smooth(harmonized)
            out[name] = harmonized
        logger.info("Harmonized %d rasters to %dx%d cells at %.0f m (smoothing=%s)",
                    len(out), self.grid.height, self.grid.width, self.grid.resolution,
                    f"{self.smoothing_size}x{self.smoothing_size}" if self.smoothing else "off")
        return out
