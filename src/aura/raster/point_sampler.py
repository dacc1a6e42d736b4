"""Seeded random point sample of the region and attribute join.

Points are drawn uniformly inside the region disc by rejection sampling in
its bounding square, using ``numpy.random.default_rng(seed)`` so that the
same seed, size and region always give the same points. Each point is then
joined to every harmonized raster; points missing any attribute are
excluded from the valid set and counted as coverage loss.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict

import numpy as np
import pandas as pd
import xarray as xr

from aura.raster.raster_utils import GEOGRAPHIC_CRS, Region, TargetGrid, raster_resolution, raster_transform, same_crs

__all__ = ['PointSampler', 'SampleResult']

logger = logging.getLogger(__name__)


@dataclass
class SampleResult:
    """Joined sample and its coverage counts.

    Attributes
    ----------
    samples : pd.DataFrame
        Every generated point with its joined attributes (NaN where missing).
    valid : pd.DataFrame
        Points whose required attributes are all finite, in point_id order.
    raw_count, valid_count : int
        Sizes of ``samples`` and ``valid``.
    """

    samples: pd.DataFrame
    valid: pd.DataFrame
    raw_count: int
    valid_count: int

    @property
    def coverage_loss(self) -> int:
        return self.raw_count - self.valid_count


class PointSampler:
    """Draw sample points in the region and extract raster values at them.

    Parameters
    ----------
    config : InternalConfig
        Uses ``sampling.sample_size``, ``sampling.seed`` and
        ``sampling.extraction_radius_m``.
    region : Region
        Analysis region (disc).
    grid : TargetGrid
        Grid of the harmonized rasters; points get coordinates in its CRS.

    Examples
    --------
    >>> sampler = PointSampler(config, region, grid)
    >>> points = sampler.sample()
    >>> result = sampler.join(points, harmonized)
    >>> result.valid_count <= result.raw_count
    True
    """

    def __init__(self, config, region: Region, grid: TargetGrid):
        self.sample_size = config.sampling.sample_size
        self.seed = config.sampling.seed
        self.extraction_radius_m = config.sampling.extraction_radius_m
        self.region = region
        self.grid = grid

    def sample(self) -> pd.DataFrame:
        """Uniform points inside the region disc.

        Returns
        -------
        pd.DataFrame
            Columns ``point_id`` (0..n-1 in generation order), ``lon``,
            ``lat`` (WGS84), ``x``, ``y`` (target grid CRS).
        """
        rng = np.random.default_rng(self.seed)
        radius = self.region.buffer_m
        n = self.sample_size

        local_x = np.empty(0)
        local_y = np.empty(0)
        while local_x.size < n:
            batch = 2 * (n - local_x.size) + 16
            cand = rng.uniform(-radius, radius, size=(batch, 2))
            inside = cand[:, 0] ** 2 + cand[:, 1] ** 2 <= radius ** 2
            local_x = np.concatenate([local_x, cand[inside, 0]])
            local_y = np.concatenate([local_y, cand[inside, 1]])
        local_x = local_x[:n]
        local_y = local_y[:n]

        lon, lat = self.region.from_local(local_x, local_y, GEOGRAPHIC_CRS)
        if same_crs(self.grid.crs, self.region.local_crs):
            gx, gy = local_x, local_y
        else:
            gx, gy = self.region.from_local(local_x, local_y, self.grid.crs)

        points = pd.DataFrame({
            "point_id": np.arange(n, dtype=np.int64),
            "lon": np.asarray(lon, dtype=float),
            "lat": np.asarray(lat, dtype=float),
            "x": np.asarray(gx, dtype=float),
            "y": np.asarray(gy, dtype=float),
        })
        logger.info("Sampled %d points in %s (seed=%d, radius=%.0f m)",
                    n, self.region.name, self.seed, radius)
        return points

    def _extract_cell(self, raster: xr.DataArray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        t = raster_transform(raster)
        cols = np.floor((x - t.c) / t.a).astype(np.int64)
        rows = np.floor((y - t.f) / t.e).astype(np.int64)
        ny, nx = raster.shape
        inside = (rows >= 0) & (rows < ny) & (cols >= 0) & (cols < nx)

        values = np.full(x.shape, np.nan)
        data = np.asarray(raster.values, dtype=float)
        values[inside] = data[rows[inside], cols[inside]]
        return values

    def _extract_radius(self, raster: xr.DataArray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        data = np.asarray(raster.values, dtype=float)
        cx = raster["x"].values
        cy = raster["y"].values
        res_x, res_y = raster_resolution(raster)
        radius = self.extraction_radius_m
        reach_x = int(math.ceil(radius / res_x)) + 1
        reach_y = int(math.ceil(radius / res_y)) + 1
        t = raster_transform(raster)

        values = np.full(x.shape, np.nan)
        for i, (px, py) in enumerate(zip(x, y)):
            c0 = int(math.floor((px - t.c) / t.a))
            r0 = int(math.floor((py - t.f) / t.e))
            rs = slice(max(r0 - reach_y, 0), max(min(r0 + reach_y + 1, data.shape[0]), 0))
            cs = slice(max(c0 - reach_x, 0), max(min(c0 + reach_x + 1, data.shape[1]), 0))
            window = data[rs, cs]
            if window.size == 0:
                continue
            dx = cx[cs][None, :] - px
            dy = cy[rs][:, None] - py
            use = (dx ** 2 + dy ** 2 <= radius ** 2) & np.isfinite(window)
            if use.any():
                values[i] = float(window[use].mean())
        return values

    def join(self, points: pd.DataFrame, rasters: Dict[str, xr.DataArray]) -> SampleResult:
        """Attach the value of every raster to every point.

        The value is that of the cell containing the point; when
        ``extraction_radius_m`` exceeds half a cell it is the mean of the
        valid cells whose centres lie within the radius. Points outside the
        grid or on no-data get NaN.

        Parameters
        ----------
        points : pd.DataFrame
            Output of ``sample()``.
        rasters : dict[str, xr.DataArray]
            Harmonized rasters keyed by attribute name; all keys are required.

        Returns
        -------
        SampleResult
        """
        samples = points.copy()
        x = samples["x"].to_numpy(dtype=float)
        y = samples["y"].to_numpy(dtype=float)

        for name, raster in rasters.items():
            half_cell = min(raster_resolution(raster)) / 2.0
            if self.extraction_radius_m > half_cell:
                samples[name] = self._extract_radius(raster, x, y)
            else:
                samples[name] = self._extract_cell(raster, x, y)

        required = list(rasters)
        complete = np.isfinite(samples[required].to_numpy(dtype=float)).all(axis=1)
        valid = samples.loc[complete].sort_values("point_id").reset_index(drop=True)

        result = SampleResult(samples=samples, valid=valid, raw_count=len(samples), valid_count=len(valid))
        logger.info("Joined %d attributes: %d of %d points valid (%d lost to missing data)",
                    len(required), result.valid_count, result.raw_count, result.coverage_loss)
        return result
