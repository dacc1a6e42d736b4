"""Per-pixel linear trends of gridded time series.

Each cell's slope is the ordinary least-squares slope of value against time
over the cell's finite observations only:

    slope = sum((t - t_mean) * (v - v_mean)) / sum((t - t_mean) ** 2)

A cell with fewer than ``min_valid_points`` finite pairs, or whose valid
observations all share one time stamp, has no trend and is NaN (never 0).
Quality masking is the loader's job; the estimator trusts NaN as "not
observed" and never masks its own output.

The vectorized fit may be split into row blocks over a thread pool. Blocks
are reassembled in row order so the output is identical for any worker count.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Tuple

import numpy as np
import xarray as xr

__all__ = ['TrendEstimator', 'fit_cell', 'fit_cell_slope']

logger = logging.getLogger(__name__)


def fit_cell(times, values, min_valid_points: int = 2) -> Tuple[float, float]:
    """OLS slope and intercept of one cell's series.

    Parameters
    ----------
    times, values : array-like
        Equal-length sequences; pairs where either is non-finite are ignored.
    min_valid_points : int, default 2
        Minimum number of finite pairs (values below 2 are treated as 2).

    Returns
    -------
    (slope, intercept) : tuple of float
        ``(nan, nan)`` when there are too few pairs or no time variance.
    """
    t = np.asarray(times, dtype=float)
    v = np.asarray(values, dtype=float)
    ok = np.isfinite(t) & np.isfinite(v)
    if ok.sum() < max(int(min_valid_points), 2):
        return np.nan, np.nan
    t = t[ok]
    v = v[ok]
    if np.ptp(t) == 0:
        return np.nan, np.nan
    t_mean = t.mean()
    v_mean = v.mean()
    dt = t - t_mean
    slope = float(np.sum(dt * (v - v_mean)) / np.sum(dt * dt))
    return slope, float(v_mean - slope * t_mean)


def fit_cell_slope(times, values, min_valid_points: int = 2) -> float:
    """OLS slope of one cell's series (NaN when undefined)."""
    return fit_cell(times, values, min_valid_points)[0]


def _fit_block(t: np.ndarray, block: np.ndarray, min_valid_points: int):
    """Closed-form fit over a (time, rows, cols) block."""
    t3 = t[:, None, None]
    valid = np.isfinite(block) & np.isfinite(t3)
    n = valid.sum(axis=0)

    tt = np.where(valid, t3, 0.0)
    vv = np.where(valid, block, 0.0)
    with np.errstate(invalid="ignore", divide="ignore"):
        t_mean = tt.sum(axis=0) / n
        v_mean = vv.sum(axis=0) / n
        dt = np.where(valid, t3 - t_mean, 0.0)
        dv = np.where(valid, block - v_mean, 0.0)
        sxx = (dt * dt).sum(axis=0)
        sxy = (dt * dv).sum(axis=0)
        slope = sxy / sxx
        intercept = v_mean - slope * t_mean

    t_min = np.where(valid, t3, np.inf).min(axis=0)
    t_max = np.where(valid, t3, -np.inf).max(axis=0)
    undefined = (n < max(int(min_valid_points), 2)) | ~(t_max > t_min)
    slope[undefined] = np.nan
    intercept[undefined] = np.nan
    return slope, intercept, n.astype(np.int32)


class TrendEstimator:
    """Fit per-pixel OLS trends of a ``(time, y, x)`` series.

    Parameters
    ----------
    config : InternalConfig
        Uses ``trend.min_valid_points`` and ``trend.workers``.

    Examples
    --------
    >>> estimator = TrendEstimator(config)
    >>> rain_trend = estimator.slope_raster(annual_rain, "Rain_Trend")
    >>> rain_trend.attrs["sign_convention"]
    'positive_increasing'
    """

    def __init__(self, config):
        self.min_valid_points = config.trend.min_valid_points
        self.workers = config.trend.workers

    def fit(self, series: xr.DataArray) -> xr.Dataset:
        """Fit slope, intercept and valid-point count for every cell.

        Parameters
        ----------
        series : xr.DataArray
            ``(time, y, x)`` with a numeric (float year) ``time`` coordinate.

        Returns
        -------
        xr.Dataset
            ``slope`` and ``intercept`` (NaN where undefined) and
            ``valid_count`` on the series' ``(y, x)`` grid.
        """
        series = series.transpose("time", "y", "x")
        t = np.asarray(series["time"].values, dtype=float)
        values = np.asarray(series.values, dtype=float)
        ny = values.shape[1]

        if self.workers > 1 and ny > 1:
            row_blocks = np.array_split(np.arange(ny), min(self.workers, ny))
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                parts = list(executor.map(
                    lambda rows: _fit_block(t, values[:, rows, :], self.min_valid_points),
                    row_blocks,
                ))
            slope = np.concatenate([p[0] for p in parts], axis=0)
            intercept = np.concatenate([p[1] for p in parts], axis=0)
            count = np.concatenate([p[2] for p in parts], axis=0)
        else:
            slope, intercept, count = _fit_block(t, values, self.min_valid_points)

        coords = {"y": series["y"].values, "x": series["x"].values}
        ds = xr.Dataset(
            {
                "slope": (("y", "x"), slope),
                "intercept": (("y", "x"), intercept),
                "valid_count": (("y", "x"), count),
            },
            coords=coords,
            attrs=dict(series.attrs),
        )
        return ds

    def slope_raster(self, series: xr.DataArray, name: str) -> xr.DataArray:
        """Slope Raster in value units per year, named ``name``."""
        fit = self.fit(series)
        slope = fit["slope"].copy()
        slope.name = name
        slope.attrs = {
            "crs": series.attrs["crs"],
            "resolution": series.attrs["resolution"],
            "units": f"{series.attrs.get('units', 'value')} per year",
            "sign_convention": "positive_increasing",
        }
        n_valid = int(np.isfinite(slope.values).sum())
        logger.info("%s: %d of %d cells with a defined trend (%d time steps)",
                    name, n_valid, slope.size, series.sizes["time"])
        return slope
