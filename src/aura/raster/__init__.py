"""Raster processing modules.

- sources: Read-only NetCDF / GeoTIFF / in-memory data sources
- loader: Annual rainfall composites, QA-masked vegetation, static rasters
- trend_estimator: Per-pixel OLS trends
- grid_harmonizer: Areal-mean reprojection and local-mean smoothing
- point_sampler: Seeded point sample and attribute join
"""

from aura.raster.raster_utils import Region, TargetGrid, fractional_year
from aura.raster.sources import NetCDFSource, InMemorySource
from aura.raster.loader import TimeSeriesLoader
from aura.raster.trend_estimator import TrendEstimator, fit_cell, fit_cell_slope
from aura.raster.grid_harmonizer import GridHarmonizer
from aura.raster.point_sampler import PointSampler, SampleResult

__all__ = [
    "Region",
    "TargetGrid",
    "fractional_year",
    "NetCDFSource",
    "InMemorySource",
    "TimeSeriesLoader",
    "TrendEstimator",
    "fit_cell",
    "fit_cell_slope",
    "GridHarmonizer",
    "PointSampler",
    "SampleResult",
]
