"""Load rainfall, vegetation, population and built-up inputs for a region.

The loader turns raw source observations into the inputs of the trend and
harmonization stages:

- rainfall: daily precipitation reduced to one composite per calendar year
  (95th percentile by default, or the yearly maximum)
- vegetation: vegetation-index observations masked per observation by the
  quality flag and scaled to physical units, stamped with fractional-year time
- population: static count raster with negative no-data codes masked
- built-up change: difference of two built-up surface epochs per year

Time-series outputs are ``(time, y, x)`` DataArrays whose ``time``
coordinate is already a float year, ready for slope fitting.
"""

import logging

import numpy as np
import xarray as xr

from aura.contracts import ExternalSourceError
from aura.raster.raster_utils import Region, fractional_year

__all__ = ['TimeSeriesLoader']

logger = logging.getLogger(__name__)


class TimeSeriesLoader:
    """Query a data source and prepare per-variable inputs.

    Every load opens the source as a context manager and releases it
    before returning, so no handle outlives a single call.

    Parameters
    ----------
    config : InternalConfig
        Fully validated runtime configuration.
    source : NetCDFSource or InMemorySource
        Read-only data source.

    Examples
    --------
    >>> loader = TimeSeriesLoader(config, NetCDFSource(ts_dir, static_dir))
    >>> rain = loader.load_rainfall()        # (time, y, x), time = year
    >>> ndvi = loader.load_vegetation()      # (time, y, x), time = fractional year
    """

    def __init__(self, config, source):
        self.config = config
        self.source = source
        self.region = Region.from_config(config)
        self.start = f"{config.period.start_year}-01-01"
        self.end = f"{config.period.end_year}-12-31"

    def load_rainfall(self) -> xr.DataArray:
        """Annual rainfall composites.

        Returns
        -------
        xr.DataArray
            ``(time, y, x)`` with one slice per calendar year present in the
            source. A year whose daily values are all missing is NaN for that
            cell.
        """
        cfg = self.config.rainfall
        with self.source as source:
            ds = source.query_series(cfg.dataset_id, [cfg.variable], self.start, self.end, self.region)
        daily = ds[cfg.variable]

        grouped = daily.groupby("time.year")
        if cfg.composite == "max":
            annual = grouped.max(dim="time", skipna=True)
        else:
            annual = grouped.quantile(cfg.percentile / 100.0, dim="time", skipna=True)
            annual = annual.drop_vars("quantile", errors="ignore")

        annual = annual.rename({"year": "time"})
        annual = annual.assign_coords(time=annual["time"].values.astype(float))
        annual = annual.transpose("time", "y", "x")
        annual.name = cfg.variable
        annual.attrs = {"crs": ds.attrs["crs"], "resolution": ds.attrs["resolution"],
                        "units": cfg.units, "composite": cfg.composite}

        logger.info("Rainfall: %d annual %s composites on %dx%d cells",
                    annual.sizes["time"], cfg.composite, annual.sizes["y"], annual.sizes["x"])
        return annual

    def load_vegetation(self) -> xr.DataArray:
        """Quality-masked, scaled vegetation index observations.

        Returns
        -------
        xr.DataArray
            ``(time, y, x)`` with ``time`` = fractional year of each
            observation. Pixels failing the quality flag are NaN.
        """
        cfg = self.config.vegetation
        variables = [cfg.variable] + ([cfg.qa_variable] if cfg.qa_variable else [])
        with self.source as source:
            ds = source.query_series(cfg.dataset_id, variables, self.start, self.end, self.region)

        raw = ds[cfg.variable].astype(float)
        if cfg.qa_variable:
            good = ds[cfg.qa_variable].isin(cfg.good_qa_values)
            masked_fraction = 1.0 - float(good.mean())
            raw = raw.where(good)
            logger.info("Vegetation QA: %.1f%% of observations masked", 100.0 * masked_fraction)

        scaled = raw * cfg.scale_factor
        scaled = scaled.assign_coords(time=fractional_year(ds["time"].values))
        scaled = scaled.transpose("time", "y", "x")
        scaled.name = cfg.variable
        scaled.attrs = {"crs": ds.attrs["crs"], "resolution": ds.attrs["resolution"]}

        logger.info("Vegetation: %d observations on %dx%d cells",
                    scaled.sizes["time"], scaled.sizes["y"], scaled.sizes["x"])
        return scaled

    def load_population(self) -> xr.DataArray:
        """Population count raster; negative no-data codes become NaN."""
        cfg = self.config.population
        with self.source as source:
            da = source.query_static(cfg.dataset_id, cfg.band, self.region)
        pop = da.where(da >= 0)
        pop.attrs = dict(da.attrs)
        logger.info("Population: %.0f people in clipped raster", float(pop.sum(skipna=True)))
        return pop

    def load_builtup_change(self) -> xr.DataArray:
        """Per-year built-up surface change between the two configured epochs.

        Raises
        ------
        ExternalSourceError
            If the two epochs are not delivered on the same grid.
        """
        cfg = self.config.built_up
        with self.source as source:
            start = source.query_static(cfg.start_dataset_id, cfg.band, self.region)
            end = source.query_static(cfg.end_dataset_id, cfg.band, self.region)

        if start.shape != end.shape or not (
            np.allclose(start["x"].values, end["x"].values)
            and np.allclose(start["y"].values, end["y"].values)
        ):
            raise ExternalSourceError(
                f"Built-up epochs {cfg.start_epoch} and {cfg.end_epoch} are not on the same grid"
            )

        years = float(cfg.end_epoch - cfg.start_epoch)
        start_vals = start.values.astype(float)
        end_vals = end.values.astype(float)
        start_vals[start_vals < 0] = np.nan
        end_vals[end_vals < 0] = np.nan
        change = start.copy(data=(end_vals - start_vals) / years)
        change.name = cfg.band
        change.attrs = dict(start.attrs)
        change.attrs["units"] = "per year"

        logger.info("Built-up change %d-%d: %d valid cells",
                    cfg.start_epoch, cfg.end_epoch, int(np.isfinite(change.values).sum()))
        return change
