"""Single-pass pipeline orchestration.

Runs load, trend, harmonize, sample, score and summarize in strict order,
checks the contract of every stage boundary, and persists outputs only
once every stage has succeeded.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

import numpy as np
import pandas as pd
import xarray as xr

from aura.analysis.report import format_cross_city_row, format_report
from aura.analysis.risk_scoring import Quadrant, score_points
from aura.analysis.statistics import RiskSummary, summarize
from aura.contracts import (
    assert_harmonized,
    assert_risk_output,
    assert_sampled,
    assert_trend_raster,
)
from aura.pipeline.results_store import ResultsStore, generate_run_id
from aura.raster.grid_harmonizer import GridHarmonizer
from aura.raster.loader import TimeSeriesLoader
from aura.raster.point_sampler import PointSampler, SampleResult
from aura.raster.raster_utils import Region, TargetGrid
from aura.raster.sources import NetCDFSource
from aura.raster.trend_estimator import TrendEstimator
from aura.setup_directories import (
    get_analysis_path,
    get_log_path,
    get_raster_path,
    get_report_path,
    setup_output_directories,
)

if TYPE_CHECKING:
    from aura.schemas import InternalConfig

__all__ = ['RiskPipeline', 'PipelineResult']

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything one completed run produced.

    Attributes
    ----------
    run_id : str
        Identifier under which the run was stored.
    rasters : dict[str, xr.DataArray]
        Harmonized rasters keyed by attribute name.
    sample : SampleResult
        Raw and valid joined points.
    records : pd.DataFrame
        Scored valid records.
    summary : RiskSummary
        Run-level statistics.
    report : str
        Text report.
    outputs : dict[str, list of str]
        Written files by kind (rasters, database, parquet, report, plots).
    """

    run_id: str
    rasters: Dict[str, xr.DataArray]
    sample: SampleResult
    records: pd.DataFrame
    summary: RiskSummary
    report: str
    outputs: Dict[str, List[str]] = field(default_factory=dict)


class RiskPipeline:
    """Compound rainfall / vegetation-loss risk pipeline for one region.

    **Stages:**

    1. **Load**: annual rainfall composites, QA-masked vegetation index,
       population and built-up change for the region and period.

    2. **Trend**: per-pixel least-squares slope of rainfall and vegetation
       against fractional-year time.

    3. **Harmonize**: areal-mean reprojection of every raster onto one
       target grid, then optional local-mean smoothing.

    4. **Sample**: seeded uniform points in the region joined to every
       harmonized raster; incomplete points dropped and counted.

    5. **Score & Summarize**: hazard, vulnerability, risk score and quadrant
       per point; correlations, weighted means and exposure shares per run.

    **Persistence:**

    Nothing is written until stage 5 has succeeded. Then the harmonized
    rasters go to NetCDF, the records and run metadata to SQLite (plus a
    Parquet export), the report and summary to ``reports/``, and the
    plots to ``plots/`` when visualization is enabled.

    **Logging:**

    All output goes to both console and log file (logs/pipeline_{city}.log).
    Log level controlled via ``logging.level``.

    Example usage::

        from aura.schemas import ParamConfig, UserConfig, CLIConfig, resolve_config
        from aura.pipeline.orchestrator import RiskPipeline

        config = resolve_config(ParamConfig(), UserConfig(CITY="colombo"), CLIConfig())
        result = RiskPipeline(config).run()
        print(result.report)

    Parameters
    ----------
    config : InternalConfig
        Fully validated runtime configuration.
    source : NetCDFSource or InMemorySource, optional
        Data source. Defaults to a NetCDFSource over ``source.timeseries_dir``
        and ``source.static_dir``.
    output_dirs : dict, optional
        Output tree from ``setup_output_directories``. Created under
        ``base_dir`` when omitted.
    """

    def __init__(self, config: "InternalConfig", source=None, output_dirs: Optional[dict] = None):
        self.config = config
        self.source = source if source is not None else NetCDFSource(
            config.source.timeseries_dir,
            config.source.static_dir,
            coord_names=config.global_.coord_names.model_dump(),
        )
        self.output_dirs = output_dirs
        self.region = Region.from_config(config)
        self.grid = TargetGrid.from_region(self.region, config.grid.resolution_m, config.grid.crs)
        self.names = config.global_.var_names

    def _setup_logging(self):
        """Configure the root logger with file and console handlers.

        Log level from ``logging.level``; the file lives at
        ``logs/pipeline_{city}.log`` in the output tree.
        """
        log_level = getattr(logging, self.config.logging.level.upper(), logging.INFO)
        log_path = get_log_path(self.output_dirs, self.config.city_slug)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()

        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", self.config.logging.level, log_path)

    def run_parameters(self) -> dict:
        """Flat mapping of the main run parameters, in report order."""
        cfg = self.config
        return {
            "city": cfg.region.name,
            "longitude": cfg.region.longitude,
            "latitude": cfg.region.latitude,
            "buffer_m": cfg.region.buffer_m,
            "start_year": cfg.period.start_year,
            "end_year": cfg.period.end_year,
            "rain_composite": cfg.rainfall.composite,
            "grid_crs": cfg.grid.crs,
            "resolution_m": cfg.grid.resolution_m,
            "smoothing": cfg.grid.smoothing,
            "smoothing_size": cfg.grid.smoothing_size,
            "sample_size": cfg.sampling.sample_size,
            "seed": cfg.sampling.seed,
            "extraction_radius_m": cfg.sampling.extraction_radius_m,
            "risk_scale_constant": cfg.risk.scale_constant,
        }

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _load_and_fit(self) -> Dict[str, xr.DataArray]:
        """Stages 1 and 2: native-grid rasters keyed by attribute name."""
        loader = TimeSeriesLoader(self.config, self.source)
        estimator = TrendEstimator(self.config)

        rain_trend = estimator.slope_raster(loader.load_rainfall(), self.names.rain_trend)
        assert_trend_raster(rain_trend)
        ndvi_trend = estimator.slope_raster(loader.load_vegetation(), self.names.ndvi_trend)
        assert_trend_raster(ndvi_trend)

        return {
            self.names.rain_trend: rain_trend,
            self.names.ndvi_trend: ndvi_trend,
            self.names.population: loader.load_population().rename(self.names.population),
            self.names.built_up_change: loader.load_builtup_change().rename(self.names.built_up_change),
        }

    def _harmonize(self, rasters: Dict[str, xr.DataArray]) -> Dict[str, xr.DataArray]:
        """Stage 3."""
        harmonized = GridHarmonizer(self.config, self.grid).harmonize(rasters)
        assert_harmonized(harmonized, self.grid.shape)
        return harmonized

    def _sample(self, rasters: Dict[str, xr.DataArray]) -> SampleResult:
        """Stage 4."""
        sampler = PointSampler(self.config, self.region, self.grid)
        result = sampler.join(sampler.sample(), rasters)
        assert_sampled(result, list(rasters))
        return result

    def _score(self, valid: pd.DataFrame) -> pd.DataFrame:
        """Stage 5, per point."""
        records = score_points(valid, self.config)
        assert_risk_output(records, self.names.risk_score, self.names.quadrant,
                           {q.value for q in Quadrant})
        return records

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @staticmethod
    def _netcdf_attrs(attrs: dict) -> dict:
        """Attributes NetCDF can store (strings, numbers, numeric sequences)."""
        out = {}
        for key, value in attrs.items():
            if isinstance(value, bool):
                out[key] = int(value)
            elif isinstance(value, (str, int, float, np.integer, np.floating)):
                out[key] = value
            elif isinstance(value, (tuple, list)) and all(isinstance(v, (int, float)) for v in value):
                out[key] = list(value)
        return out

    def _save_rasters(self, rasters: Dict[str, xr.DataArray], run_id: str) -> str:
        """Write the harmonized rasters to one compressed NetCDF file."""
        variables = {}
        for name, da in rasters.items():
            out = da.copy()
            out.attrs = self._netcdf_attrs(da.attrs)
            variables[name] = out
        ds = xr.Dataset(variables)
        ds.attrs = {
            "city": self.config.region.name,
            "run_id": run_id,
            "crs": self.grid.crs,
            "resolution_m": self.grid.resolution,
            "start_year": self.config.period.start_year,
            "end_year": self.config.period.end_year,
        }
        path = get_raster_path(self.output_dirs, self.config.city_slug, "harmonized", run_id)
        encoding = {name: {"zlib": True, "complevel": 4} for name in ds.data_vars}
        ds.to_netcdf(path, engine="netcdf4", format="NETCDF4", encoding=encoding)
        logger.info("Harmonized rasters saved: %s", path)
        return str(path)

    def _save_report(self, report: str, summary: RiskSummary, run_id: str) -> List[str]:
        txt_path = get_report_path(self.output_dirs, self.config.city_slug, run_id, "txt")
        txt_path.write_text(report + "\n" + format_cross_city_row(summary) + "\n")

        json_path = get_report_path(self.output_dirs, self.config.city_slug, run_id, "json")
        json_path.write_text(json.dumps({
            "run_id": run_id,
            "run_parameters": self.run_parameters(),
            "summary": summary.to_dict(),
        }, indent=2))
        logger.info("Report saved: %s", txt_path)
        return [str(txt_path), str(json_path)]

    def _persist(self, run_id: str, rasters, records: pd.DataFrame, summary: RiskSummary,
                 report: str) -> Dict[str, List[str]]:
        outputs = {}
        if self.config.output.save_rasters:
            outputs["rasters"] = [self._save_rasters(rasters, run_id)]

        db_name = self.config.store.db_filename_pattern.format(city=self.config.city_slug)
        db_path = get_analysis_path(self.output_dirs, self.config.city_slug, "db", filename=db_name)
        store = ResultsStore(db_path, compression=self.config.output.compression)
        store.save_run(run_id, self.config, summary, records)
        outputs["database"] = [str(db_path)]

        parquet_path = get_analysis_path(
            self.output_dirs, self.config.city_slug, "parquet",
            filename=f"{self.config.city_slug}_{run_id}_risk_points.parquet",
        )
        exported = store.export_parquet(parquet_path, run_id=run_id)
        outputs["parquet"] = [str(exported)] if exported else []

        outputs["report"] = self._save_report(report, summary, run_id)

        if self.config.visualization.enabled:
            from aura.visualization.plotter import RiskPlotter
            outputs["plots"] = RiskPlotter(self.config).render_run(rasters, records, self.output_dirs, run_id)
        return outputs

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, setup_logging: bool = True) -> PipelineResult:
        """Run every stage, then persist.

        Parameters
        ----------
        setup_logging : bool, default True
            Configure root logging handlers. Tests pass False to keep
            pytest's capture handlers in place.

        Returns
        -------
        PipelineResult

        Raises
        ------
        ExternalSourceError
            Data source missing, unreadable, or not covering the region.
        ContractViolation
            A stage broke its output guarantees.
        """
        if self.output_dirs is None:
            self.output_dirs = setup_output_directories(self.config.base_dir)
        if setup_logging:
            self._setup_logging()

        logger.info("=" * 60)
        logger.info("Starting Risk Pipeline: %s", self.config.region.name)
        logger.info("=" * 60)
        for key, value in self.run_parameters().items():
            logger.info("  %-20s %s", key, value)

        start = time.time()
        run_id = generate_run_id()

        native = self._load_and_fit()
        harmonized = self._harmonize(native)
        sample = self._sample(harmonized)
        records = self._score(sample.valid)
        summary = summarize(records, self.config, sample.raw_count)
        report = format_report(summary, self.run_parameters())

        logger.info("\n%s", report)
        logger.info(format_cross_city_row(summary))

        outputs = self._persist(run_id, harmonized, records, summary, report)

        logger.info("=" * 60)
        logger.info("Pipeline finished: run %s in %.1f s", run_id, time.time() - start)
        logger.info("=" * 60)

        return PipelineResult(
            run_id=run_id,
            rasters=harmonized,
            sample=sample,
            records=records,
            summary=summary,
            report=report,
            outputs=outputs,
        )
