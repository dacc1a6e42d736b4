"""Run-level summary statistics over the scored sample.

Every aggregate is computed once over the valid risk records. A statistic
that is undefined for the data at hand (correlation of a constant series,
percentage of an empty set, mean over no points) is ``None``. It is never
NaN and never a stand-in 0.

Statistics
----------
- Pearson r of NDVI trend and of built-up change against rainfall trend
- Population-weighted means of the rainfall and NDVI trends (Pop > 0 only)
- Quadrant counts and the share of points in the high-risk aligned quadrant
- Population totals and the share of population in aligned points
- Cumulative risk and mean risk over aligned points
- Zero / non-zero risk counts
- Per-attribute distribution statistics
- Sampling coverage and spatial-resolution diagnostics
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Dict, Optional

import numpy as np
import pandas as pd
from scipy.stats import pearsonr

from aura.analysis.risk_scoring import Quadrant
from aura.raster.raster_utils import Region

if TYPE_CHECKING:
    from aura.schemas import InternalConfig

__all__ = ['RiskSummary', 'summarize', 'pearson_r', 'weighted_mean', 'distribution_stats']

logger = logging.getLogger(__name__)


@dataclass
class RiskSummary:
    """Summary of one pipeline run. ``None`` marks an undefined statistic."""

    city: str
    raw_count: int
    valid_count: int
    r_ndvi_rain: Optional[float]
    r_builtup_rain: Optional[float]
    weighted_rain_mean: Optional[float]
    weighted_ndvi_mean: Optional[float]
    quadrant_counts: Dict[str, int]
    percent_aligned: Optional[float]
    total_population: float
    aligned_population: float
    percent_pop_exposed: Optional[float]
    cumulative_risk: Optional[float]
    mean_risk_aligned: Optional[float]
    zero_risk_count: int
    nonzero_risk_count: int
    study_area_km2: float
    rain_native_resolution_km: float
    effective_rain_pixels: float
    distributions: Dict[str, Dict[str, Optional[float]]] = field(default_factory=dict)
    rain_trend_name: str = "Rain_Trend"

    @property
    def coverage_loss(self) -> int:
        return self.raw_count - self.valid_count

    @property
    def aligned_count(self) -> int:
        return self.quadrant_counts.get(Quadrant.HIGH_RISK_ALIGNED.value, 0)

    @property
    def rain_trend_sd(self) -> Optional[float]:
        return self.distributions.get(self.rain_trend_name, {}).get("sample_sd")

    def to_dict(self) -> dict:
        """JSON-ready dictionary (undefined statistics become null)."""
        out = asdict(self)
        out["coverage_loss"] = self.coverage_loss
        return out


def _float_or_none(value) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def pearson_r(a, b) -> Optional[float]:
    """Pearson correlation, or None for fewer than 2 points or a constant series."""
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.size < 2 or b.size < 2:
        return None
    if np.ptp(a) == 0 or np.ptp(b) == 0:
        return None
    return _float_or_none(pearsonr(a, b)[0])


def weighted_mean(values, weights) -> Optional[float]:
    """Weighted mean over positive weights, or None when there are none."""
    values = np.asarray(values, dtype=float)
    weights = np.asarray(weights, dtype=float)
    use = weights > 0
    if not use.any():
        return None
    return _float_or_none(np.sum(values[use] * weights[use]) / np.sum(weights[use]))


def distribution_stats(values) -> Dict[str, Optional[float]]:
    """Count, mean, min, max, sum and sample / population spread."""
    v = np.asarray(values, dtype=float)
    n = int(v.size)
    stats = {
        "count": n,
        "sum": float(v.sum()) if n else 0.0,
        "mean": None,
        "min": None,
        "max": None,
        "sample_sd": None,
        "sample_var": None,
        "total_sd": None,
        "total_var": None,
    }
    if n >= 1:
        stats.update(
            mean=_float_or_none(v.mean()),
            min=_float_or_none(v.min()),
            max=_float_or_none(v.max()),
            total_var=_float_or_none(v.var(ddof=0)),
            total_sd=_float_or_none(v.std(ddof=0)),
        )
    if n >= 2:
        stats.update(
            sample_var=_float_or_none(v.var(ddof=1)),
            sample_sd=_float_or_none(v.std(ddof=1)),
        )
    return stats


def summarize(records: pd.DataFrame, config: "InternalConfig", raw_count: int) -> RiskSummary:
    """Compute the run summary from scored valid records.

    Parameters
    ----------
    records : pd.DataFrame
        Output of ``score_points`` (valid points only).
    config : InternalConfig
        Supplies column names, region and rainfall native resolution.
    raw_count : int
        Number of points generated before dropping incomplete ones.

    Returns
    -------
    RiskSummary
    """
    names = config.global_.var_names
    n = len(records)

    rain = records[names.rain_trend].to_numpy(dtype=float)
    ndvi = records[names.ndvi_trend].to_numpy(dtype=float)
    built = records[names.built_up_change].to_numpy(dtype=float)
    pop = records[names.population].to_numpy(dtype=float)
    risk = records[names.risk_score].to_numpy(dtype=float)
    quadrant = records[names.quadrant].astype(str).to_numpy()

    aligned = quadrant == Quadrant.HIGH_RISK_ALIGNED.value
    quadrant_counts = {q.value: int((quadrant == q.value).sum()) for q in Quadrant}

    total_pop = float(pop.sum())
    aligned_pop = float(pop[aligned].sum())

    region = Region.from_config(config)
    native_km = config.rainfall.native_resolution_km

    summary = RiskSummary(
        city=config.region.name,
        raw_count=int(raw_count),
        valid_count=n,
        r_ndvi_rain=pearson_r(ndvi, rain),
        r_builtup_rain=pearson_r(built, rain),
        weighted_rain_mean=weighted_mean(rain, pop),
        weighted_ndvi_mean=weighted_mean(ndvi, pop),
        quadrant_counts=quadrant_counts,
        percent_aligned=float(100.0 * aligned.sum() / n) if n else None,
        total_population=total_pop,
        aligned_population=aligned_pop,
        percent_pop_exposed=100.0 * aligned_pop / total_pop if total_pop > 0 else None,
        cumulative_risk=float(risk.sum()) if n else None,
        mean_risk_aligned=float(risk[aligned].mean()) if aligned.any() else None,
        zero_risk_count=int((risk == 0).sum()),
        nonzero_risk_count=int((risk != 0).sum()),
        study_area_km2=region.area_km2,
        rain_native_resolution_km=native_km,
        effective_rain_pixels=region.area_km2 / (native_km ** 2),
        distributions={
            names.rain_trend: distribution_stats(rain),
            names.ndvi_trend: distribution_stats(ndvi),
            names.built_up_change: distribution_stats(built),
            names.population: distribution_stats(pop),
        },
        rain_trend_name=names.rain_trend,
    )

    logger.info("Summary for %s: %d valid points, %s%% aligned, r(NDVI, rain)=%s",
                summary.city, n,
                "undefined" if summary.percent_aligned is None else f"{summary.percent_aligned:.2f}",
                "undefined" if summary.r_ndvi_rain is None else f"{summary.r_ndvi_rain:.3f}")
    return summary
