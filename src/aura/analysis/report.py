"""Plain-text rendering of a RiskSummary.

``format_report`` produces the sectioned run report written to the log and
to ``reports/``; ``format_cross_city_row`` the one-line summary used to
compare cities. Undefined statistics print as ``undefined``.
"""

from typing import Optional

from aura.analysis.risk_scoring import Quadrant
from aura.analysis.statistics import RiskSummary

__all__ = ['format_report', 'format_cross_city_row', 'fmt']

RULE = "=" * 36


def fmt(value, digits: int = 4, suffix: str = "") -> str:
    """Format a number, or 'undefined' for None."""
    if value is None:
        return "undefined"
    if isinstance(value, int):
        return f"{value}{suffix}"
    return f"{value:.{digits}f}{suffix}"


def _section(title: str) -> list:
    return [RULE, title, RULE]


def format_report(summary: RiskSummary, run_parameters: Optional[dict] = None) -> str:
    """Render the full text report.

    Parameters
    ----------
    summary : RiskSummary
        Statistics of the run.
    run_parameters : dict, optional
        Flat mapping of the run's main parameters, printed first.

    Returns
    -------
    str
        Multi-line report.
    """
    lines = []

    if run_parameters:
        lines += _section("RUN PARAMETERS")
        width = max(len(k) for k in run_parameters)
        lines += [f"{k.ljust(width)} : {v}" for k, v in run_parameters.items()]
        lines.append("")

    lines += _section("SPATIAL RESOLUTION ANALYSIS")
    lines += [
        f"Study Area (km²): {fmt(summary.study_area_km2, 2)}",
        f"Rainfall Native Resolution: ~{fmt(summary.rain_native_resolution_km, 1)} km",
        f"Effective Rainfall Pixels in Region: {fmt(summary.effective_rain_pixels, 1)}",
        f"Interpretation: Rainfall data represents ~{summary.effective_rain_pixels:.0f} "
        "independent observations across the city.",
        "",
    ]

    lines += _section("SAMPLING DIAGNOSTICS")
    lines += [
        f"Total Points Generated: {summary.raw_count}",
        f"Valid Points after Sampling: {summary.valid_count}",
        f"Points Lost to Missing Data: {summary.coverage_loss}",
        "",
    ]

    lines += _section("DATA DISTRIBUTION STATISTICS")
    for name, stats in summary.distributions.items():
        lines.append(
            f"{name}: n={stats['count']} mean={fmt(stats['mean'], 6)} "
            f"min={fmt(stats['min'], 6)} max={fmt(stats['max'], 6)} "
            f"sd={fmt(stats['sample_sd'], 6)} sum={fmt(stats['sum'], 4)}"
        )
    lines.append("")

    lines += _section(f"FINAL RESULTS: {summary.city}")
    lines += [
        "",
        "--- H1: SPATIAL MISALIGNMENT ANALYSIS ---",
        f"Pearson Correlation - NDVI (r): {fmt(summary.r_ndvi_rain)}",
        f"Pearson Correlation - Built-Up (r): {fmt(summary.r_builtup_rain)}",
        "Quadrant Distribution: " + ", ".join(
            f"{q.value}={summary.quadrant_counts.get(q.value, 0)}" for q in Quadrant
        ),
        f"% Points in High-Risk Aligned Zone: {fmt(summary.percent_aligned, 2, '%')}",
        "",
        "--- H2: POPULATION EXPOSURE ANALYSIS ---",
        f"Total Population in Study Area: {fmt(summary.total_population, 0)}",
        f"Population in High-Risk Zones: {fmt(summary.aligned_population, 0)}",
        f"% Population Exposed to Aligned Risk: {fmt(summary.percent_pop_exposed, 2, '%')}",
        f"Cumulative Risk Score (City-wide): {fmt(summary.cumulative_risk, 0)}",
        f"Average Risk Score in High-Risk Zones: {fmt(summary.mean_risk_aligned, 0)}",
        "",
        "--- ADDITIONAL METRICS ---",
        f"Population-Weighted Rain Trend Mean: {fmt(summary.weighted_rain_mean, 6)}",
        f"Population-Weighted NDVI Trend Mean: {fmt(summary.weighted_ndvi_mean, 6)}",
        f"Points with Zero Risk: {summary.zero_risk_count}",
        f"Points with Non-Zero Risk: {summary.nonzero_risk_count}",
        "",
    ]
    return "\n".join(lines)


def format_cross_city_row(summary: RiskSummary) -> str:
    """One-line summary for a cross-city comparison table."""
    return " | ".join([
        f"City: {summary.city}",
        f"Correlation (r): {fmt(summary.r_ndvi_rain)}",
        f"% Aligned Risk (Area): {fmt(summary.percent_aligned, 2, '%')}",
        f"Cumulative Risk Score: {fmt(summary.cumulative_risk, 0)}",
        f"Rain Trend SD: {fmt(summary.rain_trend_sd, 4)}",
        f"% Population Exposed: {fmt(summary.percent_pop_exposed, 2, '%')}",
        f"Avg Risk in High-Risk Zones: {fmt(summary.mean_risk_aligned, 0)}",
    ])
