"""Risk and statistics modules.

- risk_scoring: Per-point hazard, vulnerability, risk score, quadrant
- statistics: Run-level summary (correlations, exposure, distributions)
- report: Text report and cross-city summary line
"""

from aura.analysis.risk_scoring import Quadrant, classify_quadrant, score_points
from aura.analysis.statistics import RiskSummary, summarize
from aura.analysis.report import format_report, format_cross_city_row

__all__ = [
    "Quadrant",
    "classify_quadrant",
    "score_points",
    "RiskSummary",
    "summarize",
    "format_report",
    "format_cross_city_row",
]
