"""Per-point hazard, vulnerability, risk score and quadrant label.

For each valid sample point:

- hazard = max(rain_trend, 0)
- vulnerability = max(-ndvi_trend, 0)
- risk_score = hazard * vulnerability * population * scale_constant when both
  hazard and vulnerability are positive, else 0
- quadrant = the (rain increasing?, vegetation decreasing?) cell of the 2x2
  alignment table

All derived fields are pure functions of the point's own attributes.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from aura.schemas import InternalConfig

__all__ = ['Quadrant', 'classify_quadrant', 'score_points']

logger = logging.getLogger(__name__)


class Quadrant(str, Enum):
    """Spatial alignment of the rainfall and vegetation trends at a point."""
    HIGH_RISK_ALIGNED = "High_Risk_Aligned"      # rain up, vegetation down
    RAIN_INCREASE_ONLY = "Rain_Increase_Only"    # rain up, vegetation stable/up
    VEG_LOSS_ONLY = "Veg_Loss_Only"              # rain stable/down, vegetation down
    LOW_CHANGE = "Low_Change"                    # neither


_QUADRANTS = {
    (True, True): Quadrant.HIGH_RISK_ALIGNED,
    (True, False): Quadrant.RAIN_INCREASE_ONLY,
    (False, True): Quadrant.VEG_LOSS_ONLY,
    (False, False): Quadrant.LOW_CHANGE,
}


def classify_quadrant(rain_trend: float, ndvi_trend: float) -> Quadrant:
    """Quadrant of one point; every finite pair maps to exactly one label."""
    return _QUADRANTS[(bool(rain_trend > 0), bool(ndvi_trend < 0))]


def score_points(valid: pd.DataFrame, config: "InternalConfig") -> pd.DataFrame:
    """Add hazard, vulnerability, risk score and quadrant columns.

    Parameters
    ----------
    valid : pd.DataFrame
        Valid joined sample points (no missing attributes).
    config : InternalConfig
        Supplies column names and ``risk.scale_constant``.

    Returns
    -------
    pd.DataFrame
        A new frame: the input columns plus ``hazard``, ``vulnerability``
        and the configured risk-score and quadrant columns.
    """
    names = config.global_.var_names
    rain = valid[names.rain_trend].to_numpy(dtype=float)
    ndvi = valid[names.ndvi_trend].to_numpy(dtype=float)
    pop = valid[names.population].to_numpy(dtype=float)

    hazard = np.maximum(rain, 0.0)
    vulnerability = np.maximum(-ndvi, 0.0)
    gate = (hazard > 0) & (vulnerability > 0)
    risk = np.where(gate, hazard * vulnerability * pop * config.risk.scale_constant, 0.0)

    records = valid.copy()
    records["hazard"] = hazard
    records["vulnerability"] = vulnerability
    records[names.risk_score] = risk
    records[names.quadrant] = [classify_quadrant(r, n).value for r, n in zip(rain, ndvi)]

    logger.info("Scored %d points: %d with non-zero risk", len(records), int((risk > 0).sum()))
    return records
