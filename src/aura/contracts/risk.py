"""Risk scoring stage contract.

Enforces the guarantee that every risk record carries a non-negative score
and exactly one quadrant label, and that scores are zero outside the
aligned quadrant.
"""

import numpy as np
import pandas as pd
from aura.contracts.base import require


def assert_risk_output(df: pd.DataFrame, risk_col: str, quadrant_col: str, labels: set) -> None:
    """Enforce risk stage contract.

    Parameters
    ----------
    df : pd.DataFrame
        Output of score_points()

    risk_col : str
        Name of the risk score column (from config)

    quadrant_col : str
        Name of the quadrant column (from config)

    labels : set of str
        The four allowed quadrant labels

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        isinstance(df, pd.DataFrame),
        f"Risk contract violated: output is {type(df)}, expected DataFrame"
    )
    for col in ("hazard", "vulnerability", risk_col, quadrant_col):
        require(col in df.columns, f"Risk contract violated: missing required column '{col}'")

    if len(df) == 0:
        return

    scores = df[risk_col].to_numpy(dtype=float)
    require(
        bool(np.isfinite(scores).all()) and bool((scores >= 0).all()),
        "Risk contract violated: risk scores must be finite and non-negative"
    )
    require(
        set(df[quadrant_col].unique()) <= set(labels),
        f"Risk contract violated: unexpected quadrant labels {set(df[quadrant_col].unique()) - set(labels)}"
    )
    gated = (df["hazard"] <= 0) | (df["vulnerability"] <= 0)
    require(
        bool((df.loc[gated, risk_col] == 0).all()),
        "Risk contract violated: non-zero risk where hazard or vulnerability is zero"
    )
