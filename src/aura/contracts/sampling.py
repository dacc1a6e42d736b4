"""Sampling stage contract.

Enforces the guarantee that the valid sample is a subset of the raw sample,
in point_id order, with every required attribute finite.
"""

import numpy as np
from aura.contracts.base import require


def assert_sampled(result, required: list) -> None:
    """Enforce sampling stage contract.

    Called after PointSampler.join().

    Parameters
    ----------
    result : SampleResult
        Output of PointSampler.join()

    required : list of str
        Attribute columns that must be finite on every valid point

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    valid = result.valid
    require(
        result.valid_count == len(valid),
        f"Sampling contract violated: valid_count={result.valid_count} but {len(valid)} rows"
    )
    require(
        result.valid_count <= result.raw_count,
        f"Sampling contract violated: {result.valid_count} valid points exceed {result.raw_count} raw points"
    )
    for col in required:
        require(
            col in valid.columns,
            f"Sampling contract violated: missing required column '{col}'"
        )
        require(
            bool(np.isfinite(valid[col].to_numpy(dtype=float)).all()),
            f"Sampling contract violated: non-finite values in '{col}'"
        )
    require(
        bool(valid["point_id"].is_monotonic_increasing),
        "Sampling contract violated: valid points are not in point_id order"
    )
