"""Trend and harmonization stage contracts.

Enforces the guarantees that trend rasters carry the slope sign convention
and that every harmonized raster sits on exactly the same grid.
"""

import numpy as np
import xarray as xr
from aura.contracts.base import require


def assert_trend_raster(da: xr.DataArray) -> None:
    """Enforce trend stage contract.

    Called after each slope raster is produced.

    Parameters
    ----------
    da : xr.DataArray
        Output of TrendEstimator.slope_raster()

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(
        isinstance(da, xr.DataArray),
        f"Trend contract violated: output is {type(da)}, expected DataArray"
    )
    require(
        da.dims == ("y", "x"),
        f"Trend contract violated: '{da.name}' has dims {da.dims}, expected ('y', 'x')"
    )
    require(
        da.attrs.get("sign_convention") == "positive_increasing",
        f"Trend contract violated: '{da.name}' lacks sign_convention='positive_increasing'"
    )
    require(
        not np.isinf(da.values).any(),
        f"Trend contract violated: '{da.name}' contains infinite slopes"
    )


def assert_harmonized(rasters: dict, expected_shape: tuple) -> None:
    """Enforce harmonization stage contract.

    Called after GridHarmonizer.harmonize(). Every raster must share the
    target shape, CRS and coordinates.

    Parameters
    ----------
    rasters : dict[str, xr.DataArray]
        Harmonized rasters keyed by attribute name

    expected_shape : tuple
        (height, width) of the target grid

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    require(len(rasters) > 0, "Harmonize contract violated: no rasters produced")

    reference = None
    for name, da in rasters.items():
        require(
            "x" in da.coords and "y" in da.coords,
            f"Harmonize contract violated: '{name}' is missing x/y coordinates"
        )
        require(
            da.shape == tuple(expected_shape),
            f"Harmonize contract violated: '{name}' has shape {da.shape}, expected {tuple(expected_shape)}"
        )
        if reference is None:
            reference = da
            continue
        require(
            da.attrs.get("crs") == reference.attrs.get("crs"),
            f"Harmonize contract violated: '{name}' CRS differs from '{reference.name}'"
        )
        require(
            np.array_equal(da["x"].values, reference["x"].values)
            and np.array_equal(da["y"].values, reference["y"].values),
            f"Harmonize contract violated: '{name}' coordinates differ from '{reference.name}'"
        )
