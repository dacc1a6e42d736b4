"""Pipeline contracts: fail-fast enforcement of stage invariants.

This package enforces semantic guarantees between pipeline stages.
Contracts fail immediately and loudly when pipeline stages don't produce
their promised invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Algorithms handle coverage gaps as no-data
"""

from aura.contracts.failure import ContractViolation, ExternalSourceError
from aura.contracts.base import require
from aura.contracts.raster import assert_trend_raster, assert_harmonized
from aura.contracts.sampling import assert_sampled
from aura.contracts.risk import assert_risk_output

__all__ = [
    "ContractViolation",
    "ExternalSourceError",
    "require",
    "assert_trend_raster",
    "assert_harmonized",
    "assert_sampled",
    "assert_risk_output",
]
