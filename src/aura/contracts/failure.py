"""Centralized failure types for the pipeline.

Contracts fail fast, loud, and once. All contract violations raise the same
exception type, allowing caller to handle pipeline bugs uniformly. Failures
of the external data source have their own type so they are never confused
with a pipeline bug.
"""


class ContractViolation(RuntimeError):
    """Raised when a pipeline contract is violated.

    This indicates a bug in pipeline logic, not bad user input or a coverage
    gap. It means a pipeline stage did not produce the invariants it promised.

    Key distinction:
    - ValueError: User/config error (handled by Pydantic)
    - ExternalSourceError: Data source unavailable or incomplete
    - ContractViolation: Pipeline bug (programmer error)
    - NaN / None: Coverage gaps and undefined statistics (not errors)
    """
    pass


class ExternalSourceError(RuntimeError):
    """Raised when the raster data source cannot satisfy a query.

    Missing dataset files, missing variables, empty time selections and
    clips that contain no cells all raise this. It is fatal for the run and
    never retried.
    """
    pass
