"""Pipeline modules.

- orchestrator: Main pipeline controller
- results_store: SQLite persistence and Parquet export
"""

from aura.pipeline.orchestrator import RiskPipeline, PipelineResult
from aura.pipeline.results_store import ResultsStore, generate_run_id

__all__ = [
    "RiskPipeline",
    "PipelineResult",
    "ResultsStore",
    "generate_run_id",
]
