"""Command-line interface modules for AURA pipeline execution.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from aura.cli.run_risk import run_risk_pipeline

__all__ = ['run_risk_pipeline']
