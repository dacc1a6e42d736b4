"""Pydantic configuration schemas for the AURA pipeline.

This module provides strictly typed configuration models for the AURA
rainfall/vegetation risk pipeline. All configuration validation, coercion,
and normalization happens at schema validation time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from aura.schemas.resolve import resolve_config, deep_merge
from aura.schemas.internal import InternalConfig
from aura.schemas.param import ParamConfig, CITY_PRESETS
from aura.schemas.user import UserConfig
from aura.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'deep_merge',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
    'CITY_PRESETS',
]
