"""CLIConfig: Command-line operational overrides.

Minimal configuration for operational parameters that commonly change
between runs: city, period, seed, output paths, verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import field_validator
from aura.schemas.base import AuraBaseModel


class CLIConfig(AuraBaseModel):
    """Command-line configuration overrides.

    Operational-only settings that override user and param configs.
    Highest priority in config resolution.

    Usage
    -----
        cli_cfg = CLIConfig(
            city="colombo",
            start_year=2002,
            base_dir="/scratch/aura_output",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    city: Optional[str] = None
    base_dir: Optional[str] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    seed: Optional[int] = None
    sample_size: Optional[int] = None
    timeseries_dir: Optional[str] = None
    static_dir: Optional[str] = None
    no_plots: Optional[bool] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    @field_validator("city", mode="before")
    @classmethod
    def normalize_city(cls, v):
        """Normalize city keys to lowercase snake case."""
        if isinstance(v, str):
            return v.lower().strip().replace(" ", "_").replace("-", "_")
        return v

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        if self.city is not None:
            # A city on the command line replaces any coordinates from the user file
            overrides["region"] = {"city": self.city, "name": None, "longitude": None, "latitude": None}

        period = {}
        if self.start_year is not None:
            period["start_year"] = self.start_year
        if self.end_year is not None:
            period["end_year"] = self.end_year
        if period:
            overrides["period"] = period

        sampling = {}
        if self.seed is not None:
            sampling["seed"] = self.seed
        if self.sample_size is not None:
            sampling["sample_size"] = self.sample_size
        if sampling:
            overrides["sampling"] = sampling

        source = {}
        if self.timeseries_dir is not None:
            source["timeseries_dir"] = str(self.timeseries_dir)
        if self.static_dir is not None:
            source["static_dir"] = str(self.static_dir)
        if source:
            overrides["source"] = source

        if self.no_plots:
            overrides["visualization"] = {"enabled": False}

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
