"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with aliases
for common naming patterns (e.g., CITY → region.city, SEED → sampling.seed).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Validation is lenient to accept
both uppercase and lowercase keys, integers where floats are expected, etc.
"""

from typing import Literal, Optional, Any
from pydantic import Field, field_validator
from aura.schemas.base import AuraBaseModel


class UserRegionConfig(AuraBaseModel):
    """User-facing region config."""
    city: Optional[str] = None
    name: Optional[str] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    buffer_m: Optional[float] = None

    @field_validator("city", mode="before")
    @classmethod
    def normalize_city(cls, v):
        """Accept 'Kuala Lumpur', 'kuala-lumpur' and 'KUALA_LUMPUR' alike."""
        if isinstance(v, str):
            return v.lower().strip().replace(" ", "_").replace("-", "_")
        return v


class UserGridConfig(AuraBaseModel):
    """User-facing grid config."""
    crs: Optional[str] = None
    resolution_m: Optional[float] = None
    smoothing: Optional[bool] = None
    smoothing_size: Optional[int] = None


class UserSamplingConfig(AuraBaseModel):
    """User-facing sampling config."""
    sample_size: Optional[int] = None
    seed: Optional[int] = None
    extraction_radius_m: Optional[float] = None


class UserGlobalConfig(AuraBaseModel):
    """User-facing global config."""
    var_names: Optional[dict[str, str]] = None
    coord_names: Optional[dict[str, str]] = None


class UserConfig(AuraBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.

    This config is converted to internal overrides during resolution.

    Usage
    -----
        user_cfg = UserConfig(
            CITY="jakarta",
            START_YEAR=2001,
            SAMPLE_SIZE=1000,
            TIMESERIES_DIR="/data/exports/series",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)

    Notes
    -----
    Setting LONGITUDE/LATITUDE without CITY drops the default city preset,
    so the region is taken from the coordinates alone.
    """

    # Top-level operational settings
    base_dir: Optional[str] = Field(None, alias="BASE_DIR")
    timeseries_dir: Optional[str] = Field(None, alias="TIMESERIES_DIR")
    static_dir: Optional[str] = Field(None, alias="STATIC_DIR")

    # Region settings (flat aliases)
    city: Optional[str] = Field(None, alias="CITY")
    city_name: Optional[str] = Field(None, alias="CITY_NAME")
    longitude: Optional[float] = Field(None, alias="LONGITUDE")
    latitude: Optional[float] = Field(None, alias="LATITUDE")
    buffer_m: Optional[float] = Field(None, alias="BUFFER_M")

    # Period settings (flat aliases)
    start_year: Optional[int] = Field(None, alias="START_YEAR")
    end_year: Optional[int] = Field(None, alias="END_YEAR")

    # Grid and sampling settings (flat aliases)
    resolution_m: Optional[float] = Field(None, alias="RESOLUTION_M")
    smoothing_size: Optional[int] = Field(None, alias="SMOOTHING_SIZE")
    sample_size: Optional[int] = Field(None, alias="SAMPLE_SIZE")
    seed: Optional[int] = Field(None, alias="SEED")

    # Rainfall compositing (flat alias)
    rain_composite: Optional[Literal["p95", "max"]] = Field(None, alias="RAIN_COMPOSITE")

    # Nested overrides (advanced users)
    region: Optional[UserRegionConfig] = None
    grid: Optional[UserGridConfig] = None
    sampling: Optional[UserSamplingConfig] = None
    global_: Optional[UserGlobalConfig] = Field(None, alias="global")
    period: Optional[dict[str, Any]] = None
    rainfall: Optional[dict[str, Any]] = None
    vegetation: Optional[dict[str, Any]] = None
    population: Optional[dict[str, Any]] = None
    built_up: Optional[dict[str, Any]] = None
    trend: Optional[dict[str, Any]] = None
    risk: Optional[dict[str, Any]] = None
    visualization: Optional[dict[str, Any]] = None
    output: Optional[dict[str, Any]] = None

    model_config = AuraBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("buffer_m", "resolution_m", "longitude", "latitude", mode="before")
    @classmethod
    def coerce_numeric_fields(cls, v):
        """Accept int or float for numeric fields."""
        if v is not None:
            return float(v)
        return v

    @field_validator("city", mode="before")
    @classmethod
    def normalize_city(cls, v):
        """Normalize city keys to lowercase snake case."""
        if isinstance(v, str):
            return v.lower().strip().replace(" ", "_").replace("-", "_")
        return v

    @field_validator("rain_composite", mode="before")
    @classmethod
    def normalize_composite(cls, v):
        """Normalize composite names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        # Source section
        source = {}
        if self.timeseries_dir is not None:
            source["timeseries_dir"] = str(self.timeseries_dir)
        if self.static_dir is not None:
            source["static_dir"] = str(self.static_dir)
        if source:
            overrides["source"] = source

        # Region section
        region = {}
        if self.city is not None:
            region["city"] = self.city
        if self.city_name is not None:
            region["name"] = self.city_name
        if self.longitude is not None:
            region["longitude"] = self.longitude
        if self.latitude is not None:
            region["latitude"] = self.latitude
        if self.buffer_m is not None:
            region["buffer_m"] = self.buffer_m

        # Merge with explicit region config
        if self.region is not None:
            region.update(self.region.model_dump(exclude_none=True))

        # Explicit coordinates without a city replace the default preset
        if ("longitude" in region or "latitude" in region) and "city" not in region:
            region["city"] = None

        if region:
            overrides["region"] = region

        # Period section
        period = {}
        if self.start_year is not None:
            period["start_year"] = self.start_year
        if self.end_year is not None:
            period["end_year"] = self.end_year
        if self.period is not None:
            period.update(self.period)
        if period:
            overrides["period"] = period

        # Grid section
        grid = {}
        if self.resolution_m is not None:
            grid["resolution_m"] = self.resolution_m
        if self.smoothing_size is not None:
            grid["smoothing_size"] = self.smoothing_size
        if self.grid is not None:
            grid.update(self.grid.model_dump(exclude_none=True))
        if grid:
            overrides["grid"] = grid

        # Sampling section
        sampling = {}
        if self.sample_size is not None:
            sampling["sample_size"] = self.sample_size
        if self.seed is not None:
            sampling["seed"] = self.seed
        if self.sampling is not None:
            sampling.update(self.sampling.model_dump(exclude_none=True))
        if sampling:
            overrides["sampling"] = sampling

        # Rainfall section
        rainfall = {}
        if self.rain_composite is not None:
            rainfall["composite"] = self.rain_composite
        if self.rainfall is not None:
            rainfall.update(self.rainfall)
        if rainfall:
            overrides["rainfall"] = rainfall

        # Global section
        if self.global_ is not None:
            global_cfg = self.global_.model_dump(exclude_none=True)
            if global_cfg:
                overrides["global"] = global_cfg

        # Pass-through sections
        for section in ("vegetation", "population", "built_up", "trend", "risk", "visualization", "output"):
            value = getattr(self, section)
            if value:
                overrides[section] = dict(value)

        return overrides
