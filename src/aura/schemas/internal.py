"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that processing code depends on.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here. Configuration errors (inverted
period, non-positive sizes, unusable target CRS) are raised from here, before
any data is touched.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict, field_validator, model_validator
from pyproj import CRS
from pyproj.exceptions import CRSError

from aura.schemas.base import AuraBaseModel
from aura.schemas.param import CITY_PRESETS


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalRegionConfig(AuraBaseModel):
    """Runtime region: always carries a name and a point."""
    city: Optional[str]
    name: str
    longitude: float = Field(ge=-180, le=180)
    latitude: float = Field(ge=-90, le=90)
    buffer_m: float = Field(gt=0)

    @model_validator(mode="before")
    @classmethod
    def apply_city_preset(cls, data):
        """Fill name/longitude/latitude from the city preset when not given."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        city = data.get("city")
        if city is not None:
            key = str(city).lower().strip().replace(" ", "_")
            if key not in CITY_PRESETS:
                raise ValueError(
                    f"Unknown region.city '{city}'; expected one of {sorted(CITY_PRESETS)} "
                    "or explicit region.longitude/region.latitude"
                )
            name, lon, lat = CITY_PRESETS[key]
            data["city"] = key
            if data.get("longitude") is None:
                data["longitude"] = lon
            if data.get("latitude") is None:
                data["latitude"] = lat
            if data.get("name") is None:
                data["name"] = name
        elif data.get("longitude") is None or data.get("latitude") is None:
            raise ValueError("region requires either region.city or both region.longitude and region.latitude")
        if data.get("name") is None:
            data["name"] = f"region_{data['latitude']:.4f}_{data['longitude']:.4f}"
        return data


class InternalPeriodConfig(AuraBaseModel):
    """Runtime analysis period."""
    start_year: int
    end_year: int

    @model_validator(mode="after")
    def check_order(self):
        """Reject an end year before the start year."""
        if self.end_year < self.start_year:
            raise ValueError(
                f"period.end_year ({self.end_year}) is before period.start_year ({self.start_year})"
            )
        return self


class InternalRainfallConfig(AuraBaseModel):
    """Runtime rainfall settings."""
    dataset_id: str
    variable: str
    composite: Literal["p95", "max"]
    percentile: float = Field(gt=0, le=100)
    native_resolution_km: float = Field(gt=0)
    units: str


class InternalVegetationConfig(AuraBaseModel):
    """Runtime vegetation settings."""
    dataset_id: str
    variable: str
    qa_variable: Optional[str]
    good_qa_values: list[int]
    scale_factor: float = Field(gt=0)


class InternalPopulationConfig(AuraBaseModel):
    """Runtime population settings."""
    dataset_id: str
    band: str


class InternalBuiltUpConfig(AuraBaseModel):
    """Runtime built-up change settings."""
    start_dataset_id: str
    end_dataset_id: str
    band: str
    start_epoch: int
    end_epoch: int

    @model_validator(mode="after")
    def check_epochs(self):
        """Built-up change needs two distinct, ordered epochs."""
        if self.end_epoch <= self.start_epoch:
            raise ValueError(
                f"built_up.end_epoch ({self.end_epoch}) must be after built_up.start_epoch ({self.start_epoch})"
            )
        return self


class InternalTrendConfig(AuraBaseModel):
    """Runtime trend settings."""
    min_valid_points: int = Field(ge=2)
    workers: int = Field(ge=1)


class InternalGridConfig(AuraBaseModel):
    """Runtime target grid settings."""
    crs: str
    resolution_m: float = Field(gt=0)
    smoothing: bool
    smoothing_size: int = Field(ge=1)

    @field_validator("smoothing_size")
    @classmethod
    def require_odd_size(cls, v):
        """Neighborhood must be centred on the cell."""
        if v % 2 == 0:
            raise ValueError(f"grid.smoothing_size must be odd, got {v}")
        return v

    @field_validator("crs")
    @classmethod
    def require_projected_metric_crs(cls, v):
        """Resolution is in meters, so the target CRS must be projected in meters."""
        if v.lower() == "local":
            return "local"
        try:
            crs = CRS.from_user_input(v)
        except CRSError as e:
            raise ValueError(f"grid.crs '{v}' is not a valid CRS: {e}")
        if not crs.is_projected:
            raise ValueError(f"grid.crs '{v}' must be a projected CRS with metre units")
        units = {axis.unit_name for axis in crs.axis_info}
        if not units <= {"metre", "meter"}:
            raise ValueError(f"grid.crs '{v}' must use metre units, found {sorted(units)}")
        return v


class InternalSamplingConfig(AuraBaseModel):
    """Runtime sampling settings."""
    sample_size: int = Field(gt=0)
    seed: int
    extraction_radius_m: float = Field(ge=0)


class InternalRiskConfig(AuraBaseModel):
    """Runtime risk settings."""
    scale_constant: float = Field(gt=0)


class InternalSourceConfig(AuraBaseModel):
    """Runtime local source layout (None when arrays are supplied in memory)."""
    timeseries_dir: Optional[str]
    static_dir: Optional[str]


class InternalVarNamesConfig(AuraBaseModel):
    """Runtime attribute names."""
    rain_trend: str
    ndvi_trend: str
    population: str
    built_up_change: str
    risk_score: str
    quadrant: str


class InternalCoordNamesConfig(AuraBaseModel):
    """Runtime source coordinate names."""
    time: str
    y: str
    x: str


class InternalGlobalConfig(AuraBaseModel):
    """Runtime global settings."""
    var_names: InternalVarNamesConfig
    coord_names: InternalCoordNamesConfig


class InternalLayerStyleConfig(AuraBaseModel):
    """Runtime map layer style."""
    vmin: float
    vmax: float
    palette: list[str]
    title: str


class InternalVisualizationConfig(AuraBaseModel):
    """Runtime visualization settings."""
    enabled: bool
    dpi: int
    figsize: tuple[float, float]
    output_format: Literal["png", "pdf", "jpeg"]
    layers: dict[str, InternalLayerStyleConfig]
    scatter_xlim: tuple[float, float]
    scatter_ylim: tuple[float, float]
    histogram_bins: int


class InternalOutputConfig(AuraBaseModel):
    """Runtime output configuration."""
    compression: Literal["snappy", "gzip", "lz4", "none"]
    save_rasters: bool


class InternalLoggingConfig(AuraBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class InternalStoreConfig(AuraBaseModel):
    """Runtime results store configuration."""
    db_filename_pattern: str = Field(default="{city}_risk_points.db")


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(AuraBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that processing code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.seed = config.sampling.seed  # NOT .get()
            self.resolution = config.grid.resolution_m

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO type checking
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    base_dir: str
    region: InternalRegionConfig
    period: InternalPeriodConfig
    rainfall: InternalRainfallConfig
    vegetation: InternalVegetationConfig
    population: InternalPopulationConfig
    built_up: InternalBuiltUpConfig
    trend: InternalTrendConfig
    grid: InternalGridConfig
    sampling: InternalSamplingConfig
    risk: InternalRiskConfig
    source: InternalSourceConfig
    global_: InternalGlobalConfig = Field(alias="global")
    visualization: InternalVisualizationConfig
    output: InternalOutputConfig
    logging: InternalLoggingConfig
    store: InternalStoreConfig = Field(default_factory=InternalStoreConfig)

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
        populate_by_name=True,  # Allow both 'global' and 'global_'
    )

    @property
    def city_slug(self) -> str:
        """Filesystem-safe region identifier."""
        return "".join(c if c.isalnum() else "_" for c in self.region.name.lower()).strip("_")
