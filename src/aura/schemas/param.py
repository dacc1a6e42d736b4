"""ParamConfig: Expert defaults for the AURA pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Dataset identifiers follow the Earth Engine catalog names of the products the
analysis was designed around (CHIRPS daily, MODIS MOD13Q1, GHSL P2023A).
Local sources map them to file names (see ``aura.raster.sources``).

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field
from aura.schemas.base import AuraBaseModel


# City presets: (display name, longitude, latitude)
CITY_PRESETS = {
    "islamabad": ("Islamabad", 73.0479, 33.6844),
    "colombo": ("Colombo", 79.8612, 6.9271),
    "mumbai": ("Mumbai", 72.8777, 19.0760),
    "kuala_lumpur": ("Kuala Lumpur", 101.6869, 3.1319),
    "hangzhou": ("Hangzhou", 120.1551, 30.2741),
    "jakarta": ("Jakarta", 106.8456, -6.2088),
    "hyderabad": ("Hyderabad", 78.4867, 17.3850),
}


# =============================================================================
# Nested Configuration Models
# =============================================================================

class RegionConfig(AuraBaseModel):
    """Area of interest: a point and a buffer distance."""
    city: Optional[str] = "kuala_lumpur"
    name: Optional[str] = None
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    buffer_m: float = Field(20000.0, gt=0, description="Buffer radius in meters")


class PeriodConfig(AuraBaseModel):
    """Analysis period (inclusive calendar years)."""
    start_year: int = Field(2000, ge=1900)
    end_year: int = Field(2020, ge=1900)


class RainfallConfig(AuraBaseModel):
    """Daily precipitation source and annual compositing."""
    dataset_id: str = "UCSB-CHG/CHIRPS/DAILY"
    variable: str = "precipitation"
    composite: Literal["p95", "max"] = "p95"
    percentile: float = Field(95.0, gt=0, le=100)
    native_resolution_km: float = Field(5.5, gt=0)
    units: str = "mm/day"


class VegetationConfig(AuraBaseModel):
    """Vegetation index composites with per-observation quality masking."""
    dataset_id: str = "MODIS/061/MOD13Q1"
    variable: str = "NDVI"
    qa_variable: Optional[str] = "SummaryQA"
    good_qa_values: list[int] = Field(default_factory=lambda: [0])
    scale_factor: float = Field(0.0001, gt=0)


class PopulationConfig(AuraBaseModel):
    """Static population count raster."""
    dataset_id: str = "JRC/GHSL/P2023A/GHS_POP/2020"
    band: str = "population_count"


class BuiltUpConfig(AuraBaseModel):
    """Built-up surface at two epochs, differenced into a per-year change."""
    start_dataset_id: str = "JRC/GHSL/P2023A/GHS_BUILT_S/2000"
    end_dataset_id: str = "JRC/GHSL/P2023A/GHS_BUILT_S/2020"
    band: str = "built_surface"
    start_epoch: int = 2000
    end_epoch: int = 2020


class TrendConfig(AuraBaseModel):
    """Per-pixel trend fitting."""
    min_valid_points: int = Field(2, ge=2)
    workers: int = Field(1, ge=1)


class GridConfig(AuraBaseModel):
    """Common target grid for harmonization."""
    crs: str = "local"  # "local" = azimuthal equidistant centred on the region
    resolution_m: float = Field(500.0, gt=0)
    smoothing: bool = True
    smoothing_size: int = Field(3, ge=1)


class SamplingConfig(AuraBaseModel):
    """Random point sample over the region."""
    sample_size: int = Field(500, gt=0)
    seed: int = 0
    extraction_radius_m: float = Field(0.0, ge=0)


class RiskConfig(AuraBaseModel):
    """Risk scoring."""
    scale_constant: float = Field(1e7, gt=0)


class SourceConfig(AuraBaseModel):
    """Local file source layout."""
    timeseries_dir: Optional[str] = None
    static_dir: Optional[str] = None


class VarNamesConfig(AuraBaseModel):
    """Attribute names of the joined point table."""
    rain_trend: str = "Rain_Trend"
    ndvi_trend: str = "NDVI_Trend"
    population: str = "Pop"
    built_up_change: str = "BuiltUp_Change"
    risk_score: str = "Risk_Score"
    quadrant: str = "Quadrant"


class CoordNamesConfig(AuraBaseModel):
    """Coordinate names used by source files."""
    time: str = "time"
    y: str = "latitude"
    x: str = "longitude"


class GlobalConfig(AuraBaseModel):
    """Global pipeline settings."""
    var_names: VarNamesConfig = Field(default_factory=VarNamesConfig)
    coord_names: CoordNamesConfig = Field(default_factory=CoordNamesConfig)


class LayerStyleConfig(AuraBaseModel):
    """Display range and color ramp for one map layer."""
    vmin: float
    vmax: float
    palette: list[str]
    title: str


class VisualizationConfig(AuraBaseModel):
    """Rendering sink settings."""
    enabled: bool = True
    dpi: int = Field(150, ge=50)
    figsize: tuple[float, float] = (8.0, 7.0)
    output_format: Literal["png", "pdf", "jpeg"] = "png"
    layers: dict[str, LayerStyleConfig] = Field(
        default_factory=lambda: {
            "Rain_Trend": LayerStyleConfig(
                vmin=-0.1, vmax=0.1, palette=["blue", "white", "red"],
                title="Rainfall Trend (mm/year)"),
            "NDVI_Trend": LayerStyleConfig(
                vmin=-0.001, vmax=0.001, palette=["brown", "white", "green"],
                title="NDVI Trend (per year)"),
            "Pop": LayerStyleConfig(
                vmin=0, vmax=1000, palette=["white", "yellow", "orange", "red"],
                title="Population Density"),
            "BuiltUp_Change": LayerStyleConfig(
                vmin=0, vmax=5, palette=["white", "gray", "black"],
                title="Built-Up Change (per year)"),
        }
    )
    scatter_xlim: tuple[float, float] = (-0.002, 0.002)
    scatter_ylim: tuple[float, float] = (-0.2, 0.4)
    histogram_bins: int = Field(30, ge=1)


class OutputConfig(AuraBaseModel):
    """Output file configuration."""
    compression: Literal["snappy", "gzip", "lz4", "none"] = "snappy"
    save_rasters: bool = True


class LoggingConfig(AuraBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(AuraBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    base_dir: str = "./output"
    region: RegionConfig = Field(default_factory=RegionConfig)
    period: PeriodConfig = Field(default_factory=PeriodConfig)
    rainfall: RainfallConfig = Field(default_factory=RainfallConfig)
    vegetation: VegetationConfig = Field(default_factory=VegetationConfig)
    population: PopulationConfig = Field(default_factory=PopulationConfig)
    built_up: BuiltUpConfig = Field(default_factory=BuiltUpConfig)
    trend: TrendConfig = Field(default_factory=TrendConfig)
    grid: GridConfig = Field(default_factory=GridConfig)
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    risk: RiskConfig = Field(default_factory=RiskConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = AuraBaseModel.model_config.copy()
    model_config.update({"populate_by_name": True})  # Allow both 'global' and 'global_'
