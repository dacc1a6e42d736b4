"""AURA User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the pipeline behavior. Advanced settings are in src/aura/schemas/param.py

Usage:
    python scripts/run_risk_pipeline.py scripts/user_config.py
    python scripts/run_risk_pipeline.py scripts/user_config.py --city jakarta
    python scripts/run_risk_pipeline.py scripts/user_config.py --start-year 2005
"""

CONFIG = {
    # ========================================================================
    # REGION
    # ========================================================================
    "CITY": "kuala_lumpur",   # islamabad, colombo, mumbai, kuala_lumpur, hangzhou, jakarta, hyderabad
    "LONGITUDE": None,        # Explicit centre instead of a city preset
    "LATITUDE": None,
    "BUFFER_M": 20000,        # Region radius in meters
    "BASE_DIR": "./aura_output",  # All outputs go here

    # ========================================================================
    # INPUT DATA
    # ========================================================================
    "TIMESERIES_DIR": "./data/timeseries",  # CHIRPS / MODIS NetCDF files
    "STATIC_DIR": "./data/static",          # GHSL population / built-up GeoTIFFs

    # ========================================================================
    # PERIOD & TRENDS
    # ========================================================================
    "START_YEAR": 2000,
    "END_YEAR": 2020,
    "RAIN_COMPOSITE": "p95",  # "p95" or "max" of daily rainfall per year

    # ========================================================================
    # GRID & SAMPLING
    # ========================================================================
    "RESOLUTION_M": 500,      # Target grid cell size
    "SMOOTHING_SIZE": 3,      # Odd window of the local-mean smoothing
    "SAMPLE_SIZE": 500,       # Random points in the region
    "SEED": 0,                # Sampling seed
    # Note: Risk scale constant, QA flags and plot styles
    # are configured in src/aura/schemas/param.py
}
