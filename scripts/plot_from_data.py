#!/usr/bin/env python3
"""External visualization script - consumes finalized pipeline data.

Re-renders the maps and charts of a stored run from its outputs:
1. Harmonized rasters (NetCDF) from ``rasters/<city>/``
2. Scored risk records from the SQLite store in ``analysis/``

The pipeline does not know this script exists; it can be run later, on
another machine, or deleted entirely.

Usage
-----
Plot the latest stored run of a city::

    python scripts/plot_from_data.py --base-dir aura_output --city kuala_lumpur

Plot a given run into another directory (the region, grid and styles are
read back from the configuration stored with the run)::

    python scripts/plot_from_data.py --base-dir aura_output --city colombo \
        --run-id 20250101T120000Z_1a2b3c --output-dir figures/
"""

import argparse
import logging
import sys
from pathlib import Path

import xarray as xr

project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from aura.pipeline.results_store import ResultsStore
from aura.schemas import CLIConfig, ParamConfig, UserConfig, resolve_config
from aura.setup_directories import get_analysis_path, get_raster_path, setup_output_directories
from aura.visualization.plotter import RiskPlotter

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Re-plot a stored AURA run")
    parser.add_argument("--base-dir", required=True, help="Pipeline output directory")
    parser.add_argument("--city", help="City preset of the run")
    parser.add_argument("--db", help="Results database (default: derived from --city)")
    parser.add_argument("--run-id", help="Run to plot (default: latest)")
    parser.add_argument("--output-dir", help="Plot directory (default: <base-dir>/plots)")
    args = parser.parse_args()

    if not (args.city or args.db):
        parser.error("one of --city or --db is required")

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    output_dirs = setup_output_directories(args.base_dir)
    if args.output_dir:
        output_dirs["plots"] = Path(args.output_dir)

    if args.db:
        db_path = Path(args.db)
    else:
        preset = resolve_config(ParamConfig(), UserConfig(), CLIConfig(city=args.city, base_dir=args.base_dir))
        db_name = preset.store.db_filename_pattern.format(city=preset.city_slug)
        db_path = get_analysis_path(output_dirs, preset.city_slug, "db", filename=db_name)

    store = ResultsStore(db_path)
    runs = store.load_runs()
    if runs.empty:
        sys.exit(f"No stored runs in {db_path}")
    run_id = args.run_id or runs["run_id"].iloc[-1]

    # Region, grid and styles exactly as the run used them
    config = store.load_config(run_id)

    raster_path = get_raster_path(output_dirs, config.city_slug, "harmonized", run_id)
    with xr.open_dataset(raster_path) as ds:
        rasters = {name: ds[name].load() for name in ds.data_vars}

    records = store.load_records(run_id)
    paths = RiskPlotter(config).render_run(rasters, records, output_dirs, run_id)
    for path in paths:
        print(path)


if __name__ == "__main__":
    main()
