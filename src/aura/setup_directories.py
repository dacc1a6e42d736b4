"""
Directory setup for the risk pipeline.

One output tree per base directory, with one file per city and run inside it:
- rasters/<city>/   harmonized rasters (NetCDF)
- analysis/         SQLite store and Parquet exports
- plots/<city>/     maps, scatter and histogram
- reports/          text reports and JSON summaries
- logs/             pipeline logs
"""

from pathlib import Path


def setup_output_directories(base_output_dir=None):
    """
    Set up organized output directory structure.

    Parameters
    ----------
    base_output_dir : str or Path, optional
        Base output directory. If None, uses ./output.

    Returns
    -------
    dict
        Dictionary with paths: 'base', 'rasters', 'analysis', 'plots', 'reports', 'logs'
    """
    if base_output_dir is None:
        base_output_dir = Path.cwd() / "output"

    base_output_dir = Path(base_output_dir).expanduser().resolve()

    directories = {
        "base": base_output_dir,
        "rasters": base_output_dir / "rasters",
        "analysis": base_output_dir / "analysis",
        "plots": base_output_dir / "plots",
        "reports": base_output_dir / "reports",
        "logs": base_output_dir / "logs",
    }

    for key, path in directories.items():
        path.mkdir(parents=True, exist_ok=True)

    print("\nOutput directories created:")
    for key, path in directories.items():
        print(f"  {key:12s}: {path}")
    print("=" * 70 + "\n")

    return directories


def get_raster_path(output_dirs, city, name, run_id):
    """
    Get harmonized raster NetCDF path.

    Returns
    -------
    Path
        Full path: rasters/CITY/CITY_<run_id>_harmonized.nc
    """
    output_dir = Path(output_dirs["rasters"]) / city
    output_dir.mkdir(parents=True, exist_ok=True)
    if not name.endswith(".nc"):
        name = f"{city}_{run_id}_{name}.nc"
    return output_dir / name


def get_analysis_path(output_dirs, city, analysis_type="parquet", filename=None):
    """
    Get analysis file path.

    Parameters
    ----------
    output_dirs : dict
        Output directories from setup_output_directories()
    city : str
        City slug (e.g., 'kuala_lumpur')
    analysis_type : str
        File type: 'parquet', 'csv' or 'db'
    filename : str, optional
        Custom filename. If None, generates from city.

    Returns
    -------
    Path
        Full path: analysis/filename.ext

    Example
    -------
    >>> get_analysis_path(dirs, 'kuala_lumpur', 'parquet')
    Path('output/analysis/kuala_lumpur_risk_points.parquet')
    """
    analysis_dir = Path(output_dirs["analysis"])
    analysis_dir.mkdir(parents=True, exist_ok=True)
    if filename is None:
        ext = analysis_type.lstrip('.')
        filename = f"{city}_risk_points.{ext}"
    return analysis_dir / filename


def get_plot_path(output_dirs, city, plot_type, run_id, fmt="png"):
    """
    Get plot file path.

    Returns
    -------
    Path
        Full path: plots/CITY/CITY_<plot_type>_<run_id>.<fmt>
    """
    plot_dir = Path(output_dirs["plots"]) / city
    plot_dir.mkdir(parents=True, exist_ok=True)
    return plot_dir / f"{city}_{plot_type}_{run_id}.{fmt}"


def get_report_path(output_dirs, city, run_id, ext="txt"):
    """Get report path: reports/CITY_<run_id>_report.<ext>."""
    report_dir = Path(output_dirs["reports"])
    report_dir.mkdir(parents=True, exist_ok=True)
    return report_dir / f"{city}_{run_id}_report.{ext}"


def get_log_path(output_dirs, city=None):
    """
    Get log file path.

    Returns
    -------
    Path
        Full path: logs/pipeline_CITY.log
    """
    log_dir = Path(output_dirs["logs"])
    log_dir.mkdir(parents=True, exist_ok=True)
    filename = f"pipeline_{city}.log" if city else "pipeline_latest.log"
    return log_dir / filename
