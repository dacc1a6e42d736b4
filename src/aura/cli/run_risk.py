"""Core risk pipeline execution logic.

This module contains the actual pipeline runner, separated from argument parsing.
Scripts are thin wrappers; this is the real implementation.
"""

import argparse
import importlib.util
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from aura.analysis.report import format_cross_city_row
from aura.pipeline.orchestrator import PipelineResult, RiskPipeline
from aura.schemas import CITY_PRESETS, CLIConfig, ParamConfig, UserConfig, resolve_config
from aura.setup_directories import setup_output_directories

__all__ = ['load_user_config_dict', 'build_config', 'run_risk_pipeline', 'main']

logger = logging.getLogger(__name__)


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    # Find CONFIG dict
    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def build_config(user_config_path: Optional[str] = None, cli_args: Optional[Dict[str, Any]] = None):
    """Resolve Param < User < CLI into an InternalConfig.

    Raises
    ------
    pydantic.ValidationError
        If the merged configuration is invalid.
    """
    param_cfg = ParamConfig()
    user_dict = load_user_config_dict(user_config_path) if user_config_path else {}
    user_cfg = UserConfig.model_validate(user_dict)

    cli_dict = {k: v for k, v in (cli_args or {}).items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    return resolve_config(param_cfg, user_cfg, cli_cfg)


def run_risk_pipeline(
    user_config_path: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None,
    rerun: bool = False,
    verbose: bool = False
) -> PipelineResult:
    """Execute the risk pipeline for one region.

    This is the core pipeline execution function. It:
    1. Loads and resolves configuration (Param < User < CLI)
    2. Optionally cleans the output directory if rerun=True
    3. Sets up output directories
    4. Runs every stage and persists the results

    Parameters
    ----------
    user_config_path : str, optional
        Path to user config file (Python file with CONFIG dict).

    cli_args : dict, optional
        CLI argument overrides. Keys: city, base_dir, start_year, end_year,
        seed, sample_size, timeseries_dir, static_dir, no_plots, log_level.
        All optional.

    rerun : bool, optional
        If True, delete the output directory before running.

    verbose : bool, optional
        If True, enable DEBUG logging and print full resolved config.

    Returns
    -------
    PipelineResult

    Raises
    ------
    FileNotFoundError
        If user_config_path does not exist.
    ValueError
        If configuration validation fails.
    ExternalSourceError
        If a dataset is missing or does not cover the region.

    Examples
    --------
    Run with user config only::

        run_risk_pipeline("scripts/user_config.py")

    Run with CLI overrides::

        run_risk_pipeline(
            "scripts/user_config.py",
            cli_args={"city": "jakarta", "start_year": 2005}
        )
    """
    cli_args = dict(cli_args or {})
    if verbose and cli_args.get("log_level") is None:
        cli_args["log_level"] = "DEBUG"

    config = build_config(user_config_path, cli_args)

    if rerun:
        base_dir_path = Path(config.base_dir)
        if base_dir_path.exists():
            print(f"Cleaning output directory: {base_dir_path}")
            shutil.rmtree(base_dir_path)
            print("Output directory cleaned")

    output_dirs = setup_output_directories(config.base_dir)

    print(f"\n{'='*60}")
    print("AURA Compound Risk Pipeline")
    print('='*60)
    print(f"Config: {user_config_path or '(defaults)'}")
    print(f"City:   {config.region.name} ({config.region.latitude:.4f}, {config.region.longitude:.4f})")
    print(f"Period: {config.period.start_year}-{config.period.end_year}")
    print(f"Output: {config.base_dir}")
    print('='*60)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(mode="json", by_alias=True), indent=2))
        print('='*60)

    return RiskPipeline(config, output_dirs=output_dirs).run()


def run_all_cities(user_config_path: Optional[str] = None, cli_args: Optional[Dict[str, Any]] = None,
                   verbose: bool = False) -> List[PipelineResult]:
    """Run every city preset in turn and print the cross-city summary."""
    results = []
    for city in CITY_PRESETS:
        args = dict(cli_args or {})
        args["city"] = city
        results.append(run_risk_pipeline(user_config_path, args, verbose=verbose))

    print(f"\n{'='*60}")
    print("CROSS-CITY SUMMARY")
    print('='*60)
    for result in results:
        print(format_cross_city_row(result.summary))
    return results


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run the AURA compound rainfall / vegetation-loss risk pipeline")
    parser.add_argument("config", nargs="?", help="Path to user config file")
    parser.add_argument("--city", help=f"City preset ({', '.join(CITY_PRESETS)})")
    parser.add_argument("--all-cities", action="store_true", help="Run every city preset and compare")
    parser.add_argument("--start-year", type=int, help="First year of the analysis period")
    parser.add_argument("--end-year", type=int, help="Last year of the analysis period")
    parser.add_argument("--seed", type=int, help="Sampling seed")
    parser.add_argument("--sample-size", type=int, help="Number of sample points")
    parser.add_argument("--timeseries-dir", help="Directory with rainfall / vegetation NetCDF files")
    parser.add_argument("--static-dir", help="Directory with population / built-up rasters")
    parser.add_argument("--base-dir", help="Output directory")
    parser.add_argument("--no-plots", action="store_true", help="Skip maps and charts")
    parser.add_argument("--rerun", action="store_true", help="Delete output directory before running")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    cli_args = {
        "city": args.city,
        "start_year": args.start_year,
        "end_year": args.end_year,
        "seed": args.seed,
        "sample_size": args.sample_size,
        "timeseries_dir": args.timeseries_dir,
        "static_dir": args.static_dir,
        "base_dir": args.base_dir,
        "no_plots": True if args.no_plots else None,
    }

    if args.all_cities:
        run_all_cities(args.config, cli_args, verbose=args.verbose)
        return

    result = run_risk_pipeline(args.config, cli_args, rerun=args.rerun, verbose=args.verbose)
    print(f"\nRun {result.run_id} complete")
    for kind, paths in result.outputs.items():
        for path in paths:
            print(f"  {kind:10s}: {path}")


if __name__ == "__main__":
    main()
