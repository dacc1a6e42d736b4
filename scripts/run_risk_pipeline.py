#!/usr/bin/env python3
"""``Aura`` Compound Risk Pipeline Runner.

Usage:
    python scripts/run_risk_pipeline.py scripts/user_config.py
    python scripts/run_risk_pipeline.py scripts/user_config.py --city colombo
    python scripts/run_risk_pipeline.py scripts/user_config.py --all-cities --no-plots

Note: User config in scripts/user_config.py, expert defaults in src/aura/schemas/param.py
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from aura.cli.run_risk import main


if __name__ == "__main__":
    main()
