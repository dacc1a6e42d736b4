"""`Aura` - Alignment of Urban Rainfall and Absorption.

Estimates whether long-term increases in extreme rainfall coincide with
loss of vegetated land, and how many people live where they do.

Subpackages:
- raster: Data loading, trends, harmonization, sampling
- analysis: Risk scoring, summary statistics, reports
- pipeline: Orchestrator, results store
- visualization: Plotting
"""

__version__ = "0.1.0"
