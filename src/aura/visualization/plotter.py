"""Map, scatter and histogram rendering of a finished run.

One-way sink: receives harmonized rasters and the scored point table and
writes image files. Nothing it produces feeds back into the pipeline.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import xarray as xr
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.colors import LinearSegmentedColormap
from matplotlib.patches import Circle

from aura.raster.raster_utils import Region, same_crs
from aura.setup_directories import get_plot_path

if TYPE_CHECKING:
    from aura.schemas import InternalConfig

__all__ = ['RiskPlotter']

logger = logging.getLogger(__name__)


class RiskPlotter:
    """Renders trend / population maps, the trend scatter and the risk histogram.

    **Maps:**

    Each harmonized raster is drawn in the region's local frame (km from the
    region centre), clipped to the region disc, with the display range and
    colour ramp configured per layer in ``visualization.layers``.

    **Scatter:**

    NDVI trend against rainfall trend per valid point, with quadrant axes at
    zero and an ordinary least-squares trendline.

    **Histogram:**

    Distribution of the non-zero risk scores.

    **Output:**

    Saves to ``plots/{city}/{city}_{plot_type}_{run_id}.{format}``.

    Example usage::

        plotter = RiskPlotter(config)
        paths = plotter.render_run(harmonized, records, output_dirs, run_id)
    """

    def __init__(self, config: "InternalConfig"):
        viz = config.visualization
        self.config = config
        self.dpi = viz.dpi
        self.figsize = tuple(viz.figsize)
        self.output_format = viz.output_format
        self.layers = viz.layers
        self.scatter_xlim = tuple(viz.scatter_xlim)
        self.scatter_ylim = tuple(viz.scatter_ylim)
        self.histogram_bins = viz.histogram_bins
        self.region = Region.from_config(config)

    def _local_km(self, raster: xr.DataArray) -> Tuple[np.ndarray, np.ndarray]:
        """Cell-centre coordinates in km in the region frame (2D arrays)."""
        xx, yy = np.meshgrid(raster["x"].values, raster["y"].values)
        if not same_crs(raster.attrs.get("crs"), self.region.local_crs):
            xx, yy = self.region.to_local(xx, yy, raster.attrs["crs"])
        return np.asarray(xx) / 1000.0, np.asarray(yy) / 1000.0

    def _save_figure(self, fig: plt.Figure, output_path: Path) -> str:
        """Save figure in configured format."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_file = output_path.with_suffix(f'.{self.output_format}')
        fig.savefig(output_file, dpi=self.dpi, bbox_inches='tight', format=self.output_format)
        plt.close(fig)
        logger.info("Plot saved: %s", output_file)
        return str(output_file)

    def plot_layer(self, raster: xr.DataArray, output_path, vmin: float, vmax: float,
                   palette: List[str], title: Optional[str] = None) -> str:
        """Map one raster clipped to the region disc.

        Parameters
        ----------
        raster : xr.DataArray
            Harmonized raster.
        output_path : str or Path
            Target file (extension replaced by the configured format).
        vmin, vmax : float
            Display range.
        palette : list of str
            Colour ramp, low to high.
        title : str, optional
            Axis title (defaults to the raster name).
        """
        xk, yk = self._local_km(raster)
        radius_km = self.region.buffer_m / 1000.0
        values = np.asarray(raster.values, dtype=float)
        masked = np.ma.masked_where(~np.isfinite(values) | (xk ** 2 + yk ** 2 > radius_km ** 2), values)

        cmap = LinearSegmentedColormap.from_list(f"{raster.name}_ramp", palette)
        fig, ax = plt.subplots(figsize=self.figsize, dpi=self.dpi)
        mesh = ax.pcolormesh(xk, yk, masked, cmap=cmap, vmin=vmin, vmax=vmax, shading='auto')
        fig.colorbar(mesh, ax=ax, shrink=0.8, label=raster.attrs.get("units", ""))
        ax.add_patch(Circle((0, 0), radius_km, fill=False, color='#333333', linewidth=1.0))
        ax.set_aspect('equal')
        ax.set_xlabel('Distance from Centre - X (km)', fontsize=11)
        ax.set_ylabel('Distance from Centre - Y (km)', fontsize=11)
        ax.grid(True, alpha=0.2, linestyle=':', linewidth=0.5)
        ax.set_title(f'{self.region.name}: {title or raster.name}', fontsize=12, fontweight='bold', pad=10)
        return self._save_figure(fig, Path(output_path))

    def plot_scatter(self, table: pd.DataFrame, x_field: str, y_field: str, output_path,
                     title: Optional[str] = None) -> str:
        """Scatter of two point attributes with quadrant axes and OLS trendline."""
        x = table[x_field].to_numpy(dtype=float)
        y = table[y_field].to_numpy(dtype=float)

        fig, ax = plt.subplots(figsize=self.figsize, dpi=self.dpi)
        ax.scatter(x, y, s=8, alpha=0.6, color='#1f77b4', label='Sample points')
        ax.axhline(0, color='#333333', linewidth=0.8)
        ax.axvline(0, color='#333333', linewidth=0.8)

        if x.size >= 2 and np.ptp(x) > 0:
            slope, intercept = np.polyfit(x, y, 1)
            xs = np.linspace(*self.scatter_xlim, 50)
            ax.plot(xs, slope * xs + intercept, color='#d62728', linewidth=1.2, label='Least-squares fit')

        ax.set_xlim(*self.scatter_xlim)
        ax.set_ylim(*self.scatter_ylim)
        ax.set_xlabel(x_field, fontsize=11)
        ax.set_ylabel(y_field, fontsize=11)
        ax.grid(True, alpha=0.2, linestyle=':', linewidth=0.5)
        ax.legend(loc='upper right', fontsize=10, framealpha=0.9)
        ax.set_title(f'{self.region.name}: {title or f"{y_field} vs {x_field}"}',
                     fontsize=12, fontweight='bold', pad=10)
        return self._save_figure(fig, Path(output_path))

    def plot_risk_histogram(self, records: pd.DataFrame, risk_field: str, output_path) -> str:
        """Histogram of non-zero risk scores."""
        scores = records[risk_field].to_numpy(dtype=float)
        nonzero = scores[scores > 0]

        fig, ax = plt.subplots(figsize=self.figsize, dpi=self.dpi)
        if nonzero.size:
            ax.hist(nonzero, bins=self.histogram_bins, color='#ff7f0e', edgecolor='white')
        else:
            ax.text(0.5, 0.5, 'No points with non-zero risk', ha='center', va='center',
                    transform=ax.transAxes, fontsize=11)
        ax.set_xlabel(risk_field, fontsize=11)
        ax.set_ylabel('Point count', fontsize=11)
        ax.set_title(f'{self.region.name}: Risk Score Distribution (non-zero only)',
                     fontsize=12, fontweight='bold', pad=10)
        return self._save_figure(fig, Path(output_path))

    def render_run(self, rasters: Dict[str, xr.DataArray], records: pd.DataFrame,
                   output_dirs: dict, run_id: str) -> List[str]:
        """Render every configured map plus the scatter and histogram.

        Returns
        -------
        list of str
            Written file paths.
        """
        names = self.config.global_.var_names
        city = self.config.city_slug
        paths = []

        for name, raster in rasters.items():
            style = self.layers.get(name)
            if style is None:
                logger.debug("No display style for %s; map skipped", name)
                continue
            path = get_plot_path(output_dirs, city, name.lower(), run_id, self.output_format)
            paths.append(self.plot_layer(raster, path, style.vmin, style.vmax, style.palette, style.title))

        scatter_path = get_plot_path(output_dirs, city, "trend_scatter", run_id, self.output_format)
        paths.append(self.plot_scatter(records, names.ndvi_trend, names.rain_trend, scatter_path,
                                       title="Rainfall Trend vs NDVI Trend"))

        hist_path = get_plot_path(output_dirs, city, "risk_histogram", run_id, self.output_format)
        paths.append(self.plot_risk_histogram(records, names.risk_score, hist_path))
        return paths
