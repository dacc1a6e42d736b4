"""Visualization and plotting module for risk maps and charts."""

from .plotter import RiskPlotter

__all__ = ['RiskPlotter']
