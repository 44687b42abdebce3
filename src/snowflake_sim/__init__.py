"""
Snowflake Simulation Library

Gravner-Griffeath mesoscopic snow-crystal growth on a hex lattice:
- Lattice: double-buffered per-cell state with O(1) swap
- GravnerSimulator: diffusion, freezing, attachment, melting and noise passes
- render / analysis: SVG output and shape statistics of the finished crystal
"""

from .lattice import ConfigurationError, Lattice
from .gravner_sim import ITERATION_CAP, OUTER_THIRD, GravnerParams, GravnerSimulator
from . import analysis, render, utils

__all__ = [
    # Simulator
    "GravnerSimulator",
    "Lattice",
    # Configuration
    "GravnerParams",
    "ConfigurationError",
    # Run outcomes
    "OUTER_THIRD",
    "ITERATION_CAP",
    # Utilities
    "analysis",
    "render",
    "utils",
]
