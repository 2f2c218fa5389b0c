# chartint/__init__.py
"""
chartint: explainable pattern selection and hit-quality scoring over
pre-derived birth-chart facts.
"""

from __future__ import annotations

__version__ = "0.1.0"

from chartint.config import EngineConfig, load_engine_config
from chartint.engine import ChartClassifier, classify_chart
from chartint.facts import FactBase

__all__ = [
    "__version__",
    "EngineConfig",
    "load_engine_config",
    "ChartClassifier",
    "classify_chart",
    "FactBase",
]
