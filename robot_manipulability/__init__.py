"""
Robot Manipulability Library

Manipulability ellipsoid analysis for robot manipulators: eigen-decomposition
of J J^T and a pass/fail conditioning verdict per configuration.
"""

__version__ = "1.0.0"
__author__ = "Robot Planning Team"

# Import main classes for easy access
from .analyzer import ManipulabilityAnalyzer, ManipulabilityMeasures, analyze, extract_direction
from .exceptions import ManipulabilityError, InvalidInputError, IndexOutOfRangeError, NumericalError
from .gating import ManipulabilityGate, GateVerdict, GateMetrics
from .utils import AnalyzerConfig, load_config, save_config

__all__ = [
    "ManipulabilityAnalyzer",
    "ManipulabilityMeasures",
    "analyze",
    "extract_direction",
    "ManipulabilityError",
    "InvalidInputError",
    "IndexOutOfRangeError",
    "NumericalError",
    "ManipulabilityGate",
    "GateVerdict",
    "GateMetrics",
    "AnalyzerConfig",
    "load_config",
    "save_config",
]
