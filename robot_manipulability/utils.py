"""
Configuration management for manipulability analysis.
"""

import os
import math
import dataclasses
import yaml
from typing import Dict, Any, Optional
from dataclasses import dataclass
import logging

from .exceptions import InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), 'config', 'default_config.yaml')


@dataclass(frozen=True)
class AnalyzerConfig:
    """Immutable configuration snapshot for the manipulability analyzer."""

    # Minimum acceptable smallest eigenvalue of J J^T
    threshold: float = 0.001

    # Absolute noise tolerance for eigenvalue clamping
    epsilon: float = 1e-9

    def __post_init__(self):
        validate_threshold(self.threshold)
        try:
            epsilon = float(self.epsilon)
        except (TypeError, ValueError):
            raise InvalidInputError(f"Epsilon must be a real number, got {self.epsilon!r}")
        if not math.isfinite(epsilon) or epsilon < 0:
            raise InvalidInputError(f"Epsilon must be finite and non-negative, got {self.epsilon}")
        object.__setattr__(self, 'threshold', float(self.threshold))
        object.__setattr__(self, 'epsilon', epsilon)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'AnalyzerConfig':
        """Create config from dictionary."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(config_dict) - known
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {sorted(unknown)}")

        return cls(**{k: v for k, v in config_dict.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return dataclasses.asdict(self)

    def replace(self, **changes) -> 'AnalyzerConfig':
        """Return a new snapshot with the given fields changed."""
        return dataclasses.replace(self, **changes)


def validate_threshold(threshold: float) -> float:
    """
    Check that a conditioning threshold is a positive finite number.

    Args:
        threshold: Candidate threshold

    Returns:
        Threshold as float
    """
    if isinstance(threshold, bool):
        raise InvalidInputError(f"Threshold must be a real number, got {threshold!r}")
    try:
        value = float(threshold)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Threshold must be a real number, got {threshold!r}")

    if not math.isfinite(value) or value <= 0:
        raise InvalidInputError(f"Threshold must be positive and finite, got {threshold}")

    return value


def load_config(config_path: Optional[str] = None) -> AnalyzerConfig:
    """
    Load analyzer configuration from YAML file.

    Args:
        config_path: Path to configuration file. If None, uses default config.

    Returns:
        AnalyzerConfig object
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config_dict = yaml.safe_load(f) or {}
            config = AnalyzerConfig.from_dict(config_dict)
            logger.info(f"Loaded configuration from {config_path}")
            return config
        except (OSError, yaml.YAMLError, TypeError, AttributeError, InvalidInputError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")

    logger.info("Using default configuration")
    return AnalyzerConfig()


def save_config(config: AnalyzerConfig, config_path: str):
    """
    Save analyzer configuration to YAML file.

    Args:
        config: AnalyzerConfig object to save
        config_path: Path where to save the configuration
    """
    directory = os.path.dirname(config_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(config_path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False)
    logger.info(f"Saved configuration to {config_path}")
