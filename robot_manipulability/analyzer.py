#!/usr/bin/env python3
"""
Manipulability ellipsoid analysis for robot manipulators.

The analyzer takes the Jacobian J of a configuration and decomposes the
task-space manipulability matrix M = J J^T. The eigenvalues of M are the
squared semi-axis lengths of the velocity manipulability ellipsoid and the
eigenvectors are its axes, expressed in task (Cartesian) space.

Conventions:
- Orientation is always J J^T, so eigenvectors have one entry per Jacobian
  row. A 6 x n Jacobian with n < 6 therefore has at least 6 - n zero
  eigenvalues and never passes.
- Eigenvalues are sorted ascending. Column 0 is the weakest direction.
- Classification is the minimum-eigenvalue gate:
      passed = min(eigenvalues) >= threshold
  The Yoshikawa index sqrt(det(J J^T)) is reported by the result but is
  not used for classification.
- Only the first three task-space rows are interpreted as a Cartesian
  direction. Rotational rows are ignored by extract_direction().

The analyzer is stateless and does not log. Errors are raised to the caller.
"""

import operator
import numpy as np
from scipy import linalg
from typing import Optional, Dict, Any, Union, Sequence
from dataclasses import dataclass, field

from .exceptions import InvalidInputError, IndexOutOfRangeError, NumericalError
from .utils import AnalyzerConfig, validate_threshold

# Type aliases
JacobianLike = Union[np.ndarray, Sequence[Sequence[float]]]
Vector3 = np.ndarray

CARTESIAN_DIM = 3
ORTHONORMAL_TOLERANCE = 1e-6


@dataclass(frozen=True, eq=False)
class ManipulabilityMeasures:
    """
    Eigen-decomposition of a manipulability matrix with its pass/fail verdict.

    Attributes:
        eigenvalues: Ascending, non-negative eigenvalues of J J^T
        eigenvectors: Matrix whose column i is the unit eigenvector of eigenvalue i
        threshold: Conditioning threshold used for classification
        passed: True if the smallest eigenvalue reaches the threshold
    """

    eigenvalues: np.ndarray
    eigenvectors: np.ndarray
    threshold: float
    passed: bool = field(init=False)

    def __post_init__(self):
        eigenvalues = np.array(self.eigenvalues, dtype=float)
        eigenvectors = np.array(self.eigenvectors, dtype=float)

        if eigenvalues.ndim != 1 or eigenvalues.size == 0:
            raise InvalidInputError(f"Eigenvalues must be a non-empty vector, got shape {eigenvalues.shape}")
        if eigenvectors.ndim != 2:
            raise InvalidInputError(f"Eigenvectors must be a matrix, got shape {eigenvectors.shape}")
        if eigenvalues.size != eigenvectors.shape[1]:
            raise InvalidInputError(
                f"Got {eigenvalues.size} eigenvalues for {eigenvectors.shape[1]} eigenvector columns")
        if not (np.all(np.isfinite(eigenvalues)) and np.all(np.isfinite(eigenvectors))):
            raise InvalidInputError("Eigenvalues and eigenvectors must be finite")
        if not np.allclose(eigenvectors.T @ eigenvectors, np.eye(eigenvalues.size),
                           rtol=0.0, atol=ORTHONORMAL_TOLERANCE):
            raise InvalidInputError("Eigenvector columns must be orthonormal")
        if np.any(eigenvalues < 0):
            raise InvalidInputError("Eigenvalues must be non-negative")
        if np.any(np.diff(eigenvalues) < 0):
            raise InvalidInputError("Eigenvalues must be in ascending order")

        eigenvalues.setflags(write=False)
        eigenvectors.setflags(write=False)

        threshold = validate_threshold(self.threshold)
        object.__setattr__(self, 'eigenvalues', eigenvalues)
        object.__setattr__(self, 'eigenvectors', eigenvectors)
        object.__setattr__(self, 'threshold', threshold)
        object.__setattr__(self, 'passed', bool(eigenvalues[0] >= threshold))

    @property
    def dimension(self) -> int:
        """Number of eigenvalue/eigenvector pairs."""
        return int(self.eigenvalues.size)

    @property
    def min_eigenvalue(self) -> float:
        return float(self.eigenvalues[0])

    @property
    def max_eigenvalue(self) -> float:
        return float(self.eigenvalues[-1])

    @property
    def semi_axes(self) -> np.ndarray:
        """Semi-axis lengths of the manipulability ellipsoid, ascending."""
        return np.sqrt(self.eigenvalues)

    @property
    def manipulability_index(self) -> float:
        """Yoshikawa manipulability sqrt(det(J J^T))."""
        return float(np.sqrt(np.prod(self.eigenvalues)))

    @property
    def condition_number(self) -> float:
        """Ratio of largest to smallest semi-axis. Infinite at a singularity."""
        if self.eigenvalues[0] == 0.0:
            return float('inf')
        return float(np.sqrt(self.eigenvalues[-1] / self.eigenvalues[0]))

    def get_vector(self, index: int) -> Vector3:
        """Cartesian direction of eigenvector column `index`."""
        return extract_direction(self, index)

    def to_dict(self) -> Dict[str, Any]:
        """Convert measures to a plain dictionary."""
        return {
            'eigenvalues': self.eigenvalues.tolist(),
            'eigenvectors': self.eigenvectors.tolist(),
            'threshold': self.threshold,
            'passed': self.passed,
            'manipulability_index': self.manipulability_index,
            'condition_number': self.condition_number,
        }


class ManipulabilityAnalyzer:
    """Classifies robot configurations from the eigenstructure of J J^T."""

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        """
        Initialize analyzer.

        Args:
            config: Configuration snapshot. Defaults to AnalyzerConfig().
        """
        self._config = config if config is not None else AnalyzerConfig()

    @property
    def config(self) -> AnalyzerConfig:
        return self._config

    def analyze(self, jacobian: JacobianLike, threshold: Optional[float] = None,
                epsilon: Optional[float] = None) -> ManipulabilityMeasures:
        """
        Decompose the manipulability matrix of a Jacobian and classify it.

        Args:
            jacobian: Real m x n Jacobian with m, n >= 1 and finite entries
            threshold: Per-call override of the conditioning threshold
            epsilon: Per-call override of the clamping tolerance

        Returns:
            ManipulabilityMeasures with ascending eigenvalues

        Raises:
            InvalidInputError: Malformed or non-finite input
            NumericalError: Decomposition failed or is not positive semi-definite
        """
        config = self._config
        if threshold is not None or epsilon is not None:
            config = config.replace(
                threshold=config.threshold if threshold is None else threshold,
                epsilon=config.epsilon if epsilon is None else epsilon,
            )

        J = _as_jacobian(jacobian)

        with np.errstate(over='ignore', invalid='ignore'):
            M = J @ J.T
            M = 0.5 * (M + M.T)
        if not np.all(np.isfinite(M)):
            raise NumericalError("Manipulability matrix overflowed, Jacobian entries are too large")

        eigenvalues, eigenvectors = _symmetric_eigen(M)
        eigenvalues = _clamp_eigenvalues(eigenvalues, config.epsilon)

        # Stable sort keeps solver order for ties
        order = np.argsort(eigenvalues, kind='stable')
        eigenvalues = eigenvalues[order]
        eigenvectors = _canonical_signs(eigenvectors[:, order])

        return ManipulabilityMeasures(eigenvalues, eigenvectors, config.threshold)

    @staticmethod
    def extract_direction(measures: ManipulabilityMeasures, index: int) -> Vector3:
        """
        Extract an eigenvector as a 3D Cartesian direction.

        Only the first three rows of the column are used. Unit length is
        inherited from the analyzer and is not re-checked here.

        Args:
            measures: Result of analyze()
            index: Eigenvector column, 0 <= index < measures.dimension

        Returns:
            Direction vector [x, y, z]
        """
        n_columns = measures.eigenvectors.shape[1]
        if isinstance(index, bool):
            raise IndexOutOfRangeError(f"Eigenvector index must be an integer, got {index!r}")
        try:
            index = operator.index(index)
        except TypeError:
            raise IndexOutOfRangeError(f"Eigenvector index must be an integer, got {index!r}")

        if not 0 <= index < n_columns:
            raise IndexOutOfRangeError(
                f"Eigenvector index {index} out of range for {n_columns} columns")

        n_rows = measures.eigenvectors.shape[0]
        if n_rows < CARTESIAN_DIM:
            raise InvalidInputError(
                f"Task space has {n_rows} rows, a Cartesian direction needs {CARTESIAN_DIM}")

        return np.array(measures.eigenvectors[:CARTESIAN_DIM, index], dtype=float)

    def weakest_direction(self, measures: ManipulabilityMeasures) -> Vector3:
        """Direction of the smallest ellipsoid axis."""
        return self.extract_direction(measures, 0)


def analyze(jacobian: JacobianLike, threshold: Optional[float] = None,
            config: Optional[AnalyzerConfig] = None) -> ManipulabilityMeasures:
    """
    Analyze a Jacobian with a one-off analyzer.

    Args:
        jacobian: Real m x n Jacobian
        threshold: Optional override of the configured threshold
        config: Optional configuration snapshot

    Returns:
        ManipulabilityMeasures
    """
    return ManipulabilityAnalyzer(config).analyze(jacobian, threshold=threshold)


def extract_direction(measures: ManipulabilityMeasures, index: int) -> Vector3:
    """Extract eigenvector column `index` as a 3D direction."""
    return ManipulabilityAnalyzer.extract_direction(measures, index)


def _as_jacobian(jacobian: JacobianLike) -> np.ndarray:
    """Copy and validate a Jacobian as a finite 2D float array."""
    try:
        raw = np.asarray(jacobian)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Jacobian is not a numeric matrix: {e}") from e

    if np.iscomplexobj(raw):
        raise InvalidInputError("Jacobian must be real-valued")
    if raw.dtype.kind in "USO":
        raise InvalidInputError(f"Jacobian must be numeric, got dtype {raw.dtype}")
    try:
        J = np.array(raw, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Jacobian is not a numeric matrix: {e}") from e

    if J.ndim != 2:
        raise InvalidInputError(f"Jacobian must be 2D, got shape {J.shape}")
    if J.shape[0] == 0 or J.shape[1] == 0:
        raise InvalidInputError(f"Jacobian must have at least one row and column, got shape {J.shape}")
    if not np.all(np.isfinite(J)):
        raise InvalidInputError("Jacobian contains NaN or Inf entries")

    return J


def _symmetric_eigen(M: np.ndarray):
    """Eigen-decomposition of a symmetric matrix, ascending eigenvalues."""
    try:
        eigenvalues, eigenvectors = linalg.eigh(M, check_finite=False)
    except linalg.LinAlgError as e:
        raise NumericalError(f"Eigen-decomposition did not converge: {e}") from e

    if not (np.all(np.isfinite(eigenvalues)) and np.all(np.isfinite(eigenvectors))):
        raise NumericalError("Eigen-decomposition produced non-finite values")

    return eigenvalues, eigenvectors


def _clamp_eigenvalues(eigenvalues: np.ndarray, epsilon: float) -> np.ndarray:
    """Zero out eigenvalues within tolerance, reject larger negative residue."""
    tolerance = epsilon

    most_negative = float(np.min(eigenvalues))
    if most_negative < -tolerance:
        raise NumericalError(
            f"Eigenvalue {most_negative:.3e} is negative beyond tolerance {tolerance:.3e}")

    clamped = eigenvalues.copy()
    clamped[np.abs(clamped) <= tolerance] = 0.0
    return clamped


def _canonical_signs(eigenvectors: np.ndarray) -> np.ndarray:
    """Flip each column so its largest-magnitude entry is positive."""
    n_columns = eigenvectors.shape[1]
    pivot_rows = np.argmax(np.abs(eigenvectors), axis=0)
    signs = np.sign(eigenvectors[pivot_rows, np.arange(n_columns)])
    signs[signs == 0] = 1.0
    return eigenvectors * signs
