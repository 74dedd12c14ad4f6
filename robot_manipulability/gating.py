#!/usr/bin/env python3
"""
Manipulability gating for planners and controllers.

Wraps the analyzer with the policy a planning loop needs: accept or reject a
candidate configuration, count outcomes, and fall back to a conservative
"not passing" verdict when the decomposition fails numerically instead of
aborting the loop. Malformed Jacobians are still raised, since they point to
a bug upstream (forward kinematics, unit handling).
"""

import numpy as np
import time
import logging
import threading
from typing import List, Tuple, Optional, Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum

from .analyzer import ManipulabilityAnalyzer, ManipulabilityMeasures, JacobianLike
from .exceptions import NumericalError

logger = logging.getLogger(__name__)

# Type aliases
JointConfiguration = np.ndarray
JacobianFunction = Callable[[JointConfiguration], JacobianLike]


class GateVerdict(Enum):
    """Gate result status codes."""
    PASS = "pass"
    FAIL = "fail"
    NUMERICAL_FAILURE = "numerical_failure"


@dataclass
class GateMetrics:
    """Gate evaluation counters."""
    evaluations: int = 0
    passes: int = 0
    failures: int = 0
    numerical_failures: int = 0
    total_time: float = 0.0

    @property
    def pass_rate(self) -> float:
        if self.evaluations == 0:
            return 0.0
        return self.passes / self.evaluations


class ManipulabilityGate:
    """Accepts or rejects robot configurations by manipulability."""

    def __init__(self, analyzer: Optional[ManipulabilityAnalyzer] = None,
                 jacobian_fn: Optional[JacobianFunction] = None):
        """
        Initialize gate.

        Args:
            analyzer: Analyzer to use. Defaults to one with default configuration.
            jacobian_fn: Maps a joint configuration to its Jacobian. Required for
                the configuration-level methods.
        """
        self.analyzer = analyzer if analyzer is not None else ManipulabilityAnalyzer()
        self.jacobian_fn = jacobian_fn

        self._metrics = GateMetrics()
        self._lock = threading.Lock()

    def evaluate(self, jacobian: JacobianLike) -> Tuple[GateVerdict, Optional[ManipulabilityMeasures]]:
        """
        Classify a Jacobian.

        Args:
            jacobian: Jacobian of the candidate configuration

        Returns:
            Tuple of (verdict, measures). Measures is None on numerical failure.

        Raises:
            InvalidInputError: Jacobian is malformed or non-finite
        """
        start_time = time.perf_counter()
        try:
            measures = self.analyzer.analyze(jacobian)
        except NumericalError as e:
            logger.warning(f"Manipulability analysis failed, rejecting configuration: {e}")
            self._record(GateVerdict.NUMERICAL_FAILURE, time.perf_counter() - start_time)
            return GateVerdict.NUMERICAL_FAILURE, None

        verdict = GateVerdict.PASS if measures.passed else GateVerdict.FAIL
        self._record(verdict, time.perf_counter() - start_time)

        if verdict == GateVerdict.FAIL:
            logger.debug(f"Configuration rejected: min eigenvalue {measures.min_eigenvalue:.3e} "
                         f"< threshold {measures.threshold:.3e}")
        return verdict, measures

    def evaluate_configuration(self, q: JointConfiguration) -> Tuple[GateVerdict, Optional[ManipulabilityMeasures]]:
        """
        Classify a joint configuration through the Jacobian function.

        Args:
            q: Joint configuration

        Returns:
            Tuple of (verdict, measures)
        """
        if self.jacobian_fn is None:
            raise ValueError("No Jacobian function configured for this gate")

        return self.evaluate(self.jacobian_fn(np.asarray(q, dtype=float)))

    def is_acceptable(self, q: JointConfiguration) -> bool:
        """True if the configuration passes the gate."""
        verdict, _ = self.evaluate_configuration(q)
        return verdict == GateVerdict.PASS

    def filter_configurations(self, configs: Iterable[JointConfiguration]) -> List[JointConfiguration]:
        """
        Keep the configurations that pass the gate, in input order.

        Args:
            configs: Candidate joint configurations

        Returns:
            List of passing configurations
        """
        accepted = [q for q in configs if self.is_acceptable(q)]
        logger.debug(f"{len(accepted)} configurations passed the manipulability gate")
        return accepted

    def best_configuration(self, configs: Iterable[JointConfiguration]) -> Optional[JointConfiguration]:
        """
        Pick the passing configuration with the largest smallest eigenvalue.

        Args:
            configs: Candidate joint configurations

        Returns:
            Best configuration, or None if none passes
        """
        best_q = None
        best_value = -np.inf

        for q in configs:
            verdict, measures = self.evaluate_configuration(q)
            if verdict != GateVerdict.PASS:
                continue
            if measures.min_eigenvalue > best_value:
                best_value = measures.min_eigenvalue
                best_q = q

        if best_q is None:
            logger.info("No configuration passed the manipulability gate")
        return best_q

    def get_metrics(self) -> GateMetrics:
        """Snapshot of the gate counters."""
        with self._lock:
            return replace(self._metrics)

    def reset_metrics(self):
        with self._lock:
            self._metrics = GateMetrics()

    def _record(self, verdict: GateVerdict, elapsed: float):
        with self._lock:
            self._metrics.evaluations += 1
            self._metrics.total_time += elapsed
            if verdict == GateVerdict.PASS:
                self._metrics.passes += 1
            elif verdict == GateVerdict.FAIL:
                self._metrics.failures += 1
            else:
                self._metrics.numerical_failures += 1
