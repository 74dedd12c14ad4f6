"""
Tests for manipulability gating.
"""

import pytest
import numpy as np
import logging
from concurrent.futures import ThreadPoolExecutor
from scipy import linalg

from robot_manipulability import analyzer as analyzer_module
from robot_manipulability.analyzer import ManipulabilityAnalyzer
from robot_manipulability.exceptions import InvalidInputError
from robot_manipulability.gating import ManipulabilityGate, GateVerdict, GateMetrics
from robot_manipulability.utils import AnalyzerConfig


def diagonal_jacobian(q):
    """Jacobian whose squared diagonal is the eigenvalue spectrum."""
    return np.diag(q)


class TestGateEvaluation:
    """Test single Jacobian evaluation."""

    @pytest.fixture
    def gate(self):
        """Create gate with threshold 0.01."""
        analyzer = ManipulabilityAnalyzer(AnalyzerConfig(threshold=0.01))
        return ManipulabilityGate(analyzer, jacobian_fn=diagonal_jacobian)

    def test_default_analyzer(self):
        """Test gate creation without arguments."""
        gate = ManipulabilityGate()

        assert gate.analyzer.config == AnalyzerConfig()
        assert gate.jacobian_fn is None

    def test_pass(self, gate):
        """Test well-conditioned Jacobian."""
        verdict, measures = gate.evaluate(np.eye(6))

        assert verdict == GateVerdict.PASS
        assert measures.passed

    def test_fail(self, gate):
        """Test near-singular Jacobian."""
        verdict, measures = gate.evaluate(np.diag([1.0, 1.0, 0.05]))

        assert verdict == GateVerdict.FAIL
        assert measures is not None
        assert not measures.passed

    def test_numerical_failure_is_rejection(self, gate, monkeypatch, caplog):
        """Test that numerical failure maps to a conservative verdict."""
        def failing_eigh(M, **kwargs):
            raise linalg.LinAlgError("did not converge")

        monkeypatch.setattr(analyzer_module.linalg, "eigh", failing_eigh)

        with caplog.at_level(logging.WARNING):
            verdict, measures = gate.evaluate(np.eye(3))

        assert verdict == GateVerdict.NUMERICAL_FAILURE
        assert measures is None
        assert 'rejecting configuration' in caplog.text
        assert gate.get_metrics().numerical_failures == 1

    def test_invalid_input_propagates(self, gate):
        """Test that malformed Jacobians are raised, not swallowed."""
        with pytest.raises(InvalidInputError):
            gate.evaluate(np.array([[np.nan, 0.0], [0.0, 1.0]]))

        assert gate.get_metrics().evaluations == 0


class TestGateConfigurations:
    """Test configuration-level gating."""

    @pytest.fixture
    def gate(self):
        analyzer = ManipulabilityAnalyzer(AnalyzerConfig(threshold=0.01))
        return ManipulabilityGate(analyzer, jacobian_fn=diagonal_jacobian)

    @pytest.fixture
    def configs(self):
        """Create candidate configurations with known conditioning."""
        return [
            np.array([1.0, 1.0, 0.05]),   # min eigenvalue 0.0025, fails
            np.array([0.5, 1.0, 1.0]),    # min eigenvalue 0.25
            np.array([0.0, 1.0, 1.0]),    # singular
            np.array([0.8, 0.9, 1.0]),    # min eigenvalue 0.64, best
            np.array([0.2, 0.3, 0.4]),    # min eigenvalue 0.04
        ]

    def test_evaluate_configuration(self, gate):
        """Test evaluation through the Jacobian function."""
        verdict, measures = gate.evaluate_configuration([0.5, 1.0, 2.0])

        assert verdict == GateVerdict.PASS
        assert np.allclose(measures.eigenvalues, [0.25, 1.0, 4.0])

    def test_missing_jacobian_function(self):
        """Test configuration methods without a Jacobian function."""
        gate = ManipulabilityGate()

        with pytest.raises(ValueError):
            gate.evaluate_configuration(np.zeros(3))

    def test_is_acceptable(self, gate):
        """Test boolean acceptance."""
        assert gate.is_acceptable(np.array([1.0, 1.0, 1.0]))
        assert not gate.is_acceptable(np.array([1.0, 1.0, 0.0]))

    def test_filter_configurations(self, gate, configs):
        """Test filtering keeps passing configurations in order."""
        accepted = gate.filter_configurations(configs)

        assert len(accepted) == 3
        assert np.array_equal(accepted[0], configs[1])
        assert np.array_equal(accepted[1], configs[3])
        assert np.array_equal(accepted[2], configs[4])

    def test_best_configuration(self, gate, configs):
        """Test picking the best-conditioned configuration."""
        best = gate.best_configuration(configs)

        assert np.array_equal(best, configs[3])

    def test_best_configuration_none_pass(self, gate):
        """Test that no passing candidate yields None."""
        assert gate.best_configuration([np.zeros(3), np.array([0.01, 1.0, 1.0])]) is None
        assert gate.best_configuration([]) is None


class TestGateMetrics:
    """Test gate metrics bookkeeping."""

    @pytest.fixture
    def gate(self):
        analyzer = ManipulabilityAnalyzer(AnalyzerConfig(threshold=0.01))
        return ManipulabilityGate(analyzer, jacobian_fn=diagonal_jacobian)

    def test_counts(self, gate):
        """Test pass and fail counters."""
        gate.evaluate(np.eye(3))
        gate.evaluate(np.eye(3))
        gate.evaluate(np.zeros((3, 3)))

        metrics = gate.get_metrics()

        assert metrics.evaluations == 3
        assert metrics.passes == 2
        assert metrics.failures == 1
        assert metrics.numerical_failures == 0
        assert metrics.total_time >= 0.0
        assert np.isclose(metrics.pass_rate, 2.0 / 3.0)

    def test_metrics_snapshot(self, gate):
        """Test that get_metrics returns a copy."""
        metrics = gate.get_metrics()
        metrics.evaluations = 100

        assert gate.get_metrics().evaluations == 0

    def test_reset(self, gate):
        """Test metrics reset."""
        gate.evaluate(np.eye(3))
        gate.reset_metrics()

        assert gate.get_metrics() == GateMetrics()

    def test_empty_pass_rate(self):
        """Test pass rate with no evaluations."""
        assert GateMetrics().pass_rate == 0.0

    def test_concurrent_evaluation(self, gate):
        """Test that a shared gate counts every concurrent evaluation."""
        rng = np.random.default_rng(0)
        jacobians = [rng.normal(size=(6, 7)) for _ in range(200)]

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(gate.evaluate, jacobians))

        metrics = gate.get_metrics()
        passes = sum(1 for verdict, _ in results if verdict == GateVerdict.PASS)

        assert metrics.evaluations == len(jacobians)
        assert metrics.passes == passes
        assert metrics.passes + metrics.failures == len(jacobians)


if __name__ == "__main__":
    pytest.main([__file__])
