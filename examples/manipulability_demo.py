#!/usr/bin/env python3
"""
Manipulability Demo - Gates configurations of an anthropomorphic 3R arm
by the smallest eigenvalue of its translational manipulability matrix.
"""

import numpy as np
import sys
import os
import logging

# Add robot_manipulability to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from robot_manipulability import ManipulabilityAnalyzer, ManipulabilityGate, AnalyzerConfig

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Link lengths in meters
UPPER_ARM = 0.4
FOREARM = 0.35


def anthropomorphic_jacobian(q: np.ndarray) -> np.ndarray:
    """
    Translational Jacobian of an anthropomorphic arm (base yaw, shoulder, elbow).

    Singular when the elbow is stretched (sin(q3) = 0) or the wrist centre
    lies on the base axis.
    """
    q1, q2, q3 = q
    c1, s1 = np.cos(q1), np.sin(q1)
    c2, s2 = np.cos(q2), np.sin(q2)
    c23, s23 = np.cos(q2 + q3), np.sin(q2 + q3)

    reach = UPPER_ARM * c2 + FOREARM * c23
    height = UPPER_ARM * s2 + FOREARM * s23

    return np.array([
        [-s1 * reach, -c1 * height, -FOREARM * c1 * s23],
        [c1 * reach, -s1 * height, -FOREARM * s1 * s23],
        [0.0, reach, FOREARM * c23],
    ])


def demo_single_configuration(analyzer: ManipulabilityAnalyzer):
    """Analyze a bent and a stretched elbow."""
    print("\n" + "=" * 60)
    print("SINGLE CONFIGURATION ANALYSIS")
    print("=" * 60)

    configs = {
        "bent elbow": np.array([0.3, 0.4, -1.2]),
        "stretched elbow": np.array([0.3, 0.4, 0.0]),
    }

    for name, q in configs.items():
        measures = analyzer.analyze(anthropomorphic_jacobian(q))
        print(f"\n{name}: q = {q}")
        print(f"  Eigenvalues:          {measures.eigenvalues}")
        print(f"  Semi-axes:            {measures.semi_axes}")
        print(f"  Manipulability index: {measures.manipulability_index:.6f}")
        print(f"  Condition number:     {measures.condition_number:.3f}")
        print(f"  Weakest direction:    {analyzer.weakest_direction(measures)}")
        print(f"  Passed:               {'✓' if measures.passed else '✗'}")


def demo_gate(analyzer: ManipulabilityAnalyzer):
    """Filter random samples and pick the best-conditioned one."""
    print("\n" + "=" * 60)
    print("CONFIGURATION GATING")
    print("=" * 60)

    gate = ManipulabilityGate(analyzer, jacobian_fn=anthropomorphic_jacobian)

    rng = np.random.default_rng(7)
    samples = [rng.uniform(-np.pi, np.pi, size=3) for _ in range(200)]
    # Near-singular samples
    samples += [np.array([0.0, 0.5, 1e-4]), np.array([1.0, -0.3, np.pi - 1e-4])]

    accepted = gate.filter_configurations(samples)
    best = gate.best_configuration(samples)
    metrics = gate.get_metrics()

    print(f"Accepted {len(accepted)} of {len(samples)} samples")
    print(f"Best configuration: {best}")
    print(f"Evaluations: {metrics.evaluations}, pass rate: {metrics.pass_rate:.2%}, "
          f"time: {metrics.total_time * 1000:.2f} ms")


def main():
    analyzer = ManipulabilityAnalyzer(AnalyzerConfig(threshold=0.001))
    demo_single_configuration(analyzer)
    demo_gate(analyzer)


if __name__ == "__main__":
    main()
