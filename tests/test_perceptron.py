"""
Tests for the single perceptron unit.

Validates the three forward passes (including the zero versus bias
threshold asymmetry), fixed-size weight vectors, and the online update
rule with momentum and the asymmetric step factor.
"""

from __future__ import annotations

import numpy as np
import pytest

from intent_perceptron.corpus_encoder import SparseVector, TrainingExample
from intent_perceptron.perceptron import Perceptron, TrainingStatus

ALPHA = 0.07


def _vector(*keys: int) -> SparseVector:
    return SparseVector(data={k: 1.0 for k in keys}, keys=list(keys))


def _perceptron(weights: list[float], bias: float = 0.0) -> Perceptron:
    p = Perceptron.create("x", 0, len(weights))
    p.weights[:] = weights
    p.bias = bias
    return p


class TestCreate:
    """Tests for perceptron construction."""

    def test_zeroed_float32_vectors(self) -> None:
        p = Perceptron.create("greet", 3, 5)
        assert p.name == "greet"
        assert p.id == 3
        assert p.size == 5
        assert p.weights.dtype == np.float32
        assert p.changes.dtype == np.float32
        assert not p.weights.any()
        assert not p.changes.any()
        assert p.bias == 0.0

    def test_default_status(self) -> None:
        status = TrainingStatus()
        assert status.iterations == 0
        assert status.error == float("inf")
        assert status.delta_error == float("inf")


class TestForward:
    """Tests for the forward passes."""

    def test_train_forward_thresholds_at_zero(self) -> None:
        p = _perceptron([0.5, -1.0, 0.0], bias=2.0)
        assert p.train_forward(_vector(0, 1), ALPHA) == pytest.approx(ALPHA * 1.5)

    def test_sum_accumulates_from_bias_in_key_order(self) -> None:
        p = _perceptron([0.2, 0.3, 0.7], bias=0.1)
        w = [float(np.float32(x)) for x in (0.2, 0.3, 0.7)]
        expected = ((0.1 + w[2]) + w[0]) + w[1]
        assert p.train_forward(_vector(2, 0, 1), 1.0) == expected

    def test_inference_forward_thresholds_at_bias(self) -> None:
        p = _perceptron([0.5, -1.0, 0.0], bias=2.0)
        assert p.forward(_vector(0, 1), ALPHA) == 0.0

    def test_inference_forward_positive_contribution(self) -> None:
        p = _perceptron([0.5, 1.0, 0.0], bias=2.0)
        assert p.forward(_vector(0, 1), ALPHA) == pytest.approx(ALPHA * 3.5)

    def test_train_forward_non_positive_is_zero(self) -> None:
        p = _perceptron([0.5, 0.25], bias=-1.0)
        assert p.train_forward(_vector(0, 1), ALPHA) == 0.0

    def test_empty_vector_never_fires_at_inference(self) -> None:
        p = _perceptron([1.0, 1.0], bias=5.0)
        assert p.forward(_vector(), ALPHA) == 0.0
        assert p.train_forward(_vector(), ALPHA) == pytest.approx(ALPHA * 5.0)

    def test_absent_features_contribute_nothing(self) -> None:
        p = _perceptron([1.0, 100.0, -100.0])
        assert p.forward(_vector(0), ALPHA) == pytest.approx(ALPHA)

    def test_indices_beyond_vector_size_are_ignored(self) -> None:
        p = _perceptron([1.0, 2.0])
        assert p.forward(_vector(0, 7), ALPHA) == pytest.approx(ALPHA)

    def test_multi_counts_each_index_once(self) -> None:
        p = _perceptron([1.0, 2.0, 4.0])
        full = SparseVector(data={0: 1.0, 1: 1.0}, keys=[0, 1, 0, 0])
        assert p.forward_multi(full, [0, 1, 0, 0], ALPHA) == pytest.approx(ALPHA * 3.0)

    def test_multi_uses_only_given_keys(self) -> None:
        p = _perceptron([1.0, 2.0, 4.0])
        full = SparseVector(data={0: 1.0, 1: 1.0, 2: 1.0}, keys=[0, 1, 2])
        assert p.forward_multi(full, [2], ALPHA) == pytest.approx(ALPHA * 4.0)

    def test_multi_thresholds_at_bias(self) -> None:
        p = _perceptron([-1.0, 0.5], bias=3.0)
        full = SparseVector(data={0: 1.0, 1: 1.0}, keys=[0, 1])
        assert p.forward_multi(full, [0, 1], ALPHA) == 0.0


class TestTrainEpoch:
    """Tests for the online update rule."""

    def test_first_update_uses_alpha_step_factor(self) -> None:
        p = Perceptron.create("x", 0, 3)
        example = TrainingExample(input=_vector(0, 2), output=_vector(0))
        error = p.train_epoch([example], learning_rate=0.5, alpha=0.1, momentum=0.5)
        assert error == pytest.approx(1.0)
        assert p.weights.tolist() == pytest.approx([0.05, 0.0, 0.05])
        assert p.changes.tolist() == pytest.approx([0.05, 0.0, 0.05])
        assert p.bias == pytest.approx(0.05)

    def test_second_update_uses_unit_step_and_momentum(self) -> None:
        p = Perceptron.create("x", 0, 3)
        example = TrainingExample(input=_vector(0, 2), output=_vector(0))
        p.train_epoch([example], learning_rate=0.5, alpha=0.1, momentum=0.5)
        error = p.train_epoch([example], learning_rate=0.5, alpha=0.1, momentum=0.5)
        # output 0.1 * 0.15 = 0.015, error 0.985, delta 0.4925
        assert error == pytest.approx(0.985**2)
        assert p.changes[0] == pytest.approx(0.4925 + 0.5 * 0.05, rel=1e-6)
        assert p.weights[0] == pytest.approx(0.05 + 0.5175, rel=1e-6)
        assert p.weights[1] == 0.0
        assert p.bias == pytest.approx(0.05 + 0.4925)

    def test_silent_negative_example_is_not_updated(self) -> None:
        p = Perceptron.create("x", 0, 2)
        example = TrainingExample(input=_vector(0, 1), output=_vector(1))
        error = p.train_epoch([example], learning_rate=0.6, alpha=0.07, momentum=0.5)
        assert error == 0.0
        assert not p.weights.any()
        assert p.bias == 0.0

    def test_firing_negative_example_is_pushed_down(self) -> None:
        p = _perceptron([1.0, 1.0], bias=1.0)
        example = TrainingExample(input=_vector(0), output=_vector(1))
        error = p.train_epoch([example], learning_rate=0.5, alpha=0.1, momentum=0.0)
        # output 0.1 * 2 = 0.2, delta = 1 * -0.2 * 0.5
        assert error == pytest.approx(0.04)
        assert p.weights[0] == pytest.approx(0.9)
        assert p.weights[1] == pytest.approx(1.0)
        assert p.bias == pytest.approx(0.9)

    def test_examples_visited_in_order(self) -> None:
        p = Perceptron.create("x", 0, 2)
        positive = TrainingExample(input=_vector(0), output=_vector(0))
        negative = TrainingExample(input=_vector(0), output=_vector(1))
        p.train_epoch([positive, negative], learning_rate=0.5, alpha=0.1, momentum=0.0)
        # the positive update makes the negative example fire within the same pass
        assert p.bias < 0.05
