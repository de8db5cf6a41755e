"""
Single perceptron unit for the one-vs-all intent ensemble.

Holds the dense weight and momentum vectors of one intent and implements
the three forward passes: the training pass (leaky above zero), the
single-intent inference pass and the multi-intent pass over an explicit
key list (both thresholded against the bias).
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from intent_perceptron.corpus_encoder import SparseVector, TrainingExample


@dataclass
class TrainingStatus:
    """Training progress, carried across repeated ``train`` calls.

    Attributes:
        iterations: Epochs run so far.
        error: Mean squared error of the last epoch.
        delta_error: Absolute error change versus the previous epoch.
    """

    iterations: int = 0
    error: float = math.inf
    delta_error: float = math.inf


@dataclass
class Perceptron:
    """Linear unit scoring one intent.

    The weight and change vectors are sized once, at creation; feature
    indices beyond that size contribute nothing.

    Attributes:
        name: Intent name.
        id: Intent index at creation time.
        weights: Dense float32 weight vector.
        changes: Last weight change per feature, for momentum.
        bias: Scalar bias.
    """

    name: str
    id: int
    weights: np.ndarray
    changes: np.ndarray
    bias: float = 0.0

    @classmethod
    def create(cls, name: str, id: int, num_features: int) -> Perceptron:
        return cls(
            name=name,
            id=id,
            weights=np.zeros(num_features, dtype=np.float32),
            changes=np.zeros(num_features, dtype=np.float32),
        )

    @property
    def size(self) -> int:
        return int(self.weights.shape[0])

    # ── forward passes ──

    def _sum(self, indices: np.ndarray, values: np.ndarray) -> float:
        if indices.size and int(indices.max()) >= self.size:
            mask = indices < self.size
            indices = indices[mask]
            values = values[mask]
        # accumulate in key order starting from the bias; np.dot reorders the adds
        total = self.bias
        for weight, value in zip(self.weights[indices].tolist(), values.tolist()):
            total += weight * value
        return total

    def train_forward(self, vector: SparseVector, alpha: float) -> float:
        """Training activation: 0 when the sum is not positive, else ``alpha * sum``."""
        total = self._sum(vector.indices, vector.values)
        return 0.0 if total <= 0 else alpha * total

    def forward(self, vector: SparseVector, alpha: float) -> float:
        """Inference activation: 0 unless the features add a positive amount to the bias."""
        total = self._sum(vector.indices, vector.values)
        return 0.0 if total <= self.bias else alpha * total

    def forward_multi(
        self,
        vector: SparseVector,
        keys: Sequence[int],
        alpha: float,
    ) -> float:
        """Inference activation over *keys*, counting each index once."""
        unique = list(dict.fromkeys(keys))
        indices = np.asarray(unique, dtype=np.intp)
        values = np.fromiter(
            (vector.data[key] for key in unique),
            dtype=np.float64,
            count=len(unique),
        )
        total = self._sum(indices, values)
        return 0.0 if total <= self.bias else alpha * total

    # ── learning ──

    def train_epoch(
        self,
        examples: Sequence[TrainingExample],
        learning_rate: float,
        alpha: float,
        momentum: float,
    ) -> float:
        """Run one online pass over *examples* and return the summed squared error.

        Args:
            examples: Encoded examples, visited in order.
            learning_rate: Decayed learning rate for this epoch.
            alpha: Activation slope; also the step factor when the unit
                did not fire.
            momentum: Fraction of the previous change added to each update.
        """
        weights = self.weights
        changes = self.changes
        error = 0.0
        for example in examples:
            actual = self.train_forward(example.input, alpha)
            expected = example.output.data.get(self.id, 0.0)
            current_error = expected - actual
            if current_error:
                error += current_error**2
                delta = (1.0 if actual > 0 else alpha) * current_error * learning_rate
                indices = example.input.indices
                change = delta * example.input.values + momentum * changes[indices].astype(np.float64)
                changes[indices] = change
                weights[indices] = weights[indices].astype(np.float64) + change
                self.bias += delta
        return error


@dataclass
class Classification:
    """An intent and its score."""

    intent: str
    score: float


NONE_INTENT = "None"


def none_result() -> list[Classification]:
    """The fallback ranking used when no perceptron fires."""
    return [Classification(intent=NONE_INTENT, score=1.0)]
