"""
intent-perceptron: one-vs-all perceptron intent classifier.

Encodes labeled corpora into sparse bag-of-feature vectors, trains one
linear unit per intent with momentum and a decaying learning rate, and
optionally slices multi-intent utterances into independently classified
spans.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from intent_perceptron.config import NeuralSettings, get_settings
from intent_perceptron.corpus_encoder import CorpusEncoder, SparseVector, TrainingExample
from intent_perceptron.models import Corpus, CorpusItem
from intent_perceptron.neural import Accuracy, MultiIntentResult, Neural
from intent_perceptron.perceptron import Classification, TrainingStatus
from intent_perceptron.slicer import IntentSlice, MultiIntentSlicer


def train(corpus: Any, settings: NeuralSettings | None = None, **overrides: Any) -> Neural:
    """Create a :class:`Neural` and train it on *corpus*."""
    net = Neural(settings=settings, **overrides)
    net.train(corpus)
    return net


def run(
    net: Neural,
    text: str,
    valid_intents: Sequence[str] | None = None,
) -> list[Classification] | MultiIntentResult:
    """Classify *text* with a trained *net*."""
    return net.run(text, valid_intents)


def measure(net: Neural, corpus: Any = None) -> Accuracy:
    """Measure *net* on *corpus* or on its own validation examples."""
    return net.measure(corpus)


__all__ = [
    "Accuracy",
    "Classification",
    "Corpus",
    "CorpusEncoder",
    "CorpusItem",
    "IntentSlice",
    "MultiIntentResult",
    "MultiIntentSlicer",
    "Neural",
    "NeuralSettings",
    "SparseVector",
    "TrainingExample",
    "TrainingStatus",
    "get_settings",
    "measure",
    "run",
    "train",
]
