"""
One-vs-all perceptron ensemble for intent classification.

Owns the corpus encoder and one perceptron per intent. Trains online with
momentum and a decaying learning rate until the epoch error or its change
falls under the configured thresholds, ranks intents for new utterances,
optionally slices multi-intent utterances, and measures accuracy on held
out test utterances.
"""

from __future__ import annotations

import copy
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from intent_perceptron.config import NeuralSettings, get_settings
from intent_perceptron.corpus_encoder import (
    CorpusEncoder,
    EncodedCorpus,
    Processor,
    SparseVector,
    TrainObserver,
)
from intent_perceptron.models import CorpusItem, ModelState, PerceptronState, coerce_corpus
from intent_perceptron.perceptron import (
    Classification,
    Perceptron,
    TrainingStatus,
    none_result,
)
from intent_perceptron.slicer import IntentSlice, MultiIntentSlicer, normalize_output
from intent_perceptron.tokenizer import process as default_processor

logger = structlog.get_logger()

LogFn = Callable[[TrainingStatus, float], None]

# Learning-rate decay per epoch: rate / (1 + LEARNING_RATE_DECAY * epoch).
LEARNING_RATE_DECAY: float = 0.001


@dataclass
class Accuracy:
    """Outcome of :meth:`Neural.measure`.

    Attributes:
        good: Utterances whose top-ranked intent was the expected one.
        total: Utterances evaluated.
    """

    good: int = 0
    total: int = 0

    @property
    def ratio(self) -> float:
        return self.good / self.total if self.total else 0.0


@dataclass
class MultiIntentResult:
    """Output of :meth:`Neural.run` in multi-intent mode.

    Attributes:
        mono_intent: Normalized ranking for the whole utterance.
        multi_intent: Spans of the utterance, each with its own ranking.
        normalized: Whether span rankings were re-normalized.  They are
            left raw when their mean top score is below the mono-intent
            top score.
    """

    mono_intent: list[Classification]
    multi_intent: list[IntentSlice] = field(default_factory=list)
    normalized: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "monoIntent": [vars(c).copy() for c in self.mono_intent],
            "multiIntent": [
                {
                    "tokens": list(s.tokens),
                    "embeddings": list(s.embeddings),
                    "classifications": [vars(c).copy() for c in s.classifications],
                }
                for s in self.multi_intent
            ],
        }


class Neural:
    """Perceptron ensemble with its corpus encoder.

    Args:
        settings: Hyper-parameters; defaults to :func:`get_settings`.  A
            private copy is kept, so the shared settings are never mutated.
        processor: Text to feature-token function.
        on_train_utterance: Observer handed to the encoder, called once
            per training utterance.
        log_fn: Called after every epoch with ``(status, elapsed_ms)``.
        **overrides: Individual settings overriding *settings*.

    Raises:
        pydantic.ValidationError: If an override is out of range.
    """

    def __init__(
        self,
        settings: NeuralSettings | None = None,
        processor: Processor | None = default_processor,
        on_train_utterance: TrainObserver | None = None,
        log_fn: LogFn | None = None,
        **overrides: Any,
    ) -> None:
        base = settings if settings is not None else get_settings()
        if overrides:
            self.settings = NeuralSettings(**{**base.model_dump(), **overrides})
        else:
            self.settings = base.model_copy()
        self.processor = processor
        self.on_train_utterance = on_train_utterance
        self.log_fn = log_fn
        self.encoder: CorpusEncoder | None = None
        self.encoded: EncodedCorpus | None = None
        self.perceptrons: list[Perceptron] = []
        self.perceptrons_by_name: dict[str, Perceptron] = {}
        self.status: TrainingStatus | None = None

    @property
    def num_perceptrons(self) -> int:
        return len(self.perceptrons)

    # ── setup ──

    def prepare_corpus(self, corpus: Any) -> EncodedCorpus:
        """Build a fresh encoder and encode *corpus* with it."""
        items = coerce_corpus(corpus)
        self.encoder = CorpusEncoder(
            processor=self.processor,
            unknown_index=self.settings.unknown_index,
            on_train_utterance=self.on_train_utterance,
        )
        self.encoded = self.encoder.run(items)
        return self.encoded

    def initialize(self) -> None:
        """Create one zeroed perceptron per known intent and reset training status.

        Raises:
            RuntimeError: If no encoder has been prepared.
        """
        if self.encoder is None:
            raise RuntimeError("No encoder prepared")
        num_features = len(self.encoder.features)
        self.perceptrons = []
        self.perceptrons_by_name = {}
        for index, name in enumerate(self.encoder.intents):
            perceptron = Perceptron.create(name, index, num_features)
            self.perceptrons.append(perceptron)
            self.perceptrons_by_name[name] = perceptron
        self.status = None

    def _selected(self, valid_intents: Sequence[str] | None) -> list[Perceptron]:
        if valid_intents is None:
            return self.perceptrons
        selected = []
        for name in valid_intents:
            perceptron = self.perceptrons_by_name.get(name)
            if perceptron is None:
                logger.debug("unknown_valid_intent_skipped", intent=name)
                continue
            selected.append(perceptron)
        return selected

    # ── scoring ──

    def run_input(
        self,
        vector: SparseVector,
        valid_intents: Sequence[str] | None = None,
    ) -> list[Classification]:
        """Rank intents for an encoded utterance.

        Positive outputs are squared and normalized to sum to 1, then
        sorted by descending score (stable).  When nothing fires the single
        ``None`` intent is returned with score 1.

        Args:
            vector: Deduplicated feature vector.
            valid_intents: Restrict scoring to these intent names.
        """
        alpha = self.settings.alpha
        outputs: list[Classification] = []
        total = 0.0
        for perceptron in self._selected(valid_intents):
            score = perceptron.forward(vector, alpha)
            if score > 0:
                item = Classification(intent=perceptron.name, score=score**2)
                outputs.append(item)
                total += item.score
        if total > 0:
            for item in outputs:
                item.score /= total
            return sorted(outputs, key=lambda c: c.score, reverse=True)
        return none_result()

    def run_input_multi(
        self,
        vector: SparseVector,
        keys: Sequence[int],
        valid_intents: Sequence[str] | None = None,
    ) -> list[Classification]:
        """Rank intents for the *keys* span of a positional vector, unnormalized."""
        alpha = self.settings.alpha
        outputs: list[Classification] = []
        for perceptron in self._selected(valid_intents):
            score = perceptron.forward_multi(vector, keys, alpha)
            if score > 0:
                outputs.append(Classification(intent=perceptron.name, score=score))
        if outputs:
            return sorted(outputs, key=lambda c: c.score, reverse=True)
        return none_result()

    def _require_encoder(self) -> CorpusEncoder:
        if self.encoder is None:
            raise RuntimeError("No corpus received")
        return self.encoder

    def run(
        self,
        text: str | Sequence[str],
        valid_intents: Sequence[str] | None = None,
    ) -> list[Classification] | MultiIntentResult:
        """Classify *text*.

        Args:
            text: Raw utterance.
            valid_intents: Restrict scoring to these intent names.

        Returns:
            The ranked intents or, when ``settings.multi`` is enabled, a
            :class:`MultiIntentResult` carrying both the ranking and the
            per-span classifications.
        """
        encoder = self._require_encoder()
        result = self.run_input(encoder.process_text(text), valid_intents)
        if not self.settings.multi:
            return result

        full = encoder.process_text_full(text)
        slicer = MultiIntentSlicer(
            lambda keys: self.run_input_multi(full, keys, valid_intents)
        )
        raw_slices = slicer.best_slices(full.keys)

        slices: list[IntentSlice] = []
        total = 0.0
        for raw in raw_slices:
            # cached rankings are shared between spans; copy before normalizing
            classifications = copy.deepcopy(raw.run)
            slices.append(
                IntentSlice(
                    tokens=[encoder.get_feature(index) for index in raw.tokens],
                    embeddings=list(raw.tokens),
                    classifications=classifications,
                )
            )
            total += classifications[0].score

        normalized = total / len(slices) >= result[0].score
        if normalized:
            for item in slices:
                normalize_output(item.classifications)
        logger.debug(
            "utterance_sliced",
            spans=len(slices),
            scored_runs=slicer.cache_size,
            normalized=normalized,
        )
        return MultiIntentResult(mono_intent=result, multi_intent=slices, normalized=normalized)

    # ── training ──

    def train(self, corpus: Any = None) -> TrainingStatus:
        """Train the ensemble, resuming from the current status.

        Args:
            corpus: When given, re-encode it and re-initialize every
                perceptron before training.  Accepts a :class:`Corpus`, a
                ``{"data": [...]}`` mapping or a list of items.

        Returns:
            The :class:`TrainingStatus` after the last epoch.

        Raises:
            ValueError: If *corpus* is given but holds no items or no
                training utterances.
            RuntimeError: If no corpus was ever supplied.
        """
        if corpus is not None:
            items: list[CorpusItem] = coerce_corpus(corpus)
            if not items:
                raise ValueError("Invalid corpus received")
            encoded = self.prepare_corpus(items)
            if not encoded.train:
                raise ValueError("Invalid corpus received")
            self.initialize()

        data = self.encoded.train if self.encoded is not None else None
        if not data:
            raise RuntimeError("No corpus received")
        if self.status is None:
            self.status = TrainingStatus()

        settings = self.settings
        status = self.status
        start = time.monotonic()
        while (
            status.iterations < settings.iterations
            and status.error > settings.error_thresh
            and status.delta_error > settings.delta_error_thresh
        ):
            epoch_start = time.monotonic()
            status.iterations += 1
            learning_rate = settings.learning_rate / (
                1 + LEARNING_RATE_DECAY * status.iterations
            )
            last_error = status.error
            error = 0.0
            for perceptron in self.perceptrons:
                error += perceptron.train_epoch(
                    data, learning_rate, settings.alpha, settings.momentum
                )
            status.error = error / (self.num_perceptrons * len(data))
            status.delta_error = abs(status.error - last_error)
            elapsed_ms = (time.monotonic() - epoch_start) * 1000
            if settings.log:
                logger.info(
                    "training_epoch",
                    iterations=status.iterations,
                    error=status.error,
                    elapsed_ms=round(elapsed_ms, 2),
                )
            if self.log_fn is not None:
                self.log_fn(status, elapsed_ms)

        logger.info(
            "training_finished",
            iterations=status.iterations,
            error=status.error,
            delta_error=status.delta_error,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        return status

    # ── evaluation ──

    def measure_corpus(self, corpus: Any) -> Accuracy:
        """Classify every test utterance of *corpus* through :meth:`run`."""
        accuracy = Accuracy()
        for item in coerce_corpus(corpus):
            for test in item.tests or []:
                output = self.run(test)
                ranking = output.mono_intent if isinstance(output, MultiIntentResult) else output
                accuracy.total += 1
                if ranking[0].intent == item.intent:
                    accuracy.good += 1
        return accuracy

    def measure(self, corpus: Any = None) -> Accuracy:
        """Measure accuracy on *corpus* or on the cached validation examples.

        Raises:
            RuntimeError: If no corpus is given and no validation examples
                were encoded.
        """
        if corpus is not None:
            return self.measure_corpus(corpus)
        if self.encoded is None or not self.encoded.validation:
            raise RuntimeError("No corpus provided to measure")
        encoder = self._require_encoder()
        accuracy = Accuracy()
        for example in self.encoded.validation:
            accuracy.total += 1
            expected = encoder.get_intent(example.output.keys[0])
            actual = self.run_input(example.input)
            if actual[0].intent == expected:
                accuracy.good += 1
        return accuracy

    # ── export / import ──

    def to_state(self, save_changes: bool = False, save_encoder: bool = True) -> ModelState:
        """Snapshot settings, perceptrons and (optionally) the encoder."""
        state = ModelState(settings=self.settings.model_dump())
        if self.perceptrons:
            state.perceptrons = [
                PerceptronState(
                    name=p.name,
                    id=p.id,
                    weights=p.weights.tolist(),
                    bias=p.bias,
                    changes=p.changes.tolist() if save_changes else None,
                )
                for p in self.perceptrons
            ]
            if save_encoder and self.encoder is not None:
                state.encoder = self.encoder.to_state()
        return state

    def to_dict(self, save_changes: bool = False, save_encoder: bool = True) -> dict[str, Any]:
        """Export the network as a JSON-ready dict."""
        return self.to_state(save_changes, save_encoder).to_dict()

    def from_dict(self, data: dict[str, Any] | ModelState) -> None:
        """Load a network exported by :meth:`to_dict`.

        Settings are merged over the current ones.  When the export has no
        encoder, the encoder prepared with :meth:`prepare_corpus` is kept.

        Raises:
            RuntimeError: If perceptrons are present but no encoder is
                available.
        """
        state = data if isinstance(data, ModelState) else ModelState.model_validate(data)
        known = {k: v for k, v in state.settings.items() if k in NeuralSettings.model_fields}
        self.settings = self.settings.model_copy(update=known)
        if state.encoder is not None:
            self.encoder = CorpusEncoder(
                processor=self.processor,
                on_train_utterance=self.on_train_utterance,
            )
            self.encoder.from_dict(state.encoder)
        if state.perceptrons:
            self.initialize()
            for saved in state.perceptrons:
                current = self.perceptrons_by_name[saved.name]
                current.bias = saved.bias
                current.weights[: len(saved.weights)] = saved.weights
                if saved.changes is not None:
                    current.changes[: len(saved.changes)] = saved.changes
        logger.info(
            "network_loaded",
            perceptrons=self.num_perceptrons,
            features=len(self.encoder.features) if self.encoder else 0,
        )
