"""
Corpus encoder for the perceptron intent classifier.

Maintains the append-only feature and intent vocabularies and converts
utterances and intent labels into sparse vectors. Builds the training and
validation example sets from a labeled corpus.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

import numpy as np
import structlog

from intent_perceptron.models import CorpusItem, EncoderState

logger = structlog.get_logger()

Processor = Callable[[str], Sequence[str]]


@dataclass
class SparseVector:
    """Sparse vector over feature or intent indices.

    Attributes:
        data: Mapping of index to weight (always 1.0 here).
        keys: Indices in insertion order.  Deduplicated vectors list each
            index once; positional vectors keep every token occurrence.
    """

    data: dict[int, float] = field(default_factory=dict)
    keys: list[int] = field(default_factory=list)

    @cached_property
    def indices(self) -> np.ndarray:
        """``keys`` as an integer array, for fancy indexing into weights."""
        return np.asarray(self.keys, dtype=np.intp)

    @cached_property
    def values(self) -> np.ndarray:
        """Weights aligned with ``keys``."""
        return np.fromiter(
            (self.data[key] for key in self.keys),
            dtype=np.float64,
            count=len(self.keys),
        )

    def __len__(self) -> int:
        return len(self.keys)


@dataclass
class TrainingExample:
    """An encoded ``(input, output)`` pair.

    Attributes:
        input: Deduplicated feature vector.
        output: One-hot intent vector.
    """

    input: SparseVector
    output: SparseVector


@dataclass
class EncodedCorpus:
    """Training and validation examples produced by :meth:`CorpusEncoder.run`."""

    train: list[TrainingExample] = field(default_factory=list)
    validation: list[TrainingExample] = field(default_factory=list)


TrainObserver = Callable[[str, str, TrainingExample], None]


class CorpusEncoder:
    """Two append-only bijections (features, intents) and the text encoders.

    Each bijection is a dict for O(1) lookup plus a list for reverse lookup
    and deterministic export order.

    Args:
        processor: Text to feature-token function.  When ``None`` the
            encoder expects token sequences instead of text.
        unknown_index: Index substituted for tokens missing from the
            vocabulary; ``None`` drops them.
        on_train_utterance: Observer called once per training utterance
            with ``(utterance, intent, example)``.
    """

    def __init__(
        self,
        processor: Processor | None = None,
        unknown_index: int | None = None,
        on_train_utterance: TrainObserver | None = None,
    ) -> None:
        self.processor = processor
        self.unknown_index = unknown_index
        self._on_train_utterance = on_train_utterance
        self.feature_map: dict[str, int] = {}
        self.features: list[str] = []
        self.intent_map: dict[str, int] = {}
        self.intents: list[str] = []

    # ── vocabulary ──

    def add_feature(self, feature: str) -> None:
        """Register *feature* if it is not already known."""
        if feature not in self.feature_map:
            self.feature_map[feature] = len(self.features)
            self.features.append(feature)

    def add_intent(self, intent: str) -> None:
        """Register *intent* if it is not already known."""
        if intent not in self.intent_map:
            self.intent_map[intent] = len(self.intents)
            self.intents.append(intent)

    def get_feature_index(self, feature: str) -> int | None:
        return self.feature_map.get(feature)

    def get_feature(self, index: int) -> str:
        return self.features[index]

    def get_intent_index(self, intent: str) -> int | None:
        return self.intent_map.get(intent)

    def get_intent(self, index: int) -> str:
        return self.intents[index]

    # ── encoding ──

    def _tokens(self, text: str | Sequence[str]) -> Sequence[str]:
        if self.processor is None:
            return text
        return self.processor(text)  # type: ignore[arg-type]

    def _resolve(self, feature: str) -> int | None:
        index = self.feature_map.get(feature)
        if index is None:
            return self.unknown_index
        return index

    def process_text(
        self,
        text: str | Sequence[str],
        intent: str | None = None,
        learn: bool = False,
    ) -> SparseVector:
        """Encode *text* as a deduplicated feature vector.

        Args:
            text: Raw utterance (or tokens when no processor is set).
            intent: Intent registered alongside every token when learning.
            learn: Grow the vocabularies with unseen tokens and *intent*.

        Returns:
            A :class:`SparseVector` where each index appears once, in order
            of first occurrence.
        """
        result = SparseVector()
        for feature in self._tokens(text):
            if learn:
                self.add_feature(feature)
                if intent is not None:
                    self.add_intent(intent)
            index = self._resolve(feature)
            if index is not None and index not in result.data:
                result.data[index] = 1.0
                result.keys.append(index)
        return result

    def process_text_full(self, text: str | Sequence[str]) -> SparseVector:
        """Encode *text* as a positional vector, keeping duplicate tokens."""
        result = SparseVector()
        for feature in self._tokens(text):
            index = self._resolve(feature)
            if index is not None:
                result.data[index] = 1.0
                result.keys.append(index)
        return result

    def process_intent(self, intent: str) -> SparseVector:
        """Encode *intent* as a one-hot vector.

        Raises:
            KeyError: If *intent* has not been registered.
        """
        index = self.intent_map.get(intent)
        if index is None:
            raise KeyError(f"Unknown intent '{intent}'")
        return SparseVector(data={index: 1.0}, keys=[index])

    def process(
        self,
        text: str | Sequence[str],
        intent: str,
        learn: bool = True,
    ) -> TrainingExample:
        """Encode an utterance and its intent as a :class:`TrainingExample`."""
        vector = self.process_text(text, intent, learn)
        if learn:
            # utterances without tokens still register their intent
            self.add_intent(intent)
        return TrainingExample(input=vector, output=self.process_intent(intent))

    def run(self, corpus: Iterable[CorpusItem]) -> EncodedCorpus:
        """Encode every training and test utterance of *corpus*.

        Training utterances are encoded first, in document order, growing
        the vocabularies; test utterances are encoded afterwards against
        the frozen vocabularies.

        Args:
            corpus: Corpus items.

        Returns:
            The :class:`EncodedCorpus` with both example sets.
        """
        items = list(corpus)
        result = EncodedCorpus()
        for item in items:
            for utterance in item.utterances:
                example = self.process(utterance, item.intent)
                result.train.append(example)
                if self._on_train_utterance is not None:
                    self._on_train_utterance(utterance, item.intent, example)
        for item in items:
            for test in item.tests or []:
                result.validation.append(self.process(test, item.intent, learn=False))
        logger.info(
            "corpus_encoded",
            features=len(self.features),
            intents=len(self.intents),
            train=len(result.train),
            validation=len(result.validation),
        )
        return result

    # ── export / import ──

    def to_dict(self) -> dict[str, Any]:
        """Export the vocabularies as ``{features, intents, unknownIndex}``."""
        return self.to_state().model_dump(by_alias=True)

    def to_state(self) -> EncoderState:
        return EncoderState(
            features=list(self.features),
            intents=list(self.intents),
            unknown_index=self.unknown_index,
        )

    def from_dict(self, data: dict[str, Any] | EncoderState) -> None:
        """Reset and rebuild both vocabularies from an exported snapshot.

        Lists are replayed in order, so every feature and intent gets back
        the index it had when exported.
        """
        state = data if isinstance(data, EncoderState) else EncoderState.model_validate(data)
        self.feature_map = {}
        self.features = []
        self.intent_map = {}
        self.intents = []
        self.unknown_index = state.unknown_index
        for feature in state.features:
            self.add_feature(feature)
        for intent in state.intents:
            self.add_intent(intent)
