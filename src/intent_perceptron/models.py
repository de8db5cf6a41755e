"""
Pydantic data models for corpora and persisted networks.

Defines the labeled corpus accepted by training and evaluation, and the
JSON layout of an exported network (settings, perceptron parameters and
an optional vocabulary snapshot).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CorpusItem(BaseModel):
    """One intent with its training utterances and optional test utterances.

    Attributes:
        intent: Intent label.
        utterances: Training utterances, encoded with learning enabled.
        tests: Held-out utterances used for validation.
    """

    intent: str = Field(..., min_length=1, description="Intent label.")
    utterances: list[str] = Field(default_factory=list, description="Training utterances.")
    tests: list[str] | None = Field(default=None, description="Held-out test utterances.")


class Corpus(BaseModel):
    """A labeled corpus file.

    Attributes:
        name: Optional corpus name.
        locale: Optional locale code.
        data: Corpus items in document order.
    """

    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(default=None, description="Corpus name.")
    locale: str | None = Field(default=None, description="Locale code.")
    data: list[CorpusItem] = Field(default_factory=list, description="Corpus items.")


class EncoderState(BaseModel):
    """Exported vocabulary snapshot.

    Attributes:
        features: Feature strings in index order.
        intents: Intent labels in index order.
        unknown_index: Index substituted for out-of-vocabulary features.
    """

    model_config = ConfigDict(populate_by_name=True)

    features: list[str] = Field(default_factory=list, description="Features in index order.")
    intents: list[str] = Field(default_factory=list, description="Intents in index order.")
    unknown_index: int | None = Field(
        default=None,
        alias="unknownIndex",
        description="Index for out-of-vocabulary features.",
    )


class PerceptronState(BaseModel):
    """Exported parameters of a single perceptron.

    Attributes:
        name: Intent name.
        id: Intent index at creation time.
        weights: Dense weight vector.
        bias: Scalar bias.
        changes: Momentum vector, present only when requested on export.
    """

    name: str
    id: int = Field(..., ge=0)
    weights: list[float] = Field(default_factory=list)
    bias: float = 0.0
    changes: list[float] | None = None


class ModelState(BaseModel):
    """Full exported network.

    Attributes:
        settings: Hyper-parameters (the processor callable is never stored).
        perceptrons: Perceptron parameters, absent for untrained networks.
        encoder: Vocabulary snapshot, absent when export skipped it.
    """

    model_config = ConfigDict(populate_by_name=True)

    settings: dict[str, Any] = Field(default_factory=dict)
    perceptrons: list[PerceptronState] | None = None
    encoder: EncoderState | None = None

    def to_dict(self) -> dict[str, Any]:
        """Dump to a JSON-ready dict using the external key names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def coerce_corpus(corpus: Any) -> list[CorpusItem]:
    """Accept a ``Corpus``, a ``{"data": [...]}`` mapping or a list of items.

    Args:
        corpus: Corpus in any supported shape.

    Returns:
        The corpus items in document order.

    Raises:
        pydantic.ValidationError: If an item is malformed.
    """
    if isinstance(corpus, Corpus):
        return list(corpus.data)
    if isinstance(corpus, dict):
        return list(Corpus.model_validate(corpus).data)
    if corpus is None:
        return []
    return [
        item if isinstance(item, CorpusItem) else CorpusItem.model_validate(item)
        for item in corpus
    ]
