"""
Multi-intent slicing for the perceptron intent classifier.

Recursively splits the positional token run of an utterance into
contiguous spans, each with its own intent ranking. Every candidate span
is scored through the ensemble's multi-intent pass; scores are memoized
per slicer instance, keyed by the exact index sequence.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from intent_perceptron.perceptron import NONE_INTENT, Classification

# Minimum top score each half of a split must reach.
MIN_SLICE_SCORE: float = 0.5

ScoreFn = Callable[[Sequence[int]], list[Classification]]


@dataclass
class RawSlice:
    """A span of feature indices with its (un-normalized) ranking."""

    tokens: list[int]
    run: list[Classification]


@dataclass
class IntentSlice:
    """A contiguous span of an utterance with its own classification.

    Attributes:
        tokens: Feature strings of the span.
        embeddings: Feature indices of the span, in positional order.
        classifications: Ranked intents for the span.
    """

    tokens: list[str] = field(default_factory=list)
    embeddings: list[int] = field(default_factory=list)
    classifications: list[Classification] = field(default_factory=list)


def slice_score(run: Sequence[Classification]) -> float:
    """Separation margin of a ranking: top score, or top² − runner-up²."""
    if len(run) == 1:
        return run[0].score
    return run[0].score**2 - run[1].score**2


def normalize_output(classifications: list[Classification]) -> None:
    """Square every score in place and divide by the total."""
    total = 0.0
    for item in classifications:
        item.score = item.score**2
        total += item.score
    if total > 0:
        for item in classifications:
            item.score /= total


class MultiIntentSlicer:
    """Finds the best partition of a token run into intent-coherent spans.

    One instance owns one memo table; create a new slicer per utterance.

    Args:
        score_fn: Ranks the intents of a key sequence, without
            normalization (``Neural.run_input_multi`` bound to a vector).
    """

    def __init__(self, score_fn: ScoreFn) -> None:
        self._score_fn = score_fn
        self._cache: dict[tuple[int, ...], list[Classification]] = {}

    def score(self, keys: Sequence[int]) -> list[Classification]:
        """Rank *keys*, reusing earlier results for the same sequence."""
        signature = tuple(keys)
        result = self._cache.get(signature)
        if result is None:
            result = self._score_fn(list(keys))
            self._cache[signature] = result
        return result

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def best_binary_slices(self, keys: Sequence[int]) -> list[RawSlice]:
        """Split *keys* in two where that most improves the slice score.

        A split is accepted only if the mean of both halves' scores beats
        the best so far, both halves' top scores exceed
        :data:`MIN_SLICE_SCORE` and neither half is classified as "None".

        Returns:
            One slice (no qualifying split) or the two halves, in order.
        """
        keys = list(keys)
        whole = self.score(keys)
        best_score = slice_score(whole)
        best: list[RawSlice] = [RawSlice(tokens=keys, run=whole)]
        for i in range(1, len(keys)):
            left = keys[:i]
            right = keys[i:]
            run_left = self.score(left)
            run_right = self.score(right)
            score = (slice_score(run_left) + slice_score(run_right)) / 2
            if (
                score > best_score
                and run_left[0].score > MIN_SLICE_SCORE
                and run_right[0].score > MIN_SLICE_SCORE
                and run_left[0].intent != NONE_INTENT
                and run_right[0].intent != NONE_INTENT
            ):
                best_score = score
                best = [
                    RawSlice(tokens=left, run=run_left),
                    RawSlice(tokens=right, run=run_right),
                ]
        return best

    def best_slices(self, keys: Sequence[int]) -> list[RawSlice]:
        """Recursively split *keys* until no span splits further.

        Returns:
            Non-overlapping contiguous spans covering *keys*, in order.
        """
        slices = self.best_binary_slices(keys)
        if len(slices) == 1:
            return slices
        left = self.best_slices(slices[0].tokens)
        right = self.best_slices(slices[1].tokens)
        return [*left, *right]
