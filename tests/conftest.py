"""Shared fixtures for intent-perceptron tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import pytest

# Make helpers in this module importable from test files.
sys.path.append(str(Path(__file__).resolve().parent))

# Tests run against the hardcoded defaults; drop INTENT_ overrides
# before any settings are loaded.
for _key in [k for k in os.environ if k.startswith("INTENT_")]:
    del os.environ[_key]

from intent_perceptron.config import get_settings  # noqa: E402
from intent_perceptron.models import Corpus  # noqa: E402
from intent_perceptron.neural import Neural  # noqa: E402
from intent_perceptron.serialization import load_corpus  # noqa: E402

FIXTURES = Path(__file__).resolve().parent / "fixtures"
CORPUS_PATH = FIXTURES / "corpus-en.json"


@pytest.fixture(autouse=True)
def _fresh_settings() -> Any:
    """Reset the cached settings singleton around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def corpus_path() -> Path:
    """Path of the English smalltalk corpus fixture."""
    return CORPUS_PATH


@pytest.fixture()
def corpus() -> Corpus:
    """The English smalltalk corpus: 5 intents, 25 utterances, 10 tests."""
    return load_corpus(CORPUS_PATH)


@pytest.fixture(scope="session")
def trained_net() -> Neural:
    """A network trained once on the corpus fixture with default settings.

    Shared across the session; tests must not train or reload it.
    """
    net = Neural()
    net.train(load_corpus(CORPUS_PATH))
    return net


def make_network(
    features: list[str],
    intents: list[str],
    weights: dict[str, list[float]],
    biases: dict[str, float] | None = None,
    **settings: Any,
) -> Neural:
    """Build a network with hand-set parameters through ``from_dict``."""
    biases = biases or {}
    net = Neural()
    net.from_dict(
        {
            "settings": settings,
            "encoder": {"features": features, "intents": intents},
            "perceptrons": [
                {
                    "name": name,
                    "id": index,
                    "weights": weights[name],
                    "bias": biases.get(name, 0.0),
                }
                for index, name in enumerate(intents)
            ],
        }
    )
    return net
