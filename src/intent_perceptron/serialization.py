"""
JSON persistence helpers for networks and corpora.

Writes and reads the exported network layout (settings, perceptrons and
an optional encoder block) and loads labeled corpus files. Payloads are
validated through the pydantic models in :mod:`intent_perceptron.models`.
"""

from __future__ import annotations

import json
from pathlib import Path

import structlog

from intent_perceptron.config import NeuralSettings
from intent_perceptron.corpus_encoder import Processor
from intent_perceptron.models import Corpus, ModelState
from intent_perceptron.neural import Neural
from intent_perceptron.tokenizer import process as default_processor

logger = structlog.get_logger()


def save_model(
    net: Neural,
    path: str | Path,
    save_changes: bool = False,
    save_encoder: bool = True,
) -> Path:
    """Write *net* to *path* as JSON.

    Args:
        net: The network to export.
        path: Destination file; parent directories are created.
        save_changes: Include the momentum vectors.
        save_encoder: Include the vocabularies.

    Returns:
        The written path.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = net.to_dict(save_changes=save_changes, save_encoder=save_encoder)
    target.write_text(json.dumps(payload), encoding="utf-8")
    logger.info(
        "model_saved",
        path=str(target),
        perceptrons=len(payload.get("perceptrons", [])),
        encoder="encoder" in payload,
    )
    return target


def load_model(
    path: str | Path,
    processor: Processor | None = default_processor,
    settings: NeuralSettings | None = None,
) -> Neural:
    """Read a network written by :func:`save_model`.

    Args:
        path: Source file.
        processor: Text processor for the rebuilt encoder.
        settings: Base settings; the saved ones are merged over them.

    Raises:
        FileNotFoundError: If *path* does not exist.
        pydantic.ValidationError: If the file is not a valid export.
    """
    source = Path(path)
    state = ModelState.model_validate_json(source.read_text(encoding="utf-8"))
    net = Neural(settings=settings, processor=processor)
    net.from_dict(state)
    return net


def load_corpus(path: str | Path) -> Corpus:
    """Read a labeled corpus file.

    Both ``{"data": [...]}`` documents and bare item lists are accepted.

    Raises:
        FileNotFoundError: If *path* does not exist.
        pydantic.ValidationError: If an item is malformed.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, list):
        raw = {"data": raw}
    corpus = Corpus.model_validate(raw)
    logger.debug("corpus_loaded", path=str(path), items=len(corpus.data))
    return corpus
