"""
Environment-based configuration for the perceptron intent classifier.

Uses pydantic-settings to load training and inference hyper-parameters
from environment variables and .env files. ``Neural`` instances copy
these settings so per-network overrides never leak into the shared
singleton.

All environment variables are prefixed with ``INTENT_`` to avoid collisions.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NeuralSettings(BaseSettings):
    """Hyper-parameters loaded from ``INTENT_``-prefixed environment variables.

    Attributes:
        iterations: Maximum number of training epochs.
        error_thresh: Stop training once the epoch error drops to this value.
        delta_error_thresh: Stop training once the epoch error changes by
            no more than this value between two epochs.
        learning_rate: Base learning rate, decayed every epoch.
        momentum: Fraction of the previous weight change carried forward.
        alpha: Slope of the leaky-linear activation above its threshold.
        log: Emit a structured log event after every epoch.
        multi: Enable multi-intent slicing in ``Neural.run``.
        unknown_index: Feature index used for tokens missing from the
            vocabulary at inference time (None drops them).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    model_config = SettingsConfigDict(
        env_prefix="INTENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Convergence ──
    iterations: int = Field(default=20000, ge=1, description="Maximum training epochs.")
    error_thresh: float = Field(
        default=0.00005,
        ge=0.0,
        description="Epoch error at which training stops.",
    )
    delta_error_thresh: float = Field(
        default=0.000001,
        ge=0.0,
        description="Epoch error change at which training stops.",
    )

    # ── Optimizer ──
    learning_rate: float = Field(default=0.6, gt=0.0, description="Base learning rate.")
    momentum: float = Field(default=0.5, ge=0.0, lt=1.0, description="Momentum factor.")
    alpha: float = Field(default=0.07, gt=0.0, description="Leaky-linear activation slope.")

    # ── Behaviour ──
    log: bool = Field(default=False, description="Log every training epoch.")
    multi: bool = Field(default=False, description="Enable multi-intent slicing.")
    unknown_index: int | None = Field(
        default=None,
        ge=0,
        description="Feature index for out-of-vocabulary tokens.",
    )

    # ── Logging ──
    log_level: str = Field(default="INFO", description="Logging level.")


@lru_cache(maxsize=1)
def get_settings() -> NeuralSettings:
    """Return the cached settings singleton.

    Returns:
        The global ``NeuralSettings`` instance.
    """
    return NeuralSettings()
