# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Environment-driven classifier settings.

Variables (all optional, invalid values are ignored with a warning):

- ``PAGETOPICS_TOP_COUNT``        cap on returned classes (int >= 1)
- ``PAGETOPICS_MIN_PROBABILITY``  probability cutoff in [0, 1) (default: 1/K)
- ``PAGETOPICS_MAX_TEXT_CHARS``   page text is truncated to this many chars
- ``PAGETOPICS_LOG_LEVEL``        root log level for entry points
- ``PAGETOPICS_LOG_JSON``         "1"/"true"/"yes" for JSON log lines
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from .linear import TopPredictionsConfig

logger = logging.getLogger(__name__)

DEFAULT_MAX_TEXT_CHARS = 100_000

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True, slots=True)
class ClassifierSettings:
    top_count: int | None = None
    min_probability: float | None = None
    max_text_chars: int = DEFAULT_MAX_TEXT_CHARS
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self) -> None:
        if self.max_text_chars < 1:
            raise ValueError(f"max_text_chars must be >= 1, got {self.max_text_chars}")
        # Validates top_count / min_probability ranges
        self.top_predictions()

    def top_predictions(self) -> TopPredictionsConfig:
        return TopPredictionsConfig(top_count=self.top_count, min_probability=self.min_probability)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClassifierSettings:
        env = os.environ if environ is None else environ
        kwargs: dict = {}

        top = env.get("PAGETOPICS_TOP_COUNT", "").strip()
        if top:
            value = _parse_int(top, "PAGETOPICS_TOP_COUNT")
            if value is not None and value >= 1:
                kwargs["top_count"] = value
            elif value is not None:
                logger.warning("Ignoring PAGETOPICS_TOP_COUNT=%s (must be >= 1)", top)

        min_prob = env.get("PAGETOPICS_MIN_PROBABILITY", "").strip()
        if min_prob:
            try:
                prob = float(min_prob)
            except ValueError:
                logger.warning("Ignoring PAGETOPICS_MIN_PROBABILITY=%s (not a number)", min_prob)
            else:
                if 0.0 <= prob < 1.0:
                    kwargs["min_probability"] = prob
                else:
                    logger.warning("Ignoring PAGETOPICS_MIN_PROBABILITY=%s (must be in [0, 1))", min_prob)

        max_chars = env.get("PAGETOPICS_MAX_TEXT_CHARS", "").strip()
        if max_chars:
            value = _parse_int(max_chars, "PAGETOPICS_MAX_TEXT_CHARS")
            if value is not None and value >= 1:
                kwargs["max_text_chars"] = value
            elif value is not None:
                logger.warning("Ignoring PAGETOPICS_MAX_TEXT_CHARS=%s (must be >= 1)", max_chars)

        level = env.get("PAGETOPICS_LOG_LEVEL", "").strip().upper()
        if level:
            kwargs["log_level"] = level

        log_json = env.get("PAGETOPICS_LOG_JSON", "").strip().lower()
        if log_json:
            kwargs["log_json"] = log_json in _TRUTHY

        return cls(**kwargs)


def _parse_int(raw: str, name: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%s (not an integer)", name, raw)
        return None
