# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Text classification pipeline: transformation chain plus linear model.

Lifecycle is one-way: a pipeline starts *unloaded* and becomes *loaded*
either by direct construction or by a successful :meth:`from_json`.  A
loaded pipeline never changes again; to switch models, build a new one.
Loading must finish before the pipeline is shared with other threads;
afterwards every classification call is read-only and lock-free.

Error policy:
  - ``from_json`` never raises, it reports success as a bool and logs why a
    descriptor was rejected.  ``load``/``load_file`` are the raising variants.
  - ``apply`` returns ``{}`` when unloaded.
  - ``get_top_predictions`` / ``classify_page`` never raise; page
    classification is best-effort, so every failure degrades to ``{}``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from .data import Data, TextData, VectorData
from .descriptor import parse_descriptor
from .errors import DimensionMismatchError, NotLoadedError, PageTopicsError, ValidationError
from .linear import LinearModel, PredictionMap, TopPredictionsConfig, softmax, top_predictions
from .settings import ClassifierSettings
from .stage_timer import StageTimer
from .transformations import Transformation, apply_chain, validate_chain

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Loaded:
    transformations: tuple[Transformation, ...]
    model: LinearModel
    # Index of the first stage that consumes vectors; VectorData input starts here
    vector_start: int


def _build(transformations: Sequence[Transformation], model: LinearModel) -> _Loaded:
    chain = tuple(transformations)
    chain_dimension = validate_chain(chain)
    if chain_dimension is not None and chain_dimension != model.dimension:
        raise DimensionMismatchError(
            f"transformation chain produces {chain_dimension}-d features but model weights are {model.dimension}-d",
            expected=model.dimension,
            actual=chain_dimension,
        )
    vector_start = 0
    for position, stage in enumerate(chain):
        if stage.output_kind != stage.input_kind:
            vector_start = position + 1
    return _Loaded(transformations=chain, model=model, vector_start=vector_start)


def _coerce_text(text: object) -> str:
    if isinstance(text, str):
        return text
    if isinstance(text, bytes | bytearray):
        return bytes(text).decode("utf-8", errors="replace")
    raise TypeError(f"expected str or bytes, got {type(text).__name__}")


class TextClassificationPipeline:
    """Classify text with a fixed transformation chain and linear model."""

    __slots__ = ("_loaded", "_top_config", "_max_text_chars")

    def __init__(
        self,
        transformations: Sequence[Transformation] | None = None,
        model: LinearModel | None = None,
        *,
        settings: ClassifierSettings | None = None,
    ) -> None:
        """Create an unloaded pipeline, or a loaded one when ``model`` is given.

        Raises:
            ValidationError: stages do not fit together, or stages without a model.
            DimensionMismatchError: chain output and model weights disagree.
        """
        settings = settings or ClassifierSettings()
        self._top_config = settings.top_predictions()
        self._max_text_chars = settings.max_text_chars
        self._loaded: _Loaded | None = None
        if model is not None:
            self._loaded = _build(transformations or (), model)
        elif transformations:
            raise ValidationError("transformations given without a model")

    # -- loading ------------------------------------------------------------

    @classmethod
    def load(cls, descriptor: str | bytes, *, settings: ClassifierSettings | None = None) -> TextClassificationPipeline:
        """Build a loaded pipeline from a descriptor, raising on any problem.

        Raises:
            ParseError: descriptor is empty or not JSON.
            ValidationError: descriptor content is inconsistent.
        """
        parsed = parse_descriptor(descriptor)
        return cls(parsed.transformations, parsed.model, settings=settings)

    @classmethod
    def load_file(
        cls, path: str | PathLike[str], *, settings: ClassifierSettings | None = None
    ) -> TextClassificationPipeline:
        return cls.load(Path(path).read_bytes(), settings=settings)

    def from_json(self, descriptor: str | bytes) -> bool:
        """Load this pipeline from a descriptor. All-or-nothing.

        Returns False (and leaves the pipeline untouched) when the descriptor
        is rejected or the pipeline is already loaded.
        """
        if self._loaded is not None:
            logger.warning("Pipeline is already loaded; build a new pipeline to load another model")
            return False
        try:
            parsed = parse_descriptor(descriptor)
            loaded = _build(parsed.transformations, parsed.model)
        except PageTopicsError as e:
            logger.warning("Model descriptor rejected (%s): %s", type(e).__name__, e)
            return False
        self._loaded = loaded
        logger.info(
            "Model loaded: %d classes, %d features, %d transformations",
            len(loaded.model.classes),
            loaded.model.dimension,
            len(loaded.transformations),
        )
        return True

    # -- state --------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._loaded is not None

    @property
    def classes(self) -> tuple[str, ...]:
        return self._loaded.model.labels if self._loaded else ()

    @property
    def dimension(self) -> int | None:
        return self._loaded.model.dimension if self._loaded else None

    @property
    def transformations(self) -> tuple[Transformation, ...]:
        return self._loaded.transformations if self._loaded else ()

    @property
    def model(self) -> LinearModel | None:
        return self._loaded.model if self._loaded else None

    @property
    def top_predictions_config(self) -> TopPredictionsConfig:
        return self._top_config

    def _require_loaded(self) -> _Loaded:
        if self._loaded is None:
            raise NotLoadedError("pipeline has no model; call from_json() first")
        return self._loaded

    def __repr__(self) -> str:
        if self._loaded is None:
            return "TextClassificationPipeline(unloaded)"
        stages = ",".join(s.name for s in self._loaded.transformations)
        return f"TextClassificationPipeline(classes={len(self.classes)}, dimension={self.dimension}, stages=[{stages}])"

    # -- classification -----------------------------------------------------

    def apply(self, data: Data) -> PredictionMap:
        """Raw linear scores for every class.

        ``TextData`` runs through the whole chain.  ``VectorData`` skips the
        text stages and enters at the first vector stage (e.g. ``normalize``).

        Returns ``{}`` when the pipeline is unloaded, or for text input to a
        pipeline without text stages.

        Raises:
            DimensionMismatchError: ``VectorData`` of the wrong length.
        """
        try:
            loaded = self._require_loaded()
        except NotLoadedError:
            logger.debug("apply() called on an unloaded pipeline")
            return {}
        if isinstance(data, TextData):
            if loaded.vector_start == 0:
                logger.warning("Pipeline has no text stages; pass VectorData instead of text")
                return {}
            features = apply_chain(loaded.transformations, data)
        elif isinstance(data, VectorData):
            features = apply_chain(loaded.transformations[loaded.vector_start :], data)
        else:
            raise TypeError(f"expected TextData or VectorData, got {type(data).__name__}")
        return loaded.model.predict(features.vector)

    def get_top_predictions(self, text: str) -> PredictionMap:
        """Softmax-normalized best classes for a short text (e.g. a page title)."""
        try:
            text = _coerce_text(text)[: self._max_text_chars]
            return top_predictions(softmax(self.apply(TextData(text))), self._top_config)
        except (PageTopicsError, TypeError) as e:
            logger.warning("Classification failed (%s): %s", type(e).__name__, e)
            return {}

    def classify_page(self, text: str | bytes) -> PredictionMap:
        """Softmax-normalized best classes for a full page body.

        Bytes are decoded as UTF-8 with replacement characters and the text
        is truncated to ``max_text_chars`` so arbitrary crawled content stays
        bounded in time and memory.
        """
        timer = StageTimer()
        try:
            timer.stage("decode")
            raw_text = _coerce_text(text)
            page = raw_text[: self._max_text_chars]
            timer.stage("score")
            scores = self.apply(TextData(page))
            timer.stage("normalize")
            result = top_predictions(softmax(scores), self._top_config)
        except (PageTopicsError, TypeError) as e:
            logger.warning("Page classification failed at %s (%s): %s", timer.current_stage, type(e).__name__, e)
            return {}
        finally:
            timer.finalize()
        if len(raw_text) > len(page):
            logger.debug("Page text truncated from %d to %d chars", len(raw_text), len(page))
        logger.debug(
            "Page classified: %d chars, %d predictions, total_ms=%.3f, stages_ms=%s",
            len(page),
            len(result),
            timer.total_ms(),
            timer.elapsed_per_stage(),
        )
        return result
