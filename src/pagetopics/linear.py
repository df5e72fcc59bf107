# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Linear multi-class model, softmax and top-N selection.

Scoring is ``dot(weights[label], features) + bias[label]`` for every class.
Dimensionality is checked once when the model is built; the model is frozen
afterwards and safe to share across threads.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .data import FeatureVector
from .errors import DimensionMismatchError, ValidationError

PredictionMap = dict[str, float]


@dataclass(frozen=True, slots=True)
class ClassWeights:
    """Weight vector and bias of one class."""

    label: str
    weights: FeatureVector
    bias: float


@dataclass(frozen=True, slots=True)
class LinearModel:
    """One weight vector plus bias per class label, all of one dimension."""

    classes: tuple[ClassWeights, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "classes", tuple(self.classes))
        if not self.classes:
            raise ValidationError("linear model needs at least one class")
        labels = [c.label for c in self.classes]
        if len(set(labels)) != len(labels):
            raise ValidationError(f"duplicate class labels: {sorted({x for x in labels if labels.count(x) > 1})}")
        dims = {c.weights.dimension for c in self.classes}
        if len(dims) != 1:
            raise ValidationError(f"weight vectors have differing dimensions: {sorted(dims)}")
        if self.dimension == 0:
            raise ValidationError("weight vectors must not be empty")

    @classmethod
    def from_mappings(cls, weights: Mapping[str, Sequence[float]], biases: Mapping[str, float]) -> LinearModel:
        """Build from label-keyed weights and biases (key sets must match)."""
        if set(weights) != set(biases):
            missing_bias = sorted(set(weights) - set(biases))
            missing_weights = sorted(set(biases) - set(weights))
            raise ValidationError(
                f"weights and biases disagree on classes "
                f"(no bias: {missing_bias}, no weights: {missing_weights})"
            )
        return cls(
            tuple(
                ClassWeights(label=label, weights=FeatureVector.of(vector), bias=float(biases[label]))
                for label, vector in weights.items()
            )
        )

    @property
    def dimension(self) -> int:
        return self.classes[0].weights.dimension

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(c.label for c in self.classes)

    def predict(self, features: FeatureVector) -> PredictionMap:
        """Raw linear score per class, in model order.

        Non-finite scores are kept so malformed weights stay visible.

        Raises:
            DimensionMismatchError: ``features`` has the wrong length.
        """
        if features.dimension != self.dimension:
            raise DimensionMismatchError(
                f"model expects {self.dimension}-d features, got {features.dimension}-d",
                expected=self.dimension,
                actual=features.dimension,
            )
        return {c.label: c.weights.dot(features) + c.bias for c in self.classes}


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


def softmax(scores: Mapping[str, float]) -> PredictionMap:
    """Numerically stable softmax over a group of raw scores.

    The group maximum is subtracted before exponentiating, so adding a
    constant to every score leaves the output unchanged.  Empty in, empty out.
    """
    if not scores:
        return {}
    top = max(scores.values())
    exps = {label: math.exp(score - top) for label, score in scores.items()}
    total = sum(exps.values())
    return {label: value / total for label, value in exps.items()}


@dataclass(frozen=True, slots=True)
class TopPredictionsConfig:
    """Cutoff rule applied after softmax.

    ``min_probability=None`` keeps classes scoring above the uniform share
    ``1/K``.  ``top_count=None`` applies no count cap.  The best class is
    always kept so a loaded model never yields an empty result.
    """

    top_count: int | None = None
    min_probability: float | None = None

    def __post_init__(self) -> None:
        if self.top_count is not None and self.top_count < 1:
            raise ValueError(f"top_count must be >= 1, got {self.top_count}")
        if self.min_probability is not None and not 0.0 <= self.min_probability < 1.0:
            raise ValueError(f"min_probability must be in [0, 1), got {self.min_probability}")


def top_predictions(probabilities: Mapping[str, float], config: TopPredictionsConfig | None = None) -> PredictionMap:
    """Highest-scoring classes, best first, filtered by ``config``."""
    if not probabilities:
        return {}
    config = config or TopPredictionsConfig()
    threshold = config.min_probability
    if threshold is None:
        threshold = 1.0 / len(probabilities)
    # NaN sorts last
    ranked = sorted(
        probabilities.items(),
        key=lambda item: (math.isnan(item[1]), -item[1] if not math.isnan(item[1]) else 0.0),
    )
    kept = [ranked[0]] + [item for item in ranked[1:] if item[1] > threshold]
    if config.top_count is not None:
        kept = kept[: config.top_count]
    return dict(kept)
