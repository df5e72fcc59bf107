# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""pagetopics: embeddable linear text classification for page content.

Converts raw page text into a hashed n-gram feature vector, scores it with a
pre-trained linear multi-class model and returns a softmax-normalized
mapping from class label to probability:
- transformations: lowercase -> hashed_ngrams -> normalize chain
- linear: per-class weights + bias, softmax, top-N selection
- pipeline: JSON descriptor loading and classification entry points
"""

from __future__ import annotations

from .data import DataKind, FeatureVector, TextData, VectorData
from .errors import DimensionMismatchError, NotLoadedError, PageTopicsError, ParseError, ValidationError
from .linear import ClassWeights, LinearModel, PredictionMap, TopPredictionsConfig, softmax, top_predictions
from .pipeline import TextClassificationPipeline
from .settings import ClassifierSettings
from .transformations import HashedNGrams, Lowercase, Normalize

__all__ = [
    "ClassWeights",
    "ClassifierSettings",
    "DataKind",
    "DimensionMismatchError",
    "FeatureVector",
    "HashedNGrams",
    "LinearModel",
    "Lowercase",
    "Normalize",
    "NotLoadedError",
    "PageTopicsError",
    "ParseError",
    "PredictionMap",
    "TextClassificationPipeline",
    "TextData",
    "TopPredictionsConfig",
    "ValidationError",
    "VectorData",
    "softmax",
    "top_predictions",
]
