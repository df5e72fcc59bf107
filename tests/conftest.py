# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import pagetopics  # noqa: F401
except ImportError:
    raise ImportError("pagetopics is not installed. Run: pip install -e '.[dev]'") from None

import json
import logging
from pathlib import Path

import pytest
import structlog

from pagetopics.linear import LinearModel
from pagetopics.pipeline import TextClassificationPipeline
from pagetopics.settings import ClassifierSettings
from pagetopics.transformations import HashedNGrams, Lowercase
from tests._training_helpers import SEGMENT_LABELS, SEGMENT_TEXTS, SPAM_LABELS, SPAM_TEXTS, trained_descriptor

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo any root-logger/structlog configuration a test (e.g. the CLI) installs."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    structlog.reset_defaults()


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def three_class_model() -> LinearModel:
    """Weights over a 3-d space; pairs with ``count_chain`` (one bucket per order)."""
    return LinearModel.from_mappings(
        {
            "class_1": [1.0, 2.0, 3.0],
            "class_2": [3.0, 2.0, 1.0],
            "class_3": [2.0, 2.0, 2.0],
        },
        {"class_1": 0.0, "class_2": 0.0, "class_3": 0.0},
    )


@pytest.fixture
def count_chain():
    """Lowercase + one bucket per order: the vector is (#1-grams, #2-grams, #3-grams)."""
    return (Lowercase(), HashedNGrams(n=3, bucket_counts=(1, 1, 1)))


@pytest.fixture
def simple_pipeline(count_chain, three_class_model) -> TextClassificationPipeline:
    return TextClassificationPipeline(count_chain, three_class_model)


@pytest.fixture(scope="session")
def spam_descriptor_json() -> str:
    return json.dumps(trained_descriptor(SPAM_TEXTS, SPAM_LABELS))


@pytest.fixture(scope="session")
def segment_descriptor_json() -> str:
    return json.dumps(trained_descriptor(SEGMENT_TEXTS, SEGMENT_LABELS))


@pytest.fixture
def segment_pipeline(segment_descriptor_json) -> TextClassificationPipeline:
    pipeline = TextClassificationPipeline(settings=ClassifierSettings())
    assert pipeline.from_json(segment_descriptor_json)
    return pipeline
