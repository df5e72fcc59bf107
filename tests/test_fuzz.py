# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Property-based fuzz tests using Hypothesis.

Verifies invariants hold for arbitrary inputs across softmax, the hashed
n-gram stage, descriptor parsing and page classification.
"""

from __future__ import annotations

try:
    from hypothesis import HealthCheck, example, given, settings
    from hypothesis import strategies as st
except ImportError:
    import pytest

    pytest.skip("hypothesis not installed", allow_module_level=True)

import json

import pytest

from pagetopics.data import TextData
from pagetopics.descriptor import parse_descriptor
from pagetopics.errors import ParseError, ValidationError
from pagetopics.linear import TopPredictionsConfig, softmax, top_predictions
from pagetopics.pipeline import TextClassificationPipeline
from pagetopics.transformations import HashedNGrams, Lowercase
from tests._training_helpers import SEGMENT_LABELS, SEGMENT_TEXTS, trained_descriptor

# ---------------------------------------------------------------------------
# Module-level strategies
# ---------------------------------------------------------------------------

GENERAL_TEXT = st.text(min_size=0, max_size=3000)

LABELS = st.text(min_size=1, max_size=12)

SCORE = st.floats(min_value=-10.0, max_value=10.0, allow_nan=False, allow_infinity=False)

SCORE_GROUPS = st.dictionaries(LABELS, SCORE, min_size=2, max_size=20)

SHIFT = st.floats(min_value=-100.0, max_value=100.0, allow_nan=False, allow_infinity=False)

BUCKETS = st.lists(st.integers(min_value=0, max_value=64), min_size=1, max_size=5).filter(lambda b: sum(b) > 0)

# ---------------------------------------------------------------------------
# Shared settings
# ---------------------------------------------------------------------------

_fuzz_settings = settings(
    max_examples=200,
    suppress_health_check=[HealthCheck.too_slow],
)

_SEGMENT_PIPELINE = TextClassificationPipeline.load(json.dumps(trained_descriptor(SEGMENT_TEXTS, SEGMENT_LABELS)))


@pytest.mark.fuzz
class TestFuzzSoftmax:
    @_fuzz_settings
    @given(scores=SCORE_GROUPS)
    @example({"c1": 0.0, "c2": 1.0, "c3": 2.0})
    def test_sums_to_one_and_bounded(self, scores):
        sm = softmax(scores)
        assert set(sm) == set(scores)
        assert abs(sum(sm.values()) - 1.0) <= 1e-6
        assert all(0.0 < v < 1.0 for v in sm.values())

    @_fuzz_settings
    @given(scores=SCORE_GROUPS, shift=SHIFT)
    def test_shift_invariant(self, scores, shift):
        base = softmax(scores)
        shifted = softmax({k: v + shift for k, v in scores.items()})
        for key in scores:
            assert abs(base[key] - shifted[key]) <= 1e-8

    @_fuzz_settings
    @given(scores=SCORE_GROUPS)
    def test_order_preserved(self, scores):
        sm = softmax(scores)
        for a in scores:
            for b in scores:
                if scores[a] > scores[b]:
                    assert sm[a] >= sm[b]

    @_fuzz_settings
    @given(
        scores=SCORE_GROUPS,
        top_count=st.none() | st.integers(min_value=1, max_value=25),
        min_probability=st.none() | st.floats(min_value=0.0, max_value=0.99),
    )
    def test_top_predictions_bounded_and_sorted(self, scores, top_count, min_probability):
        config = TopPredictionsConfig(top_count=top_count, min_probability=min_probability)
        probs = softmax(scores)
        top = top_predictions(probs, config)
        assert 1 <= len(top) <= len(probs)
        if top_count is not None:
            assert len(top) <= top_count
        values = list(top.values())
        assert values == sorted(values, reverse=True)
        assert values[0] == max(probs.values())


@pytest.mark.fuzz
class TestFuzzHashedNGrams:
    @_fuzz_settings
    @given(text=GENERAL_TEXT, buckets=BUCKETS)
    def test_deterministic_and_sized(self, text, buckets):
        stage = HashedNGrams(n=len(buckets), bucket_counts=tuple(buckets))
        first = stage.apply(TextData(text))
        second = stage.apply(TextData(text))
        assert first == second
        assert first.vector.dimension == sum(buckets)

    @_fuzz_settings
    @given(text=GENERAL_TEXT, buckets=BUCKETS)
    def test_counts_every_ngram_once(self, text, buckets):
        stage = HashedNGrams(n=len(buckets), bucket_counts=tuple(buckets))
        values = stage.apply(TextData(text)).vector.values
        expected = sum(max(len(text) - k + 1, 0) for k, b in enumerate(buckets, start=1) if b)
        assert sum(values) == expected
        assert all(v >= 0 for v in values)

    @_fuzz_settings
    @given(text=GENERAL_TEXT)
    def test_lowercase_total(self, text):
        assert isinstance(Lowercase().apply(TextData(text)).text, str)


@pytest.mark.fuzz
class TestFuzzDescriptor:
    @_fuzz_settings
    @given(text=st.text(max_size=500))
    @example("")
    @example("{}")
    @example('{"weights": {"a": [1]}, "biases": {"b": 0}}')
    def test_parse_raises_only_package_errors(self, text):
        try:
            parse_descriptor(text)
        except (ParseError, ValidationError):
            pass

    @_fuzz_settings
    @given(text=st.text(max_size=500))
    def test_from_json_never_raises(self, text):
        pipeline = TextClassificationPipeline()
        loaded = pipeline.from_json(text)
        assert loaded is pipeline.is_loaded

    @_fuzz_settings
    @given(
        doc=st.recursive(
            st.none() | st.booleans() | st.floats() | st.integers(-(10**6), 10**6) | st.text(max_size=10),
            lambda children: (
                st.lists(children, max_size=4) | st.dictionaries(st.text(max_size=10), children, max_size=4)
            ),
            max_leaves=20,
        )
    )
    def test_arbitrary_json_documents(self, doc):
        try:
            parse_descriptor(json.dumps(doc))
        except (ParseError, ValidationError):
            pass


@pytest.mark.fuzz
class TestFuzzClassifyPage:
    @_fuzz_settings
    @given(text=GENERAL_TEXT)
    @example("ethereum bitcoin bat zcash crypto tokens!")
    @example("\x00\x01\x02")
    def test_text_always_classified(self, text):
        preds = _SEGMENT_PIPELINE.classify_page(text)
        assert 1 <= len(preds) <= len(set(SEGMENT_LABELS))
        best = max(preds.values())
        assert all(0.0 <= v <= best for v in preds.values())

    @_fuzz_settings
    @given(blob=st.binary(max_size=4000))
    def test_binary_always_classified(self, blob):
        preds = _SEGMENT_PIPELINE.classify_page(blob)
        assert 1 <= len(preds) <= len(set(SEGMENT_LABELS))
        assert set(preds) <= set(SEGMENT_LABELS)
