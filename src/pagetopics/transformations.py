# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Transformation stages: text in, feature vector out.

The stage set is closed: ``Lowercase`` (Text → Text), ``HashedNGrams``
(Text → Vector) and ``Normalize`` (Vector → Vector).  Stages are frozen
dataclasses whose only state is their configuration, so ``apply`` is a pure
function and a chain can be shared freely once built.

Hashing uses CRC-32 of the UTF-8 bytes of each n-gram.  Model weights are
trained against these exact bucket assignments, so the hash must never
depend on process state (``hash()`` is salted per process and unusable).
"""

from __future__ import annotations

import zlib
from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar

from .data import Data, DataKind, FeatureVector, TextData, VectorData
from .errors import ValidationError


def ngram_hash(ngram: str) -> int:
    """Stable unsigned 32-bit hash of an n-gram.

    ``surrogatepass`` keeps lone surrogates (possible in decoded crawl text)
    encodable instead of raising.
    """
    return zlib.crc32(ngram.encode("utf-8", "surrogatepass"))


def _expect(data: Data, kind: DataKind, stage: str) -> Data:
    if data.kind is not kind:
        raise ValidationError(f"{stage} expects {kind} data, got {data.kind}")
    return data


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Lowercase:
    """Unicode-aware case folding."""

    name: ClassVar[str] = "lowercase"
    input_kind: ClassVar[DataKind] = DataKind.TEXT
    output_kind: ClassVar[DataKind] = DataKind.TEXT

    def apply(self, data: Data) -> Data:
        text = _expect(data, DataKind.TEXT, self.name).text
        return TextData(text.casefold())

    def output_dimension(self, input_dimension: int | None) -> int | None:
        return input_dimension


@dataclass(frozen=True, slots=True)
class HashedNGrams:
    """Character n-gram counts hashed into per-order bucket segments.

    ``bucket_counts[k - 1]`` is the number of buckets reserved for n-grams of
    order *k*.  Segments are laid out in order, so the vector has
    ``sum(bucket_counts)`` components.  An order with zero buckets is skipped.
    """

    n: int
    bucket_counts: tuple[int, ...]

    name: ClassVar[str] = "hashed_ngrams"
    input_kind: ClassVar[DataKind] = DataKind.TEXT
    output_kind: ClassVar[DataKind] = DataKind.VECTOR

    def __post_init__(self) -> None:
        counts = tuple(self.bucket_counts)
        object.__setattr__(self, "bucket_counts", counts)
        if self.n < 1:
            raise ValidationError(f"hashed_ngrams: n must be >= 1, got {self.n}")
        if len(counts) != self.n:
            raise ValidationError(
                f"hashed_ngrams: expected {self.n} bucket counts (orders 1..{self.n}), got {len(counts)}"
            )
        if any(c < 0 for c in counts):
            raise ValidationError(f"hashed_ngrams: bucket counts must be >= 0, got {list(counts)}")
        if sum(counts) == 0:
            raise ValidationError("hashed_ngrams: at least one order needs a positive bucket count")

    @property
    def dimension(self) -> int:
        return sum(self.bucket_counts)

    def segment_offset(self, order: int) -> int:
        """Index of the first component belonging to n-grams of ``order``."""
        return sum(self.bucket_counts[: order - 1])

    def apply(self, data: Data) -> Data:
        text = _expect(data, DataKind.TEXT, self.name).text
        counts = [0.0] * self.dimension
        for order, buckets in enumerate(self.bucket_counts, start=1):
            if not buckets:
                continue
            offset = self.segment_offset(order)
            for i in range(len(text) - order + 1):
                counts[offset + ngram_hash(text[i : i + order]) % buckets] += 1.0
        return VectorData(FeatureVector(tuple(counts)))

    def output_dimension(self, input_dimension: int | None) -> int | None:
        return self.dimension


@dataclass(frozen=True, slots=True)
class Normalize:
    """L2 normalisation of a feature vector (zero vectors pass through)."""

    name: ClassVar[str] = "normalize"
    input_kind: ClassVar[DataKind] = DataKind.VECTOR
    output_kind: ClassVar[DataKind] = DataKind.VECTOR

    def apply(self, data: Data) -> Data:
        vector = _expect(data, DataKind.VECTOR, self.name).vector
        return VectorData(vector.normalized())

    def output_dimension(self, input_dimension: int | None) -> int | None:
        return input_dimension


Transformation = Lowercase | HashedNGrams | Normalize

TRANSFORMATION_TYPES: dict[str, type] = {
    Lowercase.name: Lowercase,
    HashedNGrams.name: HashedNGrams,
    Normalize.name: Normalize,
}


# ---------------------------------------------------------------------------
# Chains
# ---------------------------------------------------------------------------


def validate_chain(transformations: Sequence[Transformation]) -> int | None:
    """Check that stages fit together and return the output dimension.

    A non-empty chain must start from text and end with a vector.  An empty
    chain is allowed (vector-only pipelines) and returns ``None``.

    Raises:
        ValidationError: adjacent stages disagree on the data kind.
    """
    if not transformations:
        return None
    kind = DataKind.TEXT
    dimension: int | None = None
    for position, stage in enumerate(transformations):
        if not isinstance(stage, Transformation):
            raise ValidationError(f"stage {position} is not a transformation: {stage!r}")
        if stage.input_kind is not kind:
            raise ValidationError(
                f"stage {position} ({stage.name}) expects {stage.input_kind} input but receives {kind}"
            )
        dimension = stage.output_dimension(dimension)
        kind = stage.output_kind
    if kind is not DataKind.VECTOR:
        raise ValidationError(f"transformation chain must end with a vector, ends with {kind}")
    return dimension


def apply_chain(transformations: Sequence[Transformation], data: Data) -> Data:
    """Run ``data`` through each stage left to right."""
    for stage in transformations:
        data = stage.apply(data)
    return data
