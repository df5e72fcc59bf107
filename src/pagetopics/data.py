# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Feature vectors and the Data variant passed between pipeline stages.

Pure Python module, no third-party dependencies.

``Data`` is a closed tagged variant: a stage receives either ``TextData``
or ``VectorData`` and returns one of the two.  Everything here is frozen so
a loaded pipeline can be shared across threads without copying.
"""

from __future__ import annotations

import math
import operator
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from .errors import DimensionMismatchError

# Default absolute tolerance for vector comparisons
VECTOR_TOLERANCE = 1e-9


class DataKind(StrEnum):
    """Tag of a ``Data`` variant."""

    TEXT = "text"
    VECTOR = "vector"


@dataclass(frozen=True, slots=True)
class FeatureVector:
    """Dense, fixed-length vector of floats."""

    values: tuple[float, ...]

    @classmethod
    def of(cls, values: Iterable[float]) -> FeatureVector:
        return cls(tuple(float(v) for v in values))

    @classmethod
    def zeros(cls, dimension: int) -> FeatureVector:
        if dimension < 0:
            raise ValueError(f"dimension must be >= 0, got {dimension}")
        return cls((0.0,) * dimension)

    @property
    def dimension(self) -> int:
        return len(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> float:
        return self.values[index]

    def dot(self, other: FeatureVector) -> float:
        """Inner product; both vectors must have the same dimension."""
        if other.dimension != self.dimension:
            raise DimensionMismatchError(
                f"cannot take dot product of {self.dimension}-d and {other.dimension}-d vectors",
                expected=self.dimension,
                actual=other.dimension,
            )
        return sum(map(operator.mul, self.values, other.values))

    def norm(self) -> float:
        """Euclidean (L2) norm."""
        return math.sqrt(sum(v * v for v in self.values))

    def normalized(self) -> FeatureVector:
        """Unit-length copy. A zero vector is returned unchanged."""
        n = self.norm()
        if n == 0.0 or not math.isfinite(n):
            return self
        return FeatureVector(tuple(v / n for v in self.values))

    def is_close(self, other: FeatureVector, tol: float = VECTOR_TOLERANCE) -> bool:
        """Component-wise closeness within an absolute tolerance."""
        if other.dimension != self.dimension:
            return False
        return all(math.isclose(a, b, rel_tol=0.0, abs_tol=tol) for a, b in zip(self.values, other.values))


@dataclass(frozen=True, slots=True)
class TextData:
    """Raw or partially processed text."""

    text: str

    @property
    def kind(self) -> DataKind:
        return DataKind.TEXT


@dataclass(frozen=True, slots=True)
class VectorData:
    """A feature vector produced by (or fed directly into) the pipeline."""

    vector: FeatureVector

    @property
    def kind(self) -> DataKind:
        return DataKind.VECTOR

    @property
    def dimension(self) -> int:
        return self.vector.dimension


Data = TextData | VectorData
