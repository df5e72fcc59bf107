# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Model descriptor schema and loader.

A descriptor is a JSON document declaring the transformation chain and the
linear model::

    {
      "transformations": [
        {"type": "lowercase"},
        {"type": "hashed_ngrams", "n": 3, "bucket_counts": [16, 32, 64]},
        {"type": "normalize"}
      ],
      "weights": {"spam": [...], "ham": [...]},
      "biases": {"spam": 0.0, "ham": 0.5}
    }

Parsing happens in two steps so failures map onto distinct errors:
``json.loads`` (→ ParseError), then the pydantic schema plus cross-field
checks (→ ValidationError).  Chain/model dimension agreement is checked by
the pipeline, which owns both halves.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Annotated, Any, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from .errors import ParseError, ValidationError
from .linear import LinearModel
from .transformations import TRANSFORMATION_TYPES, HashedNGrams, Lowercase, Normalize, Transformation

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


class LowercaseSpec(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["lowercase"]


class HashedNGramsSpec(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["hashed_ngrams"]
    n: int = Field(ge=1, description="Maximum n-gram order")
    bucket_counts: list[Annotated[int, Field(ge=0)]] = Field(description="Bucket count per order 1..n")


class NormalizeSpec(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["normalize"]


TransformationSpec = Annotated[LowercaseSpec | HashedNGramsSpec | NormalizeSpec, Field(discriminator="type")]


class ModelDescriptor(BaseModel):
    """Top-level descriptor. Unknown top-level keys (locale, version, ...) are ignored."""

    model_config = ConfigDict(extra="ignore", strict=True)

    transformations: list[TransformationSpec] = Field(default_factory=list)
    weights: dict[str, list[float]]
    biases: dict[str, float]


@dataclass(frozen=True, slots=True)
class ParsedDescriptor:
    """Validated descriptor content, ready to become a pipeline."""

    transformations: tuple[Transformation, ...]
    model: LinearModel


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _decode(descriptor: str | bytes) -> dict[str, Any]:
    if isinstance(descriptor, bytes | bytearray):
        if not descriptor.strip():
            raise ParseError("descriptor is empty")
    elif not isinstance(descriptor, str) or not descriptor.strip():
        raise ParseError("descriptor is empty")
    try:
        raw = json.loads(descriptor)
    except (ValueError, RecursionError) as e:
        raise ParseError(f"descriptor is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ParseError(f"descriptor must be a JSON object, got {type(raw).__name__}")
    return raw


def _check_sections(raw: dict[str, Any]) -> None:
    """Friendlier messages for the common structural mistakes."""
    for section in ("weights", "biases"):
        if section not in raw:
            raise ValidationError(f"descriptor has no '{section}' section")
    transformations = raw.get("transformations", [])
    if isinstance(transformations, list):
        for position, entry in enumerate(transformations):
            kind = entry.get("type") if isinstance(entry, dict) else None
            if not isinstance(kind, str) or kind not in TRANSFORMATION_TYPES:
                raise ValidationError(f"transformation {position}: unknown type {kind!r}")
    weights, biases = raw["weights"], raw["biases"]
    if isinstance(weights, dict) and isinstance(biases, dict) and set(weights) != set(biases):
        raise ValidationError(
            f"weights and biases disagree on classes: "
            f"{sorted(set(weights) ^ set(biases))}"
        )


def _summarize(exc: pydantic.ValidationError) -> str:
    parts = []
    for err in exc.errors()[:3]:
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    more = exc.error_count() - len(parts)
    if more > 0:
        parts.append(f"... and {more} more")
    return "; ".join(parts)


def _build_stage(spec: LowercaseSpec | HashedNGramsSpec | NormalizeSpec) -> Transformation:
    match spec:
        case LowercaseSpec():
            return Lowercase()
        case HashedNGramsSpec(n=n, bucket_counts=counts):
            return HashedNGrams(n=n, bucket_counts=tuple(counts))
        case NormalizeSpec():
            return Normalize()
    raise ValidationError(f"unsupported transformation spec: {spec!r}")


def parse_descriptor(descriptor: str | bytes) -> ParsedDescriptor:
    """Parse and validate a descriptor document.

    Raises:
        ParseError: empty input, invalid JSON, or not a JSON object.
        ValidationError: missing sections, unknown stage types, bad parameters,
            mismatched class sets or non-uniform weight dimensions.
    """
    raw = _decode(descriptor)
    _check_sections(raw)
    try:
        spec = ModelDescriptor.model_validate(raw)
    except pydantic.ValidationError as e:
        raise ValidationError(f"invalid descriptor: {_summarize(e)}") from e
    transformations = tuple(_build_stage(s) for s in spec.transformations)
    model = LinearModel.from_mappings(spec.weights, spec.biases)
    return ParsedDescriptor(transformations=transformations, model=model)


def dump_descriptor(transformations: tuple[Transformation, ...] | list[Transformation], model: LinearModel) -> dict:
    """Inverse of :func:`parse_descriptor` (as a JSON-ready dict)."""
    stages: list[dict[str, Any]] = []
    for stage in transformations:
        entry: dict[str, Any] = {"type": stage.name}
        if isinstance(stage, HashedNGrams):
            entry["n"] = stage.n
            entry["bucket_counts"] = list(stage.bucket_counts)
        stages.append(entry)
    return {
        "transformations": stages,
        "weights": {c.label: list(c.weights.values) for c in model.classes},
        "biases": {c.label: c.bias for c in model.classes},
    }
