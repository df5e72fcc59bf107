# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""pagetopics exception hierarchy.

All pagetopics errors inherit from PageTopicsError, allowing callers
to catch the base class for any classifier failure or specific subclasses
for targeted handling.
"""

from __future__ import annotations


class PageTopicsError(Exception):
    """Base exception for all pagetopics errors."""


class ParseError(PageTopicsError):
    """Model descriptor is empty or not parseable as JSON."""


class ValidationError(PageTopicsError):
    """Descriptor or construction arguments are structurally valid but inconsistent."""


class DimensionMismatchError(ValidationError):
    """Feature vector length disagrees with the model (or chain) dimensionality."""

    def __init__(self, message: str, *, expected: int = 0, actual: int = 0) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class NotLoadedError(PageTopicsError):
    """Classification attempted on a pipeline that was never loaded."""
