# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page-load adapter between a browser host and the classifier.

The host calls :meth:`PageTopicsObserver.on_page_loaded` after navigation
finishes and decides on its own what to do with the predictions (segment
tagging, ad targeting, ...).  Classification is best-effort: unsupported
pages and every failure yield an empty prediction map.

The host must not call this on a latency-sensitive thread or while holding
a lock; cost scales with page length.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from urllib.parse import urlparse

from .linear import PredictionMap
from .pipeline import TextClassificationPipeline

logger = logging.getLogger(__name__)

_CLASSIFIABLE_SCHEMES = frozenset({"http", "https"})

# Content-Type prefixes/types treated as text
_TEXTUAL_TYPES = ("text/", "application/xhtml+xml", "application/xml", "application/json")


@dataclass(frozen=True, slots=True)
class PageLoadEvent:
    """A finished page load as reported by the host."""

    url: str
    response_headers: Mapping[str, str] = field(default_factory=dict)
    page_text: str | bytes = ""
    title: str = ""


def _header(headers: Mapping[str, str], name: str) -> str | None:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def is_classifiable(event: PageLoadEvent) -> bool:
    """HTTP(S) pages whose Content-Type (when present) is textual."""
    try:
        scheme = urlparse(event.url).scheme.lower()
    except ValueError:
        return False
    if scheme not in _CLASSIFIABLE_SCHEMES:
        return False
    content_type = _header(event.response_headers, "content-type")
    if content_type is None:
        return True
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime.startswith(_TEXTUAL_TYPES)


def top_segment(predictions: PredictionMap) -> str | None:
    """Best-scoring label, or None for an empty result."""
    if not predictions:
        return None
    return max(predictions, key=predictions.__getitem__)


class PageTopicsObserver:
    """Feeds page-load events to a loaded pipeline."""

    def __init__(self, pipeline: TextClassificationPipeline) -> None:
        self._pipeline = pipeline

    @property
    def pipeline(self) -> TextClassificationPipeline:
        return self._pipeline

    def on_page_loaded(self, event: PageLoadEvent) -> PredictionMap:
        if not self._pipeline.is_loaded:
            logger.debug("Skipping %s: classifier not loaded", event.url)
            return {}
        if not is_classifiable(event):
            logger.debug("Skipping %s: not a classifiable page", event.url)
            return {}
        if event.page_text:
            return self._pipeline.classify_page(event.page_text)
        if event.title:
            return self._pipeline.get_top_predictions(event.title)
        return {}
