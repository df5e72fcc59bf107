# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for pagetopics entry points.

Library modules only ever call ``logging.getLogger(__name__)``; embedding
hosts keep full control of handlers.  Only entry points (the CLI) call
:func:`configure`, which installs one pagetopics-owned handler on the root
logger and leaves handlers installed by anyone else alone.

Results go to stdout, so log lines default to stderr.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

# Marks the handler installed by configure() so repeat calls replace it
_HANDLER_ATTR = "_pagetopics_handler"


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def _pre_chain(json_output: bool) -> list:
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        # ConsoleRenderer pretty-prints exc_info itself
        processors.append(structlog.processors.dict_tracebacks)
    processors.append(structlog.processors.UnicodeDecoder())
    return processors


def _renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=False)


def owned_handlers(root: logging.Logger | None = None) -> list[logging.Handler]:
    """Handlers on the root logger that :func:`configure` installed."""
    root = root or logging.getLogger()
    return [h for h in root.handlers if getattr(h, _HANDLER_ATTR, False)]


def configure(*, json_output: bool = False, level: str | int = "INFO", stream: TextIO | None = None) -> logging.Handler:
    """Route stdlib and structlog records through one structlog formatter.

    Args:
        json_output: JSON lines (``--json-logs``) instead of console text.
        level: Root level name or number; unknown names fall back to INFO.
        stream: Destination, ``sys.stderr`` by default.

    Returns:
        The installed handler.  Calling again replaces it.
    """
    pre_chain = _pre_chain(json_output)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(json_output)],
            foreign_pre_chain=pre_chain,
        )
    )
    setattr(handler, _HANDLER_ATTR, True)

    root = logging.getLogger()
    for old in owned_handlers(root):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))
    return handler
