"""Logging sinks for per-attempt warnings.

A sink is anything with a ``warning(msg)`` method: a ``logging.Logger`` or a
``logging.LoggerAdapter``. A writable text stream is also accepted and gets
its own logger that is not registered with the logging manager, so it never
interferes with other runs or tests.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any

logger = logging.getLogger("stubborn")

_stream_ids = itertools.count(1)


def default_sink() -> logging.LoggerAdapter:
    """Create a fresh sink over the package logger"""
    return logging.LoggerAdapter(logger, {})


def as_sink(dest: Any) -> Any:
    """Adapt a logging destination into a sink

    Args:
        dest: Logger, LoggerAdapter, or a text stream with ``write``

    Returns:
        Object with a ``warning`` method

    Raises:
        TypeError: If dest is neither a logger nor a stream
    """
    if hasattr(dest, "warning"):
        return dest
    if hasattr(dest, "write"):
        stream_logger = logging.Logger(f"stubborn.stream.{next(_stream_ids)}", logging.DEBUG)
        handler = logging.StreamHandler(dest)
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        stream_logger.addHandler(handler)
        stream_logger.propagate = False
        return stream_logger
    raise TypeError(f"Unsupported logging destination: {type(dest).__name__}")


def emit_warning(sink: Any, message: str) -> None:
    """Send a warning line to the sink, best effort"""
    try:
        sink.warning(message)
    except Exception as e:
        logger.debug(f"Logging sink failed to write warning: {e}", exc_info=True)
