"""Logging helpers built on loguru.

The library only emits through ``loguru.logger``; applications decide where
records go by calling ``configure_logging`` once at startup.

    from safesignal.log import configure_logging, log_context

    configure_logging("DEBUG")
    with log_context(user_id=uid, component="orchestrator") as log:
        log.info("evaluating")

Records never carry message text, only ids, categories, counts and lengths.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Any, Iterator

from loguru import logger

DEFAULT_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[component]} | {message}"
)


def _stderr(message: str) -> None:
    # Resolved per write so redirected or replaced streams are honoured.
    sys.stderr.write(message)


def configure_logging(level: str = "INFO", serialize: bool = False, sink: Any = None) -> int:
    """Replace loguru's default sink. Returns the new handler id."""
    logger.remove()
    logger.configure(extra={"component": "safesignal"})
    return logger.add(
        sink or _stderr,
        level=level.upper(),
        format=DEFAULT_FORMAT,
        serialize=serialize,
        backtrace=False,
        diagnose=False,
    )


@contextmanager
def log_context(**fields: Any) -> Iterator[Any]:
    """Contextualize nested records with *fields* and yield a bound logger."""
    clean = {k: v for k, v in fields.items() if v is not None}
    with logger.contextualize(**clean):
        yield logger.bind(**clean)
