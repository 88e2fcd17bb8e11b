"""Logging helpers for the stream invoker.

Every record goes to stderr. When a ``log_path`` is configured, a second
handler writes the transitions log: a short operator-facing history of the
tailer's lifecycle (bootstrap, stream/shard resolution, state changes,
iterator remints, signals) plus every warning and error. Routine per-cycle
chatter such as "Polling..." stays out of that file so it can be tailed to see
why a tailer stopped or restarted.
"""

from __future__ import annotations

import logging
from pathlib import Path


class TransitionFilter(logging.Filter):
    """Pass WARNING and above, or records logged with ``extra={"transition": True}``."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if record.levelno >= logging.WARNING:
            return True
        if getattr(record, "transition", False):
            return True
        return False


def configure_logging(level: int = logging.INFO, log_path: str | None = None) -> None:
    """Configure default logging if no handlers are present."""
    root = logging.getLogger()
    if root.handlers:
        return
    handlers: list[logging.Handler] = []
    handlers.append(logging.StreamHandler())

    if log_path:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        transition_handler = logging.FileHandler(path, encoding="utf-8")
        transition_handler.addFilter(TransitionFilter())
        handlers.append(transition_handler)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )
