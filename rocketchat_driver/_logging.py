# =============================================================================
# Rocket.Chat Python Driver -- Logging
# =============================================================================
#
# All modules log through ``logger``.  Adapters that bring their own logger
# (hubot-style bots, frameworks with structured logging) swap it in with
# ``replace_log`` and every module picks up the replacement immediately.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

LOGGER_NAME = "rocketchat_driver"


class _LoggerProxy:
    """Forwards logging calls to the currently active logger."""

    def __init__(self, target: Any) -> None:
        self._target = target

    @property
    def target(self) -> Any:
        return self._target

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._target.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._target.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._target.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._target.error(msg, *args, **kwargs)


logger = _LoggerProxy(logging.getLogger(LOGGER_NAME))


def replace_log(external: Any) -> None:
    """Route driver logging to *external*.

    Any object with ``debug``, ``info``, ``warning`` and ``error`` methods
    accepting printf-style arguments works, ``logging.Logger`` included.
    """
    missing = [
        name
        for name in ("debug", "info", "warning", "error")
        if not callable(getattr(external, name, None))
    ]
    if missing:
        raise TypeError(f"Logger is missing methods: {', '.join(missing)}")
    logger._target = external


def reset_log() -> None:
    """Restore the package logger."""
    logger._target = logging.getLogger(LOGGER_NAME)
