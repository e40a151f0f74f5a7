"""Debug log sink used by the SDK internals."""

from __future__ import annotations

import logging


logger = logging.getLogger("fluxrate")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
PREFIX = "[FluxRate] "


def enable_debug_logging() -> None:
    """Make SDK debug lines visible on stderr.

    Leaves existing handler setups alone.
    """
    logger.setLevel(logging.DEBUG)
    if not logger.handlers and not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


class DebugLog:
    """
    Single-line debug sink.

    Calls are no-ops unless enabled; never raises into the caller.
    """

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        if enabled:
            enable_debug_logging()

    def __call__(self, message: str) -> None:
        if self.enabled:
            logger.debug(PREFIX + message)
