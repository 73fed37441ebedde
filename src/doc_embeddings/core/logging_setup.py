"""
Logging setup for scripts and embedding hosts.

Library modules only create named loggers under ``doc_embeddings``; the
process that runs them decides where records go.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Attach a single stream handler to the ``doc_embeddings`` logger.

    Calling this more than once does not duplicate handlers.
    """
    logger = logging.getLogger("doc_embeddings")
    logger.setLevel((level or settings.log_level).upper())

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
