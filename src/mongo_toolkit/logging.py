"""Logging setup helpers for mongo-toolkit."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "mongo_toolkit"


def configure_logging(debug: bool = False) -> None:
    # Logs go to stderr so ``--json`` output on stdout stays parseable.
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or LOGGER_NAME)
