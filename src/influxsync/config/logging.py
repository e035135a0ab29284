"""Logging setup for applications embedding influxsync."""

from __future__ import annotations

import logging

_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(*, level: int | str = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger for a reconciliation run.

    ``level`` takes a number or a level name such as ``"debug"``. The HTTP
    libraries' own request logs are held at WARNING; the gateway logs every call
    at DEBUG already. Pass ``force=True`` when an embedding application has
    configured the root logger before.
    """

    logging.basicConfig(
        level=level.upper() if isinstance(level, str) else level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
