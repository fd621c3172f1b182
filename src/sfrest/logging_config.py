from __future__ import annotations

import logging
from typing import Optional

_DEFAULT_FMT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%H:%M:%S"

# Third-party loggers that are too chatty below WARNING
_NOISY_LOGGERS = ("urllib3.connection", "urllib3.connectionpool")


def configure_logging(level: Optional[int], *, fmt: str = _DEFAULT_FMT) -> None:
    """Configure root logging once; later calls only change the level."""
    lvl = level if level is not None else logging.WARNING
    root = logging.getLogger()

    if root.handlers:
        root.setLevel(lvl)
    else:
        logging.basicConfig(level=lvl, format=fmt, datefmt=_DEFAULT_DATEFMT)

    # urllib3 logs every pooled connection at DEBUG
    quiet_level = logging.ERROR if lvl > logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
