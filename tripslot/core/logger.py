"""
Logging helpers.

Services obtain a module logger via ``setup_logger(__name__)``. Handlers are
attached once to the package root logger so child loggers propagate to it.
"""

import logging
import sys

from tripslot.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "tripslot"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        level_name = get_settings().LOG_LEVEL.upper()
        root.setLevel(getattr(logging, level_name, logging.INFO))
    return root


def setup_logger(name: str) -> logging.Logger:
    """Return a logger under the tripslot hierarchy."""
    _configure_root()
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


logger = setup_logger(ROOT_LOGGER_NAME)
