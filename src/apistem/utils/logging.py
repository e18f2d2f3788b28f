"""Logger factory shared by every apistem module."""

import logging

_ROOT_LOGGER_NAME = "apistem"


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger namespaced under ``apistem``.

    Handlers are left to the host application; a ``NullHandler`` on the
    package root keeps library logging silent unless configured.

    Args:
        name: Usually ``__name__`` of the calling module

    Returns:
        Logger instance
    """
    if name != _ROOT_LOGGER_NAME and not name.startswith(_ROOT_LOGGER_NAME + "."):
        name = f"{_ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


logging.getLogger(_ROOT_LOGGER_NAME).addHandler(logging.NullHandler())
