"""Process-wide, namespaced presenter collections.

Populated at import time as presenter classes declare ``presents``; read-only
in steady state. ``reset`` exists for test isolation.
"""

from typing import Dict, Optional

from .config.settings import PresenterSettings
from .presenter_collection import PresenterCollection
from .utils.logging import get_logger

logger = get_logger(__name__)

_settings = PresenterSettings()
_collections: Dict[str, PresenterCollection] = {}


def configure(settings: PresenterSettings) -> None:
    """Install process-wide settings; existing collections pick them up too."""
    global _settings
    _settings = settings
    for collection in _collections.values():
        collection.settings = settings
    logger.debug("Configured presenter settings: %s", settings.model_dump())


def get_settings() -> PresenterSettings:
    return _settings


def presenter_collection(namespace: Optional[str] = None) -> PresenterCollection:
    """Return (creating on first use) the collection for ``namespace``."""
    namespace = namespace or _settings.default_namespace
    if namespace not in _collections:
        _collections[namespace] = PresenterCollection(namespace, settings=_settings)
    return _collections[namespace]


def add_presenter_class(presenter_class, namespace: Optional[str], *classes) -> None:
    presenter_collection(namespace).add_presenter_class(presenter_class, *classes)


def reset() -> None:
    """Forget every registered presenter and restore default settings."""
    global _settings
    _collections.clear()
    _settings = PresenterSettings()
