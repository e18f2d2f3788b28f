"""Declarative presenters: query, paginate and render SQLAlchemy models as JSON-safe dicts."""

from .config import PresenterSettings, load_settings
from .dsl import POLYMORPHIC
from .errors import (
    ApistemError,
    ConfigurationError,
    LookupFetchError,
    PresenterNotFoundError,
    SearchUnavailableError,
)
from .presenter import Presenter
from .presenter_collection import PresenterCollection
from .registry import add_presenter_class, configure, presenter_collection, reset
from .validator import PresenterValidator

__all__ = [
    "ApistemError",
    "ConfigurationError",
    "LookupFetchError",
    "POLYMORPHIC",
    "Presenter",
    "PresenterCollection",
    "PresenterNotFoundError",
    "PresenterSettings",
    "PresenterValidator",
    "SearchUnavailableError",
    "add_presenter_class",
    "configure",
    "load_settings",
    "presenter_collection",
    "reset",
]
