"""Bulk association preloading for already-loaded models.

Accepts arbitrarily nested preload declarations, compacts and de-duplicates
them, drops names the model class does not map, and hands the rest to a
preload method. The following is a valid declaration::

    ["workspaces", {"workspaces": ["tasks"]}, "user"]

which is cleaned into ``{"workspaces": ["tasks"], "user": []}``.
"""

from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import object_session, selectinload

from .database.scopes import primary_key_for
from .dsl.association import mapped_relationships
from .utils.logging import get_logger

logger = get_logger(__name__)

PreloadMethod = Callable[[List[Any], Dict[str, list]], None]


def _loader_options(model_class, preloads) -> list:
    """Build ``selectinload`` chains for a cleaned preload mapping."""
    options = []
    relationships = mapped_relationships(model_class)
    for name, nested in preloads.items():
        relationship = relationships.get(name)
        if relationship is None:
            continue
        loader = selectinload(getattr(model_class, name))
        target = relationship.mapper.class_
        for child in _loader_options(target, _clean(nested)):
            options.append(loader.options(child))
        options.append(loader)
    return options


def _clean(preloads) -> Dict[str, list]:
    cleaned: Dict[str, list] = {}
    for preload in preloads or []:
        if preload is None:
            continue
        if isinstance(preload, dict):
            for key, value in preload.items():
                bucket = cleaned.setdefault(str(key), [])
                bucket.extend(value if isinstance(value, (list, tuple)) else [value])
        elif isinstance(preload, (list, tuple)):
            for key, value in _clean(preload).items():
                cleaned.setdefault(key, []).extend(value)
        else:
            cleaned.setdefault(str(preload), [])
    return cleaned


def sqlalchemy_preload(models: List[Any], preloads: Dict[str, list]) -> None:
    """
    Populate relationships on loaded models in one query per relationship.

    Re-selects the models by primary key with ``selectinload`` options; the
    session's identity map hands back the same instances with the unloaded
    relationships filled in.
    """
    session = object_session(models[0])
    if session is None:
        logger.debug("Skipping preload of detached %s models", type(models[0]).__name__)
        return

    model_class = type(models[0])
    options = _loader_options(model_class, preloads)
    if not options:
        return

    primary_key = primary_key_for(model_class)
    ids = [getattr(model, primary_key.key) for model in models]
    session.query(model_class).filter(primary_key.in_(ids)).options(*options).all()


class Preloader:
    """Cleans preload declarations and runs them against a list of models."""

    def __init__(
        self,
        models: List[Any],
        preloads: list,
        reflections: Optional[dict] = None,
        preload_method: Optional[PreloadMethod] = None,
    ):
        self.models = models
        self.preloads = [p for p in preloads if p is not None]
        self.reflections = reflections if reflections is not None else self._reflections_for(models)
        self.preload_method = preload_method or sqlalchemy_preload
        self.valid_preloads: Dict[str, list] = {}

    @classmethod
    def preload(cls, *args, **kwargs) -> Dict[str, list]:
        return cls(*args, **kwargs).call()

    def call(self) -> Dict[str, list]:
        self.clean()
        if self.valid_preloads and self.models:
            self.preload_method(self.models, self.valid_preloads)
            logger.info("Eager loaded %s.", ", ".join(self.valid_preloads))
        return self.valid_preloads

    def clean(self) -> None:
        self.valid_preloads = {
            name: nested for name, nested in _clean(self.preloads).items() if name in self.reflections
        }

    @staticmethod
    def _reflections_for(models: List[Any]) -> dict:
        if not models:
            return {}
        return mapped_relationships(type(models[0]))
