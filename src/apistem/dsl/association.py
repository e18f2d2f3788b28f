"""Presentable relations to other resources."""

from typing import Any, Optional

from sqlalchemy import inspect as sa_inspect

from ..utils.inflection import is_plural
from .field import AlternateAccessor, DirectAccessor, value_source_for

POLYMORPHIC = "polymorphic"

HAS_MANY = "has_many"


def mapped_relationships(klass) -> dict:
    """Relationship properties of a mapped class, or ``{}`` for plain classes."""
    mapper = sa_inspect(klass, raiseerr=False)
    if mapper is None or not hasattr(mapper, "relationships"):
        return {}
    return dict(mapper.relationships.items())


class Association:
    """
    A declared relation, renderable as id references or as an included bucket.

    ``target_class`` is a mapped class or ``POLYMORPHIC``. Options: ``via``,
    ``dynamic(helper, model)``, ``lookup``/``lookup_fetch``, ``json_key``,
    ``type`` (``has_many``, ``has_one``, ``belongs_to``), ``restrict_to_only``
    and ``info``.
    """

    lookup_key = "associations"

    def __init__(self, name: str, target_class: Any, options: Optional[dict] = None):
        self.name = str(name)
        self.target_class = target_class
        self.options = dict(options or {})
        self.value_source = value_source_for(self.name, self.options)

    @property
    def polymorphic(self) -> bool:
        return self.target_class == POLYMORPHIC

    @property
    def restrict_to_only(self) -> bool:
        return bool(self.options.get("restrict_to_only"))

    @property
    def info(self) -> Optional[str]:
        return self.options.get("info")

    @property
    def method_name(self) -> Optional[str]:
        if isinstance(self.value_source, (DirectAccessor, AlternateAccessor)):
            return self.value_source.name
        return None

    def has_many(self, model_class=None) -> bool:
        """Cardinality: explicit ``type``, then the mapped relationship, then the name."""
        declared = self.options.get("type")
        if declared is not None:
            return str(declared) == HAS_MANY

        if model_class is not None and self.method_name:
            relationship = mapped_relationships(model_class).get(self.method_name)
            if relationship is not None:
                return bool(relationship.uselist)

        return is_plural(self.name)

    def json_key(self, collection=None) -> Optional[str]:
        """Output bucket key, or None for polymorphic targets resolved per record."""
        if self.options.get("json_key"):
            return str(self.options["json_key"])
        if self.polymorphic:
            return None
        if collection is not None:
            return collection.json_key_for(self.target_class)
        return getattr(self.target_class, "__tablename__", None)

    def run_on(self, model, context, helper_instance=None):
        return self.value_source.evaluate(model, context, helper_instance, self)

    def __repr__(self) -> str:
        target = self.target_class if self.polymorphic else getattr(self.target_class, "__name__", self.target_class)
        return f"Association({self.name!r}, {target!r})"
