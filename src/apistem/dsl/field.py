"""Presentable attributes and the value sources that compute them."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from ..errors import ConfigurationError, LookupFetchError


@dataclass(frozen=True)
class DirectAccessor:
    """Read the attribute named like the field."""

    name: str

    def evaluate(self, model, context, helper_instance, owner):
        return getattr(model, self.name)


@dataclass(frozen=True)
class AlternateAccessor:
    """Read an attribute under a different name (``via``)."""

    name: str

    def evaluate(self, model, context, helper_instance, owner):
        return getattr(model, self.name)


@dataclass(frozen=True)
class Computed:
    """Call ``fn(helper, model)`` (``dynamic``)."""

    fn: Callable[[Any, Any], Any]

    def evaluate(self, model, context, helper_instance, owner):
        return self.fn(helper_instance, model)


@dataclass(frozen=True)
class Batched:
    """
    Compute once for the whole collection (``lookup``), then fetch per model.

    ``fn(helper, models)`` runs at most once per render pass for a given
    owner; the result lives in ``context.lookup_cache[owner.lookup_key][owner.name]``.
    ``fetch(helper, lookup, model)`` extracts a single model's value;
    without it the lookup is indexed by ``model.id``.
    """

    fn: Callable[[Any, List[Any]], Any]
    fetch: Optional[Callable[[Any, Any, Any], Any]] = None

    def evaluate(self, model, context, helper_instance, owner):
        cache = context.lookup_cache.setdefault(owner.lookup_key, {})
        if owner.name not in cache:
            lookup = self.fn(helper_instance, context.models)
            if self.fetch is None and not hasattr(lookup, "__getitem__"):
                raise LookupFetchError(
                    f"The lookup for '{owner.name}' must return a mapping keyed by model id, "
                    "or declare lookup_fetch=lambda helper, lookup, model: ..."
                )
            cache[owner.name] = lookup

        lookup = cache[owner.name]
        if self.fetch is not None:
            return self.fetch(helper_instance, lookup, model)
        if isinstance(lookup, Mapping):
            return lookup.get(model.id)
        return lookup[model.id]


def value_source_for(name: str, options: dict):
    """Pick the value source for a field or association from its options."""
    if options.get("dynamic") is not None and options.get("lookup") is not None:
        raise ConfigurationError(f"'{name}' cannot declare both dynamic and lookup")
    if options.get("lookup_fetch") is not None and options.get("lookup") is None:
        raise ConfigurationError(f"'{name}' declares lookup_fetch without lookup")

    if options.get("lookup") is not None:
        return Batched(options["lookup"], options.get("lookup_fetch"))
    if options.get("dynamic") is not None:
        return Computed(options["dynamic"])
    if options.get("via"):
        return AlternateAccessor(str(options["via"]))
    return DirectAccessor(name)


def _conditional_names(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value if v is not None]
    return [str(value)]


class Field:
    """
    One presentable attribute.

    Options: ``via``, ``dynamic``, ``lookup``, ``lookup_fetch``, ``optional``,
    ``if`` (conditional name or names, all must match), ``item_type``,
    ``use_parent_value`` and ``info``.
    """

    lookup_key = "fields"

    def __init__(self, name: str, type: str, options: Optional[dict] = None):
        self.name = str(name)
        self.type = str(type)
        self.options = dict(options or {})
        self.conditionals = _conditional_names(self.options.get("if"))
        self.value_source = value_source_for(self.name, self.options)

    @property
    def optional(self) -> bool:
        return bool(self.options.get("optional"))

    @property
    def item_type(self) -> Optional[str]:
        return self.options.get("item_type")

    @property
    def info(self) -> Optional[str]:
        return self.options.get("info")

    @property
    def method_name(self) -> Optional[str]:
        """Accessor read from the model, or None for computed values."""
        if isinstance(self.value_source, (DirectAccessor, AlternateAccessor)):
            return self.value_source.name
        return None

    def is_conditional(self) -> bool:
        return len(self.conditionals) > 0

    def run_on(self, model, context, helper_instance=None):
        return self.evaluate_value_on(model, context, helper_instance)

    def evaluate_value_on(self, model, context, helper_instance=None):
        return self.value_source.evaluate(model, context, helper_instance, self)

    def presentable(self, model, context) -> bool:
        return self.optioned(context.optional_fields) and self.conditionals_match(model, context)

    def optioned(self, requested_optional_fields) -> bool:
        return not self.optional or self.name in (requested_optional_fields or [])

    def conditionals_match(self, model, context) -> bool:
        if not self.is_conditional():
            return True

        for name in self.conditionals:
            conditional = context.conditionals.get(name)
            if conditional is None:
                raise ConfigurationError(f"Field '{self.name}' references unknown conditional '{name}'")
            if not conditional.matches(model, context.helper_instance, context.conditional_cache):
                return False
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.type!r})"
