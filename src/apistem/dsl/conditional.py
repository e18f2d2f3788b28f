"""Named boolean gates controlling field visibility."""

from typing import Any, Callable, Optional

from ..errors import ConfigurationError

MODEL = "model"
REQUEST = "request"


class Conditional:
    """
    A named predicate, evaluated per model or once per render pass.

    ``model`` actions are called as ``action(helper, model)`` and ``request``
    actions as ``action(helper)``. Results are memoized in the render's
    conditional cache: request results by name, model results by
    ``(name, id(model))`` so two models in one batch never share an outcome.
    """

    def __init__(self, name: str, type: str, action: Callable[..., Any], info: Optional[str] = None):
        if type not in (MODEL, REQUEST):
            raise ConfigurationError(f"Unknown conditional type {type!r} for '{name}'")
        self.name = name
        self.type = type
        self.action = action
        self.info = info

    def matches(self, model: Any, helper_instance: Any, conditional_cache: dict) -> bool:
        if self.type == REQUEST:
            cache = conditional_cache.setdefault(REQUEST, {})
            if self.name not in cache:
                cache[self.name] = bool(self.action(helper_instance))
            return cache[self.name]

        cache = conditional_cache.setdefault(MODEL, {})
        key = (self.name, id(model))
        if key not in cache:
            cache[key] = bool(self.action(helper_instance, model))
        return cache[key]

    def __repr__(self) -> str:
        return f"Conditional({self.name!r}, {self.type!r})"
