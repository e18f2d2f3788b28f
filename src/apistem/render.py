"""Per-render state threaded through every field and association evaluation."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .dsl.configuration import Configuration


def empty_lookup_cache() -> Dict[str, Dict[str, Any]]:
    return {"fields": {}, "associations": {}}


def empty_conditional_cache() -> Dict[str, Dict[Any, Any]]:
    return {"request": {}, "model": {}}


@dataclass
class RenderContext:
    """
    State for one "render this set of models" operation.

    The lookup cache is keyed by field/association name only, so a context
    must never be reused across two different model collections.
    """

    models: List[Any] = field(default_factory=list)
    optional_fields: List[str] = field(default_factory=list)
    conditionals: Configuration = field(default_factory=Configuration)
    helper_instance: Any = None
    association_objects_by_name: Dict[str, Any] = field(default_factory=dict)
    conditional_cache: Dict[str, Dict[Any, Any]] = field(default_factory=empty_conditional_cache)
    lookup_cache: Dict[str, Dict[str, Any]] = field(default_factory=empty_lookup_cache)
