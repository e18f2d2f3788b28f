"""Builder objects that populate a presenter's configuration.

Each builder holds the configuration node it writes to and the options
merged in by enclosing ``with_options`` calls. Builders are also context
managers so declarations can be grouped visually::

    with cls.fields() as f:
        f.field("title", "string")
        with f.fields("permissions") as permissions:
            permissions.field("access_level", "integer", dynamic=lambda helper, model: 2)
"""

from typing import Any, Callable, Optional

from .association import Association
from .block_field import BlockField
from .conditional import MODEL, REQUEST, Conditional
from .configuration import Configuration
from .field import Field


def _normalize_options(options: dict) -> dict:
    # ``if`` is a keyword, so callers spell it ``if_``
    options = dict(options)
    if "if_" in options:
        options["if"] = options.pop("if_")
    return options


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def smart_merge(block_options: dict, options: dict) -> dict:
    """Merge options, unioning ``if`` clauses instead of overriding them."""
    if_clause = []
    for name in _as_list(block_options.get("if")) + _as_list(options.get("if")):
        if name not in if_clause:
            if_clause.append(name)
    merged = {**block_options, **options}
    if if_clause:
        merged["if"] = if_clause
    return merged


class BaseBlock:
    def __init__(self, configuration: Configuration, block_options: Optional[dict] = None):
        self.configuration = configuration
        self.block_options = block_options or {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def with_options(self, **options) -> "BaseBlock":
        return self.descend(type(self), self.configuration, _normalize_options(options))

    def descend(self, klass, configuration: Configuration, new_options: Optional[dict] = None):
        return klass(configuration, smart_merge(self.block_options, new_options or {}))


class ConditionalsBlock(BaseBlock):
    """Declares conditionals into the ``conditionals`` node."""

    def request(self, name: str, action: Callable[[Any], Any], info: Optional[str] = None) -> Conditional:
        conditional = Conditional(name, REQUEST, action, info)
        self.configuration[name] = conditional
        return conditional

    def model(self, name: str, action: Callable[[Any, Any], Any], info: Optional[str] = None) -> Conditional:
        conditional = Conditional(name, MODEL, action, info)
        self.configuration[name] = conditional
        return conditional


class FieldsBlock(BaseBlock):
    """Declares fields into a ``fields`` node (or a block field's own node)."""

    def field(self, name: str, type: str, **options) -> Field:
        field = Field(name, type, smart_merge(self.block_options, _normalize_options(options)))
        self.configuration[name] = field
        return field

    def fields(self, name: str, type: str = "hash", **options) -> "FieldsBlock":
        """Declare a block field and return a builder for its sub-fields."""
        block_field = BlockField.for_type(name, type, smart_merge(self.block_options, _normalize_options(options)))
        self.configuration[name] = block_field
        return self.descend(FieldsBlock, block_field.configuration)


class AssociationsBlock(BaseBlock):
    """Declares associations into the ``associations`` node."""

    def association(self, name: str, target_class: Any, **options) -> Association:
        association = Association(name, target_class, {**self.block_options, **_normalize_options(options)})
        self.configuration[name] = association
        return association
