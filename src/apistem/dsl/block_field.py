"""Fields that own a nested configuration of sub-fields."""

from typing import Any, Dict, List

from ..errors import ConfigurationError
from .configuration import Configuration
from .field import DirectAccessor, Field

EXECUTABLE_OPTIONS = ("dynamic", "via", "lookup")


class BlockField(Field):
    """Base class for hash and array block fields."""

    def __init__(self, name: str, type: str, options: dict = None):
        super().__init__(name, type, options)
        self.configuration = Configuration()

    @classmethod
    def for_type(cls, name: str, type: str, options: dict = None) -> "BlockField":
        options = options or {}
        type_name = str(type)
        if type_name == "hash":
            return HashBlockField(name, type_name, options)
        if type_name == "array":
            if options.get("item_type") == "array":
                return NestedArrayField(name, type_name, options)
            return ArrayBlockField(name, type_name, options)
        raise ConfigurationError(f"Unknown block field type encountered: {type_name}")

    def declares_source(self) -> bool:
        return any(self.options.get(key) is not None for key in EXECUTABLE_OPTIONS)

    def use_parent_value(self, field: Field) -> bool:
        if "use_parent_value" not in field.options:
            return True
        return bool(field.options["use_parent_value"])

    def run_on(self, model, context, helper_instance=None):
        raise NotImplementedError("Override run_on in a BlockField subclass")

    def render_sub_fields(self, model, evaluated_model, context) -> Dict[str, Any]:
        """Render each presentable sub-field against the evaluated or parent model."""
        result: Dict[str, Any] = {}
        for field_name, field in self.configuration.items():
            if not field.presentable(model, context):
                continue
            model_for_field = evaluated_model if self.use_parent_value(field) else model
            result[field_name] = field.run_on(model_for_field, context, context.helper_instance)
        return result

    def evaluate_sequence_on(self, model, context, helper_instance) -> List[Any]:
        if isinstance(self.value_source, DirectAccessor) and not hasattr(model, self.name):
            raise ConfigurationError(
                f"Block field '{self.name}' needs dynamic, lookup or via, "
                f"or a '{self.name}' attribute on {type(model).__name__}"
            )
        value = self.evaluate_value_on(model, context, helper_instance)
        return [] if value is None else list(value)


class HashBlockField(BlockField):
    """
    Renders a dict of sub-fields.

    When the block declares ``dynamic``/``via``/``lookup`` or the model has an
    attribute with the block's name, that value becomes the evaluated model
    for the sub-fields. Otherwise the block is a plain grouping and every
    sub-field reads the original model.
    """

    def executable(self, model) -> bool:
        return self.declares_source() or hasattr(model, self.name)

    def run_on(self, model, context, helper_instance=None):
        if not self.executable(model):
            return self.render_sub_fields(model, model, context)

        evaluated_model = self.evaluate_value_on(model, context, helper_instance)
        return self.render_sub_fields(model, evaluated_model, context)


class ArrayBlockField(BlockField):
    """Renders one dict of sub-fields per element of the evaluated sequence."""

    def run_on(self, model, context, helper_instance=None):
        evaluated_models = self.evaluate_sequence_on(model, context, helper_instance)
        return [self.render_sub_fields(model, evaluated_model, context) for evaluated_model in evaluated_models]


class NestedArrayField(ArrayBlockField):
    """Array block declared with ``item_type="array"``; renders one dict per element like ``ArrayBlockField``."""
