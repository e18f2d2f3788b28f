"""Static checks over a presenter class's declarations."""

from typing import List

from . import registry
from .dsl.block_field import BlockField
from .dsl.configuration import Configuration


class PresenterValidator:
    """
    Collects declaration problems a presenter would otherwise only hit at render time.

    Usage:
        errors = PresenterValidator(WorkspacePresenter).validate()
    """

    def __init__(self, presenter_class):
        self.presenter_class = presenter_class
        self.configuration = presenter_class.configuration
        self.errors: List[str] = []

    def validate(self) -> List[str]:
        self.errors = []
        self.preloads_exist()
        self.fields_exist(self.configuration["fields"])
        self.associations_exist()
        self.conditionals_exist(self.configuration["fields"])
        self.default_sort_is_used()
        self.default_sort_matches_sort_order()
        self.json_key_is_provided()
        return list(self.errors)

    def is_valid(self) -> bool:
        return not self.validate()

    def _presented_classes_respond_to(self, name: str) -> bool:
        return all(hasattr(klass, name) for klass in self.presenter_class.presented_classes())

    def preloads_exist(self) -> None:
        for preload in self.configuration["preloads"]:
            names = list(preload.keys()) if isinstance(preload, dict) else [preload]
            for name in names:
                if not self._presented_classes_respond_to(str(name)):
                    self.errors.append(f"preload: not all presented classes respond to '{name}'")

    def fields_exist(self, fields: Configuration) -> None:
        for name, field in fields.items():
            if isinstance(field, BlockField):
                if field.declares_source() and field.method_name and not self._presented_classes_respond_to(field.method_name):
                    self.errors.append(
                        f"fields: '{name}' is not valid because not all presented classes respond to '{field.method_name}'"
                    )
                continue
            method_name = field.method_name
            if method_name and not self._presented_classes_respond_to(method_name):
                self.errors.append(
                    f"fields: '{name}' is not valid because not all presented classes respond to '{method_name}'"
                )

    def associations_exist(self) -> None:
        collection = registry.presenter_collection(self.presenter_class.presenter_namespace())
        for name, association in self.configuration["associations"].items():
            if not association.polymorphic and collection.for_(association.target_class) is None:
                target = getattr(association.target_class, "__name__", association.target_class)
                self.errors.append(
                    f"associations: '{name}' is not valid because no presenter could be found for the {target} class"
                )

            method_name = association.method_name
            if method_name and not self._presented_classes_respond_to(method_name):
                self.errors.append(
                    f"associations: '{name}' is not valid because not all presented classes respond to '{method_name}'"
                )

    def conditionals_exist(self, fields: Configuration) -> None:
        conditionals = self.configuration["conditionals"]
        for name, field in fields.items():
            if any(conditional not in conditionals for conditional in field.conditionals):
                self.errors.append(
                    f"fields: '{name}' is not valid because one or more of the specified conditionals does not exist"
                )
            if isinstance(field, BlockField):
                self.conditionals_exist(field.configuration)

    def default_sort_is_used(self) -> None:
        if len(self.configuration["sort_orders"]) > 0 and not self.configuration.get("default_sort_order"):
            self.errors.append("default_sort_order: a default_sort_order is highly recommended if any sort_orders are declared")

    def default_sort_matches_sort_order(self) -> None:
        default_sort_order = self.configuration.get("default_sort_order")
        if default_sort_order:
            sort_name = default_sort_order.split(":")[0]
            if sort_name not in self.configuration["sort_orders"]:
                self.errors.append(
                    f"default_sort_order: the declared default_sort_order ('{sort_name}') does not match an existing sort_order"
                )

    def json_key_is_provided(self) -> None:
        if not self.configuration.get("json_key") and len(self.presenter_class.presented_classes()) > 1:
            self.errors.append("json_key: a json_key must be provided when multiple classes are presented")
