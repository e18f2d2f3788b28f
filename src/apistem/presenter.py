"""Presenter base class: declaration DSL, rendering engine and query helpers.

Subclasses declare themselves in a ``define`` classmethod, which runs once
when the class is created, against the class's own configuration node::

    class WorkspacePresenter(Presenter):
        @classmethod
        def define(cls):
            cls.presents(Workspace)
            cls.default_sort_order("updated_at:desc")
            cls.sort_order("updated_at", Workspace.updated_at)
            cls.filter("owned_by", lambda scope, user_id: scope.filter(Workspace.user_id == user_id))

            with cls.fields() as f:
                f.field("title", "string")
                f.field("description", "string", optional=True)

            with cls.associations() as a:
                a.association("tasks", Task)

The configuration node of a subclass is a live child of its parent
presenter's node, so declarations are inherited and may be overridden.
"""

from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.sql.elements import ClauseElement

from . import registry
from .database.scopes import column_names, identity_of, is_mapped, model_class_for, primary_key_for
from .dsl.association import Association
from .dsl.blocks import AssociationsBlock, ConditionalsBlock, FieldsBlock
from .dsl.configuration import Configuration
from .dsl.field import Field
from .errors import ConfigurationError
from .params import format_filter_value, parse_filters, parse_order
from .preloader import Preloader
from .query_strategies import FILTER_OR_SEARCH, STRATEGY_NAMES
from .render import RenderContext
from .utils.inflection import singularize
from .utils.time import datetimes_to_json

DEFAULT_SORT_ORDER = "updated_at:desc"


class FilterDefinition:
    """A declared filter: ``fn(scope, arg)`` or ``fn(scope, arg, params)``."""

    def __init__(self, name: str, fn: Optional[Callable] = None, default: Any = None, include_params: bool = False):
        self.name = name
        self.fn = fn
        self.default = default
        self.include_params = include_params

    def apply(self, scope, arg, params):
        if self.fn is not None:
            if self.include_params:
                return self.fn(scope, arg, params)
            return self.fn(scope, arg)

        model_class = model_class_for(scope)
        model_filter = getattr(model_class, self.name, None)
        if callable(model_filter) and not _is_sql_expression(model_filter):
            return model_filter(scope, arg)
        if self.name in column_names(model_class):
            return scope.filter(getattr(model_class, self.name) == arg)
        raise ConfigurationError(
            f"Filter '{self.name}' has no callable and {model_class.__name__} has no such classmethod or column"
        )

    def __repr__(self) -> str:
        return f"FilterDefinition({self.name!r}, default={self.default!r})"


def _is_sql_expression(value) -> bool:
    return isinstance(value, ClauseElement) or hasattr(value, "__clause_element__")


def _base_configuration() -> Configuration:
    configuration = Configuration()
    for key in ("preloads", "helpers"):
        configuration.array(key)
    for key in ("conditionals", "fields", "associations", "filters", "sort_orders"):
        configuration.nest(key)
    return configuration


@lru_cache(maxsize=None)
def _helper_class_for(mixins: Tuple[type, ...]) -> type:
    return type("PresenterHelper", mixins or (object,), {})


def _id_string(value) -> Optional[str]:
    return None if value is None else str(value)


class Presenter:
    """
    Base class for all presenters.

    Holds no per-request state: one instance per presented class lives in a
    ``PresenterCollection`` and every render builds its own ``RenderContext``.
    """

    configuration: Configuration = _base_configuration()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        parent = next(base.configuration for base in cls.__mro__[1:] if "configuration" in base.__dict__)
        cls.configuration = Configuration(parent)
        cls._defining = True
        try:
            if "define" in cls.__dict__:
                cls.define()
        finally:
            cls._defining = False
        cls.register()

    @classmethod
    def define(cls) -> None:
        """Override to declare fields, associations, filters and the rest."""

    @classmethod
    def register(cls) -> None:
        """Add this presenter to its namespace's collection for every presented class."""
        presented = cls.presented_classes()
        if presented:
            registry.add_presenter_class(cls, cls.presenter_namespace(), *presented)

    # DSL

    @classmethod
    def presents(cls, *classes) -> List[type]:
        """Declare the model classes this presenter presents (not inherited)."""
        cls.configuration.nonheritable("presents")
        presented = cls.configuration.array("presents")
        for klass in classes:
            if isinstance(klass, str):
                raise ConfigurationError("presents expects classes, not class names")
            if klass not in presented:
                presented.append(klass)
        if not cls.__dict__.get("_defining"):
            cls.register()
        return presented.to_list()

    @classmethod
    def presented_classes(cls) -> List[type]:
        presented = cls.configuration.get("presents")
        return presented.to_list() if presented is not None else []

    @classmethod
    def namespace(cls, name: str) -> None:
        cls.configuration["namespace"] = str(name)

    @classmethod
    def presenter_namespace(cls) -> str:
        return cls.configuration.get("namespace") or registry.get_settings().default_namespace

    @classmethod
    def json_key(cls, key: str) -> None:
        """Declare the output bucket key for presented records (not inherited)."""
        cls.configuration.nonheritable("json_key")
        cls.configuration["json_key"] = str(key)

    @classmethod
    def helper(cls, mixin: type) -> None:
        cls.configuration.array("helpers").append(mixin)

    @classmethod
    def preload(cls, *preloads) -> None:
        cls.configuration.array("preloads").extend(preloads)

    @classmethod
    def conditionals(cls) -> ConditionalsBlock:
        return ConditionalsBlock(cls.configuration.nest("conditionals"))

    @classmethod
    def fields(cls) -> FieldsBlock:
        return FieldsBlock(cls.configuration.nest("fields"))

    @classmethod
    def associations(cls) -> AssociationsBlock:
        return AssociationsBlock(cls.configuration.nest("associations"))

    @classmethod
    def filter(cls, name: str, fn: Optional[Callable] = None, default: Any = None, include_params: bool = False):
        """
        Declare a filter.

        Args:
            name: Filter name, requested as ``filters=name:value`` or ``name=value``
            fn: ``fn(scope, arg)``; ``fn(scope, arg, params)`` with include_params.
                Without it a same-named model classmethod ``(scope, arg)`` or
                column equality is used.
            default: Applied when the request does not set the filter
            include_params: Pass the request params as a third argument
        """
        definition = FilterDefinition(str(name), fn, default, include_params)
        cls.configuration.nest("filters")[str(name)] = definition
        return definition

    @classmethod
    def sort_order(cls, name: str, order: Any) -> None:
        """Declare a sort: a column, SQL expression, SQL string or ``fn(scope, direction)``."""
        if order is None:
            raise ConfigurationError(f"Sort order '{name}' needs a column, SQL string or callable")
        cls.configuration.nest("sort_orders")[str(name)] = order

    @classmethod
    def default_sort_order(cls, sort_string: str) -> None:
        cls.configuration["default_sort_order"] = str(sort_string)

    @classmethod
    def search(cls, fn: Callable[[str, Dict[str, Any]], Tuple[Optional[List[Any]], int]]) -> None:
        """Declare the search callable: ``fn(query, options) -> (ids or None, count)``."""
        cls.configuration["search"] = fn

    @classmethod
    def query_strategy(cls, strategy) -> None:
        """Declare ``filter_or_search``, ``filter_and_search``, ``paginate`` or ``fn(helper) -> name``."""
        if not callable(strategy) and str(strategy) not in STRATEGY_NAMES:
            raise ConfigurationError(f"Unknown query strategy: {strategy}")
        cls.configuration["query_strategy"] = strategy if callable(strategy) else str(strategy)

    @classmethod
    def evaluate_count(cls, fn: Callable[[Any], int]) -> None:
        """Count with ``fn(scope)`` instead of a count query."""
        cls.configuration["evaluate_count"] = fn

    # Rendering

    def present(self, model) -> Dict[str, Any]:
        """Raw structure for ``model``: literals, Field objects and Association markers."""
        fields = self.configuration["fields"]
        associations = self.configuration["associations"]
        if not fields and not associations:
            raise ConfigurationError(
                f"{type(self).__name__} declares no fields or associations; declare some or override present()"
            )

        struct: Dict[str, Any] = {}
        for name, field in fields.items():
            struct[name] = field
        for name, association in associations.items():
            struct[name] = association
        return struct

    def present_and_post_process(self, model, context: RenderContext, load_associations_into=None) -> Dict[str, Any]:
        struct = self.present(model)
        result = self.post_process(struct, model, context, load_associations_into)
        self.add_id(model, result)
        return datetimes_to_json(result)

    def post_process(self, struct, model, context: RenderContext, load_associations_into=None) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in struct.items():
            if isinstance(value, Association):
                self.load_association(result, key, value, model, context, load_associations_into)
            elif isinstance(value, Field):
                if value.presentable(model, context):
                    result[key] = value.run_on(model, context, context.helper_instance)
            elif isinstance(value, dict):
                result[key] = self.post_process(value, model, context, load_associations_into)
            else:
                result[key] = value
        return result

    def load_association(self, result, key, association: Association, model, context, load_associations_into=None) -> None:
        """
        Render one association of ``model`` into ``result``.

        Column-backed associations always emit ``<key>_id`` (plus ``<key>_type``
        when polymorphic). Otherwise a requested association emits
        ``<singular>_ids`` or ``<singular>_id``; unrequested ones are dropped.
        Requested associations are evaluated and their records collected into
        ``load_associations_into[key]``.
        """
        requested = key in context.association_objects_by_name
        method_name = association.method_name
        columns = column_names(type(model))
        id_attr = f"{method_name}_id" if method_name else None
        column_backed = id_attr is not None and id_attr in columns

        if column_backed:
            result[f"{key}_id"] = _id_string(getattr(model, id_attr))
            type_attr = f"{method_name}_type"
            if association.polymorphic and type_attr in columns:
                result[f"{key}_type"] = getattr(model, type_attr)

        if not requested:
            return

        value = association.run_on(model, context, context.helper_instance)
        records = _as_records(value)

        if load_associations_into is not None:
            load_associations_into.setdefault(key, []).extend(record for record in records if is_mapped(record))

        if column_backed:
            return

        singular = singularize(key)
        if isinstance(value, (list, tuple, set)) or (value is None and association.has_many(type(model))):
            result[f"{singular}_ids"] = [_id_string(identity_of(record)) for record in records]
        else:
            result[f"{singular}_id"] = _id_string(identity_of(value)) if value is not None else None

    def add_id(self, model, struct: Dict[str, Any]) -> None:
        primary_key = primary_key_for(type(model))
        if primary_key is not None:
            struct["id"] = _id_string(getattr(model, primary_key.key))
        elif hasattr(model, "id"):
            struct["id"] = _id_string(model.id)

    def group_present(
        self,
        models: List[Any],
        requested_associations: Optional[List[str]] = None,
        optional_fields: Optional[List[str]] = None,
        load_associations_into: Optional[Dict[str, List[Any]]] = None,
        helper_attributes: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Render a collection of models with one shared render context.

        Args:
            models: Records to render
            requested_associations: Association names to expand
            optional_fields: Optional field names to include
            load_associations_into: Dict collecting associated records per association name
            helper_attributes: Attributes set on each fresh helper instance

        Returns:
            One rendered dict per model, in order
        """
        models = list(models)
        associations = self.configuration["associations"]
        association_objects_by_name = {
            name: associations[name] for name in (requested_associations or []) if name in associations
        }

        context = RenderContext(
            models=models,
            optional_fields=list(optional_fields or []),
            conditionals=self.configuration["conditionals"],
            association_objects_by_name=association_objects_by_name,
        )

        if models:
            preloads = list(self.configuration["preloads"])
            for association in association_objects_by_name.values():
                if association.method_name:
                    preloads.append(association.method_name)
            Preloader.preload(models, preloads)
            self.custom_preload(models, list(association_objects_by_name))

        results = []
        for model in models:
            context.helper_instance = self.fresh_helper_instance(helper_attributes)
            results.append(self.present_and_post_process(model, context, load_associations_into))
        return results

    def custom_preload(self, models: List[Any], association_names: List[str]) -> None:
        """Hook run after preloading and before rendering; override to batch-load extra data."""

    def fresh_helper_instance(self, helper_attributes: Optional[Dict[str, Any]] = None):
        mixins = []
        for mixin in self.configuration["helpers"]:
            if mixin not in mixins:
                mixins.append(mixin)
        helper = _helper_class_for(tuple(mixins))()
        for name, value in (helper_attributes or {}).items():
            setattr(helper, name, value)
        return helper

    # Query helpers

    def allowed_associations(self, is_only_query: bool = False) -> Dict[str, Association]:
        """Associations a request may include; ``restrict_to_only`` ones need an ``only`` query."""
        return {
            name: association
            for name, association in self.configuration["associations"].items()
            if is_only_query or not association.restrict_to_only
        }

    def extract_filters(self, params, apply_default_filters: bool = True) -> Dict[str, Any]:
        """Declared filters present in the request (``filters`` wins over top-level params), plus defaults."""
        params = params or {}
        requested = parse_filters(params.get("filters"))
        extracted: Dict[str, Any] = {}
        for name, definition in self.configuration["filters"].items():
            if requested.get(name) is not None:
                value = requested[name]
            else:
                value = format_filter_value(params.get(name))
            if value is None and apply_default_filters:
                value = definition.default
            if value is not None:
                extracted[name] = value
        return extracted

    def apply_filters_to_scope(self, scope, params, apply_default_filters: bool = True):
        filters = self.configuration["filters"]
        for name, value in self.extract_filters(params, apply_default_filters).items():
            scope = filters[name].apply(scope, value, params)
        return scope

    def calculate_sort_name_and_direction(self, params=None) -> Tuple[str, str]:
        default_name, _, default_direction = (self.configuration.get("default_sort_order") or DEFAULT_SORT_ORDER).partition(":")
        sort_name, direction = parse_order((params or {}).get("order"))

        if not sort_name or sort_name not in self.configuration["sort_orders"]:
            sort_name, direction = default_name, default_direction
        return sort_name, "desc" if direction == "desc" else "asc"

    def apply_ordering_to_scope(self, scope, params):
        """Apply the requested (or default) sort, then the primary key as a tiebreaker."""
        sort_name, direction = self.calculate_sort_name_and_direction(params)
        order = self.configuration["sort_orders"].get(sort_name)

        if order is None:
            pass
        elif _is_sql_expression(order):
            scope = scope.order_by(order.desc() if direction == "desc" else order.asc())
        elif isinstance(order, str):
            scope = scope.order_by(text(f"{order} {direction}"))
        elif callable(order):
            scope = order(scope, direction)
        else:
            raise ConfigurationError(f"Sort order '{sort_name}' is not a column, SQL string or callable")

        primary_key = primary_key_for(model_class_for(scope))
        if primary_key is not None and sort_name != primary_key.key:
            scope = scope.order_by(primary_key.desc())
        return scope

    def searchable(self) -> bool:
        return self.configuration.get("search") is not None

    def run_search(self, query: str, search_options: Dict[str, Any]):
        return self.configuration["search"](query, search_options)

    def evaluates_count(self) -> bool:
        return self.configuration.get("evaluate_count") is not None

    def run_count(self, scope) -> int:
        return self.configuration["evaluate_count"](scope)

    def get_query_strategy(self) -> str:
        strategy = self.configuration.get("query_strategy") or FILTER_OR_SEARCH
        if callable(strategy):
            strategy = strategy(self.fresh_helper_instance())
        return str(strategy)


def _as_records(value) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]
