"""Presenter lookup by class and the top-level ``presenting`` pipeline."""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.exc import NoResultFound

from .config.settings import PresenterSettings
from .database.scopes import identity_of, table_name_for
from .errors import ConfigurationError, PresenterNotFoundError
from .params import is_present, parse_fields, parse_includes
from .query_strategies import StrategyOptions, strategy_for
from .utils.logging import get_logger

logger = get_logger(__name__)


class PresenterCollection:
    """
    A class -> presenter map for one namespace.

    Each presented class gets its own presenter instance. Lookups walk the
    class's MRO, so subclasses of a presented class (single-table
    inheritance, for instance) resolve to the parent's presenter.
    """

    def __init__(self, namespace: str = "none", settings: Optional[PresenterSettings] = None):
        self.namespace = namespace
        self.settings = settings or PresenterSettings()
        self.presenters: Dict[type, Any] = {}

    @property
    def default_per_page(self) -> int:
        return self.settings.default_per_page

    @property
    def default_max_per_page(self) -> int:
        return self.settings.default_max_per_page

    @property
    def default_max_filter_and_search_page(self) -> int:
        return self.settings.default_max_filter_and_search_page

    def add_presenter_class(self, presenter_class, *classes) -> None:
        for klass in classes:
            self.presenters[klass] = presenter_class()

    def for_(self, klass):
        """Return the presenter for ``klass`` (a class, class name or json key), or None."""
        if isinstance(klass, str):
            resolved = self._class_named(klass)
            if resolved is None:
                return None
            klass = resolved

        for base in getattr(klass, "__mro__", (klass,)):
            if base in self.presenters:
                return self.presenters[base]
        return None

    def for_or_raise(self, klass):
        presenter = self.for_(klass)
        if presenter is None:
            raise PresenterNotFoundError(getattr(klass, "__name__", klass))
        return presenter

    def json_key_for(self, klass) -> str:
        """Bucket key for a class: its presenter's ``json_key``, else its table name."""
        presenter = self.for_(klass)
        if presenter is not None:
            declared = presenter.configuration.get("json_key")
            if declared:
                return str(declared)

        table_name = table_name_for(klass)
        if table_name is None:
            raise ConfigurationError(f"Cannot determine a json key for {getattr(klass, '__name__', klass)}")
        return table_name

    def class_for(self, name) -> type:
        """Resolve a presented class from a class, class name, table name or json key."""
        if isinstance(name, type):
            return name
        klass = self._class_named(str(name))
        if klass is None:
            raise PresenterNotFoundError(name)
        return klass

    def presenting(
        self,
        name,
        scope,
        params: Optional[Mapping[str, Any]] = None,
        model=None,
        as_: Optional[str] = None,
        max_per_page: Optional[int] = None,
        per_page: Optional[int] = None,
        apply_default_filters: bool = True,
        raise_on_empty: bool = False,
        helper_attributes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Query, paginate and render a resource with its requested includes.

        Args:
            name: Presented class, or its class name / table name / json key
            scope: SQLAlchemy query selecting the presented class
            params: Untrusted request params (page, per_page, limit, offset,
                only, include, fields, filters, order, search)
            model: Presented class, when it differs from ``name``
            as_: Top-level key for the primary records
            max_per_page: Overrides the settings' max page size
            per_page: Page size used when params carry none
            apply_default_filters: Apply filters declared with a default
            raise_on_empty: Raise NoResultFound when nothing matches
            helper_attributes: Attributes set on every helper instance

        Returns:
            ``{"count": n, <key>: [...], <include key>: [...], ...}``

        Raises:
            PresenterNotFoundError: If no presenter handles the class
            SearchUnavailableError: If search was requested and is unavailable
            NoResultFound: If ``raise_on_empty`` and no records matched
        """
        params = dict(params or {})
        presented_class = self.class_for(model or name)
        presenter = self.for_or_raise(presented_class)

        options = StrategyOptions(
            params=params,
            primary_presenter=presenter,
            table_name=table_name_for(presented_class),
            default_per_page=self.default_per_page,
            default_max_per_page=self.default_max_per_page,
            default_max_filter_and_search_page=self.default_max_filter_and_search_page,
            max_per_page=max_per_page,
            per_page=per_page,
            apply_default_filters=apply_default_filters,
            settings=self.settings,
        )
        models, count = strategy_for(options).execute(scope)

        if raise_on_empty and not models:
            raise NoResultFound(f"No {presented_class.__name__} records matched")

        key = as_ or self.json_key_for(presented_class)
        allowed_associations = presenter.allowed_associations(is_present(params, "only"))
        includes = [include for include in parse_includes(params.get("include")) if include.name in allowed_associations]

        struct: Dict[str, Any] = {"count": count, key: []}
        for include in includes:
            include_key = allowed_associations[include.name].json_key(self)
            if include_key:
                struct.setdefault(include_key, [])

        associated: Dict[str, List[Any]] = {}
        struct[key] = presenter.group_present(
            models,
            [include.name for include in includes],
            optional_fields=parse_fields(params.get("fields")),
            load_associations_into=associated,
            helper_attributes=helper_attributes,
        )

        buckets, optional_fields = self._bucket_associated(includes, allowed_associations, associated)
        for bucket_key, records in buckets.items():
            struct.setdefault(bucket_key, [])
            for klass, group in _group_by_class(records):
                struct[bucket_key].extend(
                    self.for_or_raise(klass).group_present(
                        group,
                        [],
                        optional_fields=optional_fields.get(bucket_key, []),
                        helper_attributes=helper_attributes,
                    )
                )

        logger.debug(
            "Presented %d %s (count=%s) with includes %s",
            len(models),
            key,
            count,
            [include.name for include in includes],
        )
        return struct

    def _bucket_associated(self, includes, allowed_associations, associated) -> Tuple[Dict[str, list], Dict[str, list]]:
        """Partition included records by bucket key, de-duplicated, in first-seen order."""
        buckets: Dict[str, list] = {}
        seen: Dict[str, set] = {}
        optional_fields: Dict[str, List[str]] = {}

        for include in includes:
            association = allowed_associations[include.name]
            declared_key = association.json_key(self)
            touched = set()
            for record in associated.get(include.name, []):
                bucket_key = declared_key or self.json_key_for(type(record))
                identity = (type(record), identity_of(record))
                bucket_seen = seen.setdefault(bucket_key, set())
                if identity not in bucket_seen:
                    bucket_seen.add(identity)
                    buckets.setdefault(bucket_key, []).append(record)
                touched.add(bucket_key)
            if declared_key:
                touched.add(declared_key)

            for bucket_key in touched:
                fields = optional_fields.setdefault(bucket_key, [])
                for field_name in include.optional_fields:
                    if field_name not in fields:
                        fields.append(field_name)

        return buckets, optional_fields

    def _class_named(self, name: str) -> Optional[type]:
        for klass, presenter in self.presenters.items():
            if name in (klass.__name__, table_name_for(klass), presenter.configuration.get("json_key")):
                return klass
        return None


def _group_by_class(records: List[Any]) -> List[Tuple[type, List[Any]]]:
    groups: Dict[type, List[Any]] = {}
    for record in records:
        groups.setdefault(type(record), []).append(record)
    return list(groups.items())
