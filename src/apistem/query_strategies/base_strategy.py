"""Shared options and pagination arithmetic for query strategies."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config.settings import PresenterSettings
from ..database.scopes import dialect_name, identity_of, model_class_for, primary_key_for
from ..errors import SearchUnavailableError
from ..params import is_present, parse_includes, parse_int
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class StrategyOptions:
    """Everything a strategy needs besides the scope itself."""

    params: Dict[str, Any]
    primary_presenter: Any
    table_name: Optional[str] = None
    default_per_page: int = 20
    default_max_per_page: int = 200
    default_max_filter_and_search_page: int = 500
    max_per_page: Optional[int] = None
    per_page: Optional[int] = None
    apply_default_filters: bool = True
    settings: PresenterSettings = field(default_factory=PresenterSettings)


class BaseStrategy:
    """
    Base class for strategies turning ``(scope, params)`` into ``(models, count)``.

    Subclasses implement ``execute(scope)``.
    """

    def __init__(self, options: StrategyOptions):
        self.options = options

    @property
    def params(self) -> Dict[str, Any]:
        return self.options.params

    @property
    def presenter(self):
        return self.options.primary_presenter

    def execute(self, scope) -> Tuple[List[Any], int]:
        raise NotImplementedError("Your strategy class must implement an `execute` method")

    def evaluate_scope(self, scope) -> List[Any]:
        """Load a scope's rows, plucking ordered ids first where the dialect benefits."""
        if dialect_name(scope) in self.options.settings.pluck_ids_dialects:
            model_class = model_class_for(scope)
            primary_key = primary_key_for(model_class)
            ids = [row[0] for row in scope.with_entities(primary_key).all()]
            return self.get_models(ids, scope)
        return scope.all()

    @staticmethod
    def get_models(ids: List[Any], scope) -> List[Any]:
        """Fetch rows by id without ordering, then restore the order of ``ids``."""
        if not ids:
            return []
        model_class = model_class_for(scope)
        primary_key = primary_key_for(model_class)
        positions = {id_value: index for index, id_value in enumerate(ids)}
        records = scope.session.query(model_class).filter(primary_key.in_(list(positions))).all()
        return sorted(records, key=lambda record: positions[getattr(record, primary_key.key)])

    def searching(self) -> bool:
        return is_present(self.params, "search") and self.presenter.searchable()

    def run_search(self, search_options: Dict[str, Any]) -> Tuple[List[Any], Any]:
        result_ids, count = self.presenter.run_search(self.params["search"], search_options)
        if result_ids is None:
            logger.warning("Search for %s is unavailable", self.options.table_name)
            raise SearchUnavailableError()
        return list(result_ids), count

    def max_per_page(self) -> int:
        return int(self.options.max_per_page or self.options.default_max_per_page)

    def calculate_per_page(self) -> int:
        requested = parse_int(self.params.get("per_page"))
        if requested is None:
            requested = parse_int(self.options.per_page)
        if requested is None:
            requested = self.options.default_per_page

        per_page = min(requested, self.max_per_page())
        if per_page < 1:
            per_page = self.options.default_per_page
        return per_page

    def calculate_page(self) -> int:
        return max(parse_int(self.params.get("page"), 1), 1)

    def calculate_limit(self) -> int:
        return min(max(parse_int(self.params.get("limit"), 0), 1), self.max_per_page())

    def calculate_offset(self) -> int:
        return max(parse_int(self.params.get("offset"), 0), 0)

    def uses_limit_and_offset(self) -> bool:
        return is_present(self.params, "limit") and is_present(self.params, "offset")

    def calculate_limit_and_offset(self) -> Tuple[int, int]:
        if self.uses_limit_and_offset():
            limit, offset = self.calculate_limit(), self.calculate_offset()
        else:
            limit = self.calculate_per_page()
            offset = limit * (self.calculate_page() - 1)
        logger.debug("Paginating %s with limit=%d offset=%d", self.options.table_name, limit, offset)
        return limit, offset

    def filter_includes(self) -> List[str]:
        """Requested include names that the presenter allows."""
        allowed = self.presenter.allowed_associations(is_present(self.params, "only"))
        return [include.name for include in parse_includes(self.params.get("include")) if include.name in allowed]

    @staticmethod
    def order_for_search(records: List[Any], ordered_search_ids: List[Any], with_ids: bool = False) -> List[Any]:
        """Re-sequence ``records`` to match search rank; records not ranked are dropped."""
        positions = {}
        for index, id_value in enumerate(ordered_search_ids):
            positions.setdefault(id_value, index)

        ranked = []
        for record in records:
            key = record if with_ids else identity_of(record)
            if key in positions:
                ranked.append((positions[key], record))
        return [record for _, record in sorted(ranked, key=lambda pair: pair[0])]
