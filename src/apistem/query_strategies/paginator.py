"""Page id plucking, model refetching and total counting.

Counting is negotiated per request, first match wins:

1. ``PresenterCount``: the presenter declared ``evaluate_count``.
2. ``FoundRowsCount``: ``mysql_use_calc_found_rows`` is set and the scope
   runs on MySQL; the page's id query carries ``SQL_CALC_FOUND_ROWS`` and
   the total is read back with ``SELECT FOUND_ROWS()``.
3. ``QueryCount``: ``COUNT(DISTINCT <primary key>)`` over the unpaginated scope.
"""

from typing import Any, List, Optional

from sqlalchemy import distinct, func, text

from ..config.settings import PresenterSettings
from ..database.scopes import dialect_name, model_class_for, primary_key_for
from ..utils.logging import get_logger
from .base_strategy import BaseStrategy

logger = get_logger(__name__)


class QueryCount:
    """Count with a separate ``COUNT(DISTINCT pk)`` query."""

    def count(self, scope) -> int:
        primary_key = primary_key_for(model_class_for(scope))
        unpaginated = scope.limit(None).offset(None).order_by(None)
        return unpaginated.with_entities(func.count(distinct(primary_key))).scalar() or 0


class PresenterCount:
    """Delegate counting to the presenter's ``evaluate_count`` callable."""

    def __init__(self, presenter):
        self.presenter = presenter

    def count(self, scope) -> int:
        return self.presenter.run_count(scope.limit(None).offset(None).order_by(None))


class FoundRowsCount:
    """Read the total MySQL computed while fetching the page's ids."""

    def __init__(self):
        self.found_rows: Optional[int] = None

    def prefixed(self, ids_query):
        return ids_query.prefix_with("SQL_CALC_FOUND_ROWS")

    def pluck_ids(self, scope, primary_key) -> List[Any]:
        ids = [row[0] for row in self.prefixed(scope.with_entities(primary_key)).all()]
        self.found_rows = scope.session.execute(text("SELECT FOUND_ROWS()")).scalar()
        return ids

    def count(self, scope) -> int:
        if self.found_rows is None:
            return QueryCount().count(scope)
        return int(self.found_rows)


class Paginator:
    """Fetch one page of a scope and its total count."""

    def __init__(self, primary_presenter, settings: PresenterSettings):
        self.primary_presenter = primary_presenter
        self.settings = settings
        self._count_strategy = None

    def count_strategy_for(self, scope):
        if self._count_strategy is None:
            if self.primary_presenter is not None and self.primary_presenter.evaluates_count():
                self._count_strategy = PresenterCount(self.primary_presenter)
            elif self.settings.mysql_use_calc_found_rows and dialect_name(scope) == "mysql":
                self._count_strategy = FoundRowsCount()
            else:
                self._count_strategy = QueryCount()
            logger.debug("Counting with %s", type(self._count_strategy).__name__)
        return self._count_strategy

    def page_scope(self, scope, limit: Optional[int], offset: Optional[int]):
        """Page of ``scope`` with one row per primary key (GROUP BY, not DISTINCT)."""
        scope = scope.group_by(primary_key_for(model_class_for(scope)))
        if limit is not None:
            scope = scope.limit(limit)
        if offset is not None:
            scope = scope.offset(offset)
        return scope

    def get_ids(self, scope, limit: Optional[int], offset: Optional[int]) -> List[Any]:
        primary_key = primary_key_for(model_class_for(scope))
        scope = self.page_scope(scope, limit, offset)

        count_strategy = self.count_strategy_for(scope)
        if isinstance(count_strategy, FoundRowsCount):
            return count_strategy.pluck_ids(scope, primary_key)
        return [row[0] for row in scope.with_entities(primary_key).all()]

    def get_count(self, scope) -> int:
        return self.count_strategy_for(scope).count(scope)

    def get_models(self, ids: List[Any], scope) -> List[Any]:
        return BaseStrategy.get_models(ids, scope)
