"""Baseline strategy: filter, then either an ``only`` allowlist or a page."""

from typing import Any, List, Tuple

from ..database.scopes import dialect_name, model_class_for, primary_key_for
from ..params import is_present, parse_only
from ..utils.logging import get_logger
from .base_strategy import BaseStrategy
from .paginator import Paginator, QueryCount

logger = get_logger(__name__)


class PaginateStrategy(BaseStrategy):
    def execute(self, scope) -> Tuple[List[Any], int]:
        scope = self.presenter.apply_filters_to_scope(
            scope, self.params, apply_default_filters=self.options.apply_default_filters
        )

        if is_present(self.params, "only"):
            return self.handle_only(scope)

        scope = self.presenter.apply_ordering_to_scope(scope, self.params)
        limit, offset = self.calculate_limit_and_offset()
        paginator = Paginator(self.presenter, self.options.settings)

        if dialect_name(scope) in self.options.settings.pluck_ids_dialects:
            ids = paginator.get_ids(scope, limit, offset)
            models = paginator.get_models(ids, scope)
        else:
            models = scope.limit(limit).offset(offset).all()

        return models, paginator.get_count(scope)

    def handle_only(self, scope) -> Tuple[List[Any], int]:
        """Restrict to the requested ids; no pagination, count is the match count."""
        ids = parse_only(self.params.get("only"))
        logger.debug("Restricting %s to only=%s", self.options.table_name, ids)

        primary_key = primary_key_for(model_class_for(scope))
        scope = scope.filter(primary_key.in_(ids))
        count = QueryCount().count(scope)
        scope = self.presenter.apply_ordering_to_scope(scope, self.params)
        return self.evaluate_scope(scope), count
