"""Intersect search results with declared filters."""

from typing import Any, Dict, List, Tuple

from ..database.scopes import model_class_for, primary_key_for
from ..params import is_present
from .base_strategy import BaseStrategy
from .paginator import QueryCount


class FilterAndSearch(BaseStrategy):
    """
    Run search over a bounded window of ranked ids, then apply filters to
    ``id IN (search ids)``.

    With an explicit ``order`` param the database orders and pages the
    intersection. Otherwise the intersection keeps search rank and is paged
    in memory. The count is the size of the intersection.
    """

    def execute(self, scope) -> Tuple[List[Any], int]:
        ordered_search_ids, _ = self.run_search(self.search_options())

        primary_key = primary_key_for(model_class_for(scope))
        scope = self.presenter.apply_filters_to_scope(
            scope, self.params, apply_default_filters=self.options.apply_default_filters
        )
        scope = scope.filter(primary_key.in_(ordered_search_ids))
        limit, offset = self.calculate_limit_and_offset()

        if is_present(self.params, "order"):
            count = QueryCount().count(scope)
            scope = self.presenter.apply_ordering_to_scope(scope, self.params)
            return self.evaluate_scope(scope.limit(limit).offset(offset)), count

        filtered_ids = [row[0] for row in scope.with_entities(primary_key).distinct().all()]
        ranked_ids = self.order_for_search(filtered_ids, ordered_search_ids, with_ids=True)
        page_ids = ranked_ids[offset : offset + limit]
        return self.get_models(page_ids, scope), len(ranked_ids)

    def search_options(self) -> Dict[str, Any]:
        sort_name, direction = self.presenter.calculate_sort_name_and_direction(self.params)
        options: Dict[str, Any] = {
            "include": self.filter_includes(),
            "order": {"sort_order": sort_name, "direction": direction},
            "limit": self.options.default_max_filter_and_search_page,
            "offset": 0,
        }
        extracted = self.presenter.extract_filters(
            self.params, apply_default_filters=self.options.apply_default_filters
        )
        for name, value in extracted.items():
            options.setdefault(name, value)
        return options
