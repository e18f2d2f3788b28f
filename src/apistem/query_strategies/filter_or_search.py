"""Search replaces filtering when a search term is given; otherwise paginate."""

from typing import Any, Dict, List, Tuple

from ..database.scopes import model_class_for, primary_key_for
from .paginate import PaginateStrategy


class FilterOrSearch(PaginateStrategy):
    def execute(self, scope) -> Tuple[List[Any], int]:
        if not self.searching():
            return super().execute(scope)

        ordered_search_ids, count = self.run_search(self.search_options())

        primary_key = primary_key_for(model_class_for(scope))
        models = scope.filter(primary_key.in_(ordered_search_ids)).all()
        return self.order_for_search(models, ordered_search_ids), count

    def search_options(self) -> Dict[str, Any]:
        sort_name, direction = self.presenter.calculate_sort_name_and_direction(self.params)
        options: Dict[str, Any] = {
            "include": self.filter_includes(),
            "order": {"sort_order": sort_name, "direction": direction},
        }
        if self.uses_limit_and_offset():
            options["limit"] = self.calculate_limit()
            options["offset"] = self.calculate_offset()
        else:
            options["per_page"] = self.calculate_per_page()
            options["page"] = self.calculate_page()

        extracted = self.presenter.extract_filters(
            self.params, apply_default_filters=self.options.apply_default_filters
        )
        for name, value in extracted.items():
            options.setdefault(name, value)
        return options
