from ..params import is_present
from ..utils.logging import get_logger
from .base_strategy import BaseStrategy, StrategyOptions
from .filter_and_search import FilterAndSearch
from .filter_or_search import FilterOrSearch
from .paginate import PaginateStrategy
from .paginator import FoundRowsCount, Paginator, PresenterCount, QueryCount

logger = get_logger(__name__)

FILTER_OR_SEARCH = "filter_or_search"
FILTER_AND_SEARCH = "filter_and_search"
PAGINATE = "paginate"

STRATEGY_NAMES = (FILTER_OR_SEARCH, FILTER_AND_SEARCH, PAGINATE)


def strategy_for(options: StrategyOptions) -> BaseStrategy:
    """Pick the strategy the presenter asks for; filter-and-search only applies when searching."""
    presenter = options.primary_presenter
    name = presenter.get_query_strategy()
    searching = is_present(options.params, "search") and presenter.searchable()

    if name == FILTER_AND_SEARCH and searching:
        strategy_class = FilterAndSearch
    elif name == PAGINATE:
        strategy_class = PaginateStrategy
    else:
        strategy_class = FilterOrSearch

    logger.debug("Using %s for %s", strategy_class.__name__, options.table_name)
    return strategy_class(options)


__all__ = [
    "BaseStrategy",
    "FILTER_AND_SEARCH",
    "FILTER_OR_SEARCH",
    "FilterAndSearch",
    "FilterOrSearch",
    "FoundRowsCount",
    "PAGINATE",
    "PaginateStrategy",
    "Paginator",
    "PresenterCount",
    "QueryCount",
    "STRATEGY_NAMES",
    "StrategyOptions",
    "strategy_for",
]
