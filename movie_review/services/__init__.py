from .aggregation import AggregationEngine, average_of
from .catalog import CatalogService
from .reviews import ReviewService, is_owner
from .cache import init_requests_cache

aggregator = AggregationEngine()
catalog = CatalogService()
reviews = ReviewService(catalog, aggregator)

__all__ = [
    "AggregationEngine",
    "CatalogService",
    "ReviewService",
    "average_of",
    "is_owner",
    "init_requests_cache",
    "aggregator",
    "catalog",
    "reviews",
]
