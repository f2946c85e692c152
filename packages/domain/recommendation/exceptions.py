"""
Errors raised by the recommendation engine

Only boundary failures are exceptions. An unmatched label, a timed-out
resolution or a malformed legacy duration degrade to "unconstrained" instead.
CatalogUnavailableError comes from the catalog sources and is re-exported here.
"""
from packages.common.exceptions import CatalogUnavailableError


class RecommendationError(Exception):
    """Base class for recommendation engine errors"""
    pass


class InvalidTravelWindowError(RecommendationError, ValueError):
    """Raised when a travel window ends before it starts"""
    pass


__all__ = [
    'CatalogUnavailableError',
    'InvalidTravelWindowError',
    'RecommendationError',
]
