"""
Recommendation Module - itinerary-constrained procedure recommendations

Three stages:
1. Taxonomy matching: multilingual category labels → recovery metadata
   (exact → normalized → cross-language bridge via group key)
2. Itinerary filtering: drop categories whose recovery + procedure day
   exceeds the traveler's dates
3. Scoring: rating, review volume, price band and discount → ranked groups

Example flow:
- "코성형" selected, 3-day trip, EN catalog
- "Nose Tip" resolves (bridged) to recovery_max=2 → 3 days needed → kept
- "Revision Rhinoplasty" resolves to recovery_max=7 → 8 days needed → dropped
- Kept groups ordered by their best procedure's score
"""

from packages.domain.recommendation.category_aliases import (
    CategoryAliasMapper,
    UiCategory,
    category_alias_mapper,
)
from packages.domain.recommendation.exceptions import (
    CatalogUnavailableError,
    InvalidTravelWindowError,
    RecommendationError,
)
from packages.domain.recommendation.itinerary_filter import ItineraryFilter
from packages.domain.recommendation.keyword_lookup import KeywordCategoryLookup
from packages.domain.recommendation.normalizer import normalize_label
from packages.domain.recommendation.recommendation_service import RecommendationService
from packages.domain.recommendation.recovery_resolver import RecoveryResolver
from packages.domain.recommendation.resolver_cache import ResolverCache
from packages.domain.recommendation.schemas import (
    CategoryGroup,
    CategoryRecoveryRecord,
    KeywordRecord,
    MatchMethod,
    ProcedureRecord,
    RecoveryMatch,
    RecoveryMetadata,
    ScoredProcedure,
    TravelWindow,
)
from packages.domain.recommendation.scorer import ScoreWeights, SuitabilityScorer

__all__ = [
    'CategoryAliasMapper',
    'UiCategory',
    'category_alias_mapper',
    'CatalogUnavailableError',
    'InvalidTravelWindowError',
    'RecommendationError',
    'ItineraryFilter',
    'KeywordCategoryLookup',
    'normalize_label',
    'RecommendationService',
    'RecoveryResolver',
    'ResolverCache',
    'CategoryGroup',
    'CategoryRecoveryRecord',
    'KeywordRecord',
    'MatchMethod',
    'ProcedureRecord',
    'RecoveryMatch',
    'RecoveryMetadata',
    'ScoredProcedure',
    'TravelWindow',
    'ScoreWeights',
    'SuitabilityScorer',
]
