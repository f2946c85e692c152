"""
Recommendation Service - Orchestrates itinerary-constrained recommendations

Flow:
1. Validate the travel window, normalize the language
2. Alias Mapper: keep procedures belonging to the UI category
3. Partition by (large category, mid category)
4. Resolver: mid label → recovery metadata, one call per group, bounded fan-out,
   each language table read once per request
5. Itinerary Filter: drop groups that cannot fit the window; groups with no
   known recovery are filtered item by item on legacy text
6. Scorer: score items, build CategoryGroups, rank

Example:
- Input: ui_category="코성형", window=2025-06-01 → 2025-06-03 (3 days), language=KR
- Group "코성형::코끝" resolves to recovery_max=2 → needs 3 days → kept
- Group "코성형::재수술" resolves to recovery_max=7 → needs 8 days → dropped
- Group "코성형::기타" has no metadata → items filtered on their own recovery text
- Output: kept groups, best top score first
"""
import asyncio
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import structlog

from packages.common.config import get_settings
from packages.common.language import Language, normalize_language
from packages.domain.recommendation.category_aliases import (
    CategoryAliasMapper,
    UiCategory,
    category_alias_mapper,
)
from packages.domain.recommendation.itinerary_filter import ItineraryFilter
from packages.domain.recommendation.recovery_resolver import RecoveryResolver
from packages.domain.recommendation.schemas import (
    CategoryGroup,
    ProcedureRecord,
    RecoveryMatch,
    TravelWindow,
)
from packages.domain.recommendation.scorer import SuitabilityScorer, suitability_scorer
from packages.domain.recommendation.sources import ProcedureCatalogSource

logger = structlog.get_logger()

GROUP_KEY_SEPARATOR = "::"

CatalogRow = Union[ProcedureRecord, Mapping[str, Any]]


def make_group_key(category_large: str, category_mid: Optional[str]) -> str:
    """Group key for a (large, mid) partition, e.g. "코성형::코끝" """
    return f"{category_large}{GROUP_KEY_SEPARATOR}{category_mid or ''}"


def _average(values: Sequence[float]) -> Optional[float]:
    """Mean, or None when nothing is known"""
    return sum(values) / len(values) if values else None


def _range_midpoint(low: int, high: int) -> Optional[float]:
    """Midpoint of a min/max range where 0 means unknown"""
    known = [v for v in (low, high) if v > 0]
    return _average(known)


class RecommendationService:
    """
    Builds ranked, itinerary-filtered category groups for a traveler.

    Usage:
        service = RecommendationService(resolver=resolver, catalog_source=catalog_repository)
        groups = await service.recommend_for_language(
            ui_category="코성형",
            window=TravelWindow(start=date(2025, 6, 1), end=date(2025, 6, 3)),
            language=Language.KR,
        )
        for group in groups:
            print(group.group_key, group.recovery_max, len(group.procedures))
    """

    def __init__(
        self,
        resolver: RecoveryResolver,
        catalog_source: Optional[ProcedureCatalogSource] = None,
        alias_mapper: Optional[CategoryAliasMapper] = None,
        scorer: Optional[SuitabilityScorer] = None,
        itinerary_filter: Optional[ItineraryFilter] = None,
        concurrency: Optional[int] = None,
    ):
        """
        Initialize recommendation service.

        Args:
            resolver: Category label → recovery metadata resolver
            catalog_source: Procedure catalog for recommend_for_language()
            alias_mapper: UI category filter (module singleton if omitted)
            scorer: Suitability scorer (module singleton if omitted)
            itinerary_filter: Window filter (built from settings if omitted)
            concurrency: Max resolver calls in flight (RESOLVER_CONCURRENCY)
        """
        self.resolver = resolver
        self.catalog_source = catalog_source
        self.alias_mapper = alias_mapper or category_alias_mapper
        self.scorer = scorer or suitability_scorer
        self.itinerary_filter = itinerary_filter or ItineraryFilter()
        self.concurrency = concurrency if concurrency is not None else get_settings().resolver_concurrency
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {self.concurrency}")

    async def recommend(
        self,
        catalog: Iterable[CatalogRow],
        ui_category: Union[UiCategory, str, None],
        window: TravelWindow,
        language: Union[Language, str],
    ) -> List[CategoryGroup]:
        """
        Recommend procedures from an already-loaded, language-scoped catalog.

        Args:
            catalog: Procedure rows (records or raw dicts with upstream field names)
            ui_category: UiCategory or UI label in any language (None = all)
            window: Traveler's dates
            language: Language of the catalog

        Returns:
            Kept CategoryGroups, ranked; items inside each group ranked by score

        Raises:
            InvalidTravelWindowError: If the window ends before it starts
            CatalogUnavailableError: If recovery metadata cannot be read
        """
        travel_days = window.travel_days
        language = normalize_language(language)

        procedures = [
            row if isinstance(row, ProcedureRecord) else ProcedureRecord.model_validate(row)
            for row in catalog
        ]

        logger.info("recommendation_started",
                    ui_category=str(ui_category),
                    language=language.value,
                    travel_days=travel_days,
                    catalog_size=len(procedures))

        selected = self.alias_mapper.filter(procedures, ui_category, language)
        partitions = self._partition(selected)

        matches = await self._resolve_all(partitions, language)

        groups = []
        for (category_large, category_mid), members in partitions.items():
            match = matches[(category_large, category_mid)]
            group = self._build_group(category_large, category_mid, members, match, window)
            if group is not None:
                groups.append(group)

        ranked = self.scorer.rank_groups(groups)

        logger.info("recommendation_complete",
                    ui_category=str(ui_category),
                    language=language.value,
                    travel_days=travel_days,
                    candidates=len(selected),
                    groups_considered=len(partitions),
                    groups_returned=len(ranked),
                    procedures_returned=sum(len(g.procedures) for g in ranked))

        return ranked

    async def recommend_for_language(
        self,
        ui_category: Union[UiCategory, str, None],
        window: TravelWindow,
        language: Union[Language, str],
        search: Optional[str] = None,
    ) -> List[CategoryGroup]:
        """
        Load the language's catalog from the configured source, then recommend.

        Raises:
            InvalidTravelWindowError: If the window ends before it starts
            CatalogUnavailableError: If the catalog or recovery metadata cannot be read
            RuntimeError: If the service was built without a catalog source
        """
        if self.catalog_source is None:
            raise RuntimeError("RecommendationService has no catalog_source configured")

        # Reject bad windows before touching the catalog
        travel_days = window.travel_days
        language = normalize_language(language)

        logger.debug("catalog_load_started",
                     language=language.value,
                     search=search,
                     travel_days=travel_days)

        catalog = await self.catalog_source.fetch_procedures(language, search=search)
        return await self.recommend(catalog, ui_category, window, language)

    def _partition(
        self,
        procedures: Iterable[ProcedureRecord],
    ) -> "OrderedDict[Tuple[str, Optional[str]], List[ProcedureRecord]]":
        partitions: "OrderedDict[Tuple[str, Optional[str]], List[ProcedureRecord]]" = OrderedDict()
        skipped = 0

        for procedure in procedures:
            if not procedure.category_large:
                skipped += 1
                continue
            key = (procedure.category_large, procedure.category_mid or None)
            partitions.setdefault(key, []).append(procedure)

        if skipped:
            logger.debug("procedures_without_category_skipped", count=skipped)

        return partitions

    async def _resolve_all(
        self,
        partitions: Mapping[Tuple[str, Optional[str]], List[ProcedureRecord]],
        language: Language,
    ) -> Dict[Tuple[str, Optional[str]], RecoveryMatch]:
        semaphore = asyncio.Semaphore(self.concurrency)
        tables = self.resolver.new_table_set()
        keys = list(partitions.keys())

        async def _resolve(category_mid: Optional[str]) -> RecoveryMatch:
            async with semaphore:
                return await self.resolver.resolve(category_mid, language, tables=tables)

        results = await asyncio.gather(*(_resolve(mid) for _, mid in keys))
        return dict(zip(keys, results))

    def _build_group(
        self,
        category_large: str,
        category_mid: Optional[str],
        members: Sequence[ProcedureRecord],
        match: RecoveryMatch,
        window: TravelWindow,
    ) -> Optional[CategoryGroup]:
        group_key = make_group_key(category_large, category_mid)
        scored = self.scorer.score_all(members)
        metadata = match.metadata if match.found else None

        if metadata is not None and not self.itinerary_filter.fits(metadata, window):
            logger.debug("category_group_dropped",
                         group_key=group_key,
                         reason="recovery_exceeds_window",
                         itinerary_days=metadata.itinerary_days,
                         travel_days=window.travel_days)
            return None

        if metadata is not None and metadata.itinerary_days > 0:
            kept = scored
            average_recovery = _range_midpoint(metadata.recovery_min, metadata.recovery_max)
            average_minutes = _range_midpoint(metadata.procedure_time_min, metadata.procedure_time_max)
        else:
            # Unresolved, or resolved with unknown recovery: judge each item on its own text
            kept = self.itinerary_filter.filter_legacy(scored, window)
            if not kept:
                logger.debug("category_group_dropped",
                             group_key=group_key,
                             reason="legacy_recovery_exceeds_window",
                             match_method=match.method.value,
                             travel_days=window.travel_days)
                return None
            average_recovery = _average([p.legacy_recovery_days for p in kept if p.legacy_recovery_days])
            average_minutes = _average([p.legacy_procedure_minutes for p in kept if p.legacy_procedure_minutes])

        resolved_fields = {}
        if metadata is not None:
            resolved_fields = dict(
                recovery_min=metadata.recovery_min,
                recovery_max=metadata.recovery_max,
                procedure_time_min=metadata.procedure_time_min,
                procedure_time_max=metadata.procedure_time_max,
                recommended_stay_days=metadata.recommended_stay_days,
                guidance_text=metadata.guidance_text,
            )

        return CategoryGroup(
            group_key=group_key,
            category_large=category_large,
            category_mid=category_mid,
            procedures=self.scorer.rank_items(kept),
            match_method=match.method,
            average_recovery_days=average_recovery,
            average_procedure_minutes=average_minutes,
            **resolved_fields,
        )
