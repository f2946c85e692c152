"""
Recovery Metadata Resolver - category label → recovery/duration metadata

Flow:
1. Cache check by (language, raw label)
2. Strategies in order: exact → normalized → cross-language bridge
3. Build canonical RecoveryMetadata (guidance bucket, itinerary days)
4. Cache successes only

Example:
- Input: label="브이라인", language=EN
- EN table has no "브이라인" row; KR table has it under group key K1
- EN row with group key K1 ("Jaw V-Line") → method=bridged

A miss or a timeout is not an error: callers treat it as "no recovery
constraint known" and fall back to the procedure's own legacy duration.
CatalogUnavailableError from the metadata source propagates.
"""
import asyncio
from typing import Hashable, List, Optional, Sequence, Union

import structlog

from packages.common.config import ItineraryBasis, get_settings
from packages.common.language import Language, normalize_language
from packages.domain.recommendation.guidance import guidance_text, select_guidance_bucket
from packages.domain.recommendation.keyword_lookup import KeywordCategoryLookup
from packages.domain.recommendation.match_strategies import (
    MatchContext,
    MatchStrategy,
    RecoveryTableIndex,
    RecoveryTableSet,
    default_strategies,
)
from packages.domain.recommendation.resolver_cache import ResolverCache
from packages.domain.recommendation.schemas import (
    CategoryRecoveryRecord,
    MatchMethod,
    RecoveryMatch,
    RecoveryMetadata,
)
from packages.domain.recommendation.sources import RecoveryMetadataSource

logger = structlog.get_logger()

_USE_DEFAULT = object()


class RecoveryResolver:
    """
    Resolves category labels to recovery metadata with ordered fallbacks.

    Usage:
        resolver = RecoveryResolver(source=catalog_repository)
        match = await resolver.resolve("코성형", Language.EN)
        if match.found:
            print(match.method, match.metadata.recovery_max)
    """

    def __init__(
        self,
        source: RecoveryMetadataSource,
        cache: Optional[ResolverCache] = None,
        keyword_lookup: Optional[KeywordCategoryLookup] = None,
        strategies: Optional[Sequence[MatchStrategy]] = None,
        base_language: Optional[Language] = None,
        itinerary_basis: Optional[ItineraryBasis] = None,
        timeout: Union[float, None, object] = _USE_DEFAULT,
    ):
        """
        Initialize resolver.

        Args:
            source: Category recovery table per language
            cache: Success-only match cache (new bounded cache if omitted)
            keyword_lookup: Keyword → group key lookup for resolve_keyword()
            strategies: Ordered strategies (exact, normalized, bridged if omitted)
            base_language: Language whose table anchors group keys (BASE_LANGUAGE)
            itinerary_basis: Which number drives itinerary_days (ITINERARY_BASIS)
            timeout: Default per-call deadline in seconds, None for no deadline
                (RESOLVER_TIMEOUT_SECONDS)
        """
        settings = get_settings()
        self.source = source
        self.cache = cache if cache is not None else ResolverCache(settings.resolver_cache_max_entries)
        self.keyword_lookup = keyword_lookup
        self.strategies: List[MatchStrategy] = list(strategies) if strategies else default_strategies()
        self.base_language = base_language or settings.base_language
        self.itinerary_basis = itinerary_basis or settings.itinerary_basis
        self.timeout = settings.resolver_timeout_seconds if timeout is _USE_DEFAULT else timeout

    async def resolve(
        self,
        label: Optional[str],
        language: Union[Language, str],
        timeout: Union[float, None, object] = _USE_DEFAULT,
        tables: Optional[RecoveryTableSet] = None,
    ) -> RecoveryMatch:
        """
        Resolve a category label in a language.

        Args:
            label: Category display label (mid or small category)
            language: Language of the label's catalog
            timeout: Deadline in seconds for this call (resolver default if omitted)
            tables: Table set shared across a request (fresh set if omitted)

        Returns:
            RecoveryMatch tagged with the strategy that fired, not_found or timed_out

        Raises:
            CatalogUnavailableError: If the metadata source cannot be read
        """
        language = normalize_language(language)

        if not label or not label.strip():
            return RecoveryMatch.not_found(label, language)

        cached = self.cache.get(language, label)
        if cached is not None:
            logger.debug("recovery_cache_hit",
                         label=label,
                         language=language.value,
                         method=cached.method.value)
            return cached

        if tables is None:
            tables = self.new_table_set()

        deadline = self.timeout if timeout is _USE_DEFAULT else timeout
        match = await self._with_deadline(self._run_strategies(label, language, tables), label, language, deadline)

        if match.found:
            self.cache.put(language, label, match)
            logger.debug("recovery_label_resolved",
                         label=label,
                         language=language.value,
                         method=match.method.value,
                         group_key=match.metadata.group_key,
                         recovery_max=match.metadata.recovery_max)
        elif match.method == MatchMethod.NOT_FOUND:
            logger.debug("recovery_label_not_found",
                         label=label,
                         language=language.value,
                         strategies=[s.name for s in self.strategies])

        return match

    async def resolve_group_key(
        self,
        group_key: Optional[str],
        language: Union[Language, str],
        timeout: Union[float, None, object] = _USE_DEFAULT,
        tables: Optional[RecoveryTableSet] = None,
    ) -> RecoveryMatch:
        """
        Resolve a language-invariant group key directly (recovery guide pages, keyword search).

        Returns:
            RecoveryMatch with method group_key, not_found or timed_out
        """
        language = normalize_language(language)

        if not group_key:
            return RecoveryMatch.not_found(group_key, language)

        cache_label: Hashable = ("group_key", group_key)
        cached = self.cache.get(language, cache_label)
        if cached is not None:
            return cached

        if tables is None:
            tables = self.new_table_set()

        async def _lookup() -> RecoveryMatch:
            table = await tables.table(language)
            record = table.by_group_key(group_key)
            if record is None:
                return RecoveryMatch.not_found(group_key, language)
            return RecoveryMatch(
                label=group_key,
                language=language,
                method=MatchMethod.GROUP_KEY,
                metadata=self.build_metadata(record, language),
            )

        deadline = self.timeout if timeout is _USE_DEFAULT else timeout
        match = await self._with_deadline(_lookup(), group_key, language, deadline)

        if match.found:
            self.cache.put(language, cache_label, match)
        elif match.method == MatchMethod.NOT_FOUND:
            logger.debug("recovery_group_key_not_found", group_key=group_key, language=language.value)

        return match

    async def resolve_keyword(
        self,
        keyword: Optional[str],
        language: Union[Language, str],
        timeout: Union[float, None, object] = _USE_DEFAULT,
    ) -> RecoveryMatch:
        """
        Resolve a free-text search keyword via the keyword table's group key.

        Raises:
            RuntimeError: If the resolver was built without a keyword lookup
        """
        if self.keyword_lookup is None:
            raise RuntimeError("RecoveryResolver has no keyword_lookup configured")

        language = normalize_language(language)
        group_key = await self.keyword_lookup.lookup(keyword, language)
        if group_key is None:
            return RecoveryMatch.not_found(keyword, language)

        return await self.resolve_group_key(group_key, language, timeout=timeout)

    def build_metadata(self, record: CategoryRecoveryRecord, language: Language) -> RecoveryMetadata:
        """
        Map a table row to canonical metadata.

        Guidance is chosen from recovery_max. itinerary_days follows the
        configured basis: recommended stay days replace recovery_max only
        under RECOMMENDED_STAY and only when positive.
        """
        bucket = select_guidance_bucket(record.recovery_max)

        itinerary_days = record.recovery_max
        if self.itinerary_basis == ItineraryBasis.RECOMMENDED_STAY and record.recommended_stay_days > 0:
            itinerary_days = record.recommended_stay_days

        return RecoveryMetadata(
            group_key=record.group_key,
            label=record.label,
            language=record.language or language,
            recovery_min=record.recovery_min,
            recovery_max=record.recovery_max,
            procedure_time_min=record.procedure_time_min,
            procedure_time_max=record.procedure_time_max,
            recommended_stay_days=record.recommended_stay_days,
            itinerary_days=itinerary_days,
            guidance_bucket=bucket,
            guidance_text=guidance_text(record, bucket),
        )

    def new_table_set(self) -> RecoveryTableSet:
        """Empty table set backed by this resolver's source; share one across a request"""
        return RecoveryTableSet(self._load_table)

    async def _run_strategies(self, label: str, language: Language, tables: RecoveryTableSet) -> RecoveryMatch:
        context = MatchContext(
            label=label,
            language=language,
            base_language=self.base_language,
            tables=tables,
        )

        for strategy in self.strategies:
            record = await strategy.match(context)
            if record is not None:
                return RecoveryMatch(
                    label=label,
                    language=language,
                    method=strategy.method,
                    metadata=self.build_metadata(record, language),
                )

        return RecoveryMatch.not_found(label, language)

    async def _load_table(self, language: Language) -> RecoveryTableIndex:
        records = await self.source.fetch_recovery_records(language)
        return RecoveryTableIndex(language, records)

    async def _with_deadline(self, lookup, label: str, language: Language, deadline) -> RecoveryMatch:
        if deadline is None:
            return await lookup

        try:
            return await asyncio.wait_for(lookup, timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning("recovery_resolution_timeout",
                           label=label,
                           language=language.value,
                           timeout=deadline)
            return RecoveryMatch.timed_out(label, language)
