"""
Keyword → category group key lookup

Search keywords ("v라인", "nose job", "二重") map to a language-invariant
group key through a per-language keyword table. Same precision rules as the
recovery resolver: exact keyword first, then normalized, never substring.
"""
from typing import Optional, Union

import structlog

from packages.common.config import get_settings
from packages.common.language import Language, normalize_language
from packages.domain.recommendation.normalizer import normalize_label
from packages.domain.recommendation.resolver_cache import ResolverCache
from packages.domain.recommendation.sources import KeywordSource

logger = structlog.get_logger()


class KeywordCategoryLookup:
    """
    Resolves search keywords to group keys, caching successful lookups.
    """

    def __init__(self, source: KeywordSource, cache: Optional[ResolverCache] = None):
        self.source = source
        self.cache = cache if cache is not None else ResolverCache(
            get_settings().resolver_cache_max_entries, namespace="keyword"
        )

    async def lookup(self, keyword: Optional[str], language: Union[Language, str]) -> Optional[str]:
        """
        Find the group key for a keyword.

        Args:
            keyword: Free-text search keyword
            language: Language of the keyword table to search

        Returns:
            Group key, or None when the keyword is unknown

        Raises:
            CatalogUnavailableError: If the keyword table cannot be read
        """
        language = normalize_language(language)

        if not keyword or not keyword.strip():
            return None

        cached = self.cache.get(language, keyword)
        if cached is not None:
            return cached

        records = await self.source.fetch_keyword_records(language)

        group_key = None
        method = None
        for record in records:
            if record.keyword == keyword:
                group_key, method = record.group_key, "exact"
                break

        if group_key is None:
            normalized = normalize_label(keyword)
            for record in records:
                if normalize_label(record.keyword) == normalized:
                    group_key, method = record.group_key, "normalized"
                    break

        if group_key is None:
            logger.debug("keyword_not_found", keyword=keyword, language=language.value)
            return None

        self.cache.put(language, keyword, group_key)
        logger.debug("keyword_resolved",
                     keyword=keyword,
                     language=language.value,
                     group_key=group_key,
                     method=method)
        return group_key
