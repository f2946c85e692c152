"""
Match Strategies - ordered ways of finding a category recovery record for a label

The resolver tries each strategy in order and stops at the first hit:

1. ExactLabelStrategy: raw label equality in the target-language table
2. NormalizedLabelStrategy: normalize_label equality in the target-language table
3. CrossLanguageBridgeStrategy: find the label in the base-language table,
   take its group key, return the target-language record with that key

No substring matching happens here. Attaching the wrong recovery window to a
procedure is worse than attaching none.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

import structlog

from packages.common.language import Language
from packages.domain.recommendation.normalizer import normalize_label
from packages.domain.recommendation.schemas import CategoryRecoveryRecord, MatchMethod

logger = structlog.get_logger()


class RecoveryTableIndex:
    """
    In-memory lookups over one language's category recovery table.

    When several rows share a label or group key the first row wins.
    """

    def __init__(self, language: Language, records: Iterable[CategoryRecoveryRecord]):
        self.language = language
        self._by_label: Dict[str, CategoryRecoveryRecord] = {}
        self._by_normalized: Dict[str, CategoryRecoveryRecord] = {}
        self._by_group_key: Dict[str, CategoryRecoveryRecord] = {}
        self._size = 0

        for record in records:
            self._size += 1
            self._by_label.setdefault(record.label, record)
            normalized = normalize_label(record.label)
            if normalized:
                self._by_normalized.setdefault(normalized, record)
            if record.group_key:
                self._by_group_key.setdefault(record.group_key, record)

    def __len__(self) -> int:
        return self._size

    def by_label(self, label: str) -> Optional[CategoryRecoveryRecord]:
        return self._by_label.get(label)

    def by_normalized(self, label: str) -> Optional[CategoryRecoveryRecord]:
        normalized = normalize_label(label)
        if not normalized:
            return None
        return self._by_normalized.get(normalized)

    def by_group_key(self, group_key: str) -> Optional[CategoryRecoveryRecord]:
        return self._by_group_key.get(group_key)


TableLoader = Callable[[Language], Awaitable[RecoveryTableIndex]]


class RecoveryTableSet:
    """
    Loaded table indexes, at most one fetch per language.

    One set is shared by every resolution in a recommendation request, so a
    catalog with many mid categories reads each table once. Concurrent
    callers asking for the same language wait on the same load. A failed or
    cancelled load stores nothing and the next caller tries again.
    """

    def __init__(self, load_table: TableLoader):
        self._load_table = load_table
        self._tables: Dict[Language, RecoveryTableIndex] = {}
        self._locks: Dict[Language, asyncio.Lock] = {}

    def __contains__(self, language: Language) -> bool:
        return language in self._tables

    async def table(self, language: Language) -> RecoveryTableIndex:
        if language in self._tables:
            return self._tables[language]

        lock = self._locks.setdefault(language, asyncio.Lock())
        async with lock:
            if language not in self._tables:
                self._tables[language] = await self._load_table(language)
        return self._tables[language]


class MatchContext:
    """
    One resolution attempt: the label, the target language and lazy table access.

    Tables come from the attempt's RecoveryTableSet, so the base-language table
    is only fetched when a strategy actually needs it.
    """

    def __init__(self, label: str, language: Language, base_language: Language, tables: RecoveryTableSet):
        self.label = label
        self.language = language
        self.base_language = base_language
        self.tables = tables

    async def table(self, language: Language) -> RecoveryTableIndex:
        return await self.tables.table(language)

    async def target_table(self) -> RecoveryTableIndex:
        return await self.table(self.language)


class MatchStrategy(ABC):
    """
    Abstract base class for label → recovery record strategies.

    Subclasses set `method` (used to tag the result) and implement match().
    """

    method: MatchMethod

    @abstractmethod
    async def match(self, context: MatchContext) -> Optional[CategoryRecoveryRecord]:
        """
        Look up the context's label.

        Returns:
            The matching record, or None to let the next strategy try
        """
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


class ExactLabelStrategy(MatchStrategy):
    """Raw display label equality in the target-language table"""

    method = MatchMethod.EXACT

    async def match(self, context: MatchContext) -> Optional[CategoryRecoveryRecord]:
        table = await context.target_table()
        return table.by_label(context.label)


class NormalizedLabelStrategy(MatchStrategy):
    """Normalized label equality (case, whitespace, invisible characters) in the target-language table"""

    method = MatchMethod.NORMALIZED

    async def match(self, context: MatchContext) -> Optional[CategoryRecoveryRecord]:
        table = await context.target_table()
        return table.by_normalized(context.label)


class CrossLanguageBridgeStrategy(MatchStrategy):
    """
    Bridge through the base-language table's group key.

    Recovers translated labels that drifted lexically from the base label but
    still belong to the same taxonomy bucket. Labels are only ever compared
    within one language; the group key is the only cross-language join.
    """

    method = MatchMethod.BRIDGED

    async def match(self, context: MatchContext) -> Optional[CategoryRecoveryRecord]:
        if context.language == context.base_language:
            return None

        base_table = await context.table(context.base_language)
        base_record = base_table.by_label(context.label) or base_table.by_normalized(context.label)
        if base_record is None:
            return None

        target_table = await context.target_table()
        bridged = target_table.by_group_key(base_record.group_key)

        if bridged is not None:
            logger.debug("recovery_label_bridged",
                         label=context.label,
                         language=context.language.value,
                         group_key=base_record.group_key,
                         target_label=bridged.label)
        return bridged


def default_strategies() -> List[MatchStrategy]:
    """Strategies in resolution order: exact, normalized, bridged"""
    return [
        ExactLabelStrategy(),
        NormalizedLabelStrategy(),
        CrossLanguageBridgeStrategy(),
    ]
