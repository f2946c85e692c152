"""
External collaborator contracts

The engine reads the catalog through these protocols so that the SQL
repository, the JSON feed and in-memory fakes are interchangeable.
Implementations raise CatalogUnavailableError when the source cannot be read.
"""
from typing import List, Optional, Protocol

from packages.common.language import Language
from packages.domain.recommendation.schemas import (
    CategoryRecoveryRecord,
    KeywordRecord,
    ProcedureRecord,
)


class ProcedureCatalogSource(Protocol):
    """Language-scoped procedure catalog query"""

    async def fetch_procedures(
        self,
        language: Language,
        category_large: Optional[str] = None,
        category_mid: Optional[str] = None,
        category_small: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[ProcedureRecord]:
        """
        Fetch procedures from one language table.

        Args:
            language: Catalog language
            category_large: Exact large-category filter
            category_mid: Exact mid-category filter
            category_small: Exact small-category filter
            search: Free-text filter on procedure name

        Raises:
            CatalogUnavailableError: If the catalog cannot be read
        """
        ...


class RecoveryMetadataSource(Protocol):
    """Full category-recovery table for one language"""

    async def fetch_recovery_records(self, language: Language) -> List[CategoryRecoveryRecord]:
        ...


class KeywordSource(Protocol):
    """Search keyword → group key table for one language"""

    async def fetch_keyword_records(self, language: Language) -> List[KeywordRecord]:
        ...
