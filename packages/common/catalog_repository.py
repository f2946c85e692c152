"""
Catalog Repository - Language-aware reads from the procedure catalog database

Table routing:
- base language (KR) → treatment_master, category_treattime_recovery, category_keyword
- other languages → same tables with a language suffix (treatment_master_en, _jp, _cn)

Rows come back with the upstream column names (treatment_id, selling_price,
dis_rate, downtime, category_mid_key, ...); the record schemas map them to
canonical fields. The engine never writes to these tables.
"""
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from packages.common.config import get_settings
from packages.common.database import sessionmanager
from packages.common.exceptions import CatalogUnavailableError
from packages.common.language import Language, normalize_language
from packages.common.schemas.catalog_records import (
    CategoryRecoveryRecord,
    KeywordRecord,
    ProcedureRecord,
)

logger = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)

PROCEDURE_TABLE = "treatment_master"
RECOVERY_TABLE = "category_treattime_recovery"
KEYWORD_TABLE = "category_keyword"


class CatalogRepository:
    """
    Read-only catalog access implementing the procedure, recovery metadata
    and keyword sources.

    Usage:
        repository = CatalogRepository()
        procedures = await repository.fetch_procedures(Language.EN, category_large="Nose")
        records = await repository.fetch_recovery_records(Language.EN)
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Any]] = None,
        base_language: Optional[Language] = None,
    ):
        """
        Args:
            session_factory: Callable returning an async session context manager
                (global sessionmanager.session if omitted)
            base_language: Language stored in the unsuffixed tables (BASE_LANGUAGE)
        """
        self.session_factory = session_factory or sessionmanager.session
        self.base_language = base_language or get_settings().base_language

    def table_name(self, table: str, language: Language) -> str:
        """Per-language table name: base language unsuffixed, others `_en`/`_jp`/`_cn`"""
        language = normalize_language(language)
        if language == self.base_language:
            return table
        return f"{table}_{language.value.lower()}"

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
            search: Case-insensitive substring filter on procedure name

        Returns:
            Procedure records, unparseable rows skipped

        Raises:
            CatalogUnavailableError: If the table cannot be read
        """
        table = self.table_name(PROCEDURE_TABLE, language)

        conditions = []
        params: Dict[str, Any] = {}
        for column, value in (
            ("category_large", category_large),
            ("category_mid", category_mid),
            ("category_small", category_small),
        ):
            if value:
                conditions.append(f"{column} = :{column}")
                params[column] = value

        if search and search.strip():
            conditions.append("LOWER(treatment_name) LIKE :search")
            params["search"] = f"%{search.strip().lower()}%"

        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        query = text(f"SELECT * FROM {table}{where}")

        rows = await self._fetch_rows(table, query, params)
        return self._to_models(rows, ProcedureRecord, table)

    async def fetch_recovery_records(self, language: Language) -> List[CategoryRecoveryRecord]:
        """
        Fetch a language's full category recovery table.

        Raises:
            CatalogUnavailableError: If the table cannot be read
        """
        table = self.table_name(RECOVERY_TABLE, language)
        rows = await self._fetch_rows(table, text(f"SELECT * FROM {table}"), {})
        return self._to_models(rows, CategoryRecoveryRecord, table)

    async def fetch_keyword_records(self, language: Language) -> List[KeywordRecord]:
        """
        Fetch a language's keyword → group key table.

        Raises:
            CatalogUnavailableError: If the table cannot be read
        """
        table = self.table_name(KEYWORD_TABLE, language)
        rows = await self._fetch_rows(table, text(f"SELECT * FROM {table}"), {})
        return self._to_models(rows, KeywordRecord, table)

    async def _fetch_rows(self, table: str, query, params: Dict[str, Any]) -> List[Mapping[str, Any]]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(query, params)
                rows = [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.error("catalog_query_failed",
                         table=table,
                         error=str(e),
                         exc_info=True)
            raise CatalogUnavailableError(f"Failed to read {table}: {e}", source=table) from e

        logger.debug("catalog_rows_fetched", table=table, rows=len(rows))
        return rows

    @staticmethod
    def _to_models(rows: List[Mapping[str, Any]], model: Type[M], table: str) -> List[M]:
        records = []
        skipped = 0
        for row in rows:
            try:
                records.append(model.model_validate(row))
            except ValidationError as e:
                skipped += 1
                logger.debug("catalog_row_invalid",
                             table=table,
                             error=e.errors()[0]["msg"] if e.errors() else str(e))

        if skipped:
            logger.warning("catalog_rows_skipped", table=table, skipped=skipped, kept=len(records))
        return records


# Singleton instance
catalog_repository = CatalogRepository()
