"""
HTTP Catalog Feed - procedure catalog from a published JSON export

The export is a single JSON array of treatment rows in the base language.
It is produced by a pandas dump, so missing numbers appear as bare NaN
tokens, which strict JSON does not allow:

    {"treatment_id": 7, "selling_price": NaN, "rating": 4.5}

The parser maps NaN (and Infinity) constants to None; string values that
merely contain the text "NaN" are untouched. Category and search filters are
applied in memory since the feed has no query interface.
"""
import json
from typing import Any, List, Optional

import httpx
import structlog
from pydantic import ValidationError

from packages.common.config import get_settings
from packages.common.exceptions import CatalogUnavailableError
from packages.common.language import Language, normalize_language
from packages.common.schemas.catalog_records import ProcedureRecord

logger = structlog.get_logger()


def parse_feed_payload(payload: str) -> Any:
    """Parse the export, mapping bare NaN/Infinity constants to None"""
    return json.loads(payload, parse_constant=lambda _: None)


class HttpCatalogFeed:
    """
    Procedure catalog source backed by a JSON export over HTTP.

    Only the base language is published; other languages raise
    CatalogUnavailableError.

    Usage:
        feed = HttpCatalogFeed(url="https://example.org/treatments.json")
        procedures = await feed.fetch_procedures(Language.KR, category_large="코성형")
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_language: Optional[Language] = None,
    ):
        """
        Args:
            url: Feed URL (CATALOG_FEED_URL)
            timeout: Request timeout in seconds (CATALOG_FEED_TIMEOUT)
            transport: httpx transport override (tests use httpx.MockTransport)
            base_language: Language the feed is published in (BASE_LANGUAGE)
        """
        settings = get_settings()
        self.url = url if url is not None else settings.catalog_feed_url
        self.timeout = timeout if timeout is not None else settings.catalog_feed_timeout
        self.transport = transport
        self.base_language = base_language or settings.base_language

    async def fetch_procedures(
        self,
        language: Language,
        category_large: Optional[str] = None,
        category_mid: Optional[str] = None,
        category_small: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[ProcedureRecord]:
        """
        Download the export and return matching procedures.

        Raises:
            CatalogUnavailableError: On transport errors, non-200 responses,
                invalid JSON, a non-array payload or an unpublished language
        """
        language = normalize_language(language)
        if language != self.base_language:
            raise CatalogUnavailableError(
                f"Catalog feed only publishes {self.base_language.value}, not {language.value}",
                source="catalog_feed",
            )

        rows = await self._load_rows()

        procedures = []
        skipped = 0
        for row in rows:
            if not isinstance(row, dict):
                skipped += 1
                continue
            try:
                procedures.append(ProcedureRecord.model_validate(row))
            except ValidationError:
                skipped += 1

        if skipped:
            logger.warning("catalog_feed_rows_skipped", skipped=skipped, kept=len(procedures))

        needle = search.strip().lower() if search and search.strip() else None
        filtered = [
            p for p in procedures
            if (not category_large or p.category_large == category_large)
            and (not category_mid or p.category_mid == category_mid)
            and (not category_small or p.category_small == category_small)
            and (needle is None or needle in (p.name or "").lower())
        ]

        logger.debug("catalog_feed_filtered",
                     total=len(procedures),
                     returned=len(filtered),
                     category_large=category_large,
                     category_mid=category_mid,
                     search=search)
        return filtered

    async def _load_rows(self) -> List[Any]:
        if not self.url:
            raise CatalogUnavailableError("CATALOG_FEED_URL is not configured", source="catalog_feed")

        logger.info("catalog_feed_download_started", url=self.url)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.get(self.url, headers={"Accept": "application/json"})
        except httpx.TimeoutException as e:
            logger.error("catalog_feed_timeout", url=self.url, timeout=self.timeout)
            raise CatalogUnavailableError(f"Catalog feed timed out after {self.timeout}s", source="catalog_feed") from e
        except httpx.HTTPError as e:
            logger.error("catalog_feed_error", url=self.url, error=str(e), exc_info=True)
            raise CatalogUnavailableError(f"Catalog feed request failed: {e}", source="catalog_feed") from e

        if response.status_code != 200:
            logger.error("catalog_feed_failed", url=self.url, status_code=response.status_code)
            raise CatalogUnavailableError(
                f"Catalog feed returned HTTP {response.status_code}",
                source="catalog_feed",
            )

        try:
            data = parse_feed_payload(response.text)
        except json.JSONDecodeError as e:
            logger.error("catalog_feed_invalid_json", url=self.url, error=str(e))
            raise CatalogUnavailableError(f"Catalog feed is not valid JSON: {e}", source="catalog_feed") from e

        if not isinstance(data, list):
            logger.error("catalog_feed_not_array", url=self.url, payload_type=type(data).__name__)
            raise CatalogUnavailableError("Catalog feed payload is not an array", source="catalog_feed")

        logger.info("catalog_feed_download_complete", url=self.url, rows=len(data))
        return data
