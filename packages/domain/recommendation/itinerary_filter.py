"""
Itinerary Filter - does a category fit the traveler's dates?

Rules:
- travel_days: inclusive day count of the window
- total_days_needed: recovery days + 1 for the procedure day itself, or 0 when
  recovery is unknown
- excluded iff total_days_needed > 0 and total_days_needed > travel_days

Example (3-day window, 2025-06-01 → 2025-06-03):
- recovery_max 2 → needs 3 → fits
- recovery_max 3 → needs 4 → excluded

Categories without resolved metadata, or whose resolved recovery is unknown
(0), fall back to each procedure's own legacy recovery text; procedures
whose legacy text cannot be parsed are never excluded here.
"""
from typing import List, Optional, Sequence

import structlog

from packages.common.config import get_settings
from packages.domain.recommendation.schemas import (
    RecoveryMetadata,
    ScoredProcedure,
    TravelWindow,
)

logger = structlog.get_logger()


def total_days_needed(recovery_days: Optional[int]) -> int:
    """Recovery days plus the procedure day; 0 when recovery is unknown"""
    if not recovery_days or recovery_days <= 0:
        return 0
    return recovery_days + 1


def fits_travel_days(recovery_days: Optional[int], travel_days: int) -> bool:
    """Inclusion law: unknown recovery always fits, otherwise recovery + 1 <= travel_days"""
    needed = total_days_needed(recovery_days)
    return not (needed > 0 and needed > travel_days)


class ItineraryFilter:
    """
    Decides which categories and procedures fit a travel window.
    """

    def __init__(self, legacy_top_n: Optional[int] = None):
        """
        Args:
            legacy_top_n: Max procedures kept for a category with no usable
                duration data at all (LEGACY_TOP_N)
        """
        self.legacy_top_n = legacy_top_n if legacy_top_n is not None else get_settings().legacy_top_n

    def fits(self, metadata: Optional[RecoveryMetadata], window: TravelWindow) -> bool:
        """
        Check a resolved category against the window.

        Args:
            metadata: Resolved metadata, or None when the category is unresolved
            window: Traveler's dates

        Returns:
            True if the category can be completed within the window. Unresolved
            categories and unknown (0) recovery always pass here; legacy
            per-item filtering applies separately.

        Raises:
            InvalidTravelWindowError: If the window ends before it starts
        """
        travel_days = window.travel_days
        if metadata is None:
            return True
        return fits_travel_days(metadata.itinerary_days, travel_days)

    def filter_legacy(
        self,
        procedures: Sequence[ScoredProcedure],
        window: TravelWindow,
    ) -> List[ScoredProcedure]:
        """
        Filter a category's procedures on their legacy recovery text (used when the
        category is unresolved or its recovery is unknown).

        A procedure is dropped only when its parsed recovery + 1 exceeds the
        travel days. If no procedure in the group had a parseable recovery,
        the group is ranked by score alone and capped to legacy_top_n.

        Args:
            procedures: Scored procedures with parsed legacy durations
            window: Traveler's dates

        Returns:
            Kept procedures, highest score first
        """
        travel_days = window.travel_days

        has_recovery_data = any(p.legacy_recovery_days for p in procedures)

        kept = [
            p for p in procedures
            if fits_travel_days(p.legacy_recovery_days, travel_days)
        ]
        dropped = len(procedures) - len(kept)

        if dropped:
            logger.debug("legacy_recovery_excluded",
                         travel_days=travel_days,
                         dropped=dropped,
                         kept=len(kept))

        kept.sort(key=lambda p: p.score, reverse=True)

        if not has_recovery_data:
            return kept[:self.legacy_top_n]
        return kept
