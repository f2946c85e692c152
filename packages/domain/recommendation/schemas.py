"""
Data schemas for the recommendation module

Catalog rows (procedures, recovery metadata, keywords) are defined in
packages.common.schemas.catalog_records and re-exported here; this module adds
the resolver, itinerary and ranking result types built from them.
"""
from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from packages.common.language import Language
from packages.common.schemas.catalog_records import (
    CategoryRecoveryRecord,
    KeywordRecord,
    ProcedureRecord,
)
from packages.domain.recommendation.exceptions import InvalidTravelWindowError
from packages.domain.recommendation.guidance import GuidanceBucket


class MatchMethod(str, Enum):
    """How a label was resolved to recovery metadata"""
    EXACT = "exact"                # raw label equality, target language
    NORMALIZED = "normalized"      # normalize_label equality, target language
    BRIDGED = "bridged"            # via base-language group key
    GROUP_KEY = "group_key"        # direct group key lookup (keyword / guide pages)
    NOT_FOUND = "not_found"
    TIMED_OUT = "timed_out"


class RecoveryMetadata(BaseModel):
    """
    Canonical recovery metadata resolved for a category label.

    itinerary_days is the number that drives the itinerary decision
    (recovery_max, or recommended_stay_days under the recommended-stay basis).
    """

    model_config = ConfigDict(frozen=True)

    group_key: str
    label: str
    language: Language
    recovery_min: int = 0
    recovery_max: int = 0
    procedure_time_min: int = 0
    procedure_time_max: int = 0
    recommended_stay_days: int = 0
    itinerary_days: int = 0
    guidance_bucket: Optional[GuidanceBucket] = None
    guidance_text: Optional[str] = None


class RecoveryMatch(BaseModel):
    """Tagged resolver result: metadata plus the strategy that produced it"""

    model_config = ConfigDict(frozen=True)

    label: Optional[str]
    language: Language
    method: MatchMethod
    metadata: Optional[RecoveryMetadata] = None

    @property
    def found(self) -> bool:
        return self.metadata is not None

    @classmethod
    def not_found(cls, label: Optional[str], language: Language) -> "RecoveryMatch":
        return cls(label=label, language=language, method=MatchMethod.NOT_FOUND)

    @classmethod
    def timed_out(cls, label: Optional[str], language: Language) -> "RecoveryMatch":
        return cls(label=label, language=language, method=MatchMethod.TIMED_OUT)


class TravelWindow(BaseModel):
    """Traveler's available dates (inclusive)"""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @property
    def travel_days(self) -> int:
        """
        Inclusive day count: a 2025-06-01 → 2025-06-03 trip is 3 days.

        Raises:
            InvalidTravelWindowError: If end is before start
        """
        if self.end < self.start:
            raise InvalidTravelWindowError(
                f"Travel window ends ({self.end.isoformat()}) before it starts ({self.start.isoformat()})"
            )
        return (self.end - self.start).days + 1


class ScoredProcedure(BaseModel):
    """Procedure with its suitability score and parsed legacy durations"""

    model_config = ConfigDict(frozen=True)

    procedure: ProcedureRecord
    score: float
    legacy_recovery_days: Optional[int] = None
    legacy_procedure_minutes: Optional[int] = None


class CategoryGroup(BaseModel):
    """
    One (large, mid) category bucket in a recommendation result.

    Recovery and procedure-time ranges are None when the category could not
    be resolved. Unresolved groups, and resolved groups whose recovery is
    unknown (0), had their members filtered on their own legacy durations.
    The averages are None when no duration is known at all.
    """

    group_key: str
    category_large: str
    category_mid: Optional[str] = None
    procedures: List[ScoredProcedure] = Field(default_factory=list)

    match_method: MatchMethod = MatchMethod.NOT_FOUND
    recovery_min: Optional[int] = None
    recovery_max: Optional[int] = None
    procedure_time_min: Optional[int] = None
    procedure_time_max: Optional[int] = None
    recommended_stay_days: Optional[int] = None
    guidance_text: Optional[str] = None

    average_recovery_days: Optional[float] = None
    average_procedure_minutes: Optional[float] = None

    @property
    def top_score(self) -> float:
        """Best member score (0 for an empty group)"""
        return max((item.score for item in self.procedures), default=0.0)

    @property
    def resolved(self) -> bool:
        return self.match_method not in (MatchMethod.NOT_FOUND, MatchMethod.TIMED_OUT)


class ProcedureNameRanking(BaseModel):
    """Procedures offered under the same name, aggregated for the name ranking"""

    name: str
    procedures: List[ProcedureRecord]
    average_rating: float
    total_reviews: int
    average_price: float
    score: float
    top_procedures: List[ProcedureRecord]
