"""
Catalog record schemas (Pydantic models)
Rows read from the procedure, recovery metadata and keyword tables

Catalog rows arrive with whichever field names the upstream language table
happens to use (treatment_id vs id, dis_rate vs discount_rate, downtime_max vs
recovery_max, ...). The AliasChoices on each field map them to one canonical
name at the boundary, and numeric fields coerce null/NaN/blank to 0 ("unknown").
"""
import math
import re
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from packages.common.language import Language

_FIRST_INT_RE = re.compile(r"(\d+)")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _coerce_day_count(value: Any) -> int:
    """Coerce a metadata number (int, float, '3', '3일') to a non-negative int, 0 when unknown"""
    if _is_blank(value):
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(0, int(value))
    match = _FIRST_INT_RE.search(str(value))
    return int(match.group(1)) if match else 0


def _coerce_float(value: Any) -> float:
    if _is_blank(value):
        return 0.0
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return 0.0


class ProcedureRecord(BaseModel):
    """One bookable procedure offering from a language-specific catalog table"""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: Optional[Union[int, str]] = Field(None, validation_alias=AliasChoices("id", "treatment_id"))
    name: Optional[str] = Field(None, validation_alias=AliasChoices("name", "treatment_name"))
    hospital_name: Optional[str] = None

    category_large: Optional[str] = None
    category_mid: Optional[str] = None
    category_small: Optional[str] = None

    price: Optional[float] = Field(None, validation_alias=AliasChoices("price", "selling_price"))
    rating: float = 0.0
    review_count: int = 0
    discount_rate: float = Field(0.0, validation_alias=AliasChoices("discount_rate", "dis_rate"))
    hashtags: Optional[str] = Field(None, validation_alias=AliasChoices("hashtags", "treatment_hashtags"))

    # Per-item duration text from before category metadata existed ("1-2일", 3, "30분")
    legacy_recovery: Optional[Union[int, float, str]] = Field(
        None, validation_alias=AliasChoices("legacy_recovery", "downtime", "recovery_period")
    )
    legacy_procedure_time: Optional[Union[int, float, str]] = Field(
        None, validation_alias=AliasChoices("legacy_procedure_time", "surgery_time", "procedure_time")
    )

    @field_validator("price", mode="before")
    @classmethod
    def blank_price_is_none(cls, v):
        if _is_blank(v):
            return None
        return v

    @field_validator("rating", "discount_rate", mode="before")
    @classmethod
    def coerce_float(cls, v):
        return _coerce_float(v)

    @field_validator("review_count", mode="before")
    @classmethod
    def coerce_review_count(cls, v):
        return int(_coerce_float(v))

    @field_validator("legacy_recovery", "legacy_procedure_time", mode="before")
    @classmethod
    def nan_is_none(cls, v):
        if isinstance(v, float) and math.isnan(v):
            return None
        return v


class CategoryRecoveryRecord(BaseModel):
    """Recovery/duration metadata for one mid- or small-category bucket in one language"""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    group_key: str = Field(..., validation_alias=AliasChoices("group_key", "category_mid_key", "category_key"))
    label: str = Field(..., validation_alias=AliasChoices("label", "category_label", "category_mid", "category_small"))
    language: Optional[Language] = None

    recovery_min: int = Field(0, validation_alias=AliasChoices("recovery_min", "downtime_min", "recovery_days_min"))
    recovery_max: int = Field(0, validation_alias=AliasChoices("recovery_max", "downtime_max", "recovery_days_max"))
    procedure_time_min: int = Field(
        0, validation_alias=AliasChoices("procedure_time_min", "surgery_time_min", "treat_time_min")
    )
    procedure_time_max: int = Field(
        0, validation_alias=AliasChoices("procedure_time_max", "surgery_time_max", "treat_time_max")
    )
    recommended_stay_days: int = Field(
        0, validation_alias=AliasChoices("recommended_stay_days", "recommended_stay", "stay_days")
    )

    guidance_1_3: Optional[str] = Field(None, validation_alias=AliasChoices("guidance_1_3", "recovery_guide_1_3"))
    guidance_4_7: Optional[str] = Field(None, validation_alias=AliasChoices("guidance_4_7", "recovery_guide_4_7"))
    guidance_8_14: Optional[str] = Field(
        None, validation_alias=AliasChoices("guidance_8_14", "recovery_guide_8_14")
    )
    guidance_15_21: Optional[str] = Field(
        None, validation_alias=AliasChoices("guidance_15_21", "recovery_guide_15_21")
    )

    @field_validator(
        "recovery_min",
        "recovery_max",
        "procedure_time_min",
        "procedure_time_max",
        "recommended_stay_days",
        mode="before",
    )
    @classmethod
    def coerce_day_count(cls, v):
        return _coerce_day_count(v)

    @field_validator("group_key", "label", mode="before")
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return v
        return str(v).strip()


class KeywordRecord(BaseModel):
    """Search keyword → group key row from the keyword table"""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    keyword: str = Field(..., validation_alias=AliasChoices("keyword", "search_keyword"))
    group_key: str = Field(..., validation_alias=AliasChoices("group_key", "category_mid_key", "category_key"))
    language: Optional[Language] = None
