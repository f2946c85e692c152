"""
Day-bucket recovery guidance

Each category recovery record carries four guidance texts, one per recovery
bucket. The buckets partition 1-21 days without gaps; a recovery max outside
that range (0 = unknown, or more than three weeks) has no guidance.
"""
from enum import Enum
from typing import Optional

from packages.common.schemas.catalog_records import CategoryRecoveryRecord


class GuidanceBucket(str, Enum):
    """Recovery guidance bucket (inclusive day range)"""
    DAYS_1_3 = "1-3"
    DAYS_4_7 = "4-7"
    DAYS_8_14 = "8-14"
    DAYS_15_21 = "15-21"

    @property
    def first_day(self) -> int:
        return int(self.value.split("-")[0])

    @property
    def last_day(self) -> int:
        return int(self.value.split("-")[1])

    def contains(self, days: int) -> bool:
        return self.first_day <= days <= self.last_day


def select_guidance_bucket(recovery_max: Optional[int]) -> Optional[GuidanceBucket]:
    """
    Pick the single bucket whose inclusive range contains recovery_max.

    Returns None for 0/unknown or values past the last bucket.
    """
    if not recovery_max or recovery_max < 1:
        return None

    for bucket in GuidanceBucket:
        if bucket.contains(recovery_max):
            return bucket
    return None


def guidance_text(record: CategoryRecoveryRecord, bucket: Optional[GuidanceBucket]) -> Optional[str]:
    """Record's guidance text for a bucket, None when missing or blank"""
    if bucket is None:
        return None
    text = {
        GuidanceBucket.DAYS_1_3: record.guidance_1_3,
        GuidanceBucket.DAYS_4_7: record.guidance_4_7,
        GuidanceBucket.DAYS_8_14: record.guidance_8_14,
        GuidanceBucket.DAYS_15_21: record.guidance_15_21,
    }[bucket]
    if text is None or not text.strip():
        return None
    return text
