"""
Suitability Scorer & Ranker

Per-procedure score:
- rating × 40 (rating 0-5, dominant channel)
- log10(review_count + 1) × 10 × 3 (logarithmic: each tenfold increase adds 30)
- price band: 20 below the reasonable-price threshold, 10 at or above it,
  0 when there is no price (price-inquiry items)
- discount rate × 0.1 (additive, uncapped)

Ranking:
- items within a group: score descending
- groups: top score descending, then shorter average recovery (unknown
  recovery sorts after every known value), then group key
"""
import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import structlog

from packages.common.config import get_settings
from packages.domain.recommendation.legacy_durations import parse_day_count, parse_minutes
from packages.domain.recommendation.normalizer import normalize_label
from packages.domain.recommendation.schemas import (
    CategoryGroup,
    ProcedureNameRanking,
    ProcedureRecord,
    ScoredProcedure,
)

logger = structlog.get_logger()

# Procedures featured on the K-beauty ranking (name, hashtags or large category)
KBEAUTY_KEYWORDS = (
    "리쥬란",
    "인모드",
    "슈링크",
    "윤곽",
    "주사",
    "보톡스",
    "필러",
    "리프팅",
    "탄력",
    "미백",
    "백옥",
    "프락셀",
    "피코",
    "레이저",
)


@dataclass(frozen=True)
class ScoreWeights:
    """Weights for the suitability score"""
    rating: float = 40.0
    review_log: float = 10.0
    review_share: float = 3.0
    price_reasonable: float = 20.0
    price_other: float = 10.0
    price_missing: float = 0.0
    discount: float = 0.1


class SuitabilityScorer:
    """
    Scores and ranks procedures and category groups.
    """

    def __init__(self, weights: Optional[ScoreWeights] = None, reasonable_price_threshold: Optional[float] = None):
        self.weights = weights or ScoreWeights()
        if reasonable_price_threshold is None:
            reasonable_price_threshold = get_settings().reasonable_price_threshold
        self.reasonable_price_threshold = reasonable_price_threshold

    def score(self, procedure: ProcedureRecord) -> float:
        """Composite suitability score for one procedure"""
        w = self.weights

        rating_score = procedure.rating * w.rating
        review_score = math.log10(procedure.review_count + 1) * w.review_log * w.review_share
        discount_bonus = procedure.discount_rate * w.discount

        return rating_score + review_score + self._price_score(procedure.price) + discount_bonus

    def _price_score(self, price: Optional[float]) -> float:
        if price is None or price <= 0:
            return self.weights.price_missing
        if price < self.reasonable_price_threshold:
            return self.weights.price_reasonable
        return self.weights.price_other

    def score_procedure(self, procedure: ProcedureRecord) -> ScoredProcedure:
        """Score a procedure and parse its legacy durations once"""
        return ScoredProcedure(
            procedure=procedure,
            score=self.score(procedure),
            legacy_recovery_days=parse_day_count(procedure.legacy_recovery),
            legacy_procedure_minutes=parse_minutes(procedure.legacy_procedure_time),
        )

    def score_all(self, procedures: Iterable[ProcedureRecord]) -> List[ScoredProcedure]:
        return [self.score_procedure(p) for p in procedures]

    @staticmethod
    def rank_items(items: Iterable[ScoredProcedure]) -> List[ScoredProcedure]:
        """Score descending; equal scores keep a stable id order"""
        return sorted(items, key=lambda item: (-item.score, str(item.procedure.id)))

    @staticmethod
    def rank_groups(groups: Iterable[CategoryGroup]) -> List[CategoryGroup]:
        """Top score descending, then shorter known average recovery (unknown last), then group key"""
        return sorted(
            groups,
            key=lambda g: (
                -g.top_score,
                g.average_recovery_days is None,
                g.average_recovery_days or 0.0,
                g.group_key,
            ),
        )

    # ------------------------------------------------------------------
    # Catalog ranking views
    # ------------------------------------------------------------------

    def rank_category(
        self,
        procedures: Iterable[ProcedureRecord],
        category: Optional[str] = None,
    ) -> List[ScoredProcedure]:
        """
        Rank procedures whose large or mid category equals `category` (all when None).
        """
        if category:
            procedures = [
                p for p in procedures
                if p.category_large == category or p.category_mid == category
            ]
        return self.rank_items(self.score_all(procedures))

    def rank_by_keywords(
        self,
        procedures: Iterable[ProcedureRecord],
        keywords: Sequence[str] = KBEAUTY_KEYWORDS,
    ) -> List[ScoredProcedure]:
        """
        Rank procedures whose name, hashtags or large category contains any keyword.
        """
        keys = [normalize_label(k) for k in keywords if normalize_label(k)]
        selected = []
        for procedure in procedures:
            haystacks = (
                normalize_label(procedure.name),
                normalize_label(procedure.hashtags),
                normalize_label(procedure.category_large),
            )
            if any(key in text for key in keys for text in haystacks):
                selected.append(procedure)

        logger.debug("keyword_ranking_filtered", keywords=len(keys), selected=len(selected))
        return self.rank_items(self.score_all(selected))

    def rank_by_name(self, procedures: Iterable[ProcedureRecord]) -> List[ProcedureNameRanking]:
        """
        Aggregate procedures offered under the same name and rank the names.

        Each name's score is computed on its best-rated offering, with the
        rating replaced by the name's average rating and the review count by
        its total reviews.
        """
        by_name: "OrderedDict[str, List[ProcedureRecord]]" = OrderedDict()
        for procedure in procedures:
            if not procedure.name:
                continue
            by_name.setdefault(procedure.name, []).append(procedure)

        rankings = []
        for name, offerings in by_name.items():
            ratings = [p.rating for p in offerings if p.rating > 0]
            prices = [p.price for p in offerings if p.price and p.price > 0]
            total_reviews = sum(p.review_count for p in offerings)

            average_rating = sum(ratings) / len(ratings) if ratings else 0.0
            average_price = sum(prices) / len(prices) if prices else 0.0

            top = sorted(offerings, key=lambda p: p.rating, reverse=True)[:3]
            representative = top[0].model_copy(
                update={"rating": average_rating, "review_count": total_reviews}
            )

            rankings.append(ProcedureNameRanking(
                name=name,
                procedures=offerings,
                average_rating=average_rating,
                total_reviews=total_reviews,
                average_price=average_price,
                score=self.score(representative),
                top_procedures=top,
            ))

        rankings.sort(key=lambda r: (-r.score, r.name))
        return rankings


# Singleton instance
suitability_scorer = SuitabilityScorer()
