"""
Tests for the recommendation service (end-to-end over in-memory sources).

Verifies that:
1. Groups whose recovery + procedure day exceeds the window are dropped
2. Unresolved groups fall back to per-item legacy recovery text
3. Groups are ranked by top score, items by score
4. Resolver fan-out is bounded, tables are read once per request and source
   failures propagate
5. Groups whose category recovery is unknown are filtered item by item
"""
from datetime import date

import pytest

from packages.common.language import Language
from packages.domain.recommendation.category_aliases import UiCategory
from packages.domain.recommendation.exceptions import (
    CatalogUnavailableError,
    InvalidTravelWindowError,
)
from packages.domain.recommendation.itinerary_filter import ItineraryFilter
from packages.domain.recommendation.recommendation_service import (
    RecommendationService,
    make_group_key,
)
from packages.domain.recommendation.recovery_resolver import RecoveryResolver
from packages.domain.recommendation.resolver_cache import ResolverCache
from packages.domain.recommendation.schemas import MatchMethod, TravelWindow
from packages.domain.recommendation.scorer import SuitabilityScorer
from tests.fakes import CountingResolver, FakeCatalogSource, FakeRecoverySource

KR_CATALOG = [
    {"treatment_id": 1, "treatment_name": "코끝 성형 A", "category_large": "코성형", "category_mid": "코끝",
     "rating": 4.5, "review_count": 100, "selling_price": 2_000_000},
    {"treatment_id": 2, "treatment_name": "코끝 성형 B", "category_large": "코성형", "category_mid": "코끝",
     "rating": 4.9, "review_count": 300, "selling_price": 900_000, "dis_rate": 10},
    {"treatment_id": 3, "treatment_name": "코 재수술", "category_large": "코성형", "category_mid": "재수술",
     "rating": 5.0, "review_count": 999},
    {"treatment_id": 4, "treatment_name": "코 필러", "category_large": "코성형", "category_mid": "기타코",
     "rating": 4.0, "review_count": 10, "downtime": "1일"},
    {"treatment_id": 5, "treatment_name": "코 실리프팅", "category_large": "코성형", "category_mid": "기타코",
     "rating": 4.2, "review_count": 10, "downtime": "5~7일"},
    {"treatment_id": 6, "treatment_name": "코 상담", "category_large": "코성형", "category_mid": "기타코",
     "rating": 3.0, "review_count": 1, "downtime": "상담 후 결정"},
    {"treatment_id": 7, "treatment_name": "쌍꺼풀", "category_large": "눈성형", "category_mid": "쌍꺼풀",
     "rating": 4.8, "review_count": 500},
    {"treatment_id": 8, "treatment_name": "분류없음", "category_large": None, "rating": 5.0},
]


def make_service(recovery_source, catalog_source=None, concurrency=8, timeout=None):
    resolver = RecoveryResolver(
        recovery_source,
        cache=ResolverCache(max_entries=100),
        base_language=Language.KR,
        timeout=timeout,
    )
    return RecommendationService(
        resolver=resolver,
        catalog_source=catalog_source,
        scorer=SuitabilityScorer(reasonable_price_threshold=1_000_000),
        itinerary_filter=ItineraryFilter(legacy_top_n=10),
        concurrency=concurrency,
    )


class TestRecommend:

    async def test_three_day_window_for_nose(self, recovery_source, three_day_window):
        service = make_service(recovery_source)

        groups = await service.recommend(KR_CATALOG, "코성형", three_day_window, Language.KR)

        keys = [g.group_key for g in groups]
        assert make_group_key("코성형", "재수술") not in keys
        assert set(keys) == {"코성형::코끝", "코성형::기타코"}

        tip = next(g for g in groups if g.category_mid == "코끝")
        assert tip.match_method == MatchMethod.EXACT
        assert tip.recovery_min == 1
        assert tip.recovery_max == 2
        assert tip.average_recovery_days == pytest.approx(1.5)
        assert [p.procedure.id for p in tip.procedures] == [2, 1]

        other = next(g for g in groups if g.category_mid == "기타코")
        assert other.match_method == MatchMethod.NOT_FOUND
        assert other.recovery_max is None
        assert [p.procedure.id for p in other.procedures] == [4, 6]
        assert other.average_recovery_days == pytest.approx(1.0)

    async def test_groups_ranked_by_top_score(self, recovery_source, three_day_window):
        service = make_service(recovery_source)

        groups = await service.recommend(KR_CATALOG, UiCategory.ALL, three_day_window, Language.KR)

        top_scores = [g.top_score for g in groups]
        assert top_scores == sorted(top_scores, reverse=True)
        assert all(g.category_large for g in groups)

    async def test_wider_window_keeps_long_recovery(self, recovery_source):
        service = make_service(recovery_source)
        window = TravelWindow(start=date(2025, 6, 1), end=date(2025, 6, 10))

        groups = await service.recommend(KR_CATALOG, "코성형", window, Language.KR)

        revision = next(g for g in groups if g.category_mid == "재수술")
        assert revision.recovery_max == 7
        other = next(g for g in groups if g.category_mid == "기타코")
        assert [p.procedure.id for p in other.procedures] == [5, 4, 6]

    async def test_unmatched_label_with_unparseable_legacy_text_included(self, three_day_window):
        service = make_service(FakeRecoverySource({Language.KR: []}))
        catalog = [{"treatment_id": 9, "category_large": "피부", "category_mid": "토닝", "downtime": "없음"}]

        groups = await service.recommend(catalog, None, three_day_window, Language.KR)

        assert len(groups) == 1
        assert groups[0].match_method == MatchMethod.NOT_FOUND
        assert [p.procedure.id for p in groups[0].procedures] == [9]

    async def test_bridged_labels_in_translated_catalog(self, recovery_source, three_day_window):
        service = make_service(recovery_source)
        catalog = [
            {"treatment_id": 11, "category_large": "Nose Surgery", "category_mid": "Nose Tip", "rating": 4.0},
            {"treatment_id": 12, "category_large": "Nose Surgery", "category_mid": "코끝", "rating": 4.0},
        ]

        groups = await service.recommend(catalog, "Nose", three_day_window, "EN")

        methods = {g.category_mid: g.match_method for g in groups}
        assert methods == {"Nose Tip": MatchMethod.EXACT, "코끝": MatchMethod.BRIDGED}

    async def test_invalid_window_rejected_before_lookups(self, recovery_source):
        service = make_service(recovery_source)
        window = TravelWindow(start=date(2025, 6, 3), end=date(2025, 6, 1))

        with pytest.raises(InvalidTravelWindowError):
            await service.recommend(KR_CATALOG, "코성형", window, Language.KR)

        assert recovery_source.calls == []

    async def test_metadata_failure_propagates(self, failing_recovery_source, three_day_window):
        service = make_service(failing_recovery_source)

        with pytest.raises(CatalogUnavailableError):
            await service.recommend(KR_CATALOG, "코성형", three_day_window, Language.KR)

    async def test_timed_out_groups_treated_as_unconstrained(self, recovery_tables, three_day_window):
        service = make_service(FakeRecoverySource(recovery_tables, delay=0.5), timeout=0.01)

        groups = await service.recommend(KR_CATALOG, "코성형", three_day_window, Language.KR)

        revision = next(g for g in groups if g.category_mid == "재수술")
        assert revision.match_method == MatchMethod.TIMED_OUT
        assert revision.recovery_max is None

    async def test_fan_out_bounded(self, recovery_source, three_day_window):
        resolver = CountingResolver(
            recovery_source,
            cache=ResolverCache(max_entries=100),
            base_language=Language.KR,
            timeout=None,
        )
        service = RecommendationService(resolver=resolver, concurrency=2)
        catalog = [
            {"treatment_id": i, "category_large": "피부", "category_mid": f"시술{i}"}
            for i in range(10)
        ]

        groups = await service.recommend(catalog, None, three_day_window, Language.KR)

        assert len(groups) == 10
        assert resolver.max_in_flight == 2
        assert recovery_source.calls == [Language.KR]

    async def test_each_table_read_once_per_request(self, recovery_source, three_day_window):
        service = make_service(recovery_source)
        catalog = [
            {"treatment_id": i, "category_large": "Skin", "category_mid": f"Unknown Treatment {i}"}
            for i in range(10)
        ]

        await service.recommend(catalog, None, three_day_window, Language.EN)

        assert len(recovery_source.calls) == 2
        assert set(recovery_source.calls) == {Language.EN, Language.KR}

        # A new request reads the tables again
        await service.recommend(catalog, None, three_day_window, Language.EN)
        assert len(recovery_source.calls) == 4

    async def test_unknown_group_recovery_filters_items_on_own_text(self, three_day_window):
        source = FakeRecoverySource({
            Language.KR: [{"group_key": "K8", "label": "가슴", "recovery_max": 0}],
        })
        service = make_service(source)
        catalog = [
            {"treatment_id": 1, "category_large": "가슴성형", "category_mid": "가슴", "downtime": "14일"},
            {"treatment_id": 2, "category_large": "가슴성형", "category_mid": "가슴", "downtime": "2일"},
        ]

        groups = await service.recommend(catalog, None, three_day_window, Language.KR)

        assert len(groups) == 1
        assert groups[0].match_method == MatchMethod.EXACT
        assert groups[0].recovery_max == 0
        assert [p.procedure.id for p in groups[0].procedures] == [2]
        assert groups[0].average_recovery_days == pytest.approx(2.0)

    async def test_unknown_group_recovery_dropped_when_no_item_fits(self, three_day_window):
        source = FakeRecoverySource({
            Language.KR: [{"group_key": "K8", "label": "가슴", "recovery_max": 0}],
        })
        service = make_service(source)
        catalog = [{"treatment_id": 1, "category_large": "가슴성형", "category_mid": "가슴", "downtime": "14일"}]

        assert await service.recommend(catalog, None, three_day_window, Language.KR) == []

    async def test_unknown_recovery_ranked_after_known_on_tie(self, recovery_source, three_day_window):
        service = make_service(recovery_source)
        catalog = [
            {"treatment_id": 1, "category_large": "코성형", "category_mid": "기타코", "rating": 4.0,
             "downtime": "상담 후 결정"},
            {"treatment_id": 2, "category_large": "코성형", "category_mid": "코끝", "rating": 4.0},
        ]

        groups = await service.recommend(catalog, "코성형", three_day_window, Language.KR)

        assert [g.group_key for g in groups] == ["코성형::코끝", "코성형::기타코"]
        assert groups[0].top_score == groups[1].top_score
        assert groups[1].average_recovery_days is None

    def test_concurrency_must_be_positive(self, recovery_source):
        resolver = RecoveryResolver(recovery_source, cache=ResolverCache(), base_language=Language.KR, timeout=None)

        with pytest.raises(ValueError):
            RecommendationService(resolver=resolver, concurrency=0)

    async def test_empty_selection(self, recovery_source, three_day_window):
        service = make_service(recovery_source)

        assert await service.recommend(KR_CATALOG, "보톡스/필러", three_day_window, Language.KR) == []


class TestRecommendForLanguage:

    async def test_loads_catalog_from_source(self, recovery_source):
        catalog_source = FakeCatalogSource({Language.KR: KR_CATALOG})
        service = make_service(recovery_source, catalog_source=catalog_source)
        window = TravelWindow(start=date(2025, 6, 1), end=date(2025, 6, 4))

        groups = await service.recommend_for_language("눈성형", window, "ko", search="쌍")

        assert catalog_source.calls == [{"language": Language.KR, "search": "쌍"}]
        assert [g.group_key for g in groups] == ["눈성형::쌍꺼풀"]

    async def test_catalog_failure_propagates(self, recovery_source, three_day_window):
        catalog_source = FakeCatalogSource({}, error=CatalogUnavailableError("down"))
        service = make_service(recovery_source, catalog_source=catalog_source)

        with pytest.raises(CatalogUnavailableError):
            await service.recommend_for_language(None, three_day_window, Language.KR)

    async def test_invalid_window_checked_before_loading(self, recovery_source):
        catalog_source = FakeCatalogSource({Language.KR: KR_CATALOG})
        service = make_service(recovery_source, catalog_source=catalog_source)
        window = TravelWindow(start=date(2025, 6, 3), end=date(2025, 6, 1))

        with pytest.raises(InvalidTravelWindowError):
            await service.recommend_for_language(None, window, Language.KR)

        assert catalog_source.calls == []

    async def test_requires_catalog_source(self, recovery_source, three_day_window):
        with pytest.raises(RuntimeError):
            await make_service(recovery_source).recommend_for_language(None, three_day_window, Language.KR)
