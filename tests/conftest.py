from datetime import date

import pytest

from packages.common.config import get_settings
from packages.common.language import Language
from packages.domain.recommendation.exceptions import CatalogUnavailableError
from packages.domain.recommendation.schemas import TravelWindow
from tests.fakes import FakeRecoverySource


@pytest.fixture(autouse=True)
def reset_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def recovery_tables():
    """Base (KR) and EN recovery tables sharing group keys"""
    return {
        Language.KR: [
            {
                "category_mid_key": "K1",
                "category_mid": "브이라인",
                "downtime_min": 3,
                "downtime_max": 5,
                "surgery_time_min": 60,
                "surgery_time_max": 120,
                "recovery_guide_4_7": "붓기 관리",
            },
            {"category_mid_key": "K2", "category_mid": "코끝", "recovery_min": 1, "recovery_max": 2},
            {"category_mid_key": "K3", "category_mid": "재수술", "recovery_min": 5, "recovery_max": 7},
            {"category_mid_key": "K4", "category_mid": "쌍꺼풀", "recovery_max": 3, "recommended_stay_days": 2},
        ],
        Language.EN: [
            {
                "group_key": "K1",
                "label": "Jaw V-Line",
                "recovery_min": 3,
                "recovery_max": 5,
                "recovery_guide_4_7": "Keep swelling down",
            },
            {"group_key": "K2", "label": "Nose Tip", "recovery_min": 1, "recovery_max": 2},
            {"group_key": "K3", "label": "Revision Rhinoplasty", "recovery_min": 5, "recovery_max": 7},
        ],
    }


@pytest.fixture
def recovery_source(recovery_tables):
    return FakeRecoverySource(recovery_tables)


@pytest.fixture
def failing_recovery_source():
    return FakeRecoverySource({}, error=CatalogUnavailableError("recovery table down", source="category_treattime_recovery"))


@pytest.fixture
def three_day_window():
    return TravelWindow(start=date(2025, 6, 1), end=date(2025, 6, 3))
