"""Tests for UI category → catalog label alias matching"""
import pytest

from packages.common.language import Language
from packages.domain.recommendation.category_aliases import (
    CategoryAliasMapper,
    UiCategory,
    category_alias_mapper,
)
from packages.domain.recommendation.schemas import ProcedureRecord


def make_procedure(large, mid=None, name="시술"):
    return ProcedureRecord(name=name, category_large=large, category_mid=mid)


class TestResolveUiCategory:

    @pytest.mark.parametrize("label,expected", [
        ("코성형", UiCategory.NOSE),
        ("Nose", UiCategory.NOSE),
        ("鼻整形", UiCategory.NOSE),
        ("鼻部整形", UiCategory.NOSE),
        ("botox_filler", UiCategory.BOTOX_FILLER),
        ("botox / filler", UiCategory.BOTOX_FILLER),
        ("기타", UiCategory.OTHER),
        ("전체", UiCategory.ALL),
        (None, UiCategory.ALL),
        ("", UiCategory.ALL),
        (UiCategory.EYES, UiCategory.EYES),
    ])
    def test_labels_in_any_language(self, label, expected):
        assert category_alias_mapper.resolve_ui_category(label) == expected

    def test_unknown_label(self):
        assert category_alias_mapper.resolve_ui_category("레이저토닝") is None

    def test_unknown_label_expands_to_itself(self):
        assert category_alias_mapper.expand("레이저토닝", Language.KR) == ("레이저토닝",)


class TestMatches:

    def setup_method(self):
        self.mapper = CategoryAliasMapper()

    def test_all_matches_everything(self):
        assert self.mapper.matches(make_procedure("아무거나"), UiCategory.ALL)
        assert self.mapper.matches(make_procedure(None), UiCategory.ALL)

    def test_rows_without_large_category_never_match_a_category(self):
        assert not self.mapper.matches(make_procedure(None, "코끝"), UiCategory.NOSE)

    def test_multiple_aliases_match_large_or_mid(self):
        assert self.mapper.matches(make_procedure("코성형", "코끝"), UiCategory.NOSE)
        assert self.mapper.matches(make_procedure("성형", "코끝"), UiCategory.NOSE)
        assert not self.mapper.matches(make_procedure("피부", "토닝"), UiCategory.NOSE)

    def test_aliases_compared_normalized(self):
        assert self.mapper.matches(make_procedure("Nose Surgery"), "Nose", Language.EN)
        assert self.mapper.matches(make_procedure("EYELID  lift"), UiCategory.EYES, Language.EN)

    def test_catalog_language_selects_alias_table(self):
        procedure = make_procedure("鼻整形", "鼻先")
        assert self.mapper.matches(procedure, UiCategory.NOSE, Language.JP)
        assert not self.mapper.matches(procedure, UiCategory.NOSE, Language.EN)

    def test_single_alias_checks_large_category_only(self):
        assert self.mapper.matches(make_procedure("제모", "레이저제모"), "제모") is True
        assert self.mapper.matches(make_procedure("피부", "제모"), "제모") is False

    def test_other_matches_only_unclaimed_rows(self):
        assert self.mapper.matches(make_procedure("제모", "겨드랑이"), UiCategory.OTHER)
        assert self.mapper.matches(make_procedure("기타시술"), "기타")
        assert not self.mapper.matches(make_procedure("코성형", "코끝"), UiCategory.OTHER)
        assert not self.mapper.matches(make_procedure("성형", "눈매교정"), UiCategory.OTHER)

    def test_filter_keeps_input_order(self):
        records = [
            make_procedure("코성형", "코끝", name="a"),
            make_procedure("피부", "토닝", name="b"),
            make_procedure("코성형", "재수술", name="c"),
        ]
        selected = self.mapper.filter(records, "코성형", Language.KR)
        assert [r.name for r in selected] == ["a", "c"]


class TestToBaseCategory:

    @pytest.mark.parametrize("label,expected", [
        ("Nose Surgery", "코성형"),
        ("nose surgery", "코성형"),
        ("NoseSurgery", "코성형"),
        (" 目の整形 ", "눈성형"),
        ("面部轮廓/正颌", "안면윤곽/양악"),
        ("코성형", "코성형"),
        ("Unmapped", "Unmapped"),
    ])
    def test_translated_categories(self, label, expected):
        assert category_alias_mapper.to_base_category(label) == expected

    def test_empty(self):
        assert category_alias_mapper.to_base_category(None) is None
        assert category_alias_mapper.to_base_category("") == ""
