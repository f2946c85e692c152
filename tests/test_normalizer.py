"""Tests for taxonomy label normalization"""
import pytest

from packages.domain.recommendation.normalizer import normalize_label

ZWNJ = chr(0x200C)
ZWSP = chr(0x200B)
BOM = chr(0xFEFF)
IDEOGRAPHIC_SPACE = chr(0x3000)


class TestNormalizeLabel:

    def test_invisible_characters_and_spaces_ignored(self):
        assert normalize_label(f"A b{ZWNJ}c") == normalize_label("abc")

    def test_case_insensitive(self):
        assert normalize_label("Eye Surgery") == normalize_label("EYE SURGERY") == "eyesurgery"

    def test_all_whitespace_kinds_removed(self):
        assert normalize_label(" 코\t성형\n ") == "코성형"
        assert normalize_label(f"nose{IDEOGRAPHIC_SPACE}tip") == "nosetip"

    def test_zero_width_and_bom_removed(self):
        assert normalize_label(f"{BOM}브이{ZWSP}라인") == "브이라인"

    def test_decomposed_hangul_composed(self):
        decomposed = chr(0x1100) + chr(0x1161)
        assert normalize_label(decomposed) == chr(0xAC00)

    @pytest.mark.parametrize("value", [
        "Jaw V-Line",
        f" 눈 {ZWNJ}성형 ",
        "ＦＵＬＬ width",
        "",
    ])
    def test_idempotent(self, value):
        once = normalize_label(value)
        assert normalize_label(once) == once

    def test_none_and_empty(self):
        assert normalize_label(None) == ""
        assert normalize_label("") == ""
        assert normalize_label(f"  {ZWSP} ") == ""

    def test_punctuation_kept(self):
        assert normalize_label("Contour/Lifting") == "contour/lifting"
        assert normalize_label("V-Line") != normalize_label("VLine")
