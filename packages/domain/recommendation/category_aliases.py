"""
Category Alias Mapper - UI category selection to catalog label predicates

The schedule-based recommendation screen offers a handful of coarse
categories ("Nose", "Botox/Filler", ...). Catalog rows carry free-text
large/mid category labels, so each UI category expands to a set of label
substrings per catalog language:

- ALL: no aliases, matches every row
- one alias: substring of the large category
- several aliases: substring of the large OR mid category
- OTHER: matches only rows that no other category would claim

All comparisons go through normalize_label. Rows are never modified.
"""
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, TypeVar, Union

import structlog

from packages.common.language import Language
from packages.domain.recommendation.normalizer import normalize_label
from packages.domain.recommendation.schemas import ProcedureRecord

logger = structlog.get_logger()

T = TypeVar("T", bound=ProcedureRecord)


class UiCategory(str, Enum):
    """Coarse categories offered by the recommendation screen"""
    SKIN_CARE = "skin_care"
    SCARS = "scars"
    CONTOUR_LIFTING = "contour_lifting"
    NOSE = "nose"
    EYES = "eyes"
    BOTOX_FILLER = "botox_filler"
    BODY = "body"
    OTHER = "other"
    ALL = "all"


class CategoryAliasMapper:
    """
    Expands UI categories into catalog label aliases and filters procedures.
    """

    # === UI LABEL (any language) → UI CATEGORY ===
    UI_LABELS: Dict[str, UiCategory] = {
        # Korean (base)
        "피부관리": UiCategory.SKIN_CARE,
        "흉터/자국": UiCategory.SCARS,
        "윤곽/리프팅": UiCategory.CONTOUR_LIFTING,
        "코성형": UiCategory.NOSE,
        "눈성형": UiCategory.EYES,
        "보톡스/필러": UiCategory.BOTOX_FILLER,
        "체형/지방": UiCategory.BODY,
        "기타": UiCategory.OTHER,
        "전체": UiCategory.ALL,

        # English
        "Skin Care": UiCategory.SKIN_CARE,
        "Scars/Marks": UiCategory.SCARS,
        "Contour/Lifting": UiCategory.CONTOUR_LIFTING,
        "Nose": UiCategory.NOSE,
        "Eyes": UiCategory.EYES,
        "Botox/Filler": UiCategory.BOTOX_FILLER,
        "Body/Fat": UiCategory.BODY,
        "Other": UiCategory.OTHER,
        "All": UiCategory.ALL,

        # Japanese
        "スキンケア": UiCategory.SKIN_CARE,
        "傷跡/跡": UiCategory.SCARS,
        "輪郭/リフティング": UiCategory.CONTOUR_LIFTING,
        "鼻整形": UiCategory.NOSE,
        "目の整形": UiCategory.EYES,
        "ボトックス/フィラー": UiCategory.BOTOX_FILLER,
        "体型/脂肪": UiCategory.BODY,
        "その他": UiCategory.OTHER,
        "すべて": UiCategory.ALL,

        # Chinese ("体型/脂肪" shared with Japanese)
        "皮肤管理": UiCategory.SKIN_CARE,
        "疤痕/痕迹": UiCategory.SCARS,
        "轮廓/提升": UiCategory.CONTOUR_LIFTING,
        "鼻部整形": UiCategory.NOSE,
        "眼部整形": UiCategory.EYES,
        "肉毒素/填充": UiCategory.BOTOX_FILLER,
        "其他": UiCategory.OTHER,
        "全部": UiCategory.ALL,
    }

    # === UI CATEGORY → CATALOG LABEL SUBSTRINGS, PER CATALOG LANGUAGE ===
    ALIASES: Dict[Language, Dict[UiCategory, Tuple[str, ...]]] = {
        Language.KR: {
            UiCategory.SKIN_CARE: ("피부", "피부관리"),
            UiCategory.SCARS: ("흉터", "자국", "상처"),
            UiCategory.CONTOUR_LIFTING: ("리프팅", "윤곽", "볼륨"),
            UiCategory.NOSE: ("코", "코성형"),
            UiCategory.EYES: ("눈", "눈성형"),
            UiCategory.BOTOX_FILLER: ("보톡스", "필러", "주사"),
            UiCategory.BODY: ("체형", "지방", "다이어트", "가슴", "유방"),
            UiCategory.OTHER: ("기타",),
            UiCategory.ALL: (),
        },
        Language.EN: {
            UiCategory.SKIN_CARE: ("skin", "skincare"),
            UiCategory.SCARS: ("scar", "mark", "wound"),
            UiCategory.CONTOUR_LIFTING: ("lifting", "contour", "volume"),
            UiCategory.NOSE: ("nose", "rhinoplasty"),
            UiCategory.EYES: ("eye", "eyelid"),
            UiCategory.BOTOX_FILLER: ("botox", "filler", "injection"),
            UiCategory.BODY: ("body", "fat", "diet", "breast", "liposuction"),
            UiCategory.OTHER: ("other",),
            UiCategory.ALL: (),
        },
        Language.JP: {
            UiCategory.SKIN_CARE: ("肌", "スキンケア"),
            UiCategory.SCARS: ("傷跡", "跡", "傷"),
            UiCategory.CONTOUR_LIFTING: ("リフティング", "輪郭", "ボリューム"),
            UiCategory.NOSE: ("鼻", "鼻整形"),
            UiCategory.EYES: ("目", "目の整形"),
            UiCategory.BOTOX_FILLER: ("ボトックス", "フィラー", "注射"),
            UiCategory.BODY: ("体型", "脂肪", "ダイエット", "胸", "バスト"),
            UiCategory.OTHER: ("その他",),
            UiCategory.ALL: (),
        },
        Language.CN: {
            UiCategory.SKIN_CARE: ("皮肤", "皮肤管理"),
            UiCategory.SCARS: ("疤痕", "痕迹", "伤口"),
            UiCategory.CONTOUR_LIFTING: ("提升", "轮廓", "丰盈"),
            UiCategory.NOSE: ("鼻", "鼻部整形"),
            UiCategory.EYES: ("眼", "眼部整形"),
            UiCategory.BOTOX_FILLER: ("肉毒素", "填充", "注射"),
            UiCategory.BODY: ("体型", "脂肪", "减肥", "胸", "乳房"),
            UiCategory.OTHER: ("其他",),
            UiCategory.ALL: (),
        },
    }

    # === TRANSLATED PROCEDURE CATEGORY → BASE (KOREAN) VALUE ===
    BASE_CATEGORY_MAP: Dict[str, str] = {
        # Korean (base)
        "눈성형": "눈성형",
        "리프팅": "리프팅",
        "보톡스": "보톡스",
        "안면윤곽/양악": "안면윤곽/양악",
        "제모": "제모",
        "지방성형": "지방성형",
        "코성형": "코성형",
        "피부": "피부",
        "필러": "필러",
        "가슴성형": "가슴성형",

        # English
        "Eye Surgery": "눈성형",
        "Lifting": "리프팅",
        "Botox": "보톡스",
        "Facial Contour / Orthognathic": "안면윤곽/양악",
        "Hair Removal": "제모",
        "Liposuction": "지방성형",
        "Nose Surgery": "코성형",
        "Skin": "피부",
        "Filler": "필러",
        "Breast Surgery": "가슴성형",

        # Japanese
        "目の整形": "눈성형",
        "リフティング": "리프팅",
        "ボトックス": "보톡스",
        "顔面輪郭/顎": "안면윤곽/양악",
        "脱毛": "제모",
        "脂肪吸引": "지방성형",
        "鼻整形": "코성형",
        "肌": "피부",
        "フィラー": "필러",
        "胸の整形": "가슴성형",

        # Chinese ("脱毛" shared with Japanese)
        "眼部整形": "눈성형",
        "提升": "리프팅",
        "肉毒素": "보톡스",
        "面部轮廓/正颌": "안면윤곽/양악",
        "吸脂": "지방성형",
        "鼻部整形": "코성형",
        "皮肤": "피부",
        "填充": "필러",
        "胸部整形": "가슴성형",
    }

    def __init__(self):
        self._ui_labels_normalized = {normalize_label(k): v for k, v in self.UI_LABELS.items()}
        self._base_categories_normalized = {
            normalize_label(k): v for k, v in self.BASE_CATEGORY_MAP.items()
        }

    def resolve_ui_category(self, ui_category: Union[UiCategory, str, None]) -> Optional[UiCategory]:
        """
        Map a UI category value or label (any language) to UiCategory.

        Returns None for labels outside the table.
        """
        if ui_category is None:
            return UiCategory.ALL
        if isinstance(ui_category, UiCategory):
            return ui_category

        label = ui_category.strip()
        if not label:
            return UiCategory.ALL

        if label in self.UI_LABELS:
            return self.UI_LABELS[label]

        try:
            return UiCategory(label)
        except ValueError:
            pass

        return self._ui_labels_normalized.get(normalize_label(label))

    def expand(
        self,
        ui_category: Union[UiCategory, str, None],
        language: Language = Language.KR,
    ) -> Tuple[str, ...]:
        """
        Aliases for a UI category in a catalog language.

        Unknown labels expand to themselves (a single large-category alias).

        Args:
            ui_category: UiCategory or UI label in any language
            language: Language of the catalog being filtered

        Returns:
            Tuple of label substrings; empty means "match everything"
        """
        category = self.resolve_ui_category(ui_category)
        if category is None:
            return (str(ui_category).strip(),)
        return self.ALIASES[language][category]

    def matches(
        self,
        record: ProcedureRecord,
        ui_category: Union[UiCategory, str, None],
        language: Language = Language.KR,
    ) -> bool:
        """Check whether a procedure belongs to a UI category"""
        category = self.resolve_ui_category(ui_category)

        if category == UiCategory.ALL:
            return True

        if not record.category_large:
            return False

        if category == UiCategory.OTHER:
            return not self._matches_any_defined(record, language)

        aliases = self.expand(ui_category, language)
        large = normalize_label(record.category_large)

        if len(aliases) == 1:
            return normalize_label(aliases[0]) in large

        mid = normalize_label(record.category_mid)
        return any(
            normalize_label(alias) in large or normalize_label(alias) in mid
            for alias in aliases
        )

    def filter(
        self,
        records: Iterable[T],
        ui_category: Union[UiCategory, str, None],
        language: Language = Language.KR,
    ) -> List[T]:
        """Procedures belonging to a UI category, in input order"""
        selected = [r for r in records if self.matches(r, ui_category, language)]
        logger.debug("category_alias_filter",
                     ui_category=str(ui_category),
                     language=language.value,
                     selected=len(selected))
        return selected

    def to_base_category(self, label: Optional[str]) -> Optional[str]:
        """
        Convert a translated procedure category to its base-language value.

        Tries exact, then case- and whitespace-insensitive matching; returns
        the trimmed input unchanged when there is no mapping (it may already
        be a base value).
        """
        if not label:
            return label

        trimmed = label.strip()
        if trimmed in self.BASE_CATEGORY_MAP:
            return self.BASE_CATEGORY_MAP[trimmed]

        base = self._base_categories_normalized.get(normalize_label(trimmed))
        if base is not None:
            logger.debug("base_category_normalized_match", label=trimmed, base=base)
            return base

        return trimmed

    def _matches_any_defined(self, record: ProcedureRecord, language: Language) -> bool:
        large = normalize_label(record.category_large)
        mid = normalize_label(record.category_mid)
        for category, aliases in self.ALIASES[language].items():
            if category in (UiCategory.OTHER, UiCategory.ALL):
                continue
            for alias in aliases:
                key = normalize_label(alias)
                if key in large or key in mid:
                    return True
        return False


# Singleton instance
category_alias_mapper = CategoryAliasMapper()
