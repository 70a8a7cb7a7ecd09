# geography_index.py

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from pythainlp.util import collate

from geography_loader import GeographyRecord

logger = logging.getLogger(__name__)

Code = Any  # int for well-formed feeds; whatever the feed carried otherwise

KIND_PROVINCE = "province"
KIND_DISTRICT = "district"
KIND_SUBDISTRICT = "subdistrict"
KINDS = (KIND_PROVINCE, KIND_DISTRICT, KIND_SUBDISTRICT)

# Labels shown next to search suggestions
KIND_LABELS_TH: Dict[str, str] = {
    KIND_PROVINCE: "จังหวัด",
    KIND_DISTRICT: "อำเภอ",
    KIND_SUBDISTRICT: "ตำบล",
}

# Known counts of Thailand's administrative divisions
EXPECTED_COUNTS: Dict[str, int] = {
    KIND_PROVINCE: 77,
    KIND_DISTRICT: 928,
    KIND_SUBDISTRICT: 7436,
}


# ----------------------------
# Model
# ----------------------------
@dataclass(frozen=True)
class Province:
    """Top level of the hierarchy (จังหวัด)."""
    code: Code
    name_th: Optional[str]
    name_en: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class District:
    """Amphoe/khet; `province_code` may point at a province that is not indexed."""
    code: Code
    province_code: Code
    name_th: Optional[str]
    name_en: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Subdistrict:
    """Tambon/khwaeng, the level that carries the postal code."""
    code: Code
    district_code: Code
    province_code: Code
    name_th: Optional[str]
    name_en: Optional[str]
    postal: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Entity = Union[Province, District, Subdistrict]


@dataclass(frozen=True)
class SearchEntry:
    """Denormalized, typed projection of one entity for free-text lookup.

    What:
        Carries the parent codes so a hit can be resolved into a full selection
        without going back to the maps.
    """
    kind: str
    code: Code
    name_th: Optional[str]
    name_en: Optional[str]
    postal: Optional[str] = None
    district_code: Code = None
    province_code: Code = None

    def display_text(self) -> str:
        """'<name_th> (<name_en>) <postal>' as shown in suggestion lists."""
        text = f"{self.name_th or ''} ({self.name_en or ''})"
        if self.postal:
            text += f" {self.postal}"
        return text

    @property
    def kind_label(self) -> str:
        return KIND_LABELS_TH.get(self.kind, self.kind)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class IntegrityReport:
    """Advisory comparison of indexed counts against national totals."""
    province_count: int
    district_count: int
    subdistrict_count: int
    passed: bool
    expected_provinces: int = EXPECTED_COUNTS[KIND_PROVINCE]
    expected_districts: int = EXPECTED_COUNTS[KIND_DISTRICT]
    expected_subdistricts: int = EXPECTED_COUNTS[KIND_SUBDISTRICT]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provinceCount": self.province_count,
            "districtCount": self.district_count,
            "subdistrictCount": self.subdistrict_count,
            "passed": self.passed,
        }


# ----------------------------
# Thai collation
# ----------------------------
T = TypeVar("T", Province, District, Subdistrict)


def sort_by_thai_name(entities: Iterable[T]) -> List[T]:
    """Sort entities by `name_th` under Thai collation, keeping input order on ties.

    Why:
        Plain code-point order puts every name with a leading vowel (เ แ โ ใ ไ)
        after all consonant-initial names; PyThaiNLP's collation does not.
    """
    items = list(entities)
    names = list(dict.fromkeys(e.name_th or "" for e in items))
    rank = {name: i for i, name in enumerate(collate(names))}
    return sorted(items, key=lambda e: rank[e.name_th or ""])


# ----------------------------
# Index
# ----------------------------
class GeographyIndex:
    """Immutable-for-the-session lookup structures derived from feed records.

    What:
        Three code->entity maps (first record per code wins), the flat search index
        (subdistricts, then districts, then provinces), and child lists grouped by
        parent code and pre-sorted by Thai name.

    Why:
        The navigator and search engine only read these; a reload builds a new
        GeographyIndex and swaps the reference, so no half-built state is visible.
    """

    def __init__(
        self,
        province_by_code: Dict[Code, Province],
        district_by_code: Dict[Code, District],
        subdistrict_by_code: Dict[Code, Subdistrict],
        search_index: Sequence[SearchEntry],
    ):
        self.province_by_code = province_by_code
        self.district_by_code = district_by_code
        self.subdistrict_by_code = subdistrict_by_code
        self.search_index: Tuple[SearchEntry, ...] = tuple(search_index)

        self.provinces_sorted: Tuple[Province, ...] = tuple(sort_by_thai_name(province_by_code.values()))
        self.districts_by_province: Dict[Code, Tuple[District, ...]] = self._group(
            district_by_code.values(), "province_code"
        )
        self.subdistricts_by_district: Dict[Code, Tuple[Subdistrict, ...]] = self._group(
            subdistrict_by_code.values(), "district_code"
        )

    @staticmethod
    def _group(entities: Iterable[T], parent_attr: str) -> Dict[Code, Tuple[T, ...]]:
        buckets: Dict[Code, List[T]] = {}
        for e in entities:
            buckets.setdefault(getattr(e, parent_attr), []).append(e)
        return {parent: tuple(sort_by_thai_name(children)) for parent, children in buckets.items()}

    @classmethod
    def build(cls, records: Iterable[GeographyRecord]) -> "GeographyIndex":
        """Derive all lookup structures from the ordered feed records.

        Never raises on malformed records: missing fields become None and the
        record is still indexed under whatever code it carries.

        Args:
            records: Canonical records in feed order.

        Returns:
            A fully built GeographyIndex.
        """
        provinces: Dict[Code, Province] = {}
        districts: Dict[Code, District] = {}
        subdistricts: Dict[Code, Subdistrict] = {}

        for rec in records:
            if rec.province_code not in provinces:
                provinces[rec.province_code] = Province(
                    code=rec.province_code,
                    name_th=rec.province_name_th,
                    name_en=rec.province_name_en,
                )
            if rec.district_code not in districts:
                districts[rec.district_code] = District(
                    code=rec.district_code,
                    province_code=rec.province_code,
                    name_th=rec.district_name_th,
                    name_en=rec.district_name_en,
                )
            if rec.subdistrict_code not in subdistricts:
                subdistricts[rec.subdistrict_code] = Subdistrict(
                    code=rec.subdistrict_code,
                    district_code=rec.district_code,
                    province_code=rec.province_code,
                    name_th=rec.subdistrict_name_th,
                    name_en=rec.subdistrict_name_en,
                    postal=rec.postal_code,
                )

        search_index: List[SearchEntry] = [
            SearchEntry(
                kind=KIND_SUBDISTRICT,
                code=s.code,
                name_th=s.name_th,
                name_en=s.name_en,
                postal=s.postal,
                district_code=s.district_code,
                province_code=s.province_code,
            )
            for s in subdistricts.values()
        ]
        search_index.extend(
            SearchEntry(
                kind=KIND_DISTRICT,
                code=d.code,
                name_th=d.name_th,
                name_en=d.name_en,
                province_code=d.province_code,
            )
            for d in districts.values()
        )
        search_index.extend(
            SearchEntry(kind=KIND_PROVINCE, code=p.code, name_th=p.name_th, name_en=p.name_en)
            for p in provinces.values()
        )

        index = cls(provinces, districts, subdistricts, search_index)
        logger.info(
            "Built geography index: %d provinces, %d districts, %d subdistricts, %d search entries",
            len(provinces), len(districts), len(subdistricts), len(index.search_index),
        )
        return index

    def maps(self) -> Dict[str, Dict[Code, Entity]]:
        """Entity maps keyed by kind."""
        return {
            KIND_PROVINCE: self.province_by_code,
            KIND_DISTRICT: self.district_by_code,
            KIND_SUBDISTRICT: self.subdistrict_by_code,
        }


# ----------------------------
# Integrity
# ----------------------------
def check_integrity(index: GeographyIndex, expected: Optional[Dict[str, int]] = None) -> IntegrityReport:
    """Compare indexed counts against the national totals.

    Purely advisory: logs a warning on shortfall and never raises.
    """
    exp = {**EXPECTED_COUNTS, **(expected or {})}
    pc = len(index.province_by_code)
    dc = len(index.district_by_code)
    sc = len(index.subdistrict_by_code)
    passed = pc >= exp[KIND_PROVINCE] and dc >= exp[KIND_DISTRICT] and sc >= exp[KIND_SUBDISTRICT]

    if passed:
        logger.info("Data integrity check passed: provinces=%d districts=%d subdistricts=%d", pc, dc, sc)
    else:
        logger.warning(
            "Data integrity check failed: provinces=%d (expected %d) districts=%d (expected %d) "
            "subdistricts=%d (expected %d)",
            pc, exp[KIND_PROVINCE], dc, exp[KIND_DISTRICT], sc, exp[KIND_SUBDISTRICT],
        )

    return IntegrityReport(
        province_count=pc,
        district_count=dc,
        subdistrict_count=sc,
        passed=passed,
        expected_provinces=exp[KIND_PROVINCE],
        expected_districts=exp[KIND_DISTRICT],
        expected_subdistricts=exp[KIND_SUBDISTRICT],
    )
