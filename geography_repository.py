# geography_repository.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from geography_index import (
    KIND_DISTRICT,
    KIND_PROVINCE,
    KIND_SUBDISTRICT,
    District,
    Entity,
    GeographyIndex,
    IntegrityReport,
    Province,
    SearchEntry,
    Subdistrict,
    check_integrity,
)
from geography_loader import GeographyRecord, coerce_code, load_records

logger = logging.getLogger(__name__)


# ----------------------------
# Selection model
# ----------------------------
@dataclass(frozen=True)
class AddressSelection:
    """A (possibly partial) province -> district -> subdistrict pick and its postal code."""
    province: Optional[Province] = None
    district: Optional[District] = None
    subdistrict: Optional[Subdistrict] = None
    postal: Optional[str] = None

    def label(self) -> str:
        """Thai address line: '<subdistrict> <district> <province> <postal>'.

        Returns:
            Space-joined parts that are present; empty string when nothing is selected.
        """
        parts = [
            e.name_th
            for e in (self.subdistrict, self.district, self.province)
            if e is not None and e.name_th
        ]
        if self.postal:
            parts.append(self.postal)
        return " ".join(parts)

    def is_empty(self) -> bool:
        return self.province is None and self.district is None and self.subdistrict is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "province": self.province.to_dict() if self.province else None,
            "district": self.district.to_dict() if self.district else None,
            "subdistrict": self.subdistrict.to_dict() if self.subdistrict else None,
            "postal": self.postal,
            "label": self.label(),
        }


# ----------------------------
# Repository
# ----------------------------
class GeographyRepository:
    """In-memory Thai geography: hierarchy navigation and substring search.

    What:
        Owns one GeographyIndex built from feed records and answers the queries a
        presentation layer needs: sorted children of a parent, exact lookups by code,
        bounded free-text search, address selection, and the integrity report.

    Why:
        Only construction (loading + indexing) may fail. Every query below is total:
        unknown, blank or malformed codes come back as None/[] so a session can
        never be crashed by a stale select value.

    Settings (merged over defaults):
        min_query_length, max_results,
        expected_provinces, expected_districts, expected_subdistricts,
        key_match_threshold (used by from_file).
    """

    DEFAULT_SETTINGS: Dict[str, Any] = {
        "min_query_length": 2,
        "max_results": 12,
        "expected_provinces": 77,
        "expected_districts": 928,
        "expected_subdistricts": 7436,
        "key_match_threshold": 0.85,
    }

    def __init__(self, records: Iterable[GeographyRecord], *, settings: Optional[Dict[str, Any]] = None):
        """Build the index and run the integrity check so queries work immediately.

        Args:
            records: Canonical feed records (see geography_loader).
            settings: Overrides for DEFAULT_SETTINGS.
        """
        self.settings = {**self.DEFAULT_SETTINGS, **(settings or {})}
        self.index: GeographyIndex
        self._report: IntegrityReport
        self.reload(records)

    @classmethod
    def from_file(cls, path: str | Path, *, settings: Optional[Dict[str, Any]] = None) -> "GeographyRepository":
        """Load a JSON/CSV feed and build the repository.

        Raises:
            GeographyLoadError: propagated from the loader.
        """
        merged = {**cls.DEFAULT_SETTINGS, **(settings or {})}
        records = load_records(path, key_match_threshold=float(merged["key_match_threshold"]))
        return cls(records, settings=settings)

    def reload(self, records: Iterable[GeographyRecord]) -> IntegrityReport:
        """Replace all lookup structures with ones built from `records`.

        The new index is fully built before it is assigned, so readers see either
        the old structures or the new ones.
        """
        index = GeographyIndex.build(records)
        report = check_integrity(index, {
            KIND_PROVINCE: int(self.settings["expected_provinces"]),
            KIND_DISTRICT: int(self.settings["expected_districts"]),
            KIND_SUBDISTRICT: int(self.settings["expected_subdistricts"]),
        })
        self.index, self._report = index, report
        return report

    # ----------------------------
    # Code handling
    # ----------------------------
    @staticmethod
    def _code(code: Any) -> Any:
        """Caller codes go through the same coercion as feed codes."""
        return coerce_code(code)

    # ----------------------------
    # Single-entity lookups
    # ----------------------------
    def province(self, code: Any) -> Optional[Province]:
        c = self._code(code)
        return None if c is None else self.index.province_by_code.get(c)

    def district(self, code: Any) -> Optional[District]:
        c = self._code(code)
        return None if c is None else self.index.district_by_code.get(c)

    def subdistrict(self, code: Any) -> Optional[Subdistrict]:
        c = self._code(code)
        return None if c is None else self.index.subdistrict_by_code.get(c)

    def get_entity(self, kind: str, code: Any) -> Optional[Entity]:
        """Exact lookup by kind ('province'|'district'|'subdistrict') and code.

        Returns:
            The entity, or None for an unknown kind, blank code or unknown code.
        """
        mapping = self.index.maps().get(kind)
        c = self._code(code)
        if mapping is None or c is None:
            return None
        return mapping.get(c)

    # ----------------------------
    # Hierarchy listings (sorted by Thai name)
    # ----------------------------
    def get_provinces(self) -> List[Province]:
        """All provinces ordered by `name_th` under Thai collation."""
        return list(self.index.provinces_sorted)

    def districts_of(self, province_code: Any) -> List[District]:
        """Districts whose `province_code` equals the argument.

        Args:
            province_code: int or digit string.

        Returns:
            Districts ordered by Thai name (stable on ties); [] for blank/unknown codes.
        """
        c = self._code(province_code)
        if c is None:
            return []
        return list(self.index.districts_by_province.get(c, ()))

    def subdistricts_of(self, district_code: Any) -> List[Subdistrict]:
        """Subdistricts of a district, ordered by Thai name; [] for blank/unknown codes."""
        c = self._code(district_code)
        if c is None:
            return []
        return list(self.index.subdistricts_by_district.get(c, ()))

    get_districts = districts_of
    get_subdistricts = subdistricts_of

    # ----------------------------
    # Search
    # ----------------------------
    def search(self, query: Any) -> List[SearchEntry]:
        """Substring search over Thai names, English names and postal codes.

        What:
            Scans the index in its fixed order (subdistricts, districts, provinces)
            and keeps entries where the query is contained in `name_th`
            (case-sensitive), in `name_en` (lowercased), or in the postal code.

        Why:
            Index order biases the bounded result toward the most specific level;
            there is no ranking beyond match-then-truncate.

        Args:
            query: Free text; stripped before use.

        Returns:
            Up to `max_results` live SearchEntry objects; [] for short/blank queries.
        """
        if not isinstance(query, str):
            return []
        q = query.strip()
        if len(q) < int(self.settings["min_query_length"]):
            return []

        limit = int(self.settings["max_results"])
        if limit <= 0:
            return []
        q_lower = q.lower()
        hits: List[SearchEntry] = []
        for entry in self.index.search_index:
            if (
                (entry.name_th is not None and q in entry.name_th)
                or (entry.name_en is not None and q_lower in entry.name_en.lower())
                or (entry.postal and q in str(entry.postal))
            ):
                hits.append(entry)
                if len(hits) >= limit:
                    break
        return hits

    # ----------------------------
    # Selection & formatting
    # ----------------------------
    def select(
        self,
        province_code: Any = None,
        district_code: Any = None,
        subdistrict_code: Any = None,
    ) -> AddressSelection:
        """Resolve codes into a consistent cascade, like picking from linked dropdowns.

        What:
            Unknown codes are dropped. Omitted parent codes are filled from the
            lowest selected child. A child whose parent code disagrees with the
            selected parent is dropped along with everything below it. A dangling
            parent reference leaves that parent empty.

        Returns:
            AddressSelection with the postal code of the selected subdistrict.
        """
        prov = self.province(province_code)
        dist = self.district(district_code)
        sub = self.subdistrict(subdistrict_code)
        prov_given = self._code(province_code) is not None
        dist_given = self._code(district_code) is not None

        if sub is not None and not dist_given:
            dist = self.district(sub.district_code)
        if not prov_given:
            if dist is not None:
                prov = self.province(dist.province_code)
            elif sub is not None:
                prov = self.province(sub.province_code)

        if prov is not None and dist is not None and dist.province_code != prov.code:
            logger.debug("District %r is not in province %r; dropping it", dist.code, prov.code)
            dist, sub = None, None
        if sub is not None:
            if dist is not None and sub.district_code != dist.code:
                sub = None
            elif prov is not None and sub.province_code != prov.code:
                sub = None

        return AddressSelection(
            province=prov,
            district=dist,
            subdistrict=sub,
            postal=sub.postal if sub is not None else None,
        )

    def select_entry(self, entry: SearchEntry) -> AddressSelection:
        """Turn a search hit into a full selection using the codes it carries."""
        if entry.kind == KIND_SUBDISTRICT:
            return self.select(entry.province_code, entry.district_code, entry.code)
        if entry.kind == KIND_DISTRICT:
            return self.select(entry.province_code, entry.code)
        if entry.kind == KIND_PROVINCE:
            return self.select(entry.code)
        return AddressSelection()

    def format_address(
        self,
        province_code: Any = None,
        district_code: Any = None,
        subdistrict_code: Any = None,
    ) -> str:
        return self.select(province_code, district_code, subdistrict_code).label()

    # ----------------------------
    # Integrity
    # ----------------------------
    def integrity_report(self) -> IntegrityReport:
        """Report computed when the current index was built."""
        return self._report
