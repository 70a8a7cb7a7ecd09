# geography_loader.py

from __future__ import annotations

import csv
import json
import logging
import re
from dataclasses import dataclass, asdict
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import Levenshtein

logger = logging.getLogger(__name__)


class GeographyError(Exception):
    """Base class for geography loading/indexing failures."""


class GeographyLoadError(GeographyError):
    """The feed could not be read, decoded, or produced no records."""


# ----------------------------
# Model
# ----------------------------
@dataclass(frozen=True)
class GeographyRecord:
    """One flat feed row: a subdistrict together with its district and province.

    What:
        Every field is optional. The index builder de-duplicates by code and does
        not validate presence, so a partial row still contributes what it has.
    """
    province_code: Optional[int] = None
    province_name_th: Optional[str] = None
    province_name_en: Optional[str] = None
    district_code: Optional[int] = None
    district_name_th: Optional[str] = None
    district_name_en: Optional[str] = None
    subdistrict_code: Optional[int] = None
    subdistrict_name_th: Optional[str] = None
    subdistrict_name_en: Optional[str] = None
    postal_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Canonical camelCase feed keys -> GeographyRecord attribute
CANONICAL_FIELDS: Dict[str, str] = {
    "provinceCode": "province_code",
    "provinceNameTh": "province_name_th",
    "provinceNameEn": "province_name_en",
    "districtCode": "district_code",
    "districtNameTh": "district_name_th",
    "districtNameEn": "district_name_en",
    "subdistrictCode": "subdistrict_code",
    "subdistrictNameTh": "subdistrict_name_th",
    "subdistrictNameEn": "subdistrict_name_en",
    "postalCode": "postal_code",
}

_CODE_FIELDS = ("province_code", "district_code", "subdistrict_code")
_NAME_FIELDS = (
    "province_name_th", "province_name_en",
    "district_name_th", "district_name_en",
    "subdistrict_name_th", "subdistrict_name_en",
)

# Whole-key synonyms seen in public Thai datasets (compared lowercased)
_KEY_ALIASES: Dict[str, str] = {
    "postal": "postalCode",
    "postcode": "postalCode",
    "zip": "postalCode",
    "zipcode": "postalCode",
}

# Thai romanizations of the level names used as key prefixes
_LEVEL_PREFIXES = (
    ("tambon", "subdistrict"),
    ("amphoe", "district"),
    ("amphur", "district"),
    ("changwat", "province"),
)

_LOWER_TO_CANONICAL: Dict[str, str] = {k.lower(): k for k in CANONICAL_FIELDS}

_SNAKE_RE = re.compile(r"_([a-zA-Z])")


# ----------------------------
# Key normalization
# ----------------------------
def _snake_to_camel(key: str) -> str:
    return _SNAKE_RE.sub(lambda m: m.group(1).upper(), key)


def _lev_ratio(a: str, b: str) -> float:
    """Levenshtein ratio on lowercase keys; higher is better."""
    if not a or not b:
        return 0.0
    dist = Levenshtein.distance(a.lower(), b.lower())
    return max(0.0, 1.0 - (dist / max(len(a), len(b))))


@lru_cache(maxsize=1024)
def _resolve_key(key: str, threshold: float) -> Tuple[Optional[str], bool]:
    """Return (canonical key or None, matched exactly)."""
    if not isinstance(key, str) or not key.strip():
        return None, False
    camel = _snake_to_camel(key.strip().replace(" ", "_").replace("-", "_"))
    low = camel.lower()

    if low in _KEY_ALIASES:
        return _KEY_ALIASES[low], True
    for prefix, level in _LEVEL_PREFIXES:
        if low.startswith(prefix):
            low = level + low[len(prefix):]
            break
    if low in _LOWER_TO_CANONICAL:
        return _LOWER_TO_CANONICAL[low], True

    best, best_score = None, 0.0
    for canon_low, canon in _LOWER_TO_CANONICAL.items():
        sc = _lev_ratio(low, canon_low)
        if sc > best_score:
            best, best_score = canon, sc
    if best is not None and best_score >= threshold:
        logger.debug("Mapped feed key %r -> %r (ratio %.3f)", key, best, best_score)
        return best, False
    return None, False


def normalize_key(key: str, threshold: float = 0.85) -> Optional[str]:
    """Map a raw feed key onto one of CANONICAL_FIELDS.

    What:
        snake_case -> camelCase, then aliases and level-name prefixes, then a
        Levenshtein fallback for near-miss spellings ('provinceNameThai').

    Args:
        key: Raw key as found in the feed.
        threshold: Minimum ratio accepted by the fuzzy fallback.

    Returns:
        The canonical camelCase key, or None when nothing is close enough.
    """
    return _resolve_key(key, threshold)[0]


# ----------------------------
# Value coercion
# ----------------------------
def coerce_code(value: Any) -> Any:
    """Normalize an entity code from a feed or a caller; None means 'no code'.

    Ints, decimal strings and integral floats become ints. Other non-blank strings
    are kept so feeds with textual codes still resolve. Booleans, fractional
    floats, blanks and containers become None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        v = value.strip()
        if not v:
            return None
        return int(v) if v.isdecimal() else v
    return None


def _as_postal(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    v = str(value).strip()
    return v or None


def _as_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    v = " ".join(str(value).split())
    return v or None


def to_record(raw: Mapping[str, Any], key_match_threshold: float = 0.85) -> GeographyRecord:
    """Turn one raw feed mapping into a GeographyRecord.

    Exactly named keys are applied before fuzzy-matched ones; within each group the
    first key mapping to a field wins. Unknown keys are dropped.
    """
    exact: List[Tuple[str, Any]] = []
    fuzzy: List[Tuple[str, Any]] = []
    for key, value in raw.items():
        canon, is_exact = _resolve_key(key, key_match_threshold)
        if canon is None:
            continue
        (exact if is_exact else fuzzy).append((canon, value))

    fields: Dict[str, Any] = {}
    for canon, value in exact + fuzzy:
        attr = CANONICAL_FIELDS[canon]
        if attr in fields:
            continue
        if attr in _CODE_FIELDS:
            fields[attr] = coerce_code(value)
        elif attr in _NAME_FIELDS:
            fields[attr] = _as_name(value)
        else:
            fields[attr] = _as_postal(value)
    return GeographyRecord(**fields)


def parse_records(items: Any, key_match_threshold: float = 0.85) -> List[GeographyRecord]:
    """Validate the feed shape and convert every mapping into a record.

    Raises:
        GeographyLoadError: feed is not a list, or yields no records.
    """
    if not isinstance(items, list):
        raise GeographyLoadError(f"feed must be a list of records, got {type(items).__name__}")

    records: List[GeographyRecord] = []
    skipped = 0
    for item in items:
        if not isinstance(item, Mapping):
            skipped += 1
            continue
        records.append(to_record(item, key_match_threshold))

    if skipped:
        logger.warning("Skipped %d non-object feed item(s)", skipped)
    if not records:
        raise GeographyLoadError("feed is empty")
    return records


# ----------------------------
# File readers
# ----------------------------
def _read_json(path: Path) -> Any:
    with open(path, encoding="utf-8-sig") as f:
        return json.load(f)


def _read_csv(path: Path) -> List[Dict[str, str]]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        return [row for row in csv.DictReader(f) if any(isinstance(v, str) and v.strip() for v in row.values())]


def load_records(path: str | Path, key_match_threshold: float = 0.85) -> List[GeographyRecord]:
    """Read a geography feed (.json array of objects, or .csv with a header row).

    Why:
        Loading is the only step allowed to fail; everything after it works on
        in-memory structures. Failures surface as one descriptive error.

    Args:
        path: Feed file path.
        key_match_threshold: Passed to normalize_key for near-miss keys.

    Returns:
        Records in feed order.

    Raises:
        GeographyLoadError: unreadable/undecodable file or unusable content.
    """
    p = Path(path)
    try:
        if p.suffix.lower() == ".csv":
            raw = _read_csv(p)
        else:
            raw = _read_json(p)
    except FileNotFoundError as e:
        raise GeographyLoadError(f"cannot load geography data: {p} not found") from e
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, csv.Error) as e:
        raise GeographyLoadError(f"cannot load geography data from {p}: {e}") from e

    try:
        records = parse_records(raw, key_match_threshold)
    except GeographyLoadError as e:
        raise GeographyLoadError(f"cannot load geography data from {p}: {e}") from e

    logger.info("Loaded %d geography records from %s", len(records), p)
    return records

