import pytest

from geography_index import (
    KIND_DISTRICT,
    KIND_PROVINCE,
    KIND_SUBDISTRICT,
    District,
    GeographyIndex,
    SearchEntry,
    check_integrity,
    sort_by_thai_name,
)
from geography_loader import GeographyRecord


def _synthetic(n_prov, n_dist, n_sub):
    # every district has at least one subdistrict, every province at least one district
    return [
        GeographyRecord(
            province_code=(i % n_dist) % n_prov,
            province_name_th=f"จังหวัด{(i % n_dist) % n_prov}",
            district_code=i % n_dist,
            district_name_th=f"อำเภอ{i % n_dist}",
            subdistrict_code=i,
            subdistrict_name_th=f"ตำบล{i}",
            postal_code=f"{10000 + i}",
        )
        for i in range(n_sub)
    ]


def test_build_counts(records):
    index = GeographyIndex.build(records)
    assert len(index.province_by_code) == 2
    assert len(index.district_by_code) == 8
    assert len(index.subdistrict_by_code) == 15
    assert len(index.search_index) == 2 + 8 + 15


def test_search_index_order_subdistricts_districts_provinces(records):
    index = GeographyIndex.build(records)
    kinds = [e.kind for e in index.search_index]
    assert kinds == [KIND_SUBDISTRICT] * 15 + [KIND_DISTRICT] * 8 + [KIND_PROVINCE] * 2
    assert [e.code for e in index.search_index[:3]] == [100101, 100102, 100401]
    assert [e.code for e in index.search_index[-2:]] == [10, 50]


def test_search_entries_carry_parent_codes(records):
    index = GeographyIndex.build(records)
    sub = next(e for e in index.search_index if e.code == 103301)
    assert sub == SearchEntry(
        kind=KIND_SUBDISTRICT,
        code=103301,
        name_th="คลองเตย",
        name_en="Khlong Toei",
        postal="10110",
        district_code=1033,
        province_code=10,
    )
    dist = next(e for e in index.search_index if e.kind == KIND_DISTRICT and e.code == 1033)
    assert dist.province_code == 10
    assert dist.district_code is None
    assert dist.postal is None


def test_first_occurrence_wins():
    records = [
        GeographyRecord(10, "ก", "A", 1001, "ข", "B", 100101, "แรก", "First", "10200"),
        GeographyRecord(10, "ก2", "A2", 1001, "ข2", "B2", 100101, "หลัง", "Second", "10999"),
    ]
    index = GeographyIndex.build(records)
    sub = index.subdistrict_by_code[100101]
    assert (sub.name_th, sub.name_en, sub.postal) == ("แรก", "First", "10200")
    assert index.province_by_code[10].name_th == "ก"
    assert index.district_by_code[1001].name_en == "B"
    assert len(index.search_index) == 3


def test_referential_closure(records):
    index = GeographyIndex.build(records)
    for d in index.district_by_code.values():
        assert d.province_code in index.province_by_code
    for s in index.subdistrict_by_code.values():
        assert s.district_code in index.district_by_code
        assert index.district_by_code[s.district_code].province_code == s.province_code


def test_malformed_records_are_indexed_without_error():
    index = GeographyIndex.build([GeographyRecord(), GeographyRecord(subdistrict_code=5)])
    assert None in index.province_by_code
    assert index.subdistrict_by_code[5].name_th is None
    assert len(index.search_index) == 1 + 1 + 2


def test_children_grouped_and_thai_collated(records):
    index = GeographyIndex.build(records)
    names = [d.name_th for d in index.districts_by_province[50]]
    assert names == ["เชียงดาว", "เมืองเชียงใหม่", "แม่ริม", "สันทราย"]
    assert [s.code for s in index.subdistricts_by_district[1001]] == [100101, 100102]
    assert [p.name_th for p in index.provinces_sorted] == ["กรุงเทพมหานคร", "เชียงใหม่"]


def test_sort_by_thai_name_is_stable_on_ties():
    a = District(1, 10, "บางรัก", "a")
    b = District(2, 10, "บางรัก", "b")
    c = District(3, 10, None, "c")
    assert sort_by_thai_name([b, a, c]) == [c, b, a]


def test_integrity_passes_on_exact_national_counts():
    report = check_integrity(GeographyIndex.build(_synthetic(77, 928, 7436)))
    assert report.passed is True
    assert report.to_dict() == {
        "provinceCount": 77,
        "districtCount": 928,
        "subdistrictCount": 7436,
        "passed": True,
    }


def test_integrity_fails_when_one_subdistrict_missing(caplog):
    records = _synthetic(77, 928, 7436)[:-1]
    report = check_integrity(GeographyIndex.build(records))
    assert report.passed is False
    assert report.subdistrict_count == 7435
    assert report.province_count == 77
    assert report.district_count == 928
    assert "integrity check failed" in caplog.text


def test_integrity_custom_expectations(records):
    report = check_integrity(GeographyIndex.build(records), {KIND_PROVINCE: 2, KIND_DISTRICT: 8, KIND_SUBDISTRICT: 15})
    assert report.passed
    assert report.expected_subdistricts == 15


@pytest.mark.parametrize("entry, text", [
    (SearchEntry(KIND_SUBDISTRICT, 1, "สีลม", "Si Lom", "10500"), "สีลม (Si Lom) 10500"),
    (SearchEntry(KIND_PROVINCE, 10, "กรุงเทพมหานคร", "Bangkok"), "กรุงเทพมหานคร (Bangkok)"),
])
def test_display_text(entry, text):
    assert entry.display_text() == text


def test_kind_label():
    assert SearchEntry(KIND_DISTRICT, 1, "x", "y").kind_label == "อำเภอ"


def test_sort_by_thai_name_equal_keys_follow_input_order(monkeypatch):
    # distinct names that collate equal must not be ordered by set/hash iteration
    monkeypatch.setattr("geography_index.collate", lambda data: sorted(data, key=len))
    names = ["ข", "ก", "ค", "ง", "จ", "ฉ"]
    districts = [District(i, 10, n, n) for i, n in enumerate(names)]
    assert [d.name_th for d in sort_by_thai_name(districts)] == names
    assert [d.name_th for d in sort_by_thai_name(reversed(districts))] == names[::-1]
