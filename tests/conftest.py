import json

import pytest

from geography_loader import parse_records
from geography_repository import GeographyRepository


def _row(pc, pth, pen, dc, dth, den, sc, sth, sen, postal):
    return {
        "provinceCode": pc, "provinceNameTh": pth, "provinceNameEn": pen,
        "districtCode": dc, "districtNameTh": dth, "districtNameEn": den,
        "subdistrictCode": sc, "subdistrictNameTh": sth, "subdistrictNameEn": sen,
        "postalCode": postal,
    }


BKK = (10, "กรุงเทพมหานคร", "Bangkok")
CNX = (50, "เชียงใหม่", "Chiang Mai")

RAW_FEED = [
    _row(*BKK, 1001, "พระนคร", "Phra Nakhon", 100101, "พระบรมมหาราชวัง", "Phra Borom Maha Ratchawang", "10200"),
    _row(*BKK, 1001, "พระนคร", "Phra Nakhon", 100102, "วังบูรพาภิรมย์", "Wang Burapha Phirom", "10200"),
    _row(*BKK, 1004, "บางรัก", "Bang Rak", 100401, "มหาพฤฒาราม", "Maha Phruettharam", "10500"),
    _row(*BKK, 1004, "บางรัก", "Bang Rak", 100402, "สีลม", "Si Lom", "10500"),
    _row(*BKK, 1004, "บางรัก", "Bang Rak", 100403, "สุริยวงศ์", "Suriyawong", "10500"),
    _row(*BKK, 1007, "ปทุมวัน", "Pathum Wan", 100701, "รองเมือง", "Rong Mueang", "10330"),
    _row(*BKK, 1007, "ปทุมวัน", "Pathum Wan", 100704, "ลุมพินี", "Lumphini", "10330"),
    _row(*BKK, 1033, "คลองเตย", "Khlong Toei", 103301, "คลองเตย", "Khlong Toei", "10110"),
    _row(*BKK, 1033, "คลองเตย", "Khlong Toei", 103302, "คลองตัน", "Khlong Tan", "10110"),
    _row(*BKK, 1033, "คลองเตย", "Khlong Toei", 103303, "พระโขนง", "Phra Khanong", "10110"),
    _row(*CNX, 5001, "เมืองเชียงใหม่", "Mueang Chiang Mai", 500101, "ศรีภูมิ", "Si Phum", "50200"),
    _row(*CNX, 5001, "เมืองเชียงใหม่", "Mueang Chiang Mai", 500102, "พระสิงห์", "Phra Sing", "50200"),
    _row(*CNX, 5013, "สันทราย", "San Sai", 501301, "สันทรายหลวง", "San Sai Luang", "50210"),
    _row(*CNX, 5007, "แม่ริม", "Mae Rim", 500701, "ริมใต้", "Rim Tai", "50180"),
    _row(*CNX, 5004, "เชียงดาว", "Chiang Dao", 500401, "เชียงดาว", "Chiang Dao", "50170"),
]


@pytest.fixture
def raw_feed():
    return [dict(r) for r in RAW_FEED]


@pytest.fixture
def records(raw_feed):
    return parse_records(raw_feed)


@pytest.fixture
def repo(records):
    return GeographyRepository(records)


@pytest.fixture
def feed_file(tmp_path, raw_feed):
    path = tmp_path / "geography.json"
    path.write_text(json.dumps(raw_feed, ensure_ascii=False), encoding="utf-8")
    return path
