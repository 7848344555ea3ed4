import pytest

from src.courier.errors import AddressResolutionError
from src.courier.services.addressing.text import find_token, standardize_address_text, strip_diacritics


def test_standardize_strips_accents_and_filler() -> None:
    assert strip_diacritics("Đường Lê Lợi") == "Duong Le Loi"
    assert standardize_address_text("  Quận 1,   TP. Hồ Chí Minh ") == "QUAN 1, HO CHI MINH"
    assert standardize_address_text("Thành phố Đà Nẵng") == "DA NANG"


def test_standardize_is_idempotent() -> None:
    raw = "Số 1 Hàng Bông, Phường Hàng Bông, Quận Hoàn Kiếm, TP.Hà Nội"
    once = standardize_address_text(raw)
    assert standardize_address_text(once) == once


def test_find_token_respects_word_boundaries() -> None:
    assert find_token("QUAN 12, HO CHI MINH", "QUAN 1") == -1
    assert find_token("QUAN 1, HO CHI MINH", "QUAN 1") == 0
    assert find_token("HUE, HUE", "HUE") == 5


def test_full_address_resolves_every_level(normalizer) -> None:
    result = normalizer.normalize("Phường Bến Nghé, Quận 1, TP. Hồ Chí Minh")

    assert result.province_code == "HCM"
    assert result.region_code == "SOUTH"
    assert result.district_code == "760"
    assert result.ward_code == "26734"
    assert result.province_confidence == 100.0
    assert result.confidence == 97.0
    assert (result.latitude, result.longitude) == (10.7769, 106.7009)


def test_hanoi_ward_inside_district(normalizer) -> None:
    result = normalizer.normalize("Số 1 Hàng Bông, Phường Hàng Bông, Quận Hoàn Kiếm, Hà Nội")

    assert result.province_code == "HN"
    assert result.district_code == "002"
    assert result.ward_code == "00082"


def test_street_named_after_province_does_not_win(normalizer) -> None:
    result = normalizer.normalize("12 Nguyễn Huệ, Quận 12, Hồ Chí Minh")

    assert result.province_code == "HCM"
    assert result.district_code == "761"
    assert result.ward_code is None
    assert result.confidence == 73.25


def test_aliases_score_by_priority(normalizer) -> None:
    result = normalizer.normalize("so 5 Q1, Sai Gon")

    assert result.province_code == "HCM"
    assert result.province_confidence == 80.0
    assert result.district_code == "760"
    assert result.district_confidence == 85.0
    assert result.confidence == 61.75


def test_province_in_the_middle_scores_lower(normalizer) -> None:
    result = normalizer.normalize("Kho A, Hà Nội, Việt Nam")

    assert result.province_code == "HN"
    assert result.province_confidence == 85.0
    assert result.district_code is None


def test_unresolvable_address_raises(normalizer) -> None:
    with pytest.raises(AddressResolutionError):
        normalizer.normalize("123 Main Street, Springfield")


@pytest.mark.parametrize(
    "raw",
    [
        "Phường Bến Nghé, Quận 1, TP. Hồ Chí Minh",
        "12 Nguyễn Huệ, Quận 12, Hồ Chí Minh",
        "Số 1 Hàng Bông, Phường Hàng Bông, Quận Hoàn Kiếm, Hà Nội",
        "so 5 Q1, Sai Gon",
        "Phường Thạch Thang, Quận Hải Châu, Đà Nẵng",
    ],
)
def test_renormalizing_normalized_text_is_stable(normalizer, raw: str) -> None:
    first = normalizer.normalize(raw)
    second = normalizer.normalize(first.normalized_text)

    assert second == first


def test_resolve_province_returns_none_when_unknown(normalizer) -> None:
    assert normalizer.resolve_province("hcm").code == "HCM"
    assert normalizer.resolve_province("Atlantis") is None
