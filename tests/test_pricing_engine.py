import pytest

from src.courier.errors import UnsupportedRouteError, ValidationError
from src.courier.models.domain import CityType, Dimensions, ManifestItem, Province, RouteType, ServiceType
from src.courier.services.pricing.engine import (
    calculate_fee,
    determine_city_type,
    estimate_sla,
    measure_manifest,
)


def _standard_fee(route_type: RouteType, weight: float) -> int:
    fee, _ = calculate_fee(ServiceType.STANDARD, route_type, weight, 0)
    return fee


def test_light_intra_province_is_base_price() -> None:
    fee, breakdown = calculate_fee(ServiceType.STANDARD, RouteType.INTRA_PROVINCE, 2.5, 0)

    assert fee == 30000
    assert breakdown.base_price == 30000
    assert breakdown.extra_weight_price == 0
    assert breakdown.chargeable_weight == 2.5


def test_cross_region_charges_per_half_kilogram() -> None:
    fee, breakdown = calculate_fee(ServiceType.STANDARD, RouteType.CROSS_REGION, 4, 0)

    assert breakdown.base_price == 35000
    assert breakdown.extra_weight_price == 10000
    assert fee == 45000


def test_heavy_band_is_flat() -> None:
    assert _standard_fee(RouteType.INTRA_REGION, 35) == 205000
    assert _standard_fee(RouteType.INTRA_PROVINCE, 20) == 130000
    assert _standard_fee(RouteType.CROSS_REGION, 50) == 520000


def test_over_fifty_kilograms_rounds_half_up() -> None:
    assert _standard_fee(RouteType.INTRA_PROVINCE, 60.4) == 210000 + 10 * 5000
    assert _standard_fee(RouteType.INTRA_PROVINCE, 60.5) == 210000 + 11 * 5000
    assert _standard_fee(RouteType.ADJACENT_REGION, 52) == 420000 + 2 * 7000


def test_standard_over_weight_limit_is_unsupported() -> None:
    with pytest.raises(UnsupportedRouteError):
        _standard_fee(RouteType.INTRA_PROVINCE, 300.5)


@pytest.mark.parametrize("route_type", list(RouteType))
def test_fee_is_monotonic_in_weight(route_type: RouteType) -> None:
    weights = [step * 0.25 for step in range(0, 1201)]
    fees = [_standard_fee(route_type, weight) for weight in weights]

    assert all(earlier <= later for earlier, later in zip(fees, fees[1:]))


def test_express_hanoi_intra_city() -> None:
    fee, breakdown = calculate_fee(
        ServiceType.EXPRESS,
        RouteType.INTRA_PROVINCE,
        3,
        8000,
        origin_city=CityType.HANOI,
        destination_city=CityType.HANOI,
    )

    assert fee == 50000
    assert breakdown.sla == "1 ngày"


@pytest.mark.parametrize(
    "weight, volume, expected",
    [(3, 9600, 60000), (3, 100000, 70000), (8, 5000, 60000), (8, 50000, 70000), (20, 120000, 80000)],
)
def test_express_bands(weight: float, volume: float, expected: int) -> None:
    fee, _ = calculate_fee(
        ServiceType.EXPRESS,
        RouteType.INTRA_PROVINCE,
        weight,
        volume,
        origin_city=CityType.HCM,
        destination_city=CityType.HCM,
    )
    assert fee == expected


def test_express_between_cities_is_unsupported() -> None:
    with pytest.raises(UnsupportedRouteError):
        calculate_fee(
            ServiceType.EXPRESS,
            RouteType.ADJACENT_REGION,
            3,
            8000,
            origin_city=CityType.HANOI,
            destination_city=CityType.OTHER,
        )


def test_express_over_twenty_kilograms_is_unsupported() -> None:
    with pytest.raises(UnsupportedRouteError):
        calculate_fee(
            ServiceType.EXPRESS,
            RouteType.INTRA_PROVINCE,
            21,
            8000,
            origin_city=CityType.HCM,
            destination_city=CityType.HCM,
        )


def test_negative_weight_is_rejected() -> None:
    with pytest.raises(ValidationError):
        calculate_fee(ServiceType.STANDARD, RouteType.INTRA_PROVINCE, -1, 0)


def test_measure_manifest_uses_volumetric_weight_for_bulky_parcels() -> None:
    items = [
        ManifestItem(name="Pillow", weight_g=1000, dimensions=Dimensions(50, 50, 40)),
        ManifestItem(name="Book", weight_g=500, dimensions=Dimensions(10, 10, 5)),
    ]

    measure = measure_manifest(ServiceType.STANDARD, items)

    assert measure.actual_weight_kg == pytest.approx(1.5)
    assert measure.total_volume_cm3 == pytest.approx(100500)
    assert measure.volumetric_weight_kg == pytest.approx(20.1)
    assert measure.chargeable_weight_kg == pytest.approx(20.1)
    assert measure.volume_m3 == pytest.approx(0.1005)


def test_express_items_default_to_medium_box() -> None:
    items = [ManifestItem(name="Letter", weight_g=200), ManifestItem(name="Box", weight_g=800, express_size="s")]

    measure = measure_manifest(ServiceType.EXPRESS, items)

    assert measure.total_volume_cm3 == 13500 + 4000
    assert measure.chargeable_weight_kg == pytest.approx(3.5)


def test_sla_and_city_type_lookups() -> None:
    assert estimate_sla(RouteType.CROSS_REGION, ServiceType.STANDARD) == (7, "7 ngày")
    assert estimate_sla(RouteType.INTRA_REGION, ServiceType.EXPRESS) == (2, "2 ngày")
    assert determine_city_type(Province("HCM", "TP. Hồ Chí Minh", "SOUTH")) == CityType.HCM
    assert determine_city_type(Province("HN", "Hà Nội", "NORTH")) == CityType.HANOI
    assert determine_city_type(Province("DN", "Đà Nẵng", "CENTRAL")) == CityType.OTHER
    assert determine_city_type(None) == CityType.OTHER
