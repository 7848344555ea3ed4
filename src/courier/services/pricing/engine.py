"""Tiered shipping fee computation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from ...config import settings
from ...errors import UnsupportedRouteError, ValidationError
from ...models.domain import CityType, ManifestItem, PricingBreakdown, Province, RouteType, ServiceType

# Express parcels are priced from a fixed box size rather than measured dimensions (cm3)
EXPRESS_SIZE_VOLUMES_CM3 = {
    "S": 20 * 20 * 10,
    "M": 30 * 30 * 15,
    "L": 40 * 40 * 20,
    "XL": 50 * 50 * 25,
}
DEFAULT_EXPRESS_SIZE = "M"

STANDARD_LIGHT_LIMIT_KG = 20.0
STANDARD_INCLUDED_KG = 3.0
STANDARD_EXTRA_STEP_KG = 0.5

STANDARD_BASE_PRICE = {
    RouteType.INTRA_PROVINCE: 30000,
    RouteType.INTRA_REGION: 30000,
    RouteType.ADJACENT_REGION: 32000,
    RouteType.CROSS_REGION: 35000,
}
STANDARD_EXTRA_UNIT_PRICE = {
    RouteType.INTRA_PROVINCE: 2500,
    RouteType.INTRA_REGION: 2500,
    RouteType.ADJACENT_REGION: 5000,
    RouteType.CROSS_REGION: 5000,
}
# (upper bound kg inclusive, flat fee per route type)
STANDARD_HEAVY_BANDS = (
    (30.0, {RouteType.INTRA_PROVINCE: 130000, RouteType.INTRA_REGION: 165000,
            RouteType.ADJACENT_REGION: 260000, RouteType.CROSS_REGION: 320000}),
    (40.0, {RouteType.INTRA_PROVINCE: 170000, RouteType.INTRA_REGION: 205000,
            RouteType.ADJACENT_REGION: 340000, RouteType.CROSS_REGION: 420000}),
    (50.0, {RouteType.INTRA_PROVINCE: 210000, RouteType.INTRA_REGION: 245000,
            RouteType.ADJACENT_REGION: 420000, RouteType.CROSS_REGION: 520000}),
)
STANDARD_OVER_50_PER_KG = {
    RouteType.INTRA_PROVINCE: 5000,
    RouteType.INTRA_REGION: 5000,
    RouteType.ADJACENT_REGION: 7000,
    RouteType.CROSS_REGION: 8000,
}

EXPRESS_LIGHT_LIMIT_KG = 5.0
EXPRESS_VOLUME_THRESHOLDS_CM3 = (9600, 100000)
EXPRESS_FEES = {
    "light": (50000, 60000, 70000),
    "heavy": (60000, 70000, 80000),
}

SLA_DAYS = {
    RouteType.INTRA_PROVINCE: {ServiceType.STANDARD: 2, ServiceType.EXPRESS: 1},
    RouteType.INTRA_REGION: {ServiceType.STANDARD: 3, ServiceType.EXPRESS: 2},
    RouteType.ADJACENT_REGION: {ServiceType.STANDARD: 5, ServiceType.EXPRESS: 3},
    RouteType.CROSS_REGION: {ServiceType.STANDARD: 7, ServiceType.EXPRESS: 4},
}
DEFAULT_SLA_DAYS = 5

MAJOR_CITY_CODES = {"HCM": CityType.HCM, "HN": CityType.HANOI}


@dataclass(frozen=True, slots=True)
class ShipmentMeasure:
    actual_weight_kg: float
    total_volume_cm3: float
    volumetric_weight_kg: float
    chargeable_weight_kg: float

    @property
    def volume_m3(self) -> float:
        return self.total_volume_cm3 / 1_000_000


def item_volume_cm3(service_type: ServiceType, item: ManifestItem) -> float:
    if service_type == ServiceType.EXPRESS:
        size = (item.express_size or DEFAULT_EXPRESS_SIZE).upper()
        return float(EXPRESS_SIZE_VOLUMES_CM3.get(size, 0))
    if item.dimensions is None:
        return 0.0
    dims = item.dimensions
    return float(dims.length_cm * dims.width_cm * dims.height_cm)


def measure_manifest(service_type: ServiceType, items: Iterable[ManifestItem]) -> ShipmentMeasure:
    """Aggregate actual, volumetric and chargeable weight for a manifest."""
    actual_kg = 0.0
    volume_cm3 = 0.0
    for item in items:
        actual_kg += (item.weight_g or 0) / 1000
        volume_cm3 += item_volume_cm3(service_type, item)
    volumetric_kg = volume_cm3 / settings.volumetric_divisor
    return ShipmentMeasure(
        actual_weight_kg=actual_kg,
        total_volume_cm3=volume_cm3,
        volumetric_weight_kg=volumetric_kg,
        chargeable_weight_kg=max(actual_kg, volumetric_kg),
    )


def determine_city_type(province: Optional[Province]) -> CityType:
    if province is None:
        return CityType.OTHER
    return MAJOR_CITY_CODES.get(province.code, CityType.OTHER)


def estimate_sla(route_type: RouteType, service_type: ServiceType) -> tuple[int, str]:
    days = SLA_DAYS.get(route_type, {}).get(service_type, DEFAULT_SLA_DAYS)
    return days, f"{days} ngày"


def _round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _standard_fee(route_type: RouteType, weight_kg: float) -> tuple[int, int, int]:
    """Return (fee, base, extra) for Standard service."""
    if weight_kg > settings.max_standard_weight_kg:
        raise UnsupportedRouteError(
            f"Standard service supports up to {settings.max_standard_weight_kg:g}kg "
            f"(chargeable weight {weight_kg:.2f}kg)",
            errors={"items": "Shipment exceeds the maximum supported weight"},
        )

    if weight_kg < STANDARD_LIGHT_LIMIT_KG:
        base = STANDARD_BASE_PRICE[route_type]
        extra = 0
        if weight_kg > STANDARD_INCLUDED_KG:
            steps = math.ceil((weight_kg - STANDARD_INCLUDED_KG) / STANDARD_EXTRA_STEP_KG)
            extra = steps * STANDARD_EXTRA_UNIT_PRICE[route_type]
        return base + extra, base, extra

    for upper_kg, fees in STANDARD_HEAVY_BANDS:
        if weight_kg <= upper_kg:
            return fees[route_type], fees[route_type], 0

    band_50 = STANDARD_HEAVY_BANDS[-1][1][route_type]
    fee = band_50 + _round_half_up(weight_kg - 50.0) * STANDARD_OVER_50_PER_KG[route_type]
    return fee, fee, 0


def _express_fee(
    weight_kg: float, volume_cm3: float, origin_city: CityType, destination_city: CityType
) -> int:
    same_major_city = origin_city == destination_city and origin_city in (CityType.HCM, CityType.HANOI)
    if weight_kg > settings.express_max_weight_kg or not same_major_city:
        raise UnsupportedRouteError(
            "EXPRESS service is only available for intra-city HCM or Hanoi "
            f"with weight <= {settings.express_max_weight_kg:g}kg",
            errors={"service_type": "EXPRESS is not available for this route"},
        )
    fees = EXPRESS_FEES["light" if weight_kg <= EXPRESS_LIGHT_LIMIT_KG else "heavy"]
    small, medium = EXPRESS_VOLUME_THRESHOLDS_CM3
    if volume_cm3 < small:
        return fees[0]
    if volume_cm3 < medium:
        return fees[1]
    return fees[2]


def calculate_fee(
    service_type: ServiceType,
    route_type: RouteType,
    chargeable_weight_kg: float,
    total_volume_cm3: float,
    *,
    origin_city: CityType = CityType.OTHER,
    destination_city: CityType = CityType.OTHER,
    actual_weight_kg: Optional[float] = None,
    vehicle_type: Optional[str] = None,
) -> tuple[int, PricingBreakdown]:
    """Compute the fee and its display breakdown.

    Express pricing needs the origin/destination city types; Standard pricing
    ignores them.
    """
    if chargeable_weight_kg < 0 or total_volume_cm3 < 0:
        raise ValidationError(
            "Weight and volume must be non-negative",
            errors={"items": "Weight and volume must be non-negative"},
        )

    if service_type == ServiceType.EXPRESS:
        fee = _express_fee(chargeable_weight_kg, total_volume_cm3, origin_city, destination_city)
        base, extra = fee, 0
    else:
        fee, base, extra = _standard_fee(route_type, chargeable_weight_kg)

    sla_days, sla_label = estimate_sla(route_type, service_type)
    volumetric_kg = total_volume_cm3 / settings.volumetric_divisor
    breakdown = PricingBreakdown(
        base_price=base,
        extra_weight_price=extra,
        chargeable_weight=round(chargeable_weight_kg, 2),
        actual_weight=round(actual_weight_kg if actual_weight_kg is not None else chargeable_weight_kg, 2),
        volumetric_weight=round(volumetric_kg, 2),
        route_type=route_type,
        sla=sla_label,
        sla_days=sla_days,
        vehicle_type=vehicle_type,
    )
    return fee, breakdown
