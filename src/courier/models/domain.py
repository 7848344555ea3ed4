"""Domain models for geo reference data, fleet records and allocation state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Region(str, Enum):
    NORTH = "NORTH"
    CENTRAL = "CENTRAL"
    SOUTH = "SOUTH"


class ServiceType(str, Enum):
    STANDARD = "Standard"
    EXPRESS = "Express"


class RouteType(str, Enum):
    """Pricing granularity of a shipment's geographic span."""

    INTRA_PROVINCE = "intra_province"
    INTRA_REGION = "intra_region"
    ADJACENT_REGION = "adjacent_region"
    CROSS_REGION = "cross_region"


class RouteScope(str, Enum):
    """Vehicle-eligibility granularity, ordered by ``level``."""

    INTRA_PROVINCE = "INTRA_PROVINCE"
    INTRA_REGION = "INTRA_REGION"
    INTER_REGION_NEAR = "INTER_REGION_NEAR"
    INTER_REGION_FAR = "INTER_REGION_FAR"
    UNKNOWN = "UNKNOWN"

    @property
    def level(self) -> Optional[int]:
        return _SCOPE_LEVELS.get(self)


_SCOPE_LEVELS = {
    RouteScope.INTRA_PROVINCE: 1,
    RouteScope.INTRA_REGION: 2,
    RouteScope.INTER_REGION_NEAR: 3,
    RouteScope.INTER_REGION_FAR: 4,
}


class VehicleType(str, Enum):
    MOTORBIKE = "Motorbike"
    TRUCK_2_5T = "2.5-ton Truck"
    TRUCK_3_5T = "3.5-ton Truck"
    TRUCK_5T = "5-ton Truck"


class CityType(str, Enum):
    HCM = "HCM"
    HANOI = "HANOI"
    OTHER = "OTHER"


@dataclass(frozen=True, slots=True)
class Province:
    code: str
    name: str
    region_code: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True, slots=True)
class District:
    code: str
    province_code: str
    name: str
    raw_name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True, slots=True)
class Ward:
    code: str
    district_code: str
    name: str
    raw_name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True, slots=True)
class GeoAlias:
    """Alternate spelling of a geo unit; lower priority wins."""

    alias_text: str
    unit_code: str
    priority: int


@dataclass(frozen=True, slots=True)
class ResolvedAddress:
    """Result of matching free text against the geo reference."""

    input_text: str = field(compare=False)
    normalized_text: str
    province_code: str
    region_code: str
    province_confidence: float
    confidence: float
    district_code: Optional[str] = None
    district_confidence: float = 0.0
    ward_code: Optional[str] = None
    ward_confidence: float = 0.0
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_geo(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True, slots=True)
class RouteClassification:
    route_type: RouteType
    route_scope: RouteScope


@dataclass(frozen=True, slots=True)
class Dimensions:
    length_cm: float
    width_cm: float
    height_cm: float


@dataclass(frozen=True, slots=True)
class ManifestItem:
    name: str
    weight_g: float
    declared_value: float = 0.0
    category: Optional[str] = None
    dimensions: Optional[Dimensions] = None
    express_size: Optional[str] = None


@dataclass(frozen=True, slots=True)
class GoodsRequirement:
    goods_type: str
    weight_kg: float
    volume_m3: float
    max_dimensions: Optional[Dimensions] = None


@dataclass(frozen=True, slots=True)
class VehicleConstraints:
    service_type: ServiceType
    route_scope: RouteScope
    goods_type: str
    total_weight_kg: float
    total_volume_m3: float
    dimensions: Optional[Dimensions] = None


@dataclass(frozen=True, slots=True)
class Vehicle:
    vehicle_id: int
    code: str
    vehicle_type: str
    max_load_kg: float
    max_volume_m3: float
    route_scope: str
    supported_goods: frozenset[str] = frozenset()
    max_dimensions: Optional[Dimensions] = None
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class Branch:
    branch_id: int
    code: str
    name: str
    is_active: bool = True
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    province_code: Optional[str] = None
    vehicle_ids: tuple[int, ...] = ()

    @property
    def has_geo(self) -> bool:
        return bool(self.latitude) and bool(self.longitude)


@dataclass(slots=True)
class VehicleLoad:
    """Mutable load row for one vehicle."""

    vehicle_id: int
    current_load_kg: float = 0.0
    current_volume_m3: float = 0.0
    current_order_count: int = 0


@dataclass(frozen=True, slots=True)
class RemainingCapacity:
    vehicle_id: int
    used_weight_kg: float
    used_volume_m3: float
    remaining_weight_kg: float
    remaining_volume_m3: float
    current_order_count: int


@dataclass(frozen=True, slots=True)
class Suggestion:
    vehicle: Vehicle
    branch: Optional[Branch]
    used_weight_kg: float
    used_volume_m3: float
    remaining_weight_kg: float
    remaining_volume_m3: float
    current_order_count: int
    cost_score: float


@dataclass(frozen=True, slots=True)
class PricingBreakdown:
    base_price: int
    extra_weight_price: int
    chargeable_weight: float
    actual_weight: float
    volumetric_weight: float
    route_type: RouteType
    sla: str
    sla_days: int
    vehicle_type: Optional[str] = None


@dataclass(frozen=True, slots=True)
class AddressParts:
    address_detail: str
    province: str
    ward: Optional[str] = None
    district: Optional[str] = None

    def full_text(self) -> str:
        parts = [self.address_detail, self.ward, self.district, self.province]
        return ", ".join(part.strip() for part in parts if part and part.strip())


@dataclass(frozen=True, slots=True)
class OrderRecord:
    """Externally-owned order as seen by the allocation core."""

    order_id: str
    sender: AddressParts
    receiver: AddressParts
    service_type: ServiceType
    items: tuple[ManifestItem, ...]
    branch_id: Optional[int] = None


@dataclass(frozen=True, slots=True)
class AssignmentRecord:
    order_id: str
    branch_id: Optional[int]
    vehicle_id: int
    assigned_by: Optional[str]
    assigned_at: datetime
    weight_kg: float
    volume_m3: float
