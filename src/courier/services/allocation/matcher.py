"""Vehicle eligibility filtering for a branch's fleet."""

from __future__ import annotations

from typing import Iterable, Optional

from ...models.domain import (
    Branch,
    Dimensions,
    GoodsRequirement,
    RouteScope,
    ServiceType,
    Vehicle,
    VehicleConstraints,
    VehicleType,
)


def scope_level(scope: str | RouteScope) -> Optional[int]:
    try:
        return RouteScope(scope).level
    except ValueError:
        return None


def route_scope_compatible(required: str | RouteScope, vehicle_scope: str | RouteScope) -> bool:
    """A vehicle can serve the same or a broader scope than required."""
    required_level = scope_level(required)
    vehicle_level = scope_level(vehicle_scope)
    if required_level is None or vehicle_level is None:
        return False
    return vehicle_level >= required_level


def dimensions_fit(parcel: Dimensions, vehicle_max: Optional[Dimensions]) -> bool:
    if vehicle_max is None:
        return True
    return (
        parcel.length_cm <= vehicle_max.length_cm
        and parcel.width_cm <= vehicle_max.width_cm
        and parcel.height_cm <= vehicle_max.height_cm
    )


def service_compatible(service_type: ServiceType, vehicle_type: str) -> bool:
    is_motorbike = vehicle_type == VehicleType.MOTORBIKE.value
    if service_type == ServiceType.EXPRESS:
        return is_motorbike
    if service_type == ServiceType.STANDARD:
        return not is_motorbike
    return False


def is_eligible(vehicle: Vehicle, constraints: VehicleConstraints, goods: GoodsRequirement) -> bool:
    if not vehicle.is_active:
        return False
    if not route_scope_compatible(constraints.route_scope, vehicle.route_scope):
        return False
    if goods.goods_type not in vehicle.supported_goods:
        return False
    if goods.weight_kg > vehicle.max_load_kg or goods.volume_m3 > vehicle.max_volume_m3:
        return False
    dimensions = goods.max_dimensions or constraints.dimensions
    if dimensions is not None and not dimensions_fit(dimensions, vehicle.max_dimensions):
        return False
    return service_compatible(constraints.service_type, vehicle.vehicle_type)


def find_candidates(
    constraints: VehicleConstraints,
    goods: GoodsRequirement,
    branch: Branch,
    vehicles: Iterable[Vehicle],
) -> list[Vehicle]:
    """Vehicles assigned to ``branch`` that satisfy every eligibility rule.

    ``vehicles`` is the fleet to draw from; only those listed on the branch
    are considered. Order is not meaningful.
    """
    assigned = set(branch.vehicle_ids)
    return [
        vehicle
        for vehicle in vehicles
        if vehicle.vehicle_id in assigned and is_eligible(vehicle, constraints, goods)
    ]
