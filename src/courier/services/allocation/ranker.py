"""Cost scoring of eligible vehicles for a shipment."""

from __future__ import annotations

from typing import Optional, Sequence

from ...models.domain import Branch, RemainingCapacity, Suggestion, Vehicle, VehicleType

TYPE_PRIORITY = {
    VehicleType.MOTORBIKE.value: 1,
    VehicleType.TRUCK_2_5T.value: 2,
    VehicleType.TRUCK_3_5T.value: 3,
    VehicleType.TRUCK_5T.value: 4,
}
UNKNOWN_TYPE_PRIORITY = 999

TYPE_WEIGHT = 1000
WASTE_WEIGHT = 10
ORDER_COUNT_WEIGHT = 1


def type_priority(vehicle_type: str) -> int:
    return TYPE_PRIORITY.get(vehicle_type, UNKNOWN_TYPE_PRIORITY)


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def cost_score(vehicle: Vehicle, capacity: RemainingCapacity, weight_kg: float, volume_m3: float) -> float:
    waste_weight = capacity.remaining_weight_kg - weight_kg
    waste_volume = capacity.remaining_volume_m3 - volume_m3
    return (
        TYPE_WEIGHT * type_priority(vehicle.vehicle_type)
        + WASTE_WEIGHT * _ratio(waste_weight, vehicle.max_load_kg)
        + WASTE_WEIGHT * _ratio(waste_volume, vehicle.max_volume_m3)
        + ORDER_COUNT_WEIGHT * capacity.current_order_count
    )


def rank(
    candidates: Sequence[tuple[Vehicle, RemainingCapacity]],
    weight_kg: float,
    volume_m3: float,
    branch: Optional[Branch] = None,
) -> list[Suggestion]:
    """Score candidates and sort ascending by cost.

    Smaller vehicle classes come first, then tighter fit, then fewer
    orders already on board. Equal scores keep the input order; the
    reported score is rounded for display only.
    """
    scored = [(cost_score(vehicle, capacity, weight_kg, volume_m3), vehicle, capacity) for vehicle, capacity in candidates]
    scored.sort(key=lambda entry: entry[0])
    return [
        Suggestion(
            vehicle=vehicle,
            branch=branch,
            used_weight_kg=capacity.used_weight_kg,
            used_volume_m3=capacity.used_volume_m3,
            remaining_weight_kg=capacity.remaining_weight_kg,
            remaining_volume_m3=capacity.remaining_volume_m3,
            current_order_count=capacity.current_order_count,
            cost_score=round(score, 4),
        )
        for score, vehicle, capacity in scored
    ]
