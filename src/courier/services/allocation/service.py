"""High-level orchestration for vehicle suggestions and direct assignment."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from ...data.fleet_repository import FleetDirectory, load_fleet
from ...data.order_repository import get_order, get_order_book
from ...errors import NoActiveBranchError, NoEligibleVehicleError, UnknownVehicleError, ValidationError
from ...models.domain import (
    AssignmentRecord,
    Branch,
    Dimensions,
    GoodsRequirement,
    ManifestItem,
    OrderRecord,
    RouteScope,
    ServiceType,
    Suggestion,
    Vehicle,
    VehicleConstraints,
    VehicleLoad,
)
from ...persistence.filesystem import get_assignment_log
from ...schemas.allocation import (
    AssignmentModel,
    AssignRequest,
    SuggestionRequest,
    SuggestionResponse,
    VehicleSuggestionModel,
)
from ..addressing.normalizer import AddressNormalizer, get_normalizer
from ..geospatial import nearest_branch
from ..pricing.engine import ShipmentMeasure, measure_manifest
from ..routing.classifier import route_scope_for
from .capacity import CapacityTracker, get_capacity_tracker
from .goods import goods_type_of, normalize_goods_type
from .matcher import find_candidates
from .ranker import rank


def largest_dimensions(items: Sequence[ManifestItem]) -> Optional[Dimensions]:
    """Per-axis maximum over items with measured dimensions."""
    measured = [item.dimensions for item in items if item.dimensions is not None]
    if not measured:
        return None
    return Dimensions(
        length_cm=max(dims.length_cm for dims in measured),
        width_cm=max(dims.width_cm for dims in measured),
        height_cm=max(dims.height_cm for dims in measured),
    )


def build_requirements(
    service_type: ServiceType,
    route_scope: RouteScope,
    items: Sequence[ManifestItem],
) -> tuple[ShipmentMeasure, GoodsRequirement, VehicleConstraints]:
    measure = measure_manifest(service_type, items)
    goods_type = normalize_goods_type(goods_type_of(items))
    dimensions = largest_dimensions(items)
    goods = GoodsRequirement(
        goods_type=goods_type,
        weight_kg=measure.chargeable_weight_kg,
        volume_m3=measure.volume_m3,
        max_dimensions=dimensions,
    )
    constraints = VehicleConstraints(
        service_type=service_type,
        route_scope=route_scope,
        goods_type=goods_type,
        total_weight_kg=measure.chargeable_weight_kg,
        total_volume_m3=measure.volume_m3,
        dimensions=dimensions,
    )
    return measure, goods, constraints


def rank_suggestions(
    branch: Branch,
    constraints: VehicleConstraints,
    goods: GoodsRequirement,
    fleet: FleetDirectory,
    tracker: CapacityTracker,
) -> list[Suggestion]:
    """Eligible vehicles of ``branch`` that still have room, cheapest first.

    Raises NoEligibleVehicleError when no vehicle passes the eligibility
    rules; vehicles that are eligible but currently full are dropped
    silently.
    """
    candidates = find_candidates(constraints, goods, branch, fleet.vehicles_of(branch))
    if not candidates:
        raise NoEligibleVehicleError(
            f"No eligible vehicle at branch {branch.code} for {constraints.service_type.value} "
            f"{goods.goods_type} ({constraints.route_scope.value})",
            errors={"vehicle": "No eligible vehicle found"},
        )

    with_room = []
    for vehicle in candidates:
        capacity = tracker.remaining_capacity(vehicle)
        if capacity.remaining_weight_kg >= goods.weight_kg and capacity.remaining_volume_m3 >= goods.volume_m3:
            with_room.append((vehicle, capacity))
    return rank(with_room, goods.weight_kg, goods.volume_m3, branch=branch)


def _active_branch(fleet: FleetDirectory, branch_id: int) -> Branch:
    branch = fleet.branch(branch_id)
    if branch is None or not branch.is_active:
        raise NoActiveBranchError(
            f"Branch {branch_id} not found or inactive",
            errors={"branch_id": "Branch not found or inactive"},
        )
    return branch


def _order_scope(order: OrderRecord, normalizer: AddressNormalizer):
    sender = normalizer.normalize(order.sender.full_text())
    receiver = normalizer.normalize(order.receiver.full_text())
    return sender, route_scope_for(sender, receiver)


def _suggestion_model(suggestion: Suggestion) -> VehicleSuggestionModel:
    vehicle = suggestion.vehicle
    return VehicleSuggestionModel(
        vehicle_id=vehicle.vehicle_id,
        vehicle_code=vehicle.code,
        vehicle_type=vehicle.vehicle_type,
        route_scope=vehicle.route_scope,
        branch_id=suggestion.branch.branch_id if suggestion.branch else None,
        max_load_kg=vehicle.max_load_kg,
        max_volume_m3=vehicle.max_volume_m3,
        used_weight_kg=round(suggestion.used_weight_kg, 4),
        used_volume_m3=round(suggestion.used_volume_m3, 6),
        remaining_weight_kg=round(suggestion.remaining_weight_kg, 4),
        remaining_volume_m3=round(suggestion.remaining_volume_m3, 6),
        current_order_count=suggestion.current_order_count,
        cost_score=suggestion.cost_score,
    )


def _reserve_and_record(
    order: OrderRecord,
    vehicle: Vehicle,
    branch_id: Optional[int],
    measure: ShipmentMeasure,
    assigned_by: Optional[str],
    tracker: CapacityTracker,
) -> AssignmentModel:
    """Reserve capacity and record the assignment.

    An order holds at most one vehicle. If recording fails the reservation
    and the claim on the order are rolled back before re-raising.
    """
    orders = get_order_book()
    if not orders.claim(order.order_id):
        raise ValidationError(
            f"Order {order.order_id} already has a vehicle",
            errors={"order_id": "Order already has a vehicle"},
        )
    try:
        load: VehicleLoad = tracker.reserve(vehicle, measure.chargeable_weight_kg, measure.volume_m3)
    except Exception:
        orders.release_claim(order.order_id)
        raise

    record = AssignmentRecord(
        order_id=order.order_id,
        branch_id=branch_id,
        vehicle_id=vehicle.vehicle_id,
        assigned_by=assigned_by,
        assigned_at=datetime.now(timezone.utc),
        weight_kg=round(measure.chargeable_weight_kg, 4),
        volume_m3=round(measure.volume_m3, 6),
    )
    try:
        get_assignment_log().record(record)
    except Exception as e:
        logging.warning(f"Rolling back assignment of order {order.order_id} to vehicle {vehicle.code}: {e}")
        tracker.release(vehicle, measure.chargeable_weight_kg, measure.volume_m3)
        orders.release_claim(order.order_id)
        raise
    return AssignmentModel(
        order_id=record.order_id,
        vehicle_id=vehicle.vehicle_id,
        vehicle_code=vehicle.code,
        branch_id=branch_id,
        assigned_by=assigned_by,
        assigned_at=record.assigned_at,
        weight_kg=record.weight_kg,
        volume_m3=record.volume_m3,
        current_load_kg=round(load.current_load_kg, 4),
        current_volume_m3=round(load.current_volume_m3, 6),
        current_order_count=load.current_order_count,
    )


def suggest_vehicles(order_id: str, request: SuggestionRequest | None = None) -> SuggestionResponse:
    """Rank the vehicles that can carry an order, optionally reserving the best one."""
    request = request or SuggestionRequest()
    order = get_order(order_id)
    fleet = load_fleet()
    tracker = get_capacity_tracker()
    sender, route_scope = _order_scope(order, get_normalizer())

    branch_id = request.branch_id if request.branch_id is not None else order.branch_id
    if branch_id is not None:
        branch = _active_branch(fleet, branch_id)
    else:
        branch = nearest_branch(sender.latitude, sender.longitude, fleet.branches())

    measure, goods, constraints = build_requirements(order.service_type, route_scope, order.items)
    suggestions = rank_suggestions(branch, constraints, goods, fleet, tracker)
    logging.info(
        f"Order {order.order_id}: {len(suggestions)} vehicle suggestion(s) at branch {branch.code} "
        f"({route_scope.value}, {goods.goods_type}, {goods.weight_kg:.2f}kg)"
    )

    assignment = None
    if request.auto_assign and suggestions:
        top = suggestions[0]
        assignment = _reserve_and_record(order, top.vehicle, branch.branch_id, measure, request.requested_by, tracker)

    return SuggestionResponse(
        order_id=order.order_id,
        branch_id=branch.branch_id,
        route_scope=route_scope.value,
        goods_type=goods.goods_type,
        weight_kg=round(goods.weight_kg, 4),
        volume_m3=round(goods.volume_m3, 6),
        suggestions=[_suggestion_model(suggestion) for suggestion in suggestions],
        assignment=assignment,
    )


def assign_vehicle(order_id: str, request: AssignRequest) -> AssignmentModel:
    """Reserve capacity on a chosen vehicle for an order and record the assignment."""
    order = get_order(order_id)
    fleet = load_fleet()
    vehicle = fleet.vehicle(request.vehicle_id)
    if vehicle is None or not vehicle.is_active:
        raise UnknownVehicleError(
            f"Vehicle {request.vehicle_id} not found or inactive",
            errors={"vehicle_id": "Vehicle not found or inactive"},
        )

    branch_id = request.branch_id if request.branch_id is not None else order.branch_id
    if branch_id is not None:
        branch = _active_branch(fleet, branch_id)
    else:
        sender = get_normalizer().normalize(order.sender.full_text())
        branch = nearest_branch(sender.latitude, sender.longitude, fleet.branches())
    if vehicle.vehicle_id not in branch.vehicle_ids:
        raise ValidationError(
            f"Vehicle {vehicle.code} is not assigned to branch {branch.code}",
            errors={"vehicle_id": "Vehicle does not belong to this branch"},
        )

    measure = measure_manifest(order.service_type, order.items)
    return _reserve_and_record(order, vehicle, branch.branch_id, measure, request.assigned_by, get_capacity_tracker())
