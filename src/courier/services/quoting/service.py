"""High-level orchestration for side-effect-free shipping quotes."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ...data.fleet_repository import load_fleet
from ...errors import BookingError
from ...models.domain import (
    AddressParts,
    Dimensions,
    ManifestItem,
    PricingBreakdown,
    ResolvedAddress,
    RouteScope,
    ServiceType,
    VehicleType,
)
from ...schemas.quotes import (
    ItemModel,
    PartyModel,
    PricingBreakdownModel,
    QuoteRequest,
    QuoteResponse,
    ResolvedAddressModel,
)
from ..addressing.normalizer import get_normalizer
from ..allocation.capacity import get_capacity_tracker
from ..allocation.service import build_requirements, rank_suggestions
from ..geospatial import ensure_coverage, nearest_branch
from ..pricing.engine import calculate_fee, determine_city_type
from ..routing.classifier import classify
from .validation import validate_quote_request

DEFAULT_VEHICLE_TYPE = {
    ServiceType.EXPRESS: VehicleType.MOTORBIKE.value,
    ServiceType.STANDARD: VehicleType.TRUCK_2_5T.value,
}


def address_parts(party: PartyModel) -> AddressParts:
    return AddressParts(
        address_detail=(party.address_detail or "").strip(),
        province=(party.province or "").strip(),
        ward=(party.ward or "").strip() or None,
        district=(party.district or "").strip() or None,
    )


def manifest_items(service_type: ServiceType, items: Sequence[ItemModel]) -> list[ManifestItem]:
    manifest = []
    for item in items:
        dimensions = None
        express_size = None
        if service_type == ServiceType.STANDARD and item.length and item.width and item.height:
            dimensions = Dimensions(item.length, item.width, item.height)
        if service_type == ServiceType.EXPRESS and item.express_size:
            express_size = item.express_size.strip().upper()
        manifest.append(
            ManifestItem(
                name=(item.name or "").strip(),
                weight_g=item.weight or 0.0,
                declared_value=item.declared_value or 0.0,
                category=item.category,
                dimensions=dimensions,
                express_size=express_size,
            )
        )
    return manifest


def resolved_address_model(address: ResolvedAddress) -> ResolvedAddressModel:
    return ResolvedAddressModel(
        normalized_text=address.normalized_text,
        province_code=address.province_code,
        region_code=address.region_code,
        confidence=address.confidence,
        province_confidence=address.province_confidence,
        district_code=address.district_code,
        district_confidence=address.district_confidence,
        ward_code=address.ward_code,
        ward_confidence=address.ward_confidence,
        latitude=address.latitude,
        longitude=address.longitude,
    )


def _breakdown_model(breakdown: PricingBreakdown) -> PricingBreakdownModel:
    return PricingBreakdownModel(
        base_price=breakdown.base_price,
        extra_weight_price=breakdown.extra_weight_price,
        chargeable_weight=breakdown.chargeable_weight,
        actual_weight=breakdown.actual_weight,
        volumetric_weight=breakdown.volumetric_weight,
        route_type=breakdown.route_type.value,
        sla=breakdown.sla,
        sla_days=breakdown.sla_days,
        vehicle_type=breakdown.vehicle_type,
    )


def propose_vehicle_type(
    service_type: ServiceType,
    route_scope: RouteScope,
    items: Sequence[ManifestItem],
    sender: ResolvedAddress,
) -> str:
    """Type of the top-ranked vehicle near the sender, without reserving anything."""
    fallback = DEFAULT_VEHICLE_TYPE[service_type]
    fleet = load_fleet()
    try:
        branch = nearest_branch(sender.latitude, sender.longitude, fleet.branches())
        _, goods, constraints = build_requirements(service_type, route_scope, items)
        suggestions = rank_suggestions(branch, constraints, goods, fleet, get_capacity_tracker())
    except BookingError as e:
        logging.info(f"No vehicle proposal for quote, using {fallback}: {e.message}")
        return fallback
    return suggestions[0].vehicle.vehicle_type if suggestions else fallback


def quote_shipment(request: QuoteRequest) -> QuoteResponse:
    """Validate, resolve, classify and price a shipment. Reserves nothing."""
    service_type = validate_quote_request(request)
    normalizer = get_normalizer()

    sender = normalizer.normalize(address_parts(request.sender).full_text())
    receiver = normalizer.normalize(address_parts(request.receiver).full_text())

    coverage = ensure_coverage(sender.latitude, sender.longitude, load_fleet().branches())

    classification = classify(sender, receiver, normalizer)
    items = manifest_items(service_type, request.items)
    measure, goods, _ = build_requirements(service_type, classification.route_scope, items)
    vehicle_type = propose_vehicle_type(service_type, classification.route_scope, items, sender)

    fee, breakdown = calculate_fee(
        service_type,
        classification.route_type,
        measure.chargeable_weight_kg,
        measure.total_volume_cm3,
        origin_city=determine_city_type(normalizer.store.province(sender.province_code)),
        destination_city=determine_city_type(normalizer.store.province(receiver.province_code)),
        actual_weight_kg=measure.actual_weight_kg,
        vehicle_type=vehicle_type,
    )
    logging.info(
        f"Quote {sender.province_code}->{receiver.province_code} {service_type.value} "
        f"{classification.route_type.value} {measure.chargeable_weight_kg:.2f}kg: {fee}"
    )

    nearest: Optional[int] = coverage[0].branch_id if coverage else None
    distance: Optional[float] = round(coverage[1], 2) if coverage else None
    return QuoteResponse(
        estimated_fee=fee,
        pricing_breakdown=_breakdown_model(breakdown),
        sla=breakdown.sla,
        route_type=classification.route_type.value,
        route_scope=classification.route_scope.value,
        service_type=service_type.value,
        goods_type=goods.goods_type,
        suggested_vehicle_type=vehicle_type,
        nearest_branch_id=nearest,
        distance_to_branch_km=distance,
        sender_address=resolved_address_model(sender),
        receiver_address=resolved_address_model(receiver),
    )
