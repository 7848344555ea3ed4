"""Route classification for pricing (route type) and vehicle eligibility (route scope).

The two classifications were designed independently and keep their own
adjacency tables; they are intentionally not merged.
"""

from __future__ import annotations

from ...errors import AddressResolutionError, InvalidRegionError
from ...models.domain import (
    Province,
    Region,
    ResolvedAddress,
    RouteClassification,
    RouteScope,
    RouteType,
)
from ..addressing.normalizer import AddressNormalizer, get_normalizer

# Pricing adjacency, listed one way and checked in either order
PRICING_ADJACENT_PAIRS = (
    (Region.NORTH, Region.CENTRAL),
    (Region.CENTRAL, Region.SOUTH),
)

# Eligibility adjacency, listed in both directions
SCOPE_ADJACENT_PAIRS = (
    (Region.NORTH, Region.CENTRAL),
    (Region.CENTRAL, Region.NORTH),
    (Region.CENTRAL, Region.SOUTH),
    (Region.SOUTH, Region.CENTRAL),
)

SCOPE_FAR_PAIRS = (
    (Region.NORTH, Region.SOUTH),
    (Region.SOUTH, Region.NORTH),
)


def region_group(region_code: object) -> Region:
    """Map a stored region code to its group, rejecting corrupt reference data."""
    try:
        return Region(region_code)
    except ValueError as exc:
        raise InvalidRegionError(region_code) from exc


def classify_route_type(sender: Province, receiver: Province) -> RouteType:
    if sender.code == receiver.code:
        return RouteType.INTRA_PROVINCE

    sender_region = region_group(sender.region_code)
    receiver_region = region_group(receiver.region_code)
    if sender_region == receiver_region:
        return RouteType.INTRA_REGION

    for first, second in PRICING_ADJACENT_PAIRS:
        if (sender_region, receiver_region) in ((first, second), (second, first)):
            return RouteType.ADJACENT_REGION
    return RouteType.CROSS_REGION


def route_scope_for(sender: ResolvedAddress, receiver: ResolvedAddress) -> RouteScope:
    if sender.province_code == receiver.province_code:
        return RouteScope.INTRA_PROVINCE

    sender_region = region_group(sender.region_code)
    receiver_region = region_group(receiver.region_code)
    if sender_region == receiver_region:
        return RouteScope.INTRA_REGION

    pair = (sender_region, receiver_region)
    if pair in SCOPE_ADJACENT_PAIRS:
        return RouteScope.INTER_REGION_NEAR
    if pair in SCOPE_FAR_PAIRS:
        return RouteScope.INTER_REGION_FAR
    return RouteScope.UNKNOWN


def derive_route_scope(
    sender_address: str,
    receiver_address: str,
    normalizer: AddressNormalizer | None = None,
) -> RouteScope:
    """Re-normalize both full address strings and classify their span."""
    normalizer = normalizer or get_normalizer()
    return route_scope_for(normalizer.normalize(sender_address), normalizer.normalize(receiver_address))


def classify(
    sender: ResolvedAddress,
    receiver: ResolvedAddress,
    normalizer: AddressNormalizer,
) -> RouteClassification:
    sender_province = normalizer.store.province(sender.province_code)
    receiver_province = normalizer.store.province(receiver.province_code)
    if sender_province is None or receiver_province is None:
        raise AddressResolutionError(
            f"Province {sender.province_code} or {receiver.province_code} is not in the reference data",
            errors={"address": "Province could not be resolved"},
        )
    return RouteClassification(
        route_type=classify_route_type(sender_province, receiver_province),
        route_scope=route_scope_for(sender, receiver),
    )
