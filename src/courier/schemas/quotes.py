"""Quote request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class PartyModel(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address_detail: Optional[str] = None
    ward: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None


class ItemModel(BaseModel):
    name: Optional[str] = None
    weight: Optional[float] = Field(None, description="Item weight in grams.")
    declared_value: Optional[float] = Field(0, description="Declared value in VND.")
    category: Optional[str] = Field(None, description="Goods category label, e.g. 'Điện tử' or 'ELECTRONICS'.")
    length: Optional[float] = Field(None, description="cm; required for Standard service.")
    width: Optional[float] = None
    height: Optional[float] = None
    express_size: Optional[str] = Field(None, description="S, M, L or XL; required for Express service.")


class QuoteRequest(BaseModel):
    sender: PartyModel
    receiver: PartyModel
    service_type: Optional[str] = Field(None, description="STANDARD or EXPRESS.")
    items: List[ItemModel] = Field(default_factory=list)


class ResolvedAddressModel(BaseModel):
    normalized_text: str
    province_code: str
    region_code: str
    confidence: float
    province_confidence: float
    district_code: Optional[str] = None
    district_confidence: float = 0.0
    ward_code: Optional[str] = None
    ward_confidence: float = 0.0
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class PricingBreakdownModel(BaseModel):
    base_price: int
    extra_weight_price: int
    chargeable_weight: float
    actual_weight: float
    volumetric_weight: float
    route_type: str
    sla: str
    sla_days: int
    vehicle_type: Optional[str] = None


class QuoteResponse(BaseModel):
    estimated_fee: int
    pricing_breakdown: PricingBreakdownModel
    sla: str
    route_type: str
    route_scope: str
    service_type: str
    goods_type: str
    suggested_vehicle_type: str
    nearest_branch_id: Optional[int] = None
    distance_to_branch_km: Optional[float] = None
    sender_address: ResolvedAddressModel
    receiver_address: ResolvedAddressModel
