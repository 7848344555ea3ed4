"""Vehicle allocation request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SuggestionRequest(BaseModel):
    branch_id: Optional[int] = Field(
        default=None,
        description="Branch whose fleet is considered. Defaults to the order's branch, then the nearest branch.",
    )
    auto_assign: bool = Field(default=False, description="Reserve the top-ranked vehicle immediately.")
    requested_by: Optional[str] = Field(default=None, description="Person or system requesting the allocation.")


class AssignRequest(BaseModel):
    vehicle_id: int
    branch_id: Optional[int] = None
    assigned_by: Optional[str] = Field(default=None, description="Person or system making the assignment.")


class VehicleSuggestionModel(BaseModel):
    vehicle_id: int
    vehicle_code: str
    vehicle_type: str
    route_scope: str
    branch_id: Optional[int] = None
    max_load_kg: float
    max_volume_m3: float
    used_weight_kg: float
    used_volume_m3: float
    remaining_weight_kg: float
    remaining_volume_m3: float
    current_order_count: int
    cost_score: float


class AssignmentModel(BaseModel):
    order_id: str
    vehicle_id: int
    vehicle_code: str
    branch_id: Optional[int] = None
    assigned_by: Optional[str] = None
    assigned_at: datetime
    weight_kg: float
    volume_m3: float
    current_load_kg: float
    current_volume_m3: float
    current_order_count: int


class SuggestionResponse(BaseModel):
    order_id: str
    branch_id: int
    route_scope: str
    goods_type: str
    weight_kg: float
    volume_m3: float
    suggestions: List[VehicleSuggestionModel]
    assignment: Optional[AssignmentModel] = None
