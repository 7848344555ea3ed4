"""Address normalization schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class NormalizeAddressRequest(BaseModel):
    address: str = Field(..., min_length=1, description="Free-text Vietnamese address.")
