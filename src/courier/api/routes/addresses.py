"""API routes for address normalization."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...errors import BookingError
from ...schemas.addresses import NormalizeAddressRequest
from ...schemas.quotes import ResolvedAddressModel
from ...services.addressing.normalizer import normalize_address
from ...services.quoting.service import resolved_address_model
from ..errors import booking_http_exception

router = APIRouter(prefix="/addresses", tags=["addresses"])


@router.post("/normalize", response_model=ResolvedAddressModel, status_code=status.HTTP_200_OK)
def normalize(payload: NormalizeAddressRequest) -> ResolvedAddressModel:
    try:
        return resolved_address_model(normalize_address(payload.address))
    except BookingError as exc:
        raise booking_http_exception(exc) from exc
    except Exception as exc:
        logging.exception(f"Error normalizing address: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to normalize address. Please try again later.",
        ) from exc
