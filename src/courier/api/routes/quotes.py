"""API routes for shipping quotes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...errors import BookingError
from ...schemas.quotes import QuoteRequest, QuoteResponse
from ...services.quoting.service import quote_shipment
from ..errors import booking_http_exception

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("", response_model=QuoteResponse, status_code=status.HTTP_200_OK)
def create_quote(payload: QuoteRequest) -> QuoteResponse:
    """Price a shipment. Nothing is reserved or persisted."""
    try:
        return quote_shipment(payload)
    except BookingError as exc:
        raise booking_http_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error computing quote: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute quote. Please try again later.",
        ) from exc
