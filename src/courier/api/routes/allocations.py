"""API routes for vehicle suggestions and assignment."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...errors import BookingError
from ...schemas.allocation import AssignmentModel, AssignRequest, SuggestionRequest, SuggestionResponse
from ...services.allocation.service import assign_vehicle, suggest_vehicles
from ..errors import booking_http_exception

router = APIRouter(prefix="/allocations", tags=["allocations"])


@router.post("/{order_id}/suggestions", response_model=SuggestionResponse, status_code=status.HTTP_200_OK)
def create_suggestions(order_id: str, payload: SuggestionRequest | None = None) -> SuggestionResponse:
    """Rank vehicles for an order; with ``auto_assign`` the top vehicle is reserved."""
    try:
        return suggest_vehicles(order_id, payload)
    except BookingError as exc:
        raise booking_http_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error suggesting vehicles for order {order_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to suggest vehicles. Please try again later.",
        ) from exc


@router.post("/{order_id}/assign", response_model=AssignmentModel, status_code=status.HTTP_200_OK)
def assign(order_id: str, payload: AssignRequest) -> AssignmentModel:
    """Reserve capacity on the chosen vehicle.

    A 409 response means the vehicle filled up since suggestions were
    fetched; refresh suggestions instead of retrying the same vehicle.
    """
    try:
        return assign_vehicle(order_id, payload)
    except BookingError as exc:
        raise booking_http_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error assigning vehicle to order {order_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to assign vehicle. Please try again later.",
        ) from exc
