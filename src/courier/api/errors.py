"""Translation of core errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from ..errors import (
    AddressResolutionError,
    BookingError,
    CapacityExceededError,
    CoverageError,
    NoActiveBranchError,
    NoEligibleVehicleError,
    OrderNotFoundError,
    UnknownVehicleError,
    UnsupportedRouteError,
    ValidationError,
)

STATUS_BY_ERROR: tuple[tuple[type[BookingError], int], ...] = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (AddressResolutionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (CoverageError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (UnsupportedRouteError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NoEligibleVehicleError, status.HTTP_404_NOT_FOUND),
    (OrderNotFoundError, status.HTTP_404_NOT_FOUND),
    (UnknownVehicleError, status.HTTP_404_NOT_FOUND),
    (NoActiveBranchError, status.HTTP_404_NOT_FOUND),
    (CapacityExceededError, status.HTTP_409_CONFLICT),
)


def booking_http_exception(exc: BookingError) -> HTTPException:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.to_detail())
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_detail())
