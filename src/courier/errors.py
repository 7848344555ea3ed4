"""Error kinds raised by the quoting and allocation core."""

from __future__ import annotations

from typing import Optional


class BookingError(ValueError):
    """User-facing failure recovered at the request boundary."""

    code = "BOOKING_ERROR"

    def __init__(self, message: str, *, errors: Optional[dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = dict(errors or {})

    def to_detail(self) -> dict:
        detail: dict = {"code": self.code, "message": self.message}
        if self.errors:
            detail["errors"] = self.errors
        return detail


class ValidationError(BookingError):
    code = "VALIDATION_FAILED"


class AddressResolutionError(BookingError):
    code = "ADDRESS_UNRESOLVED"


class CoverageError(BookingError):
    code = "OUTSIDE_COVERAGE"


class UnsupportedRouteError(BookingError):
    code = "UNSUPPORTED_ROUTE"


class NoEligibleVehicleError(BookingError):
    code = "NO_ELIGIBLE_VEHICLE"


class OrderNotFoundError(BookingError):
    code = "ORDER_NOT_FOUND"


class UnknownVehicleError(BookingError):
    code = "VEHICLE_NOT_FOUND"


class NoActiveBranchError(BookingError):
    code = "NO_BRANCH_FOUND"


class CapacityExceededError(BookingError):
    """A reservation would push a vehicle past its max weight or volume.

    Clients should refresh their suggestion list instead of retrying the
    same vehicle.
    """

    code = "CAPACITY_EXCEEDED"

    def __init__(
        self,
        vehicle_id: int,
        dimension: str,
        requested: float,
        remaining: float,
        *,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(
            message
            or f"Vehicle capacity exceeded ({dimension}). Please refresh suggestions."
        )
        self.vehicle_id = vehicle_id
        self.dimension = dimension
        self.requested = requested
        self.remaining = remaining

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail.update(
            {
                "vehicle_id": self.vehicle_id,
                "dimension": self.dimension,
                "requested": self.requested,
                "remaining": self.remaining,
                "refresh_suggestions": True,
            }
        )
        return detail


class InvalidRegionError(RuntimeError):
    """Reference data carries a region code outside NORTH/CENTRAL/SOUTH."""

    def __init__(self, region_code: object) -> None:
        super().__init__(f"Invalid region_code: {region_code}")
        self.region_code = region_code
