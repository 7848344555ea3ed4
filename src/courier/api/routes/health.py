"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/reference", status_code=status.HTTP_200_OK)
def health_reference() -> dict:
    """Report which reference data sources loaded and how many rows each holds."""
    from ...data.fleet_repository import load_fleet
    from ...data.geo_repository import load_geo_reference
    from ...db.supabase import get_supabase_client

    result: dict = {"database_configured": get_supabase_client() is not None}
    try:
        result["geo"] = {"loaded": True, **load_geo_reference().counts()}
    except (OSError, ValueError) as exc:
        result["geo"] = {"loaded": False, "error": str(exc)}
    try:
        result["fleet"] = {"loaded": True, **load_fleet().counts()}
    except (OSError, ValueError) as exc:
        result["fleet"] = {"loaded": False, "error": str(exc)}
    result["healthy"] = result["geo"]["loaded"] and result["fleet"]["loaded"]
    return result
