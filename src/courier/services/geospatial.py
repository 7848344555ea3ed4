"""Geospatial helper functions: great-circle distance and branch proximity."""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from ..config import settings
from ..errors import CoverageError, NoActiveBranchError
from ..models.domain import Branch

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def rank_branches_by_distance(
    latitude: float, longitude: float, branches: Iterable[Branch]
) -> list[tuple[Branch, float]]:
    """Active branches with coordinates, nearest first; ties go to the lowest branch id."""

    ranked = [
        (branch, haversine_km(latitude, longitude, branch.latitude, branch.longitude))
        for branch in branches
        if branch.is_active and branch.has_geo
    ]
    ranked.sort(key=lambda pair: (pair[1], pair[0].branch_id))
    return ranked


def nearest_branch(
    latitude: Optional[float], longitude: Optional[float], branches: Iterable[Branch]
) -> Branch:
    branches = list(branches)
    if latitude is not None and longitude is not None:
        ranked = rank_branches_by_distance(latitude, longitude, branches)
        if ranked:
            return ranked[0][0]

    active = sorted((branch for branch in branches if branch.is_active), key=lambda b: b.branch_id)
    if not active:
        raise NoActiveBranchError(
            "No active branch is available",
            errors={"branch_id": "No active branch found"},
        )
    logging.warning(f"No geo-enabled branch for ({latitude}, {longitude}); using branch {active[0].code}")
    return active[0]


def ensure_coverage(
    latitude: Optional[float],
    longitude: Optional[float],
    branches: Iterable[Branch],
    radius_km: Optional[float] = None,
) -> Optional[tuple[Branch, float]]:
    """Return the nearest geo-enabled branch and its distance, or raise CoverageError.

    Returns None when coverage cannot be evaluated (no coordinates for the
    point or no geo-enabled branch).
    """
    radius = radius_km if radius_km is not None else settings.coverage_radius_km
    if latitude is None or longitude is None:
        logging.warning("Address has no coordinates; coverage check skipped")
        return None

    ranked = rank_branches_by_distance(latitude, longitude, branches)
    if not ranked:
        logging.warning("No active branch has coordinates; coverage check skipped")
        return None

    branch, distance = ranked[0]
    if distance > radius:
        logging.info(f"Coverage rejected: {distance:.1f}km from branch {branch.code} exceeds {radius:g}km")
        raise CoverageError(
            f"Address is outside the service area ({distance:.1f}km from the nearest branch, "
            f"limit {radius:g}km)",
            errors={"sender": "Address is outside the service area"},
        )
    return branch, distance
