"""Branch and vehicle directory with database-first approach, falling back to a workbook."""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

from openpyxl import load_workbook

from ..config import settings
from ..db.supabase import fetch_rows
from ..models.domain import Branch, Dimensions, Vehicle
from .geo_repository import _coerce_float, _is_active

REQUIRED_COLUMNS = {
    "branches": {"branch_id", "code", "name"},
    "vehicles": {"vehicle_id", "code", "vehicle_type", "max_load_kg", "max_volume_m3", "route_scope"},
    "branch_vehicles": {"branch_id", "vehicle_id"},
}


class FleetDirectory:
    """Read-only snapshot of branches, vehicles and which branch runs which vehicle."""

    def __init__(self, branches: Iterable[Branch], vehicles: Iterable[Vehicle]) -> None:
        self._branches = {branch.branch_id: branch for branch in branches}
        self._vehicles = {vehicle.vehicle_id: vehicle for vehicle in vehicles}

    def branches(self) -> Sequence[Branch]:
        return tuple(self._branches.values())

    def active_branches(self) -> Sequence[Branch]:
        return tuple(branch for branch in self._branches.values() if branch.is_active)

    def branch(self, branch_id: int) -> Optional[Branch]:
        return self._branches.get(branch_id)

    def vehicles(self) -> Sequence[Vehicle]:
        return tuple(self._vehicles.values())

    def vehicle(self, vehicle_id: int) -> Optional[Vehicle]:
        return self._vehicles.get(vehicle_id)

    def vehicles_of(self, branch: Branch) -> list[Vehicle]:
        return [self._vehicles[vid] for vid in branch.vehicle_ids if vid in self._vehicles]

    def counts(self) -> dict[str, int]:
        return {"branches": len(self._branches), "vehicles": len(self._vehicles)}


def _split_tags(value: object) -> set[str]:
    if value is None:
        return set()
    if isinstance(value, (list, tuple, set)):
        return {str(item).strip().upper() for item in value if str(item).strip()}
    return {item.strip().upper() for item in str(value).split(",") if item.strip()}


def _max_dimensions(row: dict) -> Optional[Dimensions]:
    values = [_coerce_float(row.get(key)) for key in ("max_length_cm", "max_width_cm", "max_height_cm")]
    if any(value is None for value in values):
        return None
    return Dimensions(*values)


def _vehicle(row: dict, goods: set[str]) -> Vehicle:
    return Vehicle(
        vehicle_id=int(row["vehicle_id"]),
        code=str(row["code"]).strip(),
        vehicle_type=str(row["vehicle_type"]).strip(),
        max_load_kg=float(row["max_load_kg"]),
        max_volume_m3=float(row["max_volume_m3"]),
        route_scope=str(row["route_scope"]).strip().upper(),
        supported_goods=frozenset(goods | _split_tags(row.get("supported_goods"))),
        max_dimensions=_max_dimensions(row),
        is_active=_is_active(row),
    )


def _branch(row: dict, vehicle_ids: Sequence[int]) -> Branch:
    return Branch(
        branch_id=int(row["branch_id"]),
        code=str(row["code"]).strip(),
        name=str(row["name"]).strip(),
        is_active=_is_active(row),
        latitude=_coerce_float(row.get("latitude")),
        longitude=_coerce_float(row.get("longitude")),
        province_code=str(row["province_code"]).strip() if row.get("province_code") else None,
        vehicle_ids=tuple(vehicle_ids),
    )


def build_directory(payload: dict) -> FleetDirectory:
    """Build a directory from a mapping of table name to row dicts."""
    goods_by_vehicle: dict[int, set[str]] = {}
    for row in payload.get("vehicle_supported_goods", ()):
        try:
            goods_by_vehicle.setdefault(int(row["vehicle_id"]), set()).update(_split_tags(row["goods_type"]))
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping invalid supported goods row: {e}")

    vehicle_ids_by_branch: dict[int, list[int]] = {}
    for row in payload.get("branch_vehicles", ()):
        try:
            vehicle_ids_by_branch.setdefault(int(row["branch_id"]), []).append(int(row["vehicle_id"]))
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping invalid branch vehicle row: {e}")

    vehicles: list[Vehicle] = []
    for row in payload.get("vehicles", ()):
        try:
            vehicle_id = int(row["vehicle_id"])
            vehicles.append(_vehicle(row, goods_by_vehicle.get(vehicle_id, set())))
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping invalid vehicle row: {e}")

    branches: list[Branch] = []
    for row in payload.get("branches", ()):
        try:
            branch_id = int(row["branch_id"])
            branches.append(_branch(row, vehicle_ids_by_branch.get(branch_id, ())))
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping invalid branch row: {e}")

    return FleetDirectory(branches, vehicles)


def _load_from_database() -> FleetDirectory | None:
    branches = fetch_rows("branches")
    vehicles = fetch_rows("vehicles")
    if not branches or not vehicles:
        return None
    return build_directory(
        {
            "branches": branches,
            "vehicles": vehicles,
            "vehicle_supported_goods": fetch_rows("vehicle_supported_goods") or [],
            "branch_vehicles": fetch_rows("branch_vehicles") or [],
        }
    )


def _sheet_rows(workbook, sheet_name: str, workbook_path: Path) -> Iterator[dict]:
    if sheet_name not in workbook.sheetnames:
        raise ValueError(f"Fleet workbook '{workbook_path}' has no '{sheet_name}' sheet.")
    rows = workbook[sheet_name].iter_rows(min_row=1, values_only=True)
    header = next(rows, None)
    if header is None:
        raise ValueError(f"Sheet '{sheet_name}' in '{workbook_path}' is empty.")

    header_map = {str(name).strip(): idx for idx, name in enumerate(header) if name is not None}
    missing_columns = REQUIRED_COLUMNS[sheet_name] - set(header_map)
    if missing_columns:
        raise ValueError(
            f"Sheet '{sheet_name}' missing columns: {', '.join(sorted(missing_columns))}"
        )

    for row in rows:
        if all(value is None for value in row):
            continue
        yield {name: row[idx] if idx < len(row) else None for name, idx in header_map.items()}


def _load_from_workbook(workbook_path: Path) -> FleetDirectory:
    wb = load_workbook(workbook_path, data_only=True, read_only=True)
    try:
        payload = {
            sheet: list(_sheet_rows(wb, sheet, workbook_path))
            for sheet in ("branches", "vehicles", "branch_vehicles")
        }
    finally:
        wb.close()
    return build_directory(payload)


def _load_from_file(source: Path | None = None) -> FleetDirectory:
    path = source or settings.fleet_file
    if not path.exists():
        raise FileNotFoundError(f"Fleet file not found: {path}")
    if path.suffix.lower() == ".json":
        with path.open("r", encoding="utf-8") as handle:
            return build_directory(json.load(handle))
    return _load_from_workbook(path)


@functools.lru_cache(maxsize=1)
def load_fleet(source: Optional[Path] = None) -> FleetDirectory:
    """Get the fleet from the database first, falling back to the fleet file."""
    if source is None:
        directory = _load_from_database()
        if directory is not None:
            logging.info(f"Loaded fleet from database: {directory.counts()}")
            return directory
    directory = _load_from_file(source)
    logging.info(f"Loaded fleet from file: {directory.counts()}")
    return directory
