"""Per-vehicle load tracking with atomic reservation.

``reserve`` and ``release`` are the only mutation points. The in-memory
tracker serializes writers per vehicle with one lock each; the Supabase
tracker uses optimistic compare-and-swap on the load row.
"""

from __future__ import annotations

import functools
import logging
import threading
from typing import Optional, Protocol

from ...config import settings
from ...db.supabase import get_supabase_client
from ...errors import CapacityExceededError
from ...models.domain import RemainingCapacity, Vehicle, VehicleLoad

logger = logging.getLogger(__name__)

LOAD_TABLE = "vehicle_load_tracking"


class CapacityTracker(Protocol):
    def remaining_capacity(self, vehicle: Vehicle) -> RemainingCapacity: ...

    def reserve(self, vehicle: Vehicle, weight_kg: float, volume_m3: float) -> VehicleLoad: ...

    def release(self, vehicle: Vehicle, weight_kg: float, volume_m3: float) -> VehicleLoad: ...


def _snapshot(vehicle: Vehicle, load: VehicleLoad) -> RemainingCapacity:
    return RemainingCapacity(
        vehicle_id=vehicle.vehicle_id,
        used_weight_kg=load.current_load_kg,
        used_volume_m3=load.current_volume_m3,
        remaining_weight_kg=vehicle.max_load_kg - load.current_load_kg,
        remaining_volume_m3=vehicle.max_volume_m3 - load.current_volume_m3,
        current_order_count=load.current_order_count,
    )


def _check_fits(vehicle: Vehicle, load: VehicleLoad, weight_kg: float, volume_m3: float) -> None:
    if weight_kg < 0 or volume_m3 < 0:
        raise ValueError("Reservation amounts must be non-negative")
    if load.current_load_kg + weight_kg > vehicle.max_load_kg:
        logger.warning(
            f"Vehicle {vehicle.code} cannot take {weight_kg:.2f}kg "
            f"({load.current_load_kg:.2f}/{vehicle.max_load_kg:.2f}kg used)"
        )
        raise CapacityExceededError(
            vehicle.vehicle_id,
            "weight",
            requested=weight_kg,
            remaining=vehicle.max_load_kg - load.current_load_kg,
        )
    if load.current_volume_m3 + volume_m3 > vehicle.max_volume_m3:
        logger.warning(
            f"Vehicle {vehicle.code} cannot take {volume_m3:.4f}m3 "
            f"({load.current_volume_m3:.4f}/{vehicle.max_volume_m3:.4f}m3 used)"
        )
        raise CapacityExceededError(
            vehicle.vehicle_id,
            "volume",
            requested=volume_m3,
            remaining=vehicle.max_volume_m3 - load.current_volume_m3,
        )


def _released(load: VehicleLoad, weight_kg: float, volume_m3: float) -> VehicleLoad:
    return VehicleLoad(
        vehicle_id=load.vehicle_id,
        current_load_kg=max(0.0, load.current_load_kg - weight_kg),
        current_volume_m3=max(0.0, load.current_volume_m3 - volume_m3),
        current_order_count=max(0, load.current_order_count - 1),
    )


class InMemoryCapacityTracker:
    """Load rows held in process memory, one lock per vehicle id."""

    def __init__(self, loads: Optional[dict[int, VehicleLoad]] = None) -> None:
        self._loads: dict[int, VehicleLoad] = dict(loads or {})
        self._locks: dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, vehicle_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(vehicle_id)
            if lock is None:
                lock = self._locks[vehicle_id] = threading.Lock()
            return lock

    def load(self, vehicle_id: int) -> VehicleLoad:
        """Copy of the current row; a vehicle without a row has zero load."""
        with self._lock_for(vehicle_id):
            current = self._loads.get(vehicle_id) or VehicleLoad(vehicle_id=vehicle_id)
            return VehicleLoad(
                vehicle_id=vehicle_id,
                current_load_kg=current.current_load_kg,
                current_volume_m3=current.current_volume_m3,
                current_order_count=current.current_order_count,
            )

    def remaining_capacity(self, vehicle: Vehicle) -> RemainingCapacity:
        return _snapshot(vehicle, self.load(vehicle.vehicle_id))

    def reserve(self, vehicle: Vehicle, weight_kg: float, volume_m3: float) -> VehicleLoad:
        with self._lock_for(vehicle.vehicle_id):
            current = self._loads.get(vehicle.vehicle_id) or VehicleLoad(vehicle_id=vehicle.vehicle_id)
            _check_fits(vehicle, current, weight_kg, volume_m3)
            updated = VehicleLoad(
                vehicle_id=vehicle.vehicle_id,
                current_load_kg=current.current_load_kg + weight_kg,
                current_volume_m3=current.current_volume_m3 + volume_m3,
                current_order_count=current.current_order_count + 1,
            )
            self._loads[vehicle.vehicle_id] = updated
        logger.info(
            f"Reserved {weight_kg:.2f}kg/{volume_m3:.4f}m3 on vehicle {vehicle.code} "
            f"({updated.current_load_kg:.2f}/{vehicle.max_load_kg:.2f}kg)"
        )
        return updated

    def release(self, vehicle: Vehicle, weight_kg: float, volume_m3: float) -> VehicleLoad:
        with self._lock_for(vehicle.vehicle_id):
            current = self._loads.get(vehicle.vehicle_id) or VehicleLoad(vehicle_id=vehicle.vehicle_id)
            updated = _released(current, weight_kg, volume_m3)
            self._loads[vehicle.vehicle_id] = updated
        return updated


class SupabaseCapacityTracker:
    """Load rows in ``vehicle_load_tracking`` updated by compare-and-swap."""

    def __init__(self, client, max_retries: int | None = None) -> None:
        self.client = client
        self.max_retries = max_retries if max_retries is not None else settings.capacity_cas_max_retries

    def _fetch(self, vehicle_id: int) -> tuple[VehicleLoad, bool]:
        try:
            response = (
                self.client.table(LOAD_TABLE).select("*").eq("vehicle_id", vehicle_id).limit(1).execute()
            )
        except Exception as e:
            logger.error(f"Reading {LOAD_TABLE} for vehicle {vehicle_id} failed: {e}")
            raise
        if not response.data:
            return VehicleLoad(vehicle_id=vehicle_id), False
        row = response.data[0]
        return (
            VehicleLoad(
                vehicle_id=vehicle_id,
                current_load_kg=float(row.get("current_load_kg") or 0),
                current_volume_m3=float(row.get("current_volume_m3") or 0),
                current_order_count=int(row.get("current_order_count") or 0),
            ),
            True,
        )

    def _swap(self, expected: VehicleLoad, exists: bool, updated: VehicleLoad) -> bool:
        values = {
            "current_load_kg": updated.current_load_kg,
            "current_volume_m3": updated.current_volume_m3,
            "current_order_count": updated.current_order_count,
        }
        if not exists:
            # The unique vehicle_id index rejects a concurrent first insert
            try:
                response = self.client.table(LOAD_TABLE).insert({"vehicle_id": updated.vehicle_id, **values}).execute()
            except Exception as e:
                logger.debug(f"Insert of load row for vehicle {updated.vehicle_id} lost a race: {e}")
                return False
            return bool(response.data)
        response = (
            self.client.table(LOAD_TABLE)
            .update(values)
            .eq("vehicle_id", expected.vehicle_id)
            .eq("current_load_kg", expected.current_load_kg)
            .eq("current_volume_m3", expected.current_volume_m3)
            .eq("current_order_count", expected.current_order_count)
            .execute()
        )
        return bool(response.data)

    def remaining_capacity(self, vehicle: Vehicle) -> RemainingCapacity:
        load, _ = self._fetch(vehicle.vehicle_id)
        return _snapshot(vehicle, load)

    def _mutate(self, vehicle: Vehicle, compute) -> VehicleLoad:
        attempt = 0
        while True:
            current, exists = self._fetch(vehicle.vehicle_id)
            updated = compute(current)
            if self._swap(current, exists, updated):
                return updated
            attempt += 1
            if attempt > self.max_retries:
                remaining = vehicle.max_load_kg - current.current_load_kg
                raise CapacityExceededError(
                    vehicle.vehicle_id,
                    "weight",
                    requested=0.0,
                    remaining=remaining,
                    message="Vehicle load changed concurrently. Please refresh suggestions.",
                )
            logger.debug(f"Load row for vehicle {vehicle.code} changed concurrently, retrying (attempt {attempt}/{self.max_retries})")

    def reserve(self, vehicle: Vehicle, weight_kg: float, volume_m3: float) -> VehicleLoad:
        def compute(current: VehicleLoad) -> VehicleLoad:
            _check_fits(vehicle, current, weight_kg, volume_m3)
            return VehicleLoad(
                vehicle_id=vehicle.vehicle_id,
                current_load_kg=current.current_load_kg + weight_kg,
                current_volume_m3=current.current_volume_m3 + volume_m3,
                current_order_count=current.current_order_count + 1,
            )

        updated = self._mutate(vehicle, compute)
        logger.info(f"Reserved {weight_kg:.2f}kg/{volume_m3:.4f}m3 on vehicle {vehicle.code}")
        return updated

    def release(self, vehicle: Vehicle, weight_kg: float, volume_m3: float) -> VehicleLoad:
        return self._mutate(vehicle, lambda current: _released(current, weight_kg, volume_m3))


@functools.lru_cache(maxsize=1)
def get_capacity_tracker() -> CapacityTracker:
    """Process-wide tracker: Supabase-backed when configured, else in memory."""
    client = get_supabase_client()
    if client is not None:
        return SupabaseCapacityTracker(client)
    logger.info("Supabase not configured; vehicle loads are tracked in memory")
    return InMemoryCapacityTracker()
