"""Lookup of confirmed orders awaiting vehicle allocation."""

from __future__ import annotations

import functools
import logging
import threading
from typing import Any, Optional

from ..db.supabase import get_supabase_client
from ..errors import OrderNotFoundError
from ..models.domain import AddressParts, Dimensions, ManifestItem, OrderRecord, ServiceType

ORDER_TABLE = "courier_orders"


def _address(data: dict[str, Any]) -> AddressParts:
    return AddressParts(
        address_detail=str(data.get("address_detail") or "").strip(),
        province=str(data.get("province") or "").strip(),
        ward=(str(data["ward"]).strip() if data.get("ward") else None),
        district=(str(data["district"]).strip() if data.get("district") else None),
    )


def _item(data: dict[str, Any]) -> ManifestItem:
    dims = None
    if all(data.get(key) for key in ("length", "width", "height")):
        dims = Dimensions(float(data["length"]), float(data["width"]), float(data["height"]))
    return ManifestItem(
        name=str(data.get("name") or ""),
        weight_g=float(data.get("weight") or data.get("weight_g") or 0),
        declared_value=float(data.get("declared_value") or 0),
        category=data.get("category"),
        dimensions=dims,
        express_size=data.get("express_size"),
    )


def order_from_row(row: dict[str, Any]) -> OrderRecord:
    """Build an OrderRecord from a stored row with nested sender/receiver/items."""
    branch_id = row.get("branch_id")
    return OrderRecord(
        order_id=str(row["order_id"]),
        sender=_address(row.get("sender") or {}),
        receiver=_address(row.get("receiver") or {}),
        service_type=ServiceType(str(row.get("service_type", ServiceType.STANDARD.value)).capitalize()),
        items=tuple(_item(item) for item in row.get("items") or ()),
        branch_id=int(branch_id) if branch_id is not None else None,
    )


class OrderBook:
    """In-process registry of orders, consulted after the database.

    Also tracks which orders already hold a vehicle so an order is
    assigned at most once.
    """

    def __init__(self) -> None:
        self._orders: dict[str, OrderRecord] = {}
        self._assigned: set[str] = set()
        self._lock = threading.Lock()

    def register(self, order: OrderRecord) -> None:
        with self._lock:
            self._orders[order.order_id] = order

    def get(self, order_id: str) -> Optional[OrderRecord]:
        with self._lock:
            return self._orders.get(order_id)

    def claim(self, order_id: str) -> bool:
        """Mark an order as assigned; False when it already was."""
        with self._lock:
            if order_id in self._assigned:
                return False
            self._assigned.add(order_id)
            return True

    def release_claim(self, order_id: str) -> None:
        with self._lock:
            self._assigned.discard(order_id)

    def is_assigned(self, order_id: str) -> bool:
        with self._lock:
            return order_id in self._assigned

    def clear(self) -> None:
        with self._lock:
            self._orders.clear()
            self._assigned.clear()


@functools.lru_cache(maxsize=1)
def get_order_book() -> OrderBook:
    return OrderBook()


def _load_from_database(order_id: str) -> Optional[OrderRecord]:
    supabase = get_supabase_client()
    if not supabase:
        return None
    try:
        response = supabase.table(ORDER_TABLE).select("*").eq("order_id", order_id).limit(1).execute()
    except Exception as e:
        logging.debug(f"Order query failed, falling back to in-memory orders: {e}")
        return None
    if not response.data:
        return None
    try:
        return order_from_row(response.data[0])
    except (KeyError, ValueError, TypeError) as e:
        logging.warning(f"Skipping invalid order row {order_id}: {e}")
        return None


def get_order(order_id: str) -> OrderRecord:
    order = _load_from_database(order_id) or get_order_book().get(order_id)
    if order is None:
        raise OrderNotFoundError(
            f"Order {order_id} not found",
            errors={"order_id": "Order not found"},
        )
    return order
