from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.courier.data import fleet_repository, geo_repository
from src.courier.data.order_repository import OrderBook
from src.courier.db import supabase as supabase_module
from src.courier.errors import OrderNotFoundError
from src.courier.main import create_app
from src.courier.models.domain import AddressParts, Dimensions, ManifestItem, OrderRecord, ServiceType, VehicleLoad
from src.courier.persistence.filesystem import AssignmentLog, FileStorage
from src.courier.services.addressing import normalizer as normalizer_module
from src.courier.services.allocation import service as allocation_service
from src.courier.services.allocation.capacity import InMemoryCapacityTracker
from src.courier.services.quoting import service as quoting_service

QUOTE_PAYLOAD = {
    "sender": {
        "name": "Trần Thị B",
        "phone": "0901234567",
        "address_detail": "12 Lê Lợi",
        "ward": "Phường Bến Nghé",
        "district": "Quận 1",
        "province": "TP. Hồ Chí Minh",
    },
    "receiver": {
        "name": "Nguyễn Văn A",
        "phone": "+84912345678",
        "address_detail": "Số 1 Hàng Bông",
        "ward": "Phường Hàng Bông",
        "district": "Quận Hoàn Kiếm",
        "province": "Hà Nội",
    },
    "service_type": "STANDARD",
    "items": [{"name": "Sách", "weight": 4000, "length": 20, "width": 20, "height": 20}],
}


def _order(order_id: str) -> OrderRecord:
    return OrderRecord(
        order_id=order_id,
        sender=AddressParts(address_detail="12 Lê Lợi", ward="Phường Bến Nghé", district="Quận 1", province="TP. Hồ Chí Minh"),
        receiver=AddressParts(address_detail="5 Phan Đăng Lưu", province="TP. Hồ Chí Minh"),
        service_type=ServiceType.STANDARD,
        items=(ManifestItem(name="Phone", weight_g=2000, category="Điện tử", dimensions=Dimensions(20, 20, 20)),),
    )


@pytest.fixture
def tracker() -> InMemoryCapacityTracker:
    return InMemoryCapacityTracker({204: VehicleLoad(vehicle_id=204, current_load_kg=4999.0, current_order_count=12)})


@pytest.fixture
def client(monkeypatch, tmp_path: Path, normalizer, fleet, tracker) -> TestClient:
    orders = {"ORD-1": _order("ORD-1")}
    log = AssignmentLog(FileStorage(root=tmp_path))

    def get_order(order_id: str) -> OrderRecord:
        if order_id not in orders:
            raise OrderNotFoundError(f"Order {order_id} not found", errors={"order_id": "Order not found"})
        return orders[order_id]

    monkeypatch.setattr(normalizer_module, "get_normalizer", lambda: normalizer)
    monkeypatch.setattr(quoting_service, "get_normalizer", lambda: normalizer)
    monkeypatch.setattr(quoting_service, "load_fleet", lambda: fleet)
    monkeypatch.setattr(quoting_service, "get_capacity_tracker", lambda: tracker)
    monkeypatch.setattr(allocation_service, "get_order", get_order)
    monkeypatch.setattr(allocation_service, "load_fleet", lambda: fleet)
    monkeypatch.setattr(allocation_service, "get_normalizer", lambda: normalizer)
    monkeypatch.setattr(allocation_service, "get_capacity_tracker", lambda: tracker)
    monkeypatch.setattr(allocation_service, "get_assignment_log", lambda: log)
    book = OrderBook()
    monkeypatch.setattr(allocation_service, "get_order_book", lambda: book)
    return TestClient(create_app())


def test_health_endpoints(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}
    root = client.get("/").json()
    assert root["status"] == "running"
    assert root["health"] == "/api/health"


def test_health_reference_reports_each_source(client: TestClient, monkeypatch, geo_store) -> None:
    def missing_fleet():
        raise FileNotFoundError("Fleet file not found: data/fleet.xlsx")

    monkeypatch.setattr(supabase_module, "get_supabase_client", lambda: None)
    monkeypatch.setattr(geo_repository, "load_geo_reference", lambda: geo_store)
    monkeypatch.setattr(fleet_repository, "load_fleet", missing_fleet)

    body = client.get("/api/health/reference").json()

    assert body["database_configured"] is False
    assert body["geo"]["loaded"] is True
    assert body["geo"]["provinces"] == len(geo_store.provinces())
    assert body["fleet"] == {"loaded": False, "error": "Fleet file not found: data/fleet.xlsx"}
    assert body["healthy"] is False


def test_quote_endpoint(client: TestClient) -> None:
    response = client.post("/api/quotes", json=QUOTE_PAYLOAD)

    assert response.status_code == 200
    body = response.json()
    assert body["estimated_fee"] == 45000
    assert body["route_type"] == "cross_region"
    assert body["sla"] == "7 ngày"
    assert body["pricing_breakdown"]["chargeable_weight"] == 4.0


def test_quote_endpoint_reports_field_errors(client: TestClient) -> None:
    payload = dict(QUOTE_PAYLOAD, items=[], service_type="OVERNIGHT")

    response = client.post("/api/quotes", json=payload)

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "VALIDATION_FAILED"
    assert set(detail["errors"]) == {"items", "service_type"}


def test_normalize_endpoint(client: TestClient) -> None:
    response = client.post(
        "/api/addresses/normalize",
        json={"address": "Số 1 Hàng Bông, Phường Hàng Bông, Quận Hoàn Kiếm, Hà Nội"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["province_code"] == "HN"
    assert body["ward_code"] == "00082"


def test_normalize_endpoint_unresolved(client: TestClient) -> None:
    response = client.post("/api/addresses/normalize", json={"address": "1 Main Street, Springfield"})

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "ADDRESS_UNRESOLVED"
    assert client.post("/api/addresses/normalize", json={"address": ""}).status_code == 422


def test_suggestions_endpoint(client: TestClient) -> None:
    response = client.post("/api/allocations/ORD-1/suggestions")

    assert response.status_code == 200
    body = response.json()
    assert body["branch_id"] == 2
    assert [item["vehicle_id"] for item in body["suggestions"]] == [203]

    missing = client.post("/api/allocations/ORD-404/suggestions", json={})
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "ORDER_NOT_FOUND"


def test_assign_endpoint(client: TestClient, tracker: InMemoryCapacityTracker) -> None:
    response = client.post("/api/allocations/ORD-1/assign", json={"vehicle_id": 203, "assigned_by": "dispatcher"})

    assert response.status_code == 200
    body = response.json()
    assert body["branch_id"] == 2
    assert body["current_load_kg"] == 2.0
    assert tracker.load(203).current_order_count == 1


def test_assign_endpoint_conflict_asks_for_refresh(client: TestClient, tracker: InMemoryCapacityTracker) -> None:
    response = client.post("/api/allocations/ORD-1/assign", json={"vehicle_id": 204})

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["code"] == "CAPACITY_EXCEEDED"
    assert detail["refresh_suggestions"] is True
    assert tracker.load(204).current_load_kg == 4999.0


def test_assign_endpoint_rejects_second_vehicle(client: TestClient, tracker: InMemoryCapacityTracker) -> None:
    assert client.post("/api/allocations/ORD-1/assign", json={"vehicle_id": 203}).status_code == 200

    response = client.post("/api/allocations/ORD-1/assign", json={"vehicle_id": 203})

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "VALIDATION_FAILED"
    assert tracker.load(203).current_order_count == 1
