import json

import pytest
from openpyxl import Workbook

from src.courier.data import fleet_repository, geo_repository, order_repository
from src.courier.data.fleet_repository import build_directory, load_fleet
from src.courier.data.geo_repository import build_store
from src.courier.data.order_repository import OrderBook, get_order, get_order_book, order_from_row
from src.courier.errors import OrderNotFoundError
from src.courier.models.domain import ServiceType

ORDER_ROW = {
    "order_id": "ORD-1",
    "branch_id": "2",
    "service_type": "STANDARD",
    "sender": {"address_detail": "12 Lê Lợi", "ward": "Phường Bến Nghé", "district": "Quận 1", "province": "TP. Hồ Chí Minh"},
    "receiver": {"address_detail": "Số 1 Hàng Bông", "ward": "Phường Hàng Bông", "province": "Hà Nội"},
    "items": [
        {"name": "Bàn", "weight": 12000, "category": "Nội thất", "length": 120, "width": 60, "height": 75},
        {"name": "Ghế", "weight_g": 3000, "length": 50, "width": 50, "height": None},
    ],
}


def _write_fleet_workbook(path, vehicle_header=None):
    wb = Workbook()
    branches = wb.active
    branches.title = "branches"
    branches.append(["branch_id", "code", "name", "latitude", "longitude", "is_active"])
    branches.append([1, "HN-HK", "Hoàn Kiếm", 21.0285, 105.8542, True])
    branches.append([2, "HN-OLD", "Old depot", None, None, "false"])

    vehicles = wb.create_sheet("vehicles")
    vehicles.append(
        vehicle_header
        or ["vehicle_id", "code", "vehicle_type", "max_load_kg", "max_volume_m3", "route_scope", "supported_goods"]
    )
    vehicles.append([11, "HN-MB-01", "Motorbike", 30, 0.3, "intra_province", "document, light_goods"])
    vehicles.append([12, "HN-T25-01", "2.5-ton Truck", 2500, 12, "INTRA_REGION", "FURNITURE"])
    vehicles.append([None, None, None, None, None, None, None])

    links = wb.create_sheet("branch_vehicles")
    links.append(["branch_id", "vehicle_id"])
    links.append([1, 11])
    links.append([1, 12])
    wb.save(path)


def test_fleet_workbook(tmp_path) -> None:
    path = tmp_path / "fleet.xlsx"
    _write_fleet_workbook(path)

    fleet = load_fleet(path)

    assert fleet.counts() == {"branches": 2, "vehicles": 2}
    assert [branch.branch_id for branch in fleet.active_branches()] == [1]
    motorbike = fleet.vehicle(11)
    assert motorbike.route_scope == "INTRA_PROVINCE"
    assert motorbike.supported_goods == frozenset({"DOCUMENT", "LIGHT_GOODS"})
    assert motorbike.max_dimensions is None
    assert [vehicle.vehicle_id for vehicle in fleet.vehicles_of(fleet.branch(1))] == [11, 12]


def test_fleet_workbook_missing_columns(tmp_path) -> None:
    path = tmp_path / "fleet_missing.xlsx"
    _write_fleet_workbook(
        path,
        vehicle_header=["vehicle_id", "code", "vehicle_type", "max_load_kg", "max_volume_m3", "note", "supported_goods"],
    )

    with pytest.raises(ValueError, match="route_scope"):
        load_fleet(path)


def test_fleet_file_must_exist(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_fleet(tmp_path / "missing.json")


def test_json_fleet_snapshot(fleet) -> None:
    assert fleet.counts() == {"branches": 4, "vehicles": 9}
    assert [branch.branch_id for branch in fleet.active_branches()] == [1, 2, 3]
    assert fleet.branch(2).vehicle_ids == (201, 202, 203, 204)
    assert "VEHICLE" in fleet.vehicle(204).supported_goods
    assert fleet.vehicle(302).is_active is False
    assert fleet.vehicle(203).max_dimensions.length_cm == 500


def test_fleet_skips_invalid_rows() -> None:
    fleet = build_directory(
        {
            "branches": [{"branch_id": "x", "code": "BAD", "name": "Bad"}, {"branch_id": 1, "code": "OK", "name": "Ok"}],
            "vehicles": [{"vehicle_id": 1, "code": "NO-LOAD", "vehicle_type": "Motorbike"}],
            "branch_vehicles": [{"branch_id": 1}],
        }
    )

    assert fleet.counts() == {"branches": 1, "vehicles": 0}


def test_fleet_loader_prefers_database(monkeypatch) -> None:
    tables = {
        "branches": [{"branch_id": 9, "code": "DB", "name": "From database"}],
        "vehicles": [
            {"vehicle_id": 90, "code": "DB-MB", "vehicle_type": "Motorbike", "max_load_kg": 30,
             "max_volume_m3": 0.3, "route_scope": "INTRA_PROVINCE"},
        ],
        "vehicle_supported_goods": [{"vehicle_id": 90, "goods_type": "document"}],
        "branch_vehicles": [{"branch_id": 9, "vehicle_id": 90}],
    }
    monkeypatch.setattr(fleet_repository, "fetch_rows", lambda table: tables.get(table))

    fleet = fleet_repository._load_from_database()

    assert fleet.branch(9).vehicle_ids == (90,)
    assert fleet.vehicle(90).supported_goods == frozenset({"DOCUMENT"})


def test_geo_store_skips_inactive_and_invalid_rows() -> None:
    store = build_store(
        {
            "province_masters": [
                {"province_code": "HN", "province_name": "Hà Nội", "region_code": "NORTH"},
                {"province_code": "OLD", "province_name": "Hà Tây", "region_code": "NORTH", "is_active": False},
                {"province_code": "BAD", "province_name": "Broken"},
            ],
            "province_aliases": [
                {"province_code": "HN", "alias_text": "HANOI", "priority": 5},
                {"province_code": "HN", "alias_text": "HA NOI", "priority": 1},
                {"province_code": "OLD", "alias_text": "HA TAY", "priority": 1},
            ],
        }
    )

    assert [province.code for province in store.provinces()] == ["HN"]
    assert [alias.alias_text for alias in store.province_aliases()] == ["HA NOI", "HANOI"]
    assert store.counts()["province_aliases"] == 2


def test_geo_file_requires_provinces(tmp_path) -> None:
    path = tmp_path / "geo.json"
    path.write_text(json.dumps({"province_masters": []}), encoding="utf-8")

    with pytest.raises(ValueError):
        geo_repository._load_from_file(path)


def test_order_from_row() -> None:
    order = order_from_row(ORDER_ROW)

    assert order.order_id == "ORD-1"
    assert order.branch_id == 2
    assert order.service_type == ServiceType.STANDARD
    assert order.receiver.district is None
    assert order.items[0].weight_g == 12000
    assert order.items[0].dimensions.height_cm == 75
    assert order.items[1].weight_g == 3000
    assert order.items[1].dimensions is None


def test_order_book_lookup(monkeypatch) -> None:
    monkeypatch.setattr(order_repository, "get_supabase_client", lambda: None)
    book = OrderBook()
    monkeypatch.setattr(order_repository, "get_order_book", lambda: book)
    book.register(order_from_row(ORDER_ROW))

    assert get_order("ORD-1").branch_id == 2
    with pytest.raises(OrderNotFoundError) as excinfo:
        get_order("ORD-404")
    assert excinfo.value.errors == {"order_id": "Order not found"}


def test_order_book_claims_each_order_once() -> None:
    book = OrderBook()

    assert book.claim("ORD-1")
    assert not book.claim("ORD-1")
    assert book.is_assigned("ORD-1")

    book.release_claim("ORD-1")
    assert not book.is_assigned("ORD-1")
    assert book.claim("ORD-1")


class _Response:
    def __init__(self, data):
        self.data = data


class _OrderQuery:
    def __init__(self, rows):
        self._rows = rows
        self._filters = {}

    def select(self, *_):
        return self

    def eq(self, column, value):
        self._filters[column] = value
        return self

    def limit(self, _):
        return self

    def execute(self):
        return _Response([row for row in self._rows if all(row.get(k) == v for k, v in self._filters.items())])


class _OrderClient:
    def __init__(self, rows):
        self.rows = rows

    def table(self, name):
        assert name == order_repository.ORDER_TABLE
        return _OrderQuery(self.rows)


def test_order_lookup_prefers_database(monkeypatch) -> None:
    stored = dict(ORDER_ROW, service_type="express", branch_id=None)
    monkeypatch.setattr(order_repository, "get_supabase_client", lambda: _OrderClient([stored]))

    order = get_order("ORD-1")

    assert order.service_type == ServiceType.EXPRESS
    assert order.branch_id is None


def test_order_book_is_shared() -> None:
    assert get_order_book() is get_order_book()
