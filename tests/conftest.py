import json
from pathlib import Path

import pytest

from src.courier.data.fleet_repository import FleetDirectory, build_directory
from src.courier.data.geo_repository import InMemoryGeoReferenceStore, build_store
from src.courier.services.addressing.normalizer import AddressNormalizer

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


@pytest.fixture(scope="session")
def geo_store() -> InMemoryGeoReferenceStore:
    payload = json.loads((DATA_DIR / "geo_reference.json").read_text(encoding="utf-8"))
    return build_store(payload)


@pytest.fixture
def normalizer(geo_store: InMemoryGeoReferenceStore) -> AddressNormalizer:
    return AddressNormalizer(geo_store)


@pytest.fixture(scope="session")
def fleet() -> FleetDirectory:
    payload = json.loads((DATA_DIR / "fleet.json").read_text(encoding="utf-8"))
    return build_directory(payload)
