"""Geo reference data: provinces, districts, wards and their aliases.

Loaded database-first (Supabase master/alias tables) with a fallback to the
JSON snapshot shipped under ``data/``.
"""

from __future__ import annotations

import functools
import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol, Sequence

from ..config import settings
from ..db.supabase import fetch_rows
from ..models.domain import District, GeoAlias, Province, Ward


class GeoReferenceStore(Protocol):
    """Read-only lookup used by the address normalizer.

    Alias accessors return aliases ordered by ascending priority.
    """

    def provinces(self) -> Sequence[Province]: ...

    def province(self, code: str) -> Optional[Province]: ...

    def province_aliases(self) -> Sequence[GeoAlias]: ...

    def districts_of(self, province_code: str) -> Sequence[District]: ...

    def district(self, code: str) -> Optional[District]: ...

    def district_aliases(self, province_code: str) -> Sequence[GeoAlias]: ...

    def wards_of(self, district_code: str) -> Sequence[Ward]: ...

    def ward(self, code: str) -> Optional[Ward]: ...

    def ward_aliases(self, district_code: str) -> Sequence[GeoAlias]: ...


def _by_priority(aliases: Iterable[GeoAlias]) -> tuple[GeoAlias, ...]:
    return tuple(sorted(aliases, key=lambda alias: alias.priority))


class InMemoryGeoReferenceStore:
    """Flat tables scanned linearly; aliases are pre-sorted by priority."""

    def __init__(
        self,
        provinces: Iterable[Province],
        districts: Iterable[District] = (),
        wards: Iterable[Ward] = (),
        province_aliases: Iterable[GeoAlias] = (),
        district_aliases: Iterable[GeoAlias] = (),
        ward_aliases: Iterable[GeoAlias] = (),
    ) -> None:
        self._provinces = tuple(provinces)
        self._province_index = {province.code: province for province in self._provinces}
        self._districts = tuple(districts)
        self._district_index = {district.code: district for district in self._districts}
        self._wards = tuple(wards)
        self._ward_index = {ward.code: ward for ward in self._wards}

        self._province_aliases = _by_priority(
            alias for alias in province_aliases if alias.unit_code in self._province_index
        )

        districts_by_province: dict[str, list[District]] = {}
        for district in self._districts:
            districts_by_province.setdefault(district.province_code, []).append(district)
        self._districts_by_province = {key: tuple(value) for key, value in districts_by_province.items()}

        wards_by_district: dict[str, list[Ward]] = {}
        for ward in self._wards:
            wards_by_district.setdefault(ward.district_code, []).append(ward)
        self._wards_by_district = {key: tuple(value) for key, value in wards_by_district.items()}

        district_alias_map: dict[str, list[GeoAlias]] = {}
        for alias in district_aliases:
            district = self._district_index.get(alias.unit_code)
            if district is None:
                continue
            district_alias_map.setdefault(district.province_code, []).append(alias)
        self._district_aliases = {key: _by_priority(value) for key, value in district_alias_map.items()}

        ward_alias_map: dict[str, list[GeoAlias]] = {}
        for alias in ward_aliases:
            ward = self._ward_index.get(alias.unit_code)
            if ward is None:
                continue
            ward_alias_map.setdefault(ward.district_code, []).append(alias)
        self._ward_aliases = {key: _by_priority(value) for key, value in ward_alias_map.items()}

    def provinces(self) -> Sequence[Province]:
        return self._provinces

    def province(self, code: str) -> Optional[Province]:
        return self._province_index.get(code)

    def province_aliases(self) -> Sequence[GeoAlias]:
        return self._province_aliases

    def districts_of(self, province_code: str) -> Sequence[District]:
        return self._districts_by_province.get(province_code, ())

    def district(self, code: str) -> Optional[District]:
        return self._district_index.get(code)

    def district_aliases(self, province_code: str) -> Sequence[GeoAlias]:
        return self._district_aliases.get(province_code, ())

    def wards_of(self, district_code: str) -> Sequence[Ward]:
        return self._wards_by_district.get(district_code, ())

    def ward(self, code: str) -> Optional[Ward]:
        return self._ward_index.get(code)

    def ward_aliases(self, district_code: str) -> Sequence[GeoAlias]:
        return self._ward_aliases.get(district_code, ())

    def counts(self) -> dict[str, int]:
        return {
            "provinces": len(self._provinces),
            "districts": len(self._districts),
            "wards": len(self._wards),
            "province_aliases": len(self._province_aliases),
            "district_aliases": sum(len(items) for items in self._district_aliases.values()),
            "ward_aliases": sum(len(items) for items in self._ward_aliases.values()),
        }


def _coerce_float(value: object) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _is_active(row: dict) -> bool:
    value = row.get("is_active", True)
    if isinstance(value, str):
        return value.strip().lower() not in {"0", "false", "no"}
    return bool(value)


def _parse_rows(kind: str, rows: Iterable[dict], build) -> list:
    parsed = []
    for row in rows:
        if not _is_active(row):
            continue
        try:
            parsed.append(build(row))
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping invalid {kind} row: {e}")
    return parsed


def _province(row: dict) -> Province:
    return Province(
        code=str(row["province_code"]).strip(),
        name=str(row["province_name"]).strip(),
        region_code=str(row["region_code"]).strip(),
        latitude=_coerce_float(row.get("latitude")),
        longitude=_coerce_float(row.get("longitude")),
    )


def _district(row: dict) -> District:
    name = str(row["district_name"]).strip()
    return District(
        code=str(row["district_code"]).strip(),
        province_code=str(row["province_code"]).strip(),
        name=name,
        raw_name=str(row.get("district_name_raw") or name).strip(),
        latitude=_coerce_float(row.get("latitude")),
        longitude=_coerce_float(row.get("longitude")),
    )


def _ward(row: dict) -> Ward:
    name = str(row["ward_name"]).strip()
    return Ward(
        code=str(row["ward_code"]).strip(),
        district_code=str(row.get("district_code") or "").strip(),
        name=name,
        raw_name=str(row.get("ward_name_raw") or name).strip(),
        latitude=_coerce_float(row.get("latitude")),
        longitude=_coerce_float(row.get("longitude")),
    )


def _alias(code_field: str):
    def build(row: dict) -> GeoAlias:
        return GeoAlias(
            alias_text=str(row["alias_text"]).strip(),
            unit_code=str(row[code_field]).strip(),
            priority=int(row.get("priority", 10)),
        )

    return build


def build_store(payload: dict) -> InMemoryGeoReferenceStore:
    """Build a store from a mapping of table name to row dicts."""
    return InMemoryGeoReferenceStore(
        provinces=_parse_rows("province", payload.get("province_masters", ()), _province),
        districts=_parse_rows("district", payload.get("district_masters", ()), _district),
        wards=_parse_rows("ward", payload.get("ward_masters", ()), _ward),
        province_aliases=_parse_rows("province alias", payload.get("province_aliases", ()), _alias("province_code")),
        district_aliases=_parse_rows("district alias", payload.get("district_aliases", ()), _alias("district_code")),
        ward_aliases=_parse_rows("ward alias", payload.get("ward_aliases", ()), _alias("ward_code")),
    )


_TABLES = (
    "province_masters",
    "province_aliases",
    "district_masters",
    "district_aliases",
    "ward_masters",
    "ward_aliases",
)


def _load_from_database() -> InMemoryGeoReferenceStore | None:
    provinces = fetch_rows("province_masters")
    if not provinces:
        return None
    payload = {"province_masters": provinces}
    for table in _TABLES[1:]:
        payload[table] = fetch_rows(table) or []
    return build_store(payload)


def _load_from_file(source: Path | None = None) -> InMemoryGeoReferenceStore:
    path = source or settings.geo_reference_file
    if not path.exists():
        raise FileNotFoundError(f"Geo reference file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict) or not payload.get("province_masters"):
        raise ValueError(f"Geo reference file '{path}' has no province_masters table.")
    return build_store(payload)


@functools.lru_cache(maxsize=1)
def load_geo_reference(source: Optional[Path] = None) -> InMemoryGeoReferenceStore:
    """Get the geo reference from the database first, falling back to the JSON snapshot."""
    if source is None:
        store = _load_from_database()
        if store is not None:
            logging.info(f"Loaded geo reference from database: {store.counts()}")
            return store
    store = _load_from_file(source)
    logging.info(f"Loaded geo reference from file: {store.counts()}")
    return store
