"""Confidence-scored resolution of free-text addresses to province/district/ward."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ...data.geo_repository import GeoReferenceStore, load_geo_reference
from ...errors import AddressResolutionError
from ...models.domain import District, GeoAlias, Province, ResolvedAddress, Ward
from .text import find_token, standardize_address_text

PROVINCE_WEIGHT = 0.4
DISTRICT_WEIGHT = 0.35
WARD_WEIGHT = 0.25


@dataclass(frozen=True, slots=True)
class _Match:
    code: str
    confidence: float


def _alias_confidence(priority: int, base: int, floor: int) -> float:
    # Priority 1 scores just under the name match, priority 20+ hits the floor
    return float(max(floor, base - priority * 2))


class AddressNormalizer:
    """Pure matcher over a read-only GeoReferenceStore."""

    def __init__(self, store: GeoReferenceStore) -> None:
        self.store = store
        self._province_names = [
            (province, standardize_address_text(province.name)) for province in store.provinces()
        ]

    def normalize(self, raw_address: str) -> ResolvedAddress:
        normalized = standardize_address_text(raw_address)
        province_match = self._match_province(normalized)
        province = self.store.province(province_match.code) if province_match is not None else None
        if province_match is None or province is None:
            logging.warning(f"Cannot determine province from address: {raw_address!r}")
            raise AddressResolutionError(
                f"Cannot determine province from address: {raw_address}",
                errors={"address": "Province could not be resolved"},
            )

        district_match = self._match_district(normalized, province.code)
        ward_match = (
            self._match_ward(normalized, district_match.code) if district_match is not None else None
        )
        district_conf = district_match.confidence if district_match else 0.0
        ward_conf = ward_match.confidence if ward_match else 0.0
        overall = (
            province_match.confidence * PROVINCE_WEIGHT
            + district_conf * DISTRICT_WEIGHT
            + ward_conf * WARD_WEIGHT
        )

        district = self.store.district(district_match.code) if district_match else None
        ward = self.store.ward(ward_match.code) if ward_match else None
        latitude, longitude = _most_specific_geo(province, district, ward)

        return ResolvedAddress(
            input_text=raw_address,
            normalized_text=normalized,
            province_code=province.code,
            region_code=province.region_code,
            province_confidence=province_match.confidence,
            confidence=round(min(100.0, max(0.0, overall)), 2),
            district_code=district.code if district else None,
            district_confidence=district_conf,
            ward_code=ward.code if ward else None,
            ward_confidence=ward_conf,
            latitude=latitude,
            longitude=longitude,
        )

    def resolve_province(self, raw_text: str) -> Optional[Province]:
        """Province-only lookup; returns None instead of raising."""
        match = self._match_province(standardize_address_text(raw_text))
        return self.store.province(match.code) if match else None

    def _match_province(self, text: str) -> Optional[_Match]:
        if not text:
            return None
        best: Optional[tuple[int, int, Province, str]] = None
        for province, name in self._province_names:
            position = find_token(text, name)
            if position < 0:
                continue
            # Addresses read most-specific first, so the rightmost province name wins
            candidate = (position, len(name), province, name)
            if best is None or (position, len(name)) > (best[0], best[1]):
                best = candidate
        if best is not None:
            position, length, province, _ = best
            edge = position == 0 or position + length == len(text)
            return _Match(province.code, 100.0 if edge else 85.0)
        return _first_alias_hit(text, self.store.province_aliases(), base=100, floor=65)

    def _match_district(self, text: str, province_code: str) -> Optional[_Match]:
        return _match_unit(
            text,
            self.store.districts_of(province_code),
            self.store.district_aliases(province_code),
        )

    def _match_ward(self, text: str, district_code: str) -> Optional[_Match]:
        return _match_unit(
            text,
            self.store.wards_of(district_code),
            self.store.ward_aliases(district_code),
        )


def _match_unit(
    text: str,
    units: Sequence[District] | Sequence[Ward],
    aliases: Sequence[GeoAlias],
) -> Optional[_Match]:
    for unit in units:
        if find_token(text, standardize_address_text(unit.name)) >= 0:
            return _Match(unit.code, 95.0)
        if find_token(text, standardize_address_text(unit.raw_name)) >= 0:
            return _Match(unit.code, 90.0)
    return _first_alias_hit(text, aliases, base=95, floor=60)


def _first_alias_hit(text: str, aliases: Sequence[GeoAlias], *, base: int, floor: int) -> Optional[_Match]:
    for alias in aliases:
        if find_token(text, standardize_address_text(alias.alias_text)) >= 0:
            return _Match(alias.unit_code, _alias_confidence(alias.priority, base, floor))
    return None


def _most_specific_geo(
    province: Province, district: Optional[District], ward: Optional[Ward]
) -> tuple[Optional[float], Optional[float]]:
    for unit in (ward, district, province):
        if unit is not None and unit.latitude is not None and unit.longitude is not None:
            return unit.latitude, unit.longitude
    return None, None


def get_normalizer() -> AddressNormalizer:
    return AddressNormalizer(load_geo_reference())


def normalize_address(raw_address: str, normalizer: AddressNormalizer | None = None) -> ResolvedAddress:
    return (normalizer or get_normalizer()).normalize(raw_address)
