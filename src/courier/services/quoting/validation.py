"""Field-level validation of quote requests, including prohibited goods screening."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ...errors import ValidationError
from ...models.domain import ServiceType
from ...schemas.quotes import ItemModel, PartyModel, QuoteRequest
from ..pricing.engine import EXPRESS_SIZE_VOLUMES_CM3

PHONE_PATTERN = re.compile(r"^(0|\+84)[0-9]{9,10}$")
MAX_STANDARD_DIMENSION_CM = 150.0
MAX_DECLARED_VALUE = 50_000_000
PROHIBITED_RISK_THRESHOLD = 5

SERVICE_TYPES = {"STANDARD": ServiceType.STANDARD, "EXPRESS": ServiceType.EXPRESS}


class MatchType(str, Enum):
    EXACT = "EXACT"
    CONTAINS = "CONTAINS"
    REGEX = "REGEX"


@dataclass(frozen=True, slots=True)
class ProhibitedKeyword:
    keyword: str
    match_type: MatchType
    risk_weight: int
    category: str = ""


PROHIBITED_KEYWORDS: tuple[ProhibitedKeyword, ...] = (
    ProhibitedKeyword("thuốc nổ", MatchType.CONTAINS, 10, "explosives"),
    ProhibitedKeyword("pháo", MatchType.CONTAINS, 8, "explosives"),
    ProhibitedKeyword("xăng", MatchType.CONTAINS, 9, "flammable"),
    ProhibitedKeyword("dầu", MatchType.CONTAINS, 7, "flammable"),
    ProhibitedKeyword("gas", MatchType.CONTAINS, 8, "flammable"),
    ProhibitedKeyword("hóa chất", MatchType.CONTAINS, 7, "chemicals"),
    ProhibitedKeyword("thuốc trừ sâu", MatchType.CONTAINS, 8, "chemicals"),
)


def parse_service_type(raw: Optional[str]) -> Optional[ServiceType]:
    return SERVICE_TYPES.get((raw or "").strip().upper())


def _keyword_hits(keyword: ProhibitedKeyword, text: str) -> bool:
    if keyword.match_type == MatchType.REGEX:
        return re.search(keyword.keyword, text, flags=re.IGNORECASE) is not None
    needle = keyword.keyword.lower()
    if keyword.match_type == MatchType.EXACT:
        return text.strip() == needle
    return needle in text


def prohibited_risk(
    name: str,
    category: Optional[str] = None,
    keywords: Sequence[ProhibitedKeyword] = PROHIBITED_KEYWORDS,
) -> tuple[int, list[str]]:
    """Sum the risk weights of keywords found in the item name or category."""
    texts = [unicodedata.normalize("NFC", text).lower() for text in (name, category) if text]
    total = 0
    matched: list[str] = []
    for keyword in keywords:
        if any(_keyword_hits(keyword, text) for text in texts):
            total += keyword.risk_weight
            matched.append(keyword.keyword)
    return total, matched


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _validate_party(prefix: str, party: PartyModel, errors: dict[str, str]) -> None:
    for field_name in ("name", "address_detail", "ward", "province"):
        if _blank(getattr(party, field_name)):
            errors[f"{prefix}.{field_name}"] = "Required"
    if _blank(party.phone):
        errors[f"{prefix}.phone"] = "Required"
    elif not PHONE_PATTERN.match(re.sub(r"\s+", "", party.phone)):
        errors[f"{prefix}.phone"] = "Invalid phone number"


def _validate_item(
    index: int,
    item: ItemModel,
    service_type: Optional[ServiceType],
    errors: dict[str, str],
) -> None:
    prefix = f"items.{index}"
    if _blank(item.name):
        errors[f"{prefix}.name"] = "Required"
    if item.weight is None or item.weight <= 0:
        errors[f"{prefix}.weight"] = "Weight must be greater than 0"
    declared = item.declared_value or 0
    if declared < 0:
        errors[f"{prefix}.declared_value"] = "Declared value must be non-negative"
    elif declared > MAX_DECLARED_VALUE:
        errors[f"{prefix}.declared_value"] = f"Declared value must not exceed {MAX_DECLARED_VALUE:,} VND"

    if service_type == ServiceType.STANDARD:
        for field_name in ("length", "width", "height"):
            value = getattr(item, field_name)
            if value is None or value <= 0:
                errors[f"{prefix}.{field_name}"] = "Required for STANDARD service"
            elif value > MAX_STANDARD_DIMENSION_CM:
                errors[f"{prefix}.{field_name}"] = f"Must not exceed {MAX_STANDARD_DIMENSION_CM:g}cm"
    elif service_type == ServiceType.EXPRESS:
        if (item.express_size or "").strip().upper() not in EXPRESS_SIZE_VOLUMES_CM3:
            errors[f"{prefix}.express_size"] = "Must be one of S, M, L, XL for EXPRESS service"

    if not _blank(item.name):
        risk, matched = prohibited_risk(item.name, item.category)
        if risk >= PROHIBITED_RISK_THRESHOLD:
            errors[f"{prefix}.prohibited"] = f"Prohibited goods detected: {', '.join(matched)}"


def validate_quote_request(request: QuoteRequest) -> ServiceType:
    """Collect every field error into one ValidationError; return the parsed service type."""
    errors: dict[str, str] = {}
    _validate_party("sender", request.sender, errors)
    _validate_party("receiver", request.receiver, errors)

    service_type = parse_service_type(request.service_type)
    if service_type is None:
        errors["service_type"] = "Must be STANDARD or EXPRESS"

    if not request.items:
        errors["items"] = "At least one item is required"
    for index, item in enumerate(request.items):
        _validate_item(index, item, service_type, errors)

    if errors or service_type is None:
        raise ValidationError("Quote request is invalid", errors=errors)
    return service_type
