"""Goods-type taxonomy: raw item categories to vehicle goods tags."""

from __future__ import annotations

from typing import Sequence

from ...models.domain import ManifestItem

DEFAULT_GOODS_TYPE = "LIGHT_GOODS"

_GOODS_TYPE_LABELS = {
    "DOCUMENT": ("Tài liệu", "Document", "Documents", "DOCUMENT"),
    "FOOD": ("Thực phẩm và đồ uống", "Food", "FOOD"),
    "ELECTRONICS": ("Điện tử", "Electronics", "ELECTRONICS"),
    "LIGHT_GOODS": ("Quần áo", "Clothing", "LIGHT_GOODS"),
    "OFFICE_EQUIPMENT": ("Văn phòng", "Office Equipment", "OFFICE_EQUIPMENT"),
    "FURNITURE": ("Nội thất", "Furniture", "FURNITURE"),
    "VEHICLE": ("Xe cộ", "Vehicle", "VEHICLE"),
    "CONSTRUCTION_MATERIAL": ("Vật liệu xây dựng", "Construction Material", "CONSTRUCTION_MATERIAL"),
}

GOODS_TYPE_MAP = {
    label.upper(): tag for tag, labels in _GOODS_TYPE_LABELS.items() for label in labels
}


def normalize_goods_type(raw: str | None) -> str:
    """Case-insensitive exact lookup; unmapped values pass through uppercased."""
    key = (raw or "").strip().upper()
    return GOODS_TYPE_MAP.get(key, key)


def goods_type_of(items: Sequence[ManifestItem]) -> str:
    """Raw category of the manifest: the first item's, else the default tag."""
    if not items or not items[0].category:
        return DEFAULT_GOODS_TYPE
    return items[0].category
