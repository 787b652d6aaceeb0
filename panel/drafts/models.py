from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Condition(str, Enum):
    NEW = "Brand New"
    USED = "Used"
    REFURBISHED = "Refurbished"


class DeliveryOption(str, Enum):
    FAST = "Fast Delivery"
    SELF = "Self Delivery"


# Category-dependent attribute groups; only one is meaningful per category path.
VARIANT_FIELDS: dict[str, type] = {
    "jewelry_type": str,
    "jewelry_materials": list,
    "pant_sizes": list,
    "clothing_sizes": list,
    "clothing_fit": str,
    "clothing_type": str,
    "footwear_gender": str,
    "footwear_sizes": list,
    "gender": str,
}

TEXT_FIELDS = ("title", "description", "price", "quantity", "condition", "delivery_option", "brand")


@dataclass
class DraftFile:
    """In-memory binary attachment (image or video)."""
    name: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ColorEntry:
    quantity: str = ""
    image: DraftFile | None = None


@dataclass
class Draft:
    """Work-in-progress listing. Has no identity until it is submitted for moderation."""
    title: str = ""
    description: str = ""
    price: str = ""
    quantity: str = "1"
    condition: str = ""
    delivery_option: str = ""

    category: str = ""
    subcategory: str = ""
    subsubcategory: str = ""
    brand: str = ""

    jewelry_type: str = ""
    jewelry_materials: list[str] = field(default_factory=list)
    pant_sizes: list[str] = field(default_factory=list)
    clothing_sizes: list[str] = field(default_factory=list)
    clothing_fit: str = ""
    clothing_type: str = ""
    footwear_gender: str = ""
    footwear_sizes: list[str] = field(default_factory=list)
    gender: str = ""

    colors: dict[str, ColorEntry] = field(default_factory=dict)
    images: list[DraftFile] = field(default_factory=list)
    video: DraftFile | None = None

    def clear_variants(self) -> None:
        for name, kind in VARIANT_FIELDS.items():
            setattr(self, name, [] if kind is list else "")
        self.colors = {}

    def is_empty(self) -> bool:
        return self == Draft()
