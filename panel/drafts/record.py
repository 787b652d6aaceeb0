from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from panel.drafts.models import Draft
from panel.drafts.validation import parse_decimal, parse_integer


def ensure_string(value: Any) -> str:
    return str(value) if value else ""


def ensure_string_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    if isinstance(value, str):
        return [value]
    return []


def ensure_number(value: Any) -> float:
    num = parse_decimal(value)
    return 0.0 if num is None else num


def ensure_integer(value: Any) -> int:
    num = parse_integer(value)
    return 0 if num is None else num


def build_search_index(terms: Iterable[str]) -> list[str]:
    """Lowercased, blank-free, order-preserving unique terms."""
    seen: dict[str, None] = {}
    for term in terms:
        t = (term or "").lower()
        if t.strip():
            seen.setdefault(t, None)
    return list(seen)


def draft_search_terms(draft: Draft) -> list[str]:
    return [
        draft.title,
        draft.description,
        draft.category,
        draft.subcategory,
        draft.subsubcategory,
        draft.brand,
        *draft.jewelry_materials,
        *draft.colors.keys(),
    ]


class SellerInfo(BaseModel):
    """Payout/contact details kept under shops/<id>/seller_info/info."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    phone: str = ""
    region: str = ""
    address: str = ""
    iban_owner_name: str = ""
    iban_owner_surname: str = ""
    iban: str = ""


class ModerationRecord(BaseModel):
    """
    A product application waiting for moderation. Field names on the wire
    are the marketplace app's camelCase names.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    product_name: str
    description: str = ""

    price: float
    currency: str = "TL"
    original_price: float | None = None
    discount_percentage: int | None = None
    discount_threshold: int | None = None

    condition: str = ""
    brand_model: str = ""

    image_urls: list[str] = Field(default_factory=list)
    video_url: str | None = None
    color_images: dict[str, list[str]] = Field(default_factory=dict)

    average_rating: float = 0.0
    review_count: int = 0

    user_id: str
    owner_id: str
    shop_id: str
    ilan_no: str = Field(alias="ilan_no")
    seller_name: str

    category: str = ""
    subcategory: str = ""
    subsubcategory: str = ""

    quantity: int
    color_quantities: dict[str, int] = Field(default_factory=dict)
    sold: bool = False

    jewelry_type: str = ""
    jewelry_materials: list[str] = Field(default_factory=list)
    clothing_sizes: list[str] = Field(default_factory=list)
    clothing_fit: str = ""
    clothing_type: str = ""
    pant_sizes: list[str] = Field(default_factory=list)
    footwear_gender: str = ""
    footwear_sizes: list[str] = Field(default_factory=list)
    gender: str = ""

    delivery_option: str = ""

    # engagement counters start at zero
    click_count: int = 0
    click_count_at_start: int = 0
    favorites_count: int = 0
    cart_count: int = 0
    purchase_count: int = 0

    is_featured: bool = False
    is_trending: bool = False
    is_boosted: bool = False
    boosted_impression_count: int = 0
    boost_impression_count_at_start: int = 0
    boost_click_count_at_start: int = 0
    ranking_score: float = 0.0
    daily_click_count: int = 0

    boost_start_time: str | None = None
    boost_end_time: str | None = None
    last_click_date: str | None = None

    search_index: list[str] = Field(default_factory=list)
    paused: bool = False
    best_seller_rank: int | None = None

    needs_sync: bool = True

    phone: str = ""
    region: str = ""
    address: str = ""
    iban_owner_name: str = ""
    iban_owner_surname: str = ""
    iban: str = ""

    # backend clock; filled in from the stored row after the write
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_document(self) -> dict[str, Any]:
        doc = self.model_dump(by_alias=True, mode="json")
        for key in ("createdAt", "updatedAt"):
            if doc[key] is None:
                del doc[key]
        return doc


def assemble_record(
    *,
    record_id: str,
    draft: Draft,
    uid: str,
    shop_id: str,
    seller_name: str,
    seller_info: SellerInfo,
    image_urls: list[str],
    video_url: str | None,
    color_images: dict[str, list[str]],
    color_quantities: dict[str, int],
) -> ModerationRecord:
    return ModerationRecord(
        id=record_id,
        product_name=ensure_string(draft.title),
        description=ensure_string(draft.description),
        price=ensure_number(draft.price),
        condition=ensure_string(draft.condition),
        brand_model=ensure_string(draft.brand),
        image_urls=list(image_urls),
        video_url=video_url,
        color_images=color_images,
        user_id=uid,
        owner_id=uid,
        shop_id=shop_id,
        ilan_no=record_id,
        seller_name=seller_name,
        category=ensure_string(draft.category),
        subcategory=ensure_string(draft.subcategory),
        subsubcategory=ensure_string(draft.subsubcategory),
        quantity=ensure_integer(draft.quantity),
        color_quantities=color_quantities,
        jewelry_type=ensure_string(draft.jewelry_type),
        jewelry_materials=ensure_string_list(draft.jewelry_materials),
        clothing_sizes=ensure_string_list(draft.clothing_sizes),
        clothing_fit=ensure_string(draft.clothing_fit),
        clothing_type=ensure_string(draft.clothing_type),
        pant_sizes=ensure_string_list(draft.pant_sizes),
        footwear_gender=ensure_string(draft.footwear_gender),
        footwear_sizes=ensure_string_list(draft.footwear_sizes),
        gender=ensure_string(draft.gender),
        delivery_option=ensure_string(draft.delivery_option),
        search_index=build_search_index(draft_search_terms(draft)),
        **seller_info.model_dump(),
    )
