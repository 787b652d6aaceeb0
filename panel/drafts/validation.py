from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

from panel.drafts.errors import DraftValidationError
from panel.drafts.models import Draft

if TYPE_CHECKING:
    from panel.drafts.record import ModerationRecord


# Leading-number parsing: "12.5 TL" -> 12.5, "3 pcs" -> 3, "abc" -> None
_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")


def parse_decimal(text: object) -> float | None:
    if isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        return float(text) if math.isfinite(text) else None
    m = _FLOAT_PREFIX.match(str(text or ""))
    if not m:
        return None
    value = float(m.group(0))
    return value if math.isfinite(value) else None


def parse_integer(text: object) -> int | None:
    if isinstance(text, bool):
        return None
    if isinstance(text, int):
        return text
    if isinstance(text, float):
        return int(text) if math.isfinite(text) else None
    m = _INT_PREFIX.match(str(text or ""))
    return int(m.group(0)) if m else None


def _check_in_order(
    *,
    title: str,
    description: str,
    price: float | None,
    quantity: int | None,
    condition: str,
    delivery_option: str,
    category_chain: tuple[str, str, str],
    image_count: int,
) -> None:
    if not title.strip():
        raise DraftValidationError("Please enter a product title", code="title_missing")
    if not description.strip():
        raise DraftValidationError("Please enter a product description", code="description_missing")
    if price is None or price <= 0:
        raise DraftValidationError("Please enter a valid price", code="price_invalid")
    if quantity is None or quantity <= 0:
        raise DraftValidationError("Please enter a valid quantity", code="quantity_invalid")
    if not condition:
        raise DraftValidationError("Please select a product condition", code="condition_missing")
    if not delivery_option:
        raise DraftValidationError("Please select a delivery option", code="delivery_option_missing")
    if not all(category_chain):
        raise DraftValidationError("Please complete the category selection", code="category_incomplete")
    if image_count == 0:
        raise DraftValidationError("Please upload at least one product image", code="images_missing")


def validate_draft(draft: Draft) -> None:
    """Raise DraftValidationError for the first failing required field."""
    _check_in_order(
        title=draft.title,
        description=draft.description,
        price=parse_decimal(draft.price),
        quantity=parse_integer(draft.quantity),
        condition=draft.condition,
        delivery_option=draft.delivery_option,
        category_chain=(draft.category, draft.subcategory, draft.subsubcategory),
        image_count=len(draft.images),
    )


def validate_record(record: "ModerationRecord") -> None:
    """Same gate as validate_draft, run against the assembled record before it is written."""
    _check_in_order(
        title=record.product_name,
        description=record.description,
        price=record.price,
        quantity=record.quantity,
        condition=record.condition,
        delivery_option=record.delivery_option,
        category_chain=(record.category, record.subcategory, record.subsubcategory),
        image_count=len([u for u in record.image_urls if u]),
    )
