from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from panel.drafts.record import SellerInfo
from panel.stores.documents import SHOPS, DocumentStore, seller_info_collection

log = logging.getLogger(__name__)

UNNAMED_SHOP = "Unnamed Shop"
UNKNOWN_SELLER = "Unknown Shop"

# Membership fields on a shop document, strongest role first.
_ROLE_QUERIES = (
    ("ownerId", "=="),
    ("coOwners", "array-contains"),
    ("editors", "array-contains"),
    ("viewers", "array-contains"),
)


class ShopAccessDenied(Exception):
    def __init__(self, shop_id: str):
        super().__init__(f"Shop {shop_id} is not available to this user")
        self.shop_id = shop_id


@dataclass(frozen=True)
class ActiveShop:
    """The shop the merchant is working in. `name` is the cached display name."""
    id: str
    name: str


async def list_shops(documents: DocumentStore, uid: str) -> list[ActiveShop]:
    # one query at a time: SqlDocumentStore shares a single AsyncSession
    shops: dict[str, ActiveShop] = {}
    for field, op in _ROLE_QUERIES:
        docs = await documents.where(SHOPS, field, op, uid)
        for d in docs:
            if d.id not in shops:
                shops[d.id] = ActiveShop(id=d.id, name=d.data.get("name") or UNNAMED_SHOP)
    return list(shops.values())


async def resolve_active_shop(documents: DocumentStore, uid: str, shop_id: str) -> ActiveShop:
    for shop in await list_shops(documents, uid):
        if shop.id == shop_id:
            return shop
    raise ShopAccessDenied(shop_id)


async def resolve_seller_name(documents: DocumentStore, shop: ActiveShop) -> str:
    """
    Shop document name (fresh read) -> cached shop name -> UNKNOWN_SELLER.
    """
    try:
        doc = await documents.get(SHOPS, shop.id)
    except Exception:
        log.warning("could not read shop %s for seller name, using cached name", shop.id, exc_info=True)
        return shop.name or UNKNOWN_SELLER

    if doc is None:
        return shop.name or UNKNOWN_SELLER
    return doc.data.get("name") or doc.data.get("shopName") or shop.name or UNKNOWN_SELLER


async def load_seller_info(documents: DocumentStore, shop_id: str) -> SellerInfo:
    doc = await documents.get(seller_info_collection(shop_id), "info")
    if doc is None:
        return SellerInfo()
    try:
        return SellerInfo.model_validate(doc.data)
    except ValidationError:
        log.warning("seller info for shop %s is malformed; submitting without it", shop_id)
        return SellerInfo()
