from fastapi import APIRouter, Depends, HTTPException

from panel.schemas.shop import ShopOut
from panel.services.auth import CurrentUser, get_current_user
from panel.services.shops import ActiveShop, ShopAccessDenied, list_shops, resolve_active_shop
from panel.stores.documents import DocumentStore, get_documents

router = APIRouter()


async def get_active_shop(
    shop_id: str,
    user: CurrentUser = Depends(get_current_user),
    documents: DocumentStore = Depends(get_documents),
) -> ActiveShop:
    try:
        return await resolve_active_shop(documents, user.uid, shop_id)
    except ShopAccessDenied:
        raise HTTPException(status_code=403, detail="Shop not available")


@router.get("/shops", response_model=list[ShopOut])
async def my_shops(
    user: CurrentUser = Depends(get_current_user),
    documents: DocumentStore = Depends(get_documents),
) -> list[ShopOut]:
    shops = await list_shops(documents, user.uid)
    return [ShopOut(id=s.id, name=s.name) for s in shops]
