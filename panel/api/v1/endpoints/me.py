from fastapi import APIRouter, Depends

from panel.schemas.me import MeOut
from panel.services.auth import CurrentUser, get_current_user

router = APIRouter()

@router.get("/me", response_model=MeOut)
async def me(user: CurrentUser = Depends(get_current_user)) -> MeOut:
    return MeOut(uid=user.uid, display_name=user.display_name, api_key_id=user.api_key_id)
