import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from panel.core.db import get_db
from panel.core.ids import gen_id
from panel.core.security import generate_api_key
from panel.models.api_key import ApiKey
from panel.models.user import User
from panel.schemas.user import UserBootstrapOut, UserCreate
from panel.services.internal_admin import require_internal_admin

log = logging.getLogger(__name__)
router = APIRouter()


@router.post("/users/bootstrap", response_model=UserBootstrapOut, dependencies=[Depends(require_internal_admin)])
async def bootstrap_user(payload: UserCreate, db: AsyncSession = Depends(get_db)) -> UserBootstrapOut:
    """
    Create a merchant user and its first API key. The plain key is only returned here.
    """
    user = User(
        id=gen_id("usr"),
        display_name=payload.display_name,
        email=payload.email,
        created_by="internal",
        updated_by="internal",
    )
    key = generate_api_key()
    key_row = ApiKey(
        user_id=user.id,
        key_prefix=key.prefix,
        key_hash=key.hashed,
        is_active=True,
    )

    try:
        db.add(user)
        await db.flush()
        db.add(key_row)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        log.exception("user bootstrap failed: integrity error")
        raise HTTPException(status_code=409, detail="Constraint violation")

    return UserBootstrapOut(uid=user.id, display_name=user.display_name, api_key=key.plain)
