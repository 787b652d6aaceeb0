from dataclasses import dataclass
from fastapi import Depends, HTTPException, Security
from fastapi.security.api_key import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from panel.core.db import get_db
from panel.core.security import hash_api_key
from panel.models.api_key import ApiKey

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    uid: str
    display_name: str
    api_key_id: str | None = None


async def get_current_user(
    api_key: str | None = Security(api_key_header),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    if not api_key:
        raise HTTPException(status_code=401, detail="Missing X-API-Key")

    hashed = hash_api_key(api_key)
    stmt = select(ApiKey).where(ApiKey.key_hash == hashed, ApiKey.is_active.is_(True))
    row = (await db.execute(stmt)).scalar_one_or_none()
    if not row:
        raise HTTPException(status_code=401, detail="Invalid API key")

    return CurrentUser(
        uid=row.user_id,
        display_name=row.user.display_name if row.user else "",
        api_key_id=row.id,
    )
