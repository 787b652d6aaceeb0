from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, Protocol

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from panel.core.db import get_db
from panel.models.document import Document

log = logging.getLogger(__name__)

QueryOp = Literal["==", "array-contains"]

SHOPS = "shops"
PRODUCT_APPLICATIONS = "product_applications"


def seller_info_collection(shop_id: str) -> str:
    return f"{SHOPS}/{shop_id}/seller_info"


@dataclass(frozen=True)
class StoredDocument:
    collection: str
    id: str
    data: dict[str, Any]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DocumentStore(Protocol):
    async def get(self, collection: str, doc_id: str) -> StoredDocument | None: ...

    async def set(self, collection: str, doc_id: str, data: dict[str, Any], *, actor: str | None = None) -> StoredDocument: ...

    async def where(self, collection: str, field: str, op: QueryOp, value: Any) -> list[StoredDocument]: ...


def with_timestamps(data: dict[str, Any], created_at: datetime | None, updated_at: datetime | None) -> dict[str, Any]:
    """Readers see the backend-assigned timestamps as createdAt/updatedAt in the body."""
    out = dict(data)
    if created_at is not None:
        out["createdAt"] = created_at.isoformat()
    if updated_at is not None:
        out["updatedAt"] = updated_at.isoformat()
    return out


def _to_stored(row: Document) -> StoredDocument:
    return StoredDocument(
        collection=row.collection,
        id=row.id,
        data=with_timestamps(row.data or {}, row.created_at, row.updated_at),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlDocumentStore:
    """Documents as JSONB rows in PostgreSQL. Writes are committed immediately."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        stmt = select(Document).where(Document.collection == collection, Document.id == doc_id)
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        return _to_stored(row) if row else None

    async def set(self, collection: str, doc_id: str, data: dict[str, Any], *, actor: str | None = None) -> StoredDocument:
        # full overwrite; timestamps come from the database clock
        stmt = (
            insert(Document)
            .values(collection=collection, id=doc_id, data=data, created_by=actor, updated_by=actor)
            .on_conflict_do_update(
                index_elements=[Document.collection, Document.id],
                set_={"data": data, "updated_by": actor, "updated_at": func.now()},
            )
            .returning(Document)
            .execution_options(populate_existing=True)
        )
        row = (await self.db.execute(stmt)).scalar_one()
        await self.db.commit()
        log.debug("wrote document %s/%s", collection, doc_id)
        return _to_stored(row)

    async def where(self, collection: str, field: str, op: QueryOp, value: Any) -> list[StoredDocument]:
        if op == "==":
            cond = Document.data.contains({field: value})
        elif op == "array-contains":
            cond = Document.data[field].contains([value])
        else:
            raise ValueError(f"Unsupported query op: {op}")

        stmt = select(Document).where(Document.collection == collection, cond).order_by(Document.created_at)
        rows = (await self.db.execute(stmt)).scalars().all()
        return [_to_stored(r) for r in rows]


async def get_documents(db: AsyncSession = Depends(get_db)) -> DocumentStore:
    return SqlDocumentStore(db)
