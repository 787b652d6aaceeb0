from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timezone
from typing import Any

from panel.stores.documents import StoredDocument, with_timestamps


class MemoryDocumentStore:
    """
    Dict-backed DocumentStore for tests. Tracks how many calls overlap, since
    the SQL store must never be driven concurrently on one session.
    """

    def __init__(self):
        self.docs: dict[tuple[str, str], StoredDocument] = {}
        self.fail_reads: set[str] = set()
        self.fail_writes: set[str] = set()
        self.writes: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _enter(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        # yield so overlapping callers would be observed
        await asyncio.sleep(0)

    async def get(self, collection: str, doc_id: str) -> StoredDocument | None:
        await self._enter()
        try:
            if collection in self.fail_reads:
                raise RuntimeError(f"read failed: {collection}")
            return self.docs.get((collection, doc_id))
        finally:
            self.in_flight -= 1

    async def set(self, collection: str, doc_id: str, data: dict[str, Any], *, actor: str | None = None) -> StoredDocument:
        await self._enter()
        try:
            if collection in self.fail_writes:
                raise RuntimeError(f"permission denied: {collection}")
            now = datetime.now(timezone.utc)
            prev = self.docs.get((collection, doc_id))
            created = prev.created_at if prev else now
            doc = StoredDocument(
                collection=collection,
                id=doc_id,
                data=with_timestamps(data, created, now),
                created_at=created,
                updated_at=now,
            )
            self.docs[(collection, doc_id)] = doc
            self.writes.append((collection, doc_id))
            return doc
        finally:
            self.in_flight -= 1

    async def where(self, collection: str, field: str, op: str, value: Any) -> list[StoredDocument]:
        await self._enter()
        try:
            out = []
            for (coll, _), doc in self.docs.items():
                if coll != collection:
                    continue
                v = doc.data.get(field)
                if op == "==" and v == value:
                    out.append(doc)
                elif op == "array-contains" and isinstance(v, list) and value in v:
                    out.append(doc)
            return out
        finally:
            self.in_flight -= 1

    def collection(self, name: str) -> dict[str, dict]:
        return {doc_id: d.data for (coll, doc_id), d in self.docs.items() if coll == name}


class MemoryBlobStore:
    def __init__(self):
        self.blobs: dict[str, tuple[bytes, str]] = {}
        self.fail_on: str | None = None
        self._seq = itertools.count(1)

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail_on and self.fail_on in path:
            raise RuntimeError(f"quota exceeded: {path}")
        self.blobs[path] = (data, content_type)
        return f"https://blobs.test/{path}?v={next(self._seq)}"
