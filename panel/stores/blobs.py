from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from panel.core.config import settings


class BlobStore(Protocol):
    async def upload(self, path: str, data: bytes, content_type: str) -> str: ...


class LocalObjectStore:
    def __init__(self, base_dir: str, public_base_url: str | None = None):
        self.base = Path(base_dir).resolve()
        self.base.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def _target(self, key: str) -> Path:
        path = (self.base / key).resolve()
        if not path.is_relative_to(self.base):
            raise ValueError(f"Blob key escapes storage root: {key}")
        return path

    def put_bytes(self, *, key: str, data: bytes) -> str:
        path = self._target(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        if self.public_base_url:
            return f"{self.public_base_url}/{quote(key)}"
        return f"file://{path.as_posix()}"

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        # content type is implied by the extension for file-backed blobs
        return await asyncio.to_thread(self.put_bytes, key=path, data=data)


_store: LocalObjectStore | None = None


def get_blob_store() -> BlobStore:
    global _store
    if _store is None:
        _store = LocalObjectStore(settings.storage_dir, settings.storage_public_base_url)
    return _store
