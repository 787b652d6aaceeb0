from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol

import redis.asyncio as redis
from fastapi import Depends, Header, HTTPException

from panel.core.config import settings
from panel.drafts import serializer
from panel.drafts.errors import SubmissionInProgress
from panel.drafts.serializer import EncodedDraft

log = logging.getLogger(__name__)


class DraftChannel(Protocol):
    """Single-slot handoff between the compose step and the preview step."""

    async def write(self, encoded: EncodedDraft) -> None: ...

    async def read(self) -> EncodedDraft | None: ...

    async def clear(self) -> None: ...


class RedisDraftChannel:
    """
    One Redis string per browser session. No versioning, no locking:
    concurrent writers in the same session race last-write-wins.
    """

    def __init__(self, client: redis.Redis, session_id: str, *, ttl_seconds: int | None = None):
        self._client = client
        self._key = f"{settings.draft_key_prefix}{session_id}"
        self._ttl = settings.draft_ttl_seconds if ttl_seconds is None else ttl_seconds

    @property
    def key(self) -> str:
        return self._key

    async def write(self, encoded: EncodedDraft) -> None:
        await self._client.set(self._key, serializer.dumps(encoded), ex=self._ttl or None)

    async def read(self) -> EncodedDraft | None:
        raw = await self._client.get(self._key)
        if not raw:
            return None
        # raises DraftDecodeError on garbage
        return serializer.loads(raw)

    async def clear(self) -> None:
        await self._client.delete(self._key)
        log.debug("cleared draft channel %s", self._key)


_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


async def require_session_id(x_session_id: str | None = Header(default=None)) -> str:
    if not x_session_id:
        raise HTTPException(status_code=400, detail="Missing X-Session-Id header")
    if len(x_session_id) > 200:
        raise HTTPException(status_code=400, detail="X-Session-Id too long")
    return x_session_id


async def get_draft_channel(
    session_id: str = Depends(require_session_id),
    client: redis.Redis = Depends(get_redis_client),
) -> DraftChannel:
    return RedisDraftChannel(client, session_id)


class SubmitGuard:
    """
    Per-session "processing" flag: a second confirm for the same session is
    refused while one is in flight. Expires on its own if a worker dies.
    """

    def __init__(self, client: redis.Redis, session_id: str, *, ttl_seconds: int = 300):
        self._client = client
        self._key = f"{settings.draft_key_prefix}{session_id}:processing"
        self._ttl = ttl_seconds

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        acquired = await self._client.set(self._key, "1", nx=True, ex=self._ttl)
        if not acquired:
            raise SubmissionInProgress("This listing is already being submitted")
        try:
            yield
        finally:
            await self._client.delete(self._key)


async def get_submit_guard(
    session_id: str = Depends(require_session_id),
    client: redis.Redis = Depends(get_redis_client),
) -> SubmitGuard:
    return SubmitGuard(client, session_id)
