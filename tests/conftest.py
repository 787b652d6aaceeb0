import base64
import os

import httpx
import pytest
import pytest_asyncio
from fakeredis import aioredis as fakeredis
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from panel.drafts.channel import RedisDraftChannel, get_redis_client
from panel.drafts.models import Draft, DraftFile
from panel.main import app
from panel.models import Base
from panel.services.auth import CurrentUser, get_current_user
from panel.services.shops import ActiveShop
from panel.stores.blobs import get_blob_store
from panel.stores.documents import get_documents

from tests.fakes import MemoryBlobStore, MemoryDocumentStore


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(64))
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 32


def image(name: str = "lamp.png", data: bytes = PNG_BYTES) -> DraftFile:
    return DraftFile(name=name, content_type="image/png", data=data)


def data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def lamp_draft(**overrides) -> Draft:
    draft = Draft(
        title="Lamp",
        description="A lamp",
        price="150.5",
        quantity="2",
        condition="Brand New",
        delivery_option="Fast Delivery",
        category="Home",
        subcategory="Lighting",
        subsubcategory="Lamps",
        images=[image()],
    )
    for k, v in overrides.items():
        setattr(draft, k, v)
    return draft


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def channel(redis_client):
    return RedisDraftChannel(redis_client, "tab-1")


@pytest.fixture
def documents():
    return MemoryDocumentStore()


@pytest.fixture
def blobs():
    return MemoryBlobStore()


@pytest.fixture
def user():
    return CurrentUser(uid="usr_owner", display_name="Ayse Owner", api_key_id="key_test")


@pytest_asyncio.fixture
async def seed_shop(documents, user):
    await documents.set("shops", "shop_1", {"name": "Lumen Home", "ownerId": user.uid, "editors": []})
    await documents.set(
        "shops/shop_1/seller_info",
        "info",
        {
            "phone": "+90 555 000 0000",
            "region": "Istanbul",
            "address": "Moda Cd. 1",
            "ibanOwnerName": "Ayse",
            "ibanOwnerSurname": "Owner",
            "iban": "TR000000000000000000000000",
        },
    )
    return ActiveShop(id="shop_1", name="Lumen Home (cached)")


@pytest_asyncio.fixture
async def client(redis_client, documents, blobs, user):
    """
    HTTP client with in-memory stores and a fixed signed-in user.
    """
    app.dependency_overrides[get_redis_client] = lambda: redis_client
    app.dependency_overrides[get_documents] = lambda: documents
    app.dependency_overrides[get_blob_store] = lambda: blobs
    app.dependency_overrides[get_current_user] = lambda: user

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    await redis_client.flushdb()


@pytest_asyncio.fixture
async def async_engine():
    url = os.getenv("DATABASE_URL_TEST")
    if not url:
        pytest.skip("DATABASE_URL_TEST is not set")
    engine = create_async_engine(url, future=True, pool_pre_ping=True)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine):
    """
    Transactional rollback per test: the store's commits only release
    savepoints inside the outer transaction.
    """
    async with async_engine.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(bind=conn, expire_on_commit=False, join_transaction_mode="create_savepoint")
        try:
            yield session
        finally:
            await session.close()
            await trans.rollback()
