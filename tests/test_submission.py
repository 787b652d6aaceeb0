import pytest

from panel.drafts.errors import DraftValidationError, NotAuthenticated, SubmissionFailed, SubmissionInProgress
from panel.drafts.models import ColorEntry, DraftFile
from panel.drafts.serializer import encode_draft
from panel.drafts.submission import COMPOSE_STEP, PreviewController, SubmissionState
from panel.services.shops import ActiveShop

from tests.conftest import MP4_BYTES, image, lamp_draft


FIXED_MS = 1_700_000_000_000


def _controller(channel, blobs, documents, user, shop, **kw):
    return PreviewController(
        channel=channel,
        blobs=blobs,
        documents=documents,
        user=user,
        shop=shop,
        clock=lambda: FIXED_MS / 1000,
        id_factory=kw.pop("id_factory", lambda: "app-1"),
        **kw,
    )


async def _handoff(channel, draft):
    await channel.write(await encode_draft(draft))


@pytest.mark.asyncio
async def test_lamp_scenario(channel, blobs, documents, user, seed_shop):
    await _handoff(channel, lamp_draft())
    ctl = _controller(channel, blobs, documents, user, seed_shop)

    assert await ctl.load() is not None
    assert ctl.state == SubmissionState.PREVIEWING

    result = await ctl.confirm()

    assert ctl.state == SubmissionState.SUCCEEDED
    doc = documents.collection("product_applications")["app-1"]
    assert doc["price"] == 150.5 and isinstance(doc["price"], float)
    assert doc["quantity"] == 2 and isinstance(doc["quantity"], int)
    assert doc["imageUrls"] == [f"https://blobs.test/products/usr_owner/default_images/{FIXED_MS}_lamp.png?v=1"]
    assert doc["productName"] == "Lamp"
    assert doc["ilan_no"] == "app-1"
    assert doc["needsSync"] is True
    assert doc["currency"] == "TL"
    assert doc["clickCount"] == 0 and doc["favoritesCount"] == 0 and doc["isBoosted"] is False
    assert doc["jewelryMaterials"] == [] and doc["videoUrl"] is None

    index = doc["searchIndex"]
    for term in ("lamp", "home", "lighting", "lamps"):
        assert term in index
    assert len(index) == len(set(index))

    # handoff slot is cleared only after the write
    assert await channel.read() is None
    assert result.record_id == "app-1"
    assert result.stored.created_at is not None


@pytest.mark.asyncio
async def test_color_maps_only_keep_positive_quantities(channel, blobs, documents, user, seed_shop):
    draft = lamp_draft(
        colors={
            "Red": ColorEntry(quantity="3", image=image("red.png")),
            "Blue": ColorEntry(quantity="0", image=None),
        }
    )
    await _handoff(channel, draft)
    ctl = _controller(channel, blobs, documents, user, seed_shop)
    await ctl.load()

    record = (await ctl.confirm()).record

    assert record.color_quantities == {"Red": 3}
    assert list(record.color_images) == ["Red"]
    assert record.color_images["Red"][0].startswith(
        f"https://blobs.test/products/usr_owner/color_images/{FIXED_MS}_Red.png"
    )
    assert "red" in record.search_index and "blue" in record.search_index


@pytest.mark.asyncio
async def test_zero_quantity_color_still_uploads_its_image(channel, blobs, documents, user, seed_shop):
    await _handoff(channel, lamp_draft(colors={"Green": ColorEntry(quantity="0", image=image("g.jpg"))}))
    ctl = _controller(channel, blobs, documents, user, seed_shop)
    await ctl.load()

    record = (await ctl.confirm()).record

    assert record.color_quantities == {}
    assert "Green" in record.color_images


@pytest.mark.asyncio
async def test_images_keep_order_and_video_uses_its_own_namespace(channel, blobs, documents, user, seed_shop):
    video = DraftFile(name="spin.mp4", content_type="video/mp4", data=MP4_BYTES)
    await _handoff(channel, lamp_draft(images=[image("cover.png"), image("side.png")], video=video))
    ctl = _controller(channel, blobs, documents, user, seed_shop)
    await ctl.load()

    record = (await ctl.confirm()).record

    assert "cover.png" in record.image_urls[0]
    assert "side.png" in record.image_urls[1]
    assert f"/preview_videos/{FIXED_MS}_spin.mp4" in record.video_url
    assert blobs.blobs[f"products/usr_owner/preview_videos/{FIXED_MS}_spin.mp4"] == (MP4_BYTES, "video/mp4")


@pytest.mark.asyncio
async def test_same_named_images_do_not_collide(channel, blobs, documents, user, seed_shop):
    await _handoff(channel, lamp_draft(images=[image("img.png", b"1"), image("img.png", b"2")]))
    ctl = _controller(channel, blobs, documents, user, seed_shop)
    await ctl.load()

    record = (await ctl.confirm()).record

    assert len(set(record.image_urls)) == 2
    assert len(blobs.blobs) == 2


@pytest.mark.asyncio
async def test_seller_details_come_from_shop(channel, blobs, documents, user, seed_shop):
    await _handoff(channel, lamp_draft())
    ctl = _controller(channel, blobs, documents, user, seed_shop)
    await ctl.load()

    doc = (await ctl.confirm()).record.to_document()

    assert doc["sellerName"] == "Lumen Home"
    assert doc["shopId"] == "shop_1"
    assert doc["iban"] == "TR000000000000000000000000"
    assert doc["ibanOwnerName"] == "Ayse"
    assert doc["region"] == "Istanbul"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "shop_doc, fail_read, expected",
    [
        ({"shopName": "Lumen Shop"}, False, "Lumen Shop"),
        (None, False, "Cached Name"),
        ({"name": "Lumen Home"}, True, "Cached Name"),
    ],
)
async def test_seller_name_fallbacks(channel, blobs, documents, user, shop_doc, fail_read, expected):
    if shop_doc is not None:
        await documents.set("shops", "shop_2", shop_doc)
    if fail_read:
        documents.fail_reads.add("shops")
    await _handoff(channel, lamp_draft())
    ctl = _controller(channel, blobs, documents, user, ActiveShop(id="shop_2", name="Cached Name"))
    await ctl.load()

    record = (await ctl.confirm()).record

    assert record.seller_name == expected
    assert record.phone == ""


@pytest.mark.asyncio
async def test_unknown_seller_sentinel(channel, blobs, documents, user):
    await _handoff(channel, lamp_draft())
    ctl = _controller(channel, blobs, documents, user, ActiveShop(id="ghost", name=""))
    await ctl.load()

    assert (await ctl.confirm()).record.seller_name == "Unknown Shop"


@pytest.mark.asyncio
async def test_empty_channel_fails_fast(channel, blobs, documents, user, seed_shop):
    ctl = _controller(channel, blobs, documents, user, seed_shop)

    assert await ctl.load() is None
    assert ctl.state == SubmissionState.FAILED
    assert ctl.edit() == COMPOSE_STEP


@pytest.mark.asyncio
async def test_corrupt_channel_fails_fast(channel, redis_client, blobs, documents, user, seed_shop):
    await redis_client.set(channel.key, '{"images": [{"name": "a.png", "data": "nope"}]}')
    ctl = _controller(channel, blobs, documents, user, seed_shop)

    assert await ctl.load() is None
    assert ctl.state == SubmissionState.FAILED


@pytest.mark.asyncio
async def test_assembled_record_is_validated_before_write(channel, blobs, documents, user, seed_shop):
    # bypasses the compose step: the preview gate must still refuse it
    await _handoff(channel, lamp_draft(quantity="0", condition=""))
    ctl = _controller(channel, blobs, documents, user, seed_shop)
    await ctl.load()

    with pytest.raises(DraftValidationError) as exc:
        await ctl.confirm()

    assert exc.value.code == "quantity_invalid"
    assert documents.collection("product_applications") == {}
    assert ctl.state == SubmissionState.PREVIEWING
    assert await channel.read() is not None


@pytest.mark.asyncio
async def test_upload_failure_keeps_draft_and_allows_retry(channel, blobs, documents, user, seed_shop):
    await _handoff(channel, lamp_draft(colors={"Red": ColorEntry(quantity="1", image=image("r.png"))}))
    ids = iter(["app-a", "app-b"])
    ctl = _controller(channel, blobs, documents, user, seed_shop, id_factory=lambda: next(ids))
    await ctl.load()
    blobs.fail_on = "color_images"

    with pytest.raises(SubmissionFailed):
        await ctl.confirm()

    assert ctl.state == SubmissionState.PREVIEWING
    assert ctl.last_error
    assert documents.collection("product_applications") == {}
    assert await channel.read() is not None

    blobs.fail_on = None
    result = await ctl.confirm()
    assert result.record_id == "app-a"
    assert ctl.state == SubmissionState.SUCCEEDED


@pytest.mark.asyncio
async def test_write_failure_is_retryable(channel, blobs, documents, user, seed_shop):
    await _handoff(channel, lamp_draft())
    ctl = _controller(channel, blobs, documents, user, seed_shop)
    await ctl.load()
    documents.fail_writes.add("product_applications")

    with pytest.raises(SubmissionFailed):
        await ctl.confirm()

    # uploads are not rolled back
    assert blobs.blobs
    assert ctl.state == SubmissionState.PREVIEWING
    assert await channel.read() is not None


@pytest.mark.asyncio
async def test_signed_out_user_cannot_confirm(channel, blobs, documents, seed_shop):
    await _handoff(channel, lamp_draft())
    ctl = _controller(channel, blobs, documents, None, seed_shop)
    await ctl.load()

    with pytest.raises(NotAuthenticated):
        await ctl.confirm()

    assert blobs.blobs == {}
    assert documents.collection("product_applications") == {}


@pytest.mark.asyncio
async def test_confirm_while_submitting_is_refused(channel, blobs, documents, user, seed_shop):
    await _handoff(channel, lamp_draft())
    ctl = _controller(channel, blobs, documents, user, seed_shop)
    await ctl.load()
    ctl.state = SubmissionState.SUBMITTING

    with pytest.raises(SubmissionInProgress):
        await ctl.confirm()


@pytest.mark.asyncio
async def test_record_carries_backend_timestamps(channel, blobs, documents, user, seed_shop):
    await _handoff(channel, lamp_draft())
    ctl = _controller(channel, blobs, documents, user, seed_shop)
    await ctl.load()

    result = await ctl.confirm()

    body = result.record.to_document()
    assert body["createdAt"] and body["updatedAt"]
    assert result.record.created_at == result.stored.created_at

    stored = await documents.get("product_applications", "app-1")
    assert stored.data["createdAt"] == result.stored.created_at.isoformat()
    assert "updatedAt" in stored.data


@pytest.mark.asyncio
async def test_seller_lookups_do_not_overlap(channel, blobs, documents, user, seed_shop):
    await _handoff(channel, lamp_draft())
    ctl = _controller(channel, blobs, documents, user, seed_shop)
    await ctl.load()

    await ctl.confirm()

    assert documents.max_in_flight == 1
