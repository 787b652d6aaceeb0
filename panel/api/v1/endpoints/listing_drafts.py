import logging

from fastapi import APIRouter, Depends, HTTPException

from panel.api.v1.endpoints.shops import get_active_shop
from panel.drafts.channel import DraftChannel, SubmitGuard, get_draft_channel, get_submit_guard
from panel.drafts.errors import (
    DraftDecodeError,
    DraftValidationError,
    NotAuthenticated,
    SubmissionFailed,
    SubmissionInProgress,
)
from panel.drafts.form import ListingForm
from panel.drafts.serializer import EncodedDraft, decode_draft, encode_draft
from panel.drafts.submission import COMPOSE_STEP, PreviewController
from panel.schemas.draft import ConfirmOut, DraftPreviewOut, DraftSubmitOut
from panel.services.auth import CurrentUser, get_current_user
from panel.services.shops import ActiveShop
from panel.stores.blobs import BlobStore, get_blob_store
from panel.stores.documents import DocumentStore, get_documents

log = logging.getLogger(__name__)
router = APIRouter()

_REDIRECT = {"code": DraftDecodeError.code, "message": "No draft to preview", "redirect": COMPOSE_STEP}


def _controller(
    *,
    channel: DraftChannel,
    blobs: BlobStore,
    documents: DocumentStore,
    user: CurrentUser,
    shop: ActiveShop,
) -> PreviewController:
    return PreviewController(channel=channel, blobs=blobs, documents=documents, user=user, shop=shop)


@router.put("/shops/{shop_id}/listing-draft", response_model=DraftSubmitOut)
async def submit_listing_draft(
    payload: EncodedDraft,
    shop: ActiveShop = Depends(get_active_shop),
    channel: DraftChannel = Depends(get_draft_channel),
) -> DraftSubmitOut:
    """Compose step: validate the draft and hand it to the preview step."""
    try:
        draft = decode_draft(payload)
    except DraftDecodeError as e:
        raise HTTPException(status_code=422, detail=e.to_detail())

    form = ListingForm(channel)
    form.fill(draft)
    try:
        await form.submit()
    except DraftValidationError as e:
        raise HTTPException(status_code=422, detail=e.to_detail())

    return DraftSubmitOut(image_count=len(form.draft.images))


@router.get("/shops/{shop_id}/listing-draft", response_model=DraftPreviewOut)
async def preview_listing_draft(
    shop: ActiveShop = Depends(get_active_shop),
    user: CurrentUser = Depends(get_current_user),
    channel: DraftChannel = Depends(get_draft_channel),
    blobs: BlobStore = Depends(get_blob_store),
    documents: DocumentStore = Depends(get_documents),
) -> DraftPreviewOut:
    controller = _controller(channel=channel, blobs=blobs, documents=documents, user=user, shop=shop)
    draft = await controller.load()
    if draft is None:
        raise HTTPException(status_code=404, detail=_REDIRECT)
    return DraftPreviewOut.from_draft(draft, edit_step=controller.edit())


@router.get("/shops/{shop_id}/listing-draft/compose", response_model=EncodedDraft)
async def restore_listing_draft(
    shop: ActiveShop = Depends(get_active_shop),
    channel: DraftChannel = Depends(get_draft_channel),
) -> EncodedDraft:
    """
    Edit from the preview step: the handed-off draft with every file payload,
    so the compose form can be rebuilt. The channel is left as it is.
    """
    form = ListingForm(channel)
    if not await form.restore():
        raise HTTPException(status_code=404, detail=_REDIRECT)
    return await encode_draft(form.draft)


@router.post("/shops/{shop_id}/listing-draft/confirm", response_model=ConfirmOut, status_code=201)
async def confirm_listing_draft(
    shop: ActiveShop = Depends(get_active_shop),
    user: CurrentUser = Depends(get_current_user),
    channel: DraftChannel = Depends(get_draft_channel),
    guard: SubmitGuard = Depends(get_submit_guard),
    blobs: BlobStore = Depends(get_blob_store),
    documents: DocumentStore = Depends(get_documents),
) -> ConfirmOut:
    controller = _controller(channel=channel, blobs=blobs, documents=documents, user=user, shop=shop)
    try:
        async with guard.hold():
            if await controller.load() is None:
                raise HTTPException(status_code=404, detail=_REDIRECT)
            result = await controller.confirm()
    except SubmissionInProgress as e:
        raise HTTPException(status_code=409, detail=e.to_detail())
    except DraftValidationError as e:
        raise HTTPException(status_code=422, detail=e.to_detail())
    except NotAuthenticated as e:
        raise HTTPException(status_code=401, detail=e.to_detail())
    except SubmissionFailed as e:
        raise HTTPException(status_code=502, detail=e.to_detail())

    return ConfirmOut(id=result.record_id, next_step=result.next_step, record=result.record.to_document())
