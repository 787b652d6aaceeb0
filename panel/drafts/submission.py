"""
Preview/submit controller: turns a validated draft into a product
application in the moderation queue.

    AWAITING_DRAFT -> PREVIEWING -> SUBMITTING -> SUCCEEDED
          |                ^            |
          v                +------------+  (upload/write/validation failure)
        FAILED  (nothing to preview; caller redirects to compose)

Only the final document write is durable. Blobs uploaded before a failure
are not removed.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath

from panel.core.ids import gen_document_id
from panel.core.telemetry import tracer
from panel.drafts.channel import DraftChannel
from panel.drafts.errors import (
    DraftDecodeError,
    DraftValidationError,
    NotAuthenticated,
    SubmissionFailed,
    SubmissionInProgress,
)
from panel.drafts.models import Draft, DraftFile
from panel.drafts.record import ModerationRecord, assemble_record
from panel.drafts.serializer import decode_draft
from panel.drafts.validation import parse_integer, validate_record
from panel.services.auth import CurrentUser
from panel.services.shops import ActiveShop, load_seller_info, resolve_seller_name
from panel.stores.blobs import BlobStore
from panel.stores.documents import PRODUCT_APPLICATIONS, DocumentStore, StoredDocument

log = logging.getLogger(__name__)

COMPOSE_STEP = "compose"
SUCCESS_STEP = "success"


class SubmissionState(str, Enum):
    AWAITING_DRAFT = "awaiting_draft"
    PREVIEWING = "previewing"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionResult:
    record_id: str
    record: ModerationRecord
    stored: StoredDocument
    next_step: str = SUCCESS_STEP


def blob_path(uid: str, purpose: str, stamp_ms: int, filename: str) -> str:
    return f"products/{uid}/{purpose}/{stamp_ms}_{filename}"


class PreviewController:
    def __init__(
        self,
        *,
        channel: DraftChannel,
        blobs: BlobStore,
        documents: DocumentStore,
        user: CurrentUser | None,
        shop: ActiveShop,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = gen_document_id,
    ):
        self._channel = channel
        self._blobs = blobs
        self._documents = documents
        self._user = user
        self._shop = shop
        self._clock = clock
        self._id_factory = id_factory

        self.state = SubmissionState.AWAITING_DRAFT
        self.draft: Draft | None = None
        self.last_error: str | None = None

    async def load(self) -> Draft | None:
        """
        Read (without clearing) and decode the handed-off draft. None means
        there is nothing to preview and the caller should go back to compose.
        """
        try:
            encoded = await self._channel.read()
            draft = decode_draft(encoded) if encoded is not None else None
        except DraftDecodeError as e:
            log.warning("discarding undecodable draft: %s", e)
            draft = None

        if draft is None:
            self.state = SubmissionState.FAILED
            return None

        self.draft = draft
        self.state = SubmissionState.PREVIEWING
        return draft

    def edit(self) -> str:
        # the channel is left intact so the compose step can restore it
        return COMPOSE_STEP

    async def confirm(self) -> SubmissionResult:
        if self.state == SubmissionState.SUBMITTING:
            raise SubmissionInProgress("This listing is already being submitted")
        if self.state != SubmissionState.PREVIEWING or self.draft is None:
            raise DraftDecodeError("No draft to submit")
        if self._user is None:
            raise NotAuthenticated("Please sign in before submitting a listing")

        self.state = SubmissionState.SUBMITTING
        self.last_error = None
        try:
            with tracer.start_as_current_span("listing_draft.confirm") as span:
                span.set_attribute("shop.id", self._shop.id)
                result = await self._submit(self.draft, self._user)
        except DraftValidationError as e:
            self.state = SubmissionState.PREVIEWING
            self.last_error = e.message
            raise
        except Exception as e:
            self.state = SubmissionState.PREVIEWING
            self.last_error = "Error submitting product. Please try again."
            log.exception("listing submission failed for shop %s", self._shop.id)
            raise SubmissionFailed(self.last_error) from e

        try:
            await self._channel.clear()
        except Exception:
            # the record is already durable; a stale draft only re-offers the preview
            log.exception("failed to clear draft channel after submitting %s", result.record_id)

        self.state = SubmissionState.SUCCEEDED
        log.info("product application %s submitted for shop %s", result.record_id, self._shop.id)
        return result

    async def _submit(self, draft: Draft, user: CurrentUser) -> SubmissionResult:
        uid = user.uid
        image_urls, video_url, color_urls = await self._upload_media(draft, uid)

        color_images = {color: [url] for color, url in color_urls.items()}
        color_quantities: dict[str, int] = {}
        for color, entry in draft.colors.items():
            qty = parse_integer(entry.quantity)
            if qty is not None and qty > 0:
                color_quantities[color] = qty

        # sequential: the document store may be bound to one database session
        seller_name = await resolve_seller_name(self._documents, self._shop)
        seller_info = await load_seller_info(self._documents, self._shop.id)

        record_id = self._id_factory()
        record = assemble_record(
            record_id=record_id,
            draft=draft,
            uid=uid,
            shop_id=self._shop.id,
            seller_name=seller_name,
            seller_info=seller_info,
            image_urls=image_urls,
            video_url=video_url,
            color_images=color_images,
            color_quantities=color_quantities,
        )

        # authoritative gate: nothing is written unless the assembled record passes
        validate_record(record)

        stored = await self._documents.set(PRODUCT_APPLICATIONS, record_id, record.to_document(), actor=uid)
        record = record.model_copy(update={"created_at": stored.created_at, "updated_at": stored.updated_at})
        return SubmissionResult(record_id=record_id, record=record, stored=stored)

    async def _upload_media(
        self, draft: Draft, uid: str
    ) -> tuple[list[str], str | None, dict[str, str]]:
        stamp = int(self._clock() * 1000)

        def _upload(purpose: str, filename: str, f: DraftFile):
            return self._blobs.upload(blob_path(uid, purpose, stamp, filename), f.data, f.content_type)

        colored = [(color, entry.image) for color, entry in draft.colors.items() if entry.image is not None]

        names = [f.name for f in draft.images]
        same_names = len(set(names)) != len(names)
        jobs = [
            _upload("default_images", f"{i}_{f.name}" if same_names else f.name, f)
            for i, f in enumerate(draft.images)
        ]
        jobs += [
            _upload("color_images", f"{color}{PurePosixPath(f.name).suffix or '.jpg'}", f)
            for color, f in colored
        ]
        if draft.video is not None:
            jobs.append(_upload("preview_videos", draft.video.name, draft.video))

        urls = await asyncio.gather(*jobs)

        n_images = len(draft.images)
        image_urls = list(urls[:n_images])
        color_urls = {color: url for (color, _), url in zip(colored, urls[n_images:n_images + len(colored)])}
        video_url = urls[-1] if draft.video is not None else None
        return image_urls, video_url, color_urls
