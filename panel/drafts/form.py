"""
Listing form state machine.

Holds the Draft while the merchant composes it. Category selections cascade:
changing a level of the category path clears everything below it (brand,
every variant group, the color map). Cascades are suppressed for a short
grace period after a draft is restored from the handoff channel, so a
restored category does not wipe its own restored children.

    EMPTY -> COMPOSING -> (RESTORING) -> COMPOSING -> SUBMITTED
"""
from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from enum import Enum

from panel.core.config import settings
from panel.drafts.channel import DraftChannel
from panel.drafts.errors import DraftDecodeError, DraftValidationError
from panel.drafts.models import TEXT_FIELDS, VARIANT_FIELDS, ColorEntry, Draft, DraftFile
from panel.drafts.serializer import EncodedDraft, decode_draft, encode_draft
from panel.drafts.validation import validate_draft

log = logging.getLogger(__name__)


class FormState(str, Enum):
    EMPTY = "empty"
    COMPOSING = "composing"
    RESTORING = "restoring"
    SUBMITTED = "submitted"


class ListingForm:
    def __init__(
        self,
        channel: DraftChannel,
        *,
        clock: Callable[[], float] = time.monotonic,
        restore_grace_seconds: float | None = None,
    ):
        self._channel = channel
        self._clock = clock
        self._grace = settings.restore_grace_seconds if restore_grace_seconds is None else restore_grace_seconds
        self._draft = Draft()
        self._state = FormState.EMPTY
        self._restoring_until: float | None = None

    @property
    def draft(self) -> Draft:
        return self._draft

    @property
    def state(self) -> FormState:
        if self.is_restoring:
            return FormState.RESTORING
        return self._state

    @property
    def is_restoring(self) -> bool:
        if self._restoring_until is None:
            return False
        if self._clock() < self._restoring_until:
            return True
        self._restoring_until = None
        return False

    def _touch(self) -> None:
        self._state = FormState.COMPOSING

    # --- restore ---------------------------------------------------------

    async def restore(self) -> bool:
        """
        Rehydrate from the channel without clearing it (so "Edit" from the
        preview step keeps the draft). Returns False when there is nothing
        usable to restore.
        """
        try:
            encoded = await self._channel.read()
            if encoded is None:
                return False
            draft = decode_draft(encoded)
        except DraftDecodeError as e:
            log.warning("could not restore draft: %s", e)
            return False

        self._restoring_until = self._clock() + self._grace
        self.fill(draft)
        if not draft.quantity:
            self._draft.quantity = "1"
        return True

    def fill(self, draft: Draft) -> Draft:
        """Apply a whole draft through the setters, top of the category path first."""
        self.set_category(draft.category)
        self.set_subcategory(draft.subcategory)
        self.set_subsubcategory(draft.subsubcategory)

        for name in TEXT_FIELDS:
            self.set_field(name, getattr(draft, name))
        for name in VARIANT_FIELDS:
            self.set_field(name, getattr(draft, name))

        self._draft.colors = {}
        for color, entry in draft.colors.items():
            self.toggle_color(color)
            self.set_color_quantity(color, entry.quantity)
            self.set_color_image(color, entry.image)

        self._draft.images = []
        self.add_images(draft.images)
        self.set_video(draft.video)
        return self._draft

    # --- category cascade ------------------------------------------------

    def set_category(self, value: str) -> Draft:
        cascade = not self.is_restoring and value != self._draft.category
        self._draft.category = value
        if cascade:
            self._draft.subcategory = ""
            self._draft.subsubcategory = ""
            self._draft.brand = ""
            self._draft.clear_variants()
        self._touch()
        return self._draft

    def set_subcategory(self, value: str) -> Draft:
        cascade = not self.is_restoring and value != self._draft.subcategory
        self._draft.subcategory = value
        if cascade:
            self._draft.subsubcategory = ""
            self._draft.brand = ""
            self._draft.clear_variants()
        self._touch()
        return self._draft

    def set_subsubcategory(self, value: str) -> Draft:
        cascade = not self.is_restoring and value != self._draft.subsubcategory
        self._draft.subsubcategory = value
        if cascade:
            self._draft.brand = ""
            self._draft.clear_variants()
        self._touch()
        return self._draft

    # --- plain fields ----------------------------------------------------

    def set_field(self, name: str, value) -> Draft:
        if name in TEXT_FIELDS:
            setattr(self._draft, name, "" if value is None else str(value))
        elif name in VARIANT_FIELDS:
            if VARIANT_FIELDS[name] is list:
                value = [str(v) for v in (value or [])]
            else:
                value = "" if value is None else str(value)
            setattr(self._draft, name, value)
        else:
            raise AttributeError(f"unknown draft field: {name}")
        self._touch()
        return self._draft

    # --- colors ----------------------------------------------------------

    def toggle_color(self, name: str) -> Draft:
        if name in self._draft.colors:
            # dropping a color discards its quantity and image
            del self._draft.colors[name]
        else:
            self._draft.colors[name] = ColorEntry()
        self._touch()
        return self._draft

    def _color(self, name: str) -> ColorEntry:
        try:
            return self._draft.colors[name]
        except KeyError:
            raise DraftValidationError(f"Select the color {name!r} first", code="color_not_selected") from None

    def set_color_quantity(self, name: str, text: str) -> Draft:
        self._color(name).quantity = text
        self._touch()
        return self._draft

    def set_color_image(self, name: str, file: DraftFile | None) -> Draft:
        self._color(name).image = file
        self._touch()
        return self._draft

    # --- media -----------------------------------------------------------

    def add_images(self, files: Iterable[DraftFile]) -> Draft:
        self._draft.images.extend(files)
        self._touch()
        return self._draft

    def remove_image(self, index: int) -> Draft:
        del self._draft.images[index]
        self._touch()
        return self._draft

    def set_video(self, file: DraftFile | None) -> Draft:
        self._draft.video = file
        self._touch()
        return self._draft

    def remove_video(self) -> Draft:
        return self.set_video(None)

    # --- submit ----------------------------------------------------------

    async def submit(self) -> EncodedDraft:
        """
        Validate, encode and hand the draft to the preview step.
        Raises DraftValidationError (first failing field) before any side effect.
        """
        validate_draft(self._draft)

        self._draft.title = self._draft.title.strip()
        self._draft.description = self._draft.description.strip()

        encoded = await encode_draft(self._draft)
        await self._channel.write(encoded)
        self._state = FormState.SUBMITTED
        log.info("draft submitted for preview (%d images)", len(self._draft.images))
        return encoded
