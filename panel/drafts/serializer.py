"""
Text-safe encoding of a Draft, so a work-in-progress listing survives a hop
through the handoff channel (and through JSON request bodies).

Every binary field becomes {name, type, size, data} where data is a
"data:<mime>;base64,<payload>" URL. Decoding is all-or-nothing.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import logging

from pydantic import BaseModel, Field, ValidationError

from panel.drafts.errors import DraftDecodeError
from panel.drafts.models import ColorEntry, Draft, DraftFile

log = logging.getLogger(__name__)


class EncodedFile(BaseModel):
    name: str = Field(min_length=1, max_length=500)
    type: str = Field(default="", max_length=200)
    size: int | None = Field(default=None, ge=0)
    data: str


class EncodedColor(BaseModel):
    quantity: str = ""
    image: EncodedFile | None = None


class EncodedDraft(BaseModel):
    title: str = ""
    description: str = ""
    price: str = ""
    quantity: str = "1"
    condition: str = ""
    delivery_option: str = ""

    category: str = ""
    subcategory: str = ""
    subsubcategory: str = ""
    brand: str = ""

    jewelry_type: str = ""
    jewelry_materials: list[str] = Field(default_factory=list)
    pant_sizes: list[str] = Field(default_factory=list)
    clothing_sizes: list[str] = Field(default_factory=list)
    clothing_fit: str = ""
    clothing_type: str = ""
    footwear_gender: str = ""
    footwear_sizes: list[str] = Field(default_factory=list)
    gender: str = ""

    colors: dict[str, EncodedColor] = Field(default_factory=dict)
    images: list[EncodedFile] = Field(default_factory=list)
    video: EncodedFile | None = None


_PLAIN_FIELDS = tuple(
    name for name in EncodedDraft.model_fields if name not in ("colors", "images", "video")
)


def encode_file(f: DraftFile) -> EncodedFile:
    payload = base64.b64encode(f.data).decode("ascii")
    return EncodedFile(
        name=f.name,
        type=f.content_type,
        size=f.size,
        data=f"data:{f.content_type};base64,{payload}",
    )


def decode_file(encoded: EncodedFile) -> DraftFile:
    header, sep, payload = encoded.data.partition(",")
    if not sep or not header.startswith("data:"):
        raise DraftDecodeError(f"file {encoded.name!r} is not a data URL")
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DraftDecodeError(f"file {encoded.name!r} has a malformed payload: {e}") from e

    if encoded.size is not None and encoded.size != len(raw):
        raise DraftDecodeError(
            f"file {encoded.name!r} size mismatch: expected {encoded.size}, got {len(raw)}"
        )

    content_type = encoded.type or header[len("data:"):].split(";", 1)[0] or "application/octet-stream"
    return DraftFile(name=encoded.name, content_type=content_type, data=raw)


async def encode_draft(draft: Draft) -> EncodedDraft:
    """
    Encode every file of the draft. Files are encoded concurrently on worker
    threads; the result is only returned once all of them are done.
    """
    color_names = [name for name, entry in draft.colors.items() if entry.image is not None]

    image_jobs = [asyncio.to_thread(encode_file, f) for f in draft.images]
    color_jobs = [asyncio.to_thread(encode_file, draft.colors[name].image) for name in color_names]
    video_jobs = [asyncio.to_thread(encode_file, draft.video)] if draft.video is not None else []

    results = await asyncio.gather(*image_jobs, *color_jobs, *video_jobs)

    n_images = len(image_jobs)
    n_colors = len(color_jobs)
    images = list(results[:n_images])
    color_images = dict(zip(color_names, results[n_images:n_images + n_colors]))
    video = results[-1] if video_jobs else None

    colors = {
        name: EncodedColor(quantity=entry.quantity, image=color_images.get(name))
        for name, entry in draft.colors.items()
    }

    plain = {name: getattr(draft, name) for name in _PLAIN_FIELDS}
    for name, value in plain.items():
        if isinstance(value, list):
            plain[name] = list(value)

    return EncodedDraft(**plain, colors=colors, images=images, video=video)


def decode_draft(encoded: EncodedDraft) -> Draft:
    draft = Draft(**{name: _copy(getattr(encoded, name)) for name in _PLAIN_FIELDS})
    draft.images = [decode_file(f) for f in encoded.images]
    draft.video = decode_file(encoded.video) if encoded.video is not None else None
    draft.colors = {
        name: ColorEntry(
            quantity=color.quantity,
            image=decode_file(color.image) if color.image is not None else None,
        )
        for name, color in encoded.colors.items()
    }
    return draft


def dumps(encoded: EncodedDraft) -> str:
    return encoded.model_dump_json()


def loads(text: str | bytes) -> EncodedDraft:
    try:
        return EncodedDraft.model_validate_json(text)
    except ValidationError as e:
        log.warning("stored draft is not parseable (%d errors)", e.error_count())
        raise DraftDecodeError("stored draft is not parseable") from e


def _copy(value):
    return list(value) if isinstance(value, list) else value
